"""AuditSettings tests: defaults, environment overrides, business-hours ordering."""

import pytest
from pydantic import ValidationError

from audit_trail.config.settings import AuditSettings


def test_defaults_match_detection_rules():
    settings = AuditSettings()
    assert settings.query_max_range_days == 90
    assert settings.query_default_limit == 100
    assert settings.failed_login_threshold == 5
    assert settings.distributed_login_source_threshold == 3
    assert settings.auth_window_minutes == 5
    assert settings.sensitive_access_threshold == 20
    assert settings.access_window_minutes == 60
    assert (settings.business_hours_start, settings.business_hours_end) == (9, 18)


def test_environment_overrides(monkeypatch):
    monkeypatch.setenv("EVENT_STORE_BACKEND", "memory")
    monkeypatch.setenv("FAILED_LOGIN_THRESHOLD", "7")
    settings = AuditSettings()
    assert settings.event_store_backend == "memory"
    assert settings.failed_login_threshold == 7


def test_business_hours_must_be_ordered():
    with pytest.raises(ValidationError):
        AuditSettings(business_hours_start=18, business_hours_end=9)
