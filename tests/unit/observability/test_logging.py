"""JsonFormatter tests: structured fields, request context, exceptions."""

import json
import logging
import sys

from audit_trail.config.logging import JsonFormatter
from audit_trail.core.context import actor_id_ctx, correlation_id_ctx


def _record(msg="audit_record_written", extra=None, exc_info=None):
    record = logging.LogRecord("audit_trail.audit", logging.INFO, __file__, 1, msg, None, exc_info)
    for key, value in (extra or {}).items():
        setattr(record, key, value)
    return record


def test_extra_fields_are_included():
    out = json.loads(JsonFormatter().format(_record(extra={"partition": "AUTH", "sort_key": "k"})))
    assert out["message"] == "audit_record_written"
    assert out["level"] == "INFO"
    assert out["logger"] == "audit_trail.audit"
    assert out["partition"] == "AUTH"
    assert out["sort_key"] == "k"


def test_request_context_is_included():
    cid = correlation_id_ctx.set("corr-1")
    aid = actor_id_ctx.set("alice")
    try:
        out = json.loads(JsonFormatter().format(_record()))
    finally:
        correlation_id_ctx.reset(cid)
        actor_id_ctx.reset(aid)
    assert out["correlation_id"] == "corr-1"
    assert out["actor_id"] == "alice"


def test_exception_is_formatted():
    try:
        raise RuntimeError("store exploded")
    except RuntimeError:
        record = _record("audit_write_failed", exc_info=sys.exc_info())
    out = json.loads(JsonFormatter().format(record))
    assert "store exploded" in out["exception"]
