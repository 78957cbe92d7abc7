"""Observability: in-process metrics for audit writes, detection, alerting and queries."""

from audit_trail.observability.metrics import MetricsCollector

__all__ = ["MetricsCollector"]
