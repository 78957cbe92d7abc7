"""Prometheus-style metrics collector. Thread-safe, in-memory. No real Prometheus dependency."""

import threading
from typing import Any, Dict, List, Optional

# Metric names used across the service.
RECORDS_WRITTEN = "audit_records_written"
WRITE_FAILURES = "audit_write_failures"
FINDINGS = "suspicious_findings"
DETECTION_FAILURES = "pattern_detection_failures"
DISPATCH_FAILURES = "alert_dispatch_failures"
PERMISSION_DENIED = "permission_denied"
QUERY_LATENCY = "audit_query_latency_ms"


def _series(name: str, label: Optional[str]) -> str:
    return name if label is None else f"{name}:{label}"


class MetricsCollector:
    """
    In-memory registry of counters and latency histograms.
    A counter may carry one label value (event type, pattern kind, severity).
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._counters: Dict[str, float] = {}
        self._histograms: Dict[str, List[float]] = {}

    def increment(self, name: str, value: float = 1.0, *, label: Optional[str] = None) -> None:
        with self._lock:
            key = _series(name, label)
            self._counters[key] = self._counters.get(key, 0) + value

    def observe_latency(self, name: str, latency_ms: float, *, label: Optional[str] = None) -> None:
        with self._lock:
            self._histograms.setdefault(_series(name, label), []).append(latency_ms)

    def counter(self, name: str, *, label: Optional[str] = None) -> float:
        with self._lock:
            return self._counters.get(_series(name, label), 0)

    def export_metrics(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "counters": dict(self._counters),
                "histograms": {
                    k: {
                        "count": len(v),
                        "sum": sum(v),
                        "max": max(v) if v else 0.0,
                    }
                    for k, v in self._histograms.items()
                },
            }

    def reset(self) -> None:
        """Reset all metrics (for tests)."""
        with self._lock:
            self._counters.clear()
            self._histograms.clear()
