"""Counter sink for cache hit, miss and error rates, emitted as debug log lines."""

from __future__ import annotations

from ninomap.util.logger import get_logger

_metrics_logger = get_logger("metrics")


def emit_counter(name: str, value: int = 1, labels: dict | None = None) -> None:
    _metrics_logger.debug("metric counter name=%s value=%s labels=%s", name, value, labels or {})
