"""Structured logging bridge."""

from __future__ import annotations

from ninomap.util.logger import get_logger

_event_logger = get_logger("events")


def log_event(event: str, **payload: object) -> None:
    _event_logger.info("event=%s %s", event, " ".join(f"{k}={v}" for k, v in sorted(payload.items())))
