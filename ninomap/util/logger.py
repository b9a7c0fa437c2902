"""Process-wide logger for the mapping service."""

from __future__ import annotations

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path

from ninomap.config.settings import settings


MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 5
_LEVELS = {
    "CRITICAL": logging.CRITICAL,
    "ERROR": logging.ERROR,
    "WARNING": logging.WARNING,
    "WARN": logging.WARNING,
    "INFO": logging.INFO,
    "DEBUG": logging.DEBUG,
}


def resolve_level(raw: str | None) -> int:
    return _LEVELS.get(str(raw or "INFO").strip().upper(), logging.INFO)


def _attach_file_handler(target: logging.Logger, formatter: logging.Formatter, level: int) -> None:
    log_dir = Path(settings.log_dir) if settings.log_dir else None
    if log_dir is None:
        return
    try:
        log_dir.mkdir(parents=True, exist_ok=True)
        handler = RotatingFileHandler(
            log_dir / f"{settings.app_name}.log",
            maxBytes=MAX_BYTES,
            backupCount=BACKUP_COUNT,
            encoding="utf-8",
        )
    except OSError:
        # read-only filesystem: stderr only
        return
    handler.setLevel(level)
    handler.setFormatter(formatter)
    target.addHandler(handler)


def _build_logger() -> logging.Logger:
    configured = logging.getLogger("ninomap")
    if configured.handlers:
        return configured

    level = resolve_level(settings.log_level)
    configured.setLevel(level)
    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    stream_handler = logging.StreamHandler()
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)
    configured.addHandler(stream_handler)
    _attach_file_handler(configured, formatter, level)

    configured.propagate = False
    return configured


logger = _build_logger()


def get_logger(name: str) -> logging.Logger:
    """Return a child logger, e.g. ``ninomap.service``."""

    return logger.getChild(name)
