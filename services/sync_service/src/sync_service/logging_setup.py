"""Logging configuration for the sync CLI, with the active sync id on every record."""

from __future__ import annotations

import contextvars
import logging
import os
from contextlib import contextmanager
from typing import Iterator

_current_sync_id: contextvars.ContextVar[str | None] = contextvars.ContextVar("sync_id", default=None)


def current_sync_id() -> str | None:
    return _current_sync_id.get()


@contextmanager
def bound_sync_id(sync_id: str) -> Iterator[None]:
    """Tag every log record emitted in this context (and contexts copied from it) with `sync_id`."""
    token = _current_sync_id.set(sync_id)
    try:
        yield
    finally:
        _current_sync_id.reset(token)


class SyncIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        sync_id = _current_sync_id.get()
        if sync_id is not None:
            record.sync_id = sync_id
        return True


def _resolve_level(level_name: str) -> int:
    return getattr(logging, level_name.upper(), logging.INFO)


def configure_logging(level_name: str | None = None) -> None:
    """Configure root logging from LOG_LEVEL (or an explicit level) with a concise format."""
    level = _resolve_level(level_name or os.getenv("LOG_LEVEL", "INFO"))
    formatter = build_formatter()
    root_logger = logging.getLogger()
    # httpx logs every request at INFO.
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))

    if not root_logger.handlers:
        logging.basicConfig(level=level)
    root_logger.setLevel(level)
    for handler in root_logger.handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        if not any(isinstance(f, SyncIdFilter) for f in handler.filters):
            handler.addFilter(SyncIdFilter())


def build_formatter() -> logging.Formatter:
    pattern = "%(asctime)s %(levelname)s sync_id=%(sync_id)s %(name)s %(message)s"
    return logging.Formatter(pattern, defaults={"sync_id": "-"})
