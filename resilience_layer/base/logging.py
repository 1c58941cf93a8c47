"""Base structured logging utilities for the resilience layer.

Every component emits events through :func:`log_event`, producing one JSON
payload per line with an ``event`` key (e.g. ``breaker.transition``) plus the
fields of a :class:`LogContext`. The bound request correlation id is added
automatically when the context does not carry one.

All loggers are children of the shared ``resilience`` logger, which owns a
single stderr handler; ``RESILIENCE_LOG_LEVEL`` overrides its level.
"""
from __future__ import annotations

import json
import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Any, Optional

from .context import current_context
from .log_support import JsonFormatter, LogContext


BASE_LOGGER_NAME = "resilience"
LOG_LEVEL_ENV = "RESILIENCE_LOG_LEVEL"
_PLAIN_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
_FILE_HANDLER_ATTR = "_resilience_file_handler"
_LOG_FILE_MAX_BYTES = 10 * 1024 * 1024
_LOG_FILE_BACKUPS = 5


class _StderrHandler(logging.StreamHandler):
    """Stream handler bound to whatever ``sys.stderr`` is at emit time."""

    def __init__(self) -> None:
        super().__init__(sys.stderr)

    @property
    def stream(self):  # type: ignore[override]
        return sys.stderr

    @stream.setter
    def stream(self, _value) -> None:
        pass


def _formatter(json_mode: bool) -> logging.Formatter:
    return JsonFormatter() if json_mode else logging.Formatter(_PLAIN_FORMAT)


def _parse_level(value: str | None, default: int = logging.INFO) -> int:
    if not value:
        return default
    name = value.strip().upper()
    level = logging.getLevelName("WARNING" if name == "WARN" else name)
    return level if isinstance(level, int) else default


def _ensure_base_logger(json_mode: bool, level: int) -> logging.Logger:
    logger = logging.getLogger(BASE_LOGGER_NAME)
    logger.setLevel(_parse_level(os.getenv(LOG_LEVEL_ENV), default=level))
    if not any(isinstance(h, _StderrHandler) for h in logger.handlers):
        handler = _StderrHandler()
        handler.setFormatter(_formatter(json_mode))
        logger.addHandler(handler)
        logger.propagate = False
    return logger


def get_logger(name: str = BASE_LOGGER_NAME, json_mode: bool = True, level: int = logging.INFO) -> logging.Logger:
    """Return ``name`` as a child of the configured ``resilience`` logger."""
    base_logger = _ensure_base_logger(json_mode=json_mode, level=level)
    if name == BASE_LOGGER_NAME:
        return base_logger
    if not name.startswith(BASE_LOGGER_NAME + "."):
        name = f"{BASE_LOGGER_NAME}.{name}"
    logger = logging.getLogger(name)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
    return logger


def _file_handler(logger: logging.Logger) -> Optional[RotatingFileHandler]:
    for handler in logger.handlers:
        if getattr(handler, _FILE_HANDLER_ATTR, False):
            return handler  # type: ignore[return-value]
    return None


def configure_logger(
    *,
    level: int | str | None = None,
    file_path: Optional[str] = None,
    json_mode: bool = True,
) -> logging.Logger:
    """Reconfigure the shared resilience logger at runtime.

    ``level`` accepts a number or a name; ``file_path`` attaches a rotating
    file handler (10MB x 5), and ``None`` detaches the one attached earlier.
    Handlers added by the host application are left untouched.
    """
    logger = _ensure_base_logger(json_mode=json_mode, level=logging.INFO)
    if level is not None:
        logger.setLevel(_parse_level(level, logger.level) if isinstance(level, str) else level)

    target = os.path.abspath(os.path.expanduser(file_path)) if file_path else None
    current = _file_handler(logger)
    if current is not None and current.baseFilename != target:
        logger.removeHandler(current)
        current.close()
        current = None
    if target is not None and current is None:
        os.makedirs(os.path.dirname(target), exist_ok=True)
        current = RotatingFileHandler(
            target, maxBytes=_LOG_FILE_MAX_BYTES, backupCount=_LOG_FILE_BACKUPS, encoding="utf-8"
        )
        setattr(current, _FILE_HANDLER_ATTR, True)
        logger.addHandler(current)

    for handler in logger.handlers:
        if isinstance(handler, _StderrHandler) or handler is current:
            handler.setFormatter(_formatter(json_mode))
    return logger


def log_event(
    logger: logging.Logger,
    event: str,
    ctx: LogContext | None = None,
    *,
    level: int = logging.INFO,
    keep_none: bool = False,
    **fields: Any,
) -> None:
    """Emit a structured log event.

    Parameters
    ----------
    logger: logging.Logger
        Logger instance (should be JSON formatted by ``get_logger``).
    event: str
        Event name (e.g. ``breaker.transition``).
    ctx: LogContext | None
        Component/resource context; merged shallowly.
    level: int
        Logging level for the record (``INFO`` by default).
    keep_none: bool
        When ``True``, preserve keys whose values are ``None``; otherwise drop them.
    **fields: Any
        Arbitrary serializable key/value pairs.
    """
    if not logger.isEnabledFor(level):
        return
    payload: dict[str, Any] = {"event": event}
    if ctx:
        payload |= ctx.to_dict()
    if "correlation_id" not in payload:
        if correlation_id := current_context().correlation_id:
            payload["correlation_id"] = correlation_id
    if keep_none:
        payload.update(fields)
    else:
        payload.update({k: v for k, v in fields.items() if v is not None})
    logger.log(level, json.dumps(payload, ensure_ascii=False, default=str))


__all__ = [
    "BASE_LOGGER_NAME",
    "LogContext",
    "get_logger",
    "configure_logger",
    "log_event",
]
