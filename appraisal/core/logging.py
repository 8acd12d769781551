"""
Logging configuration for the appraisal engine.

Plain text for local work, one JSON object per line when LOG_JSON is set.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable
from datetime import datetime, timezone
from functools import wraps
from typing import ParamSpec, TypeVar

from appraisal.core.errors import AppraisalError

P = ParamSpec("P")
R = TypeVar("R")

ROOT_LOGGER = "appraisal"


class StructuredFormatter(logging.Formatter):
    """Formats records as JSON lines."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        operation = getattr(record, "operation", None)
        if operation:
            entry["operation"] = operation

        if record.exc_info:
            exc_type, exc_value, exc_tb = record.exc_info
            if exc_type is not None and exc_value is not None:
                entry["exception"] = {
                    "type": exc_type.__name__,
                    "message": str(exc_value),
                    "traceback": self.formatException((exc_type, exc_value, exc_tb)),
                }

        return json.dumps(entry, ensure_ascii=False, default=str)


def setup_logging(level: str = "INFO", structured: bool = False) -> None:
    """Attach a single stream handler to the package logger."""
    logger = logging.getLogger(ROOT_LOGGER)
    logger.setLevel(level.upper())

    for handler in list(logger.handlers):
        logger.removeHandler(handler)

    handler = logging.StreamHandler()
    if structured:
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
        )
    logger.addHandler(handler)
    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    full = name if name.startswith(ROOT_LOGGER) else f"{ROOT_LOGGER}.{name}"
    return logging.getLogger(full)


def log_operation(operation: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """
    Wrap a service method so every call is logged under `operation`.

    Business-rule rejections (AppraisalError) are logged at INFO; anything else
    is logged with its traceback. Both are re-raised unchanged.
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            logger = get_logger(func.__module__)
            extra = {"operation": operation}
            logger.debug("Starting %s", operation, extra=extra)
            try:
                result = func(*args, **kwargs)
            except AppraisalError as e:
                logger.info("Rejected %s: %s", operation, e.message, extra=extra)
                raise
            except Exception:
                logger.error("Failed %s", operation, exc_info=True, extra=extra)
                raise
            logger.debug("Completed %s", operation, extra=extra)
            return result

        return wrapper

    return decorator
