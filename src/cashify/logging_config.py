"""Logging setup for cashify.

Every module logs through ``get_logger`` under the ``cashify`` namespace.
Records are written as one JSON object per line by default; ``fmt="text"``
gives a plain ``LEVEL name: message`` line instead.
"""

import json
import logging
import sys
from contextlib import contextmanager
from contextvars import ContextVar
from datetime import UTC, date, datetime
from enum import Enum
from typing import Any, Iterator

ROOT_LOGGER = "cashify"

# Request-scoped fields copied onto every record while bound
_CONTEXT: dict[str, ContextVar[str | None]] = {
    name: ContextVar(f"cashify_log_{name}", default=None)
    for name in ("business_id", "account_id", "actor", "transfer_group_id")
}

_RECORD_KEYS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "taskName"}


class LogContext:
    """Fields bound for the duration of one operation."""

    @staticmethod
    def get_all() -> dict[str, str]:
        return {name: var.get() for name, var in _CONTEXT.items() if var.get() is not None}

    @staticmethod
    @contextmanager
    def bind(**fields: Any) -> Iterator[None]:
        """Set known context fields until the block exits. Unknown keys are ignored."""
        tokens = [
            (_CONTEXT[name], _CONTEXT[name].set(str(value)))
            for name, value in fields.items()
            if name in _CONTEXT and value is not None
        ]
        try:
            yield
        finally:
            for var, token in reversed(tokens):
                var.reset(token)


def _json_default(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return str(value)


class StructuredFormatter(logging.Formatter):
    """Formats a record, its context and its extras as a JSON line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(LogContext.get_all())
        for key, value in vars(record).items():
            if key not in _RECORD_KEYS and key not in payload:
                payload[key] = value

        if record.exc_info and record.exc_info[1] is not None:
            error = record.exc_info[1]
            payload["exc_type"] = type(error).__name__
            payload["exc_message"] = str(error)
            if hasattr(error, "code"):
                payload["exc_code"] = error.code
            # Domain errors carry their context as attributes
            for key, value in vars(error).items():
                if not key.startswith("_"):
                    payload[f"exc_{key}"] = value
            payload["traceback"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=_json_default)


def get_logger(name: str) -> logging.Logger:
    """Get a logger under the cashify namespace."""
    return logging.getLogger(f"{ROOT_LOGGER}.{name}")


def configure_logging(level: int | str = logging.WARNING, fmt: str = "json", stream=None) -> None:
    """Attach a single handler to the cashify logger.

    Only the first call takes effect until ``reset_logging`` is called.
    """
    logger = logging.getLogger(ROOT_LOGGER)
    if logger.handlers:
        return

    handler = logging.StreamHandler(stream or sys.stderr)
    if fmt == "json":
        handler.setFormatter(StructuredFormatter())
    else:
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    logger.addHandler(handler)
    logger.setLevel(level)
    logger.propagate = False


def reset_logging() -> None:
    """Drop the cashify handler so the next ``configure_logging`` applies."""
    logger = logging.getLogger(ROOT_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
