"""
Logging setup for the contributor.

Services log through module loggers and pass sale context with `extra=`:
- sale_id, owner: raw 32-byte ids, rendered as hex
- token_index: accepted asset index
- code: ContributorError kind of a rejected request, rendered by value

`configure_logging` installs one handler on the root logger, either a single
line of text with the context appended as key=value pairs, or one JSON object
per record.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict

CONTEXT_FIELDS = ("sale_id", "owner", "token_index", "code")

TEXT_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def log_context(record: logging.LogRecord) -> Dict[str, Any]:
    """Sale context attached to a record, in loggable form."""

    context: Dict[str, Any] = {}
    for key in CONTEXT_FIELDS:
        value = getattr(record, key, None)
        if value is None:
            continue
        if isinstance(value, (bytes, bytearray)):
            value = value.hex()
        elif isinstance(value, Enum):
            value = value.value
        context[key] = value
    return context


class JsonFormatter(logging.Formatter):
    """One JSON object per record with the sale context flattened into it."""

    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        payload.update(log_context(record))

        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"))


class TextFormatter(logging.Formatter):
    def __init__(self) -> None:
        super().__init__(TEXT_FORMAT)

    def formatMessage(self, record: logging.LogRecord) -> str:
        line = super().formatMessage(record)
        context = log_context(record)
        if context:
            line += " " + " ".join(f"{key}={value}" for key, value in context.items())
        return line


def configure_logging(fmt: str = "text", *, level: int = logging.INFO) -> None:
    """
    Replace the root logger's handlers with a single stdout handler.

    Args:
        fmt: 'json' or 'text'
        level: root log level
    """

    root = logging.getLogger()
    root.setLevel(level)

    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter() if fmt.lower() == "json" else TextFormatter())
    root.addHandler(handler)


__all__ = ["JsonFormatter", "TextFormatter", "configure_logging", "log_context"]
