"""Logging setup: structured JSON lines by default, plain text for local runs."""

from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import IO, Any, Dict, Optional

_RESERVED = frozenset(logging.LogRecord("", 0, "", 0, "", (), None).__dict__) | {"message", "asctime"}

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


class JsonFormatter(logging.Formatter):
    """One JSON object per record; ``extra`` fields become top-level keys."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 - logging interface name
        payload: Dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)

        payload.update({key: value for key, value in record.__dict__.items() if key not in _RESERVED})
        return json.dumps(payload, default=str)


def configure_logging(default_level: str = "INFO", stream: Optional[IO[str]] = None) -> None:
    """Configure the root logger from ``LOG_LEVEL`` and ``LOG_FORMAT`` (``json`` or ``text``)."""

    level = getattr(logging, os.getenv("LOG_LEVEL", default_level).upper(), logging.INFO)
    handler = logging.StreamHandler(stream=stream or sys.stdout)
    if os.getenv("LOG_FORMAT", "json").lower() == "text":
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    else:
        handler.setFormatter(JsonFormatter())

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers.clear()
    root.addHandler(handler)
