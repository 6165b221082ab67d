"""Log formatting and handler setup for the chat client."""

import json
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

# Attributes passed through ``extra=`` that are copied into JSON output
_SESSION_FIELDS = ("request_id", "generation")

_QUIET_LOGGERS = ("socketio", "engineio", "aiohttp")


class JSONFormatter(logging.Formatter):
    """One JSON object per record, for log shipping."""

    def format(self, record: logging.LogRecord) -> str:
        stamp = datetime.fromtimestamp(record.created, tz=timezone.utc)
        payload: Dict[str, Any] = {
            "timestamp": stamp.isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in _SESSION_FIELDS:
            if hasattr(record, name):
                payload[name] = getattr(record, name)
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class TextFormatter(logging.Formatter):
    """Human-readable single-line format."""

    def __init__(self):
        super().__init__(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )


_FORMATTERS = {"json": JSONFormatter, "text": TextFormatter}


def configure_logging(
    level: str = "INFO", format: str = "text", log_file: Optional[Path] = None
) -> None:
    """Install a single root handler.

    Args:
        level: Level name, e.g. ``DEBUG`` or ``INFO``.
        format: ``text`` or ``json``; anything else falls back to text.
        log_file: Write to this file instead of stdout. The terminal client
            always passes one so records never land on top of the UI.
    """
    numeric_level = getattr(logging, level.upper(), logging.INFO)

    if log_file is not None:
        Path(log_file).parent.mkdir(parents=True, exist_ok=True)
        handler: logging.Handler = logging.FileHandler(log_file, encoding="utf-8")
    else:
        handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(numeric_level)
    handler.setFormatter(_FORMATTERS.get(format.lower(), TextFormatter)())

    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.setLevel(numeric_level)
    root.addHandler(handler)

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
