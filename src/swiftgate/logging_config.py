"""Logging setup for swiftgate.

The CLI starts uvicorn with ``log_config=None`` and its access log off, so
uvicorn's own loggers propagate to the single root handler installed here and
the per-request line comes from the gateway's middleware.
"""

import json
import logging
import sys
from datetime import datetime, timezone

# Attributes the request middleware attaches through ``extra=``
REQUEST_FIELDS = ("method", "path", "status", "duration_ms", "trans_id")

TEXT_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per line, plus whichever request fields are present."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        entry.update(
            (field, getattr(record, field))
            for field in REQUEST_FIELDS
            if getattr(record, field, None) is not None
        )
        if record.exc_info and record.exc_info[0] is not None:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str)


def configure_logging(level: str = "INFO", fmt: str = "text") -> None:
    """Replace the root handlers with one stderr handler.

    Args:
        level: Level name; unknown names fall back to INFO.
        fmt: ``json`` for JSONFormatter, anything else for ``TEXT_FORMAT``.
    """
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(JSONFormatter() if fmt == "json" else logging.Formatter(TEXT_FORMAT))

    root = logging.getLogger()
    for existing in root.handlers[:]:
        root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
