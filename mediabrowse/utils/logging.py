"""
Logging setup. JSON lines in production, human-readable otherwise.
Records go to stderr; stdout carries the CLI listing.
"""
import json
import logging
import sys
import traceback
from typing import Any, Optional

_RESERVED_ATTRS = frozenset({
    "args", "asctime", "created", "exc_info", "exc_text",
    "filename", "funcName", "id", "levelname", "levelno",
    "lineno", "module", "msecs", "message", "msg", "name",
    "pathname", "process", "processName", "relativeCreated",
    "stack_info", "thread", "threadName", "taskName",
})


class JsonFormatter(logging.Formatter):
    """One JSON object per record, with `extra=` fields merged in."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for key, val in record.__dict__.items():
            if key not in _RESERVED_ATTRS:
                entry[key] = val

        if record.exc_info:
            entry["exception"] = "".join(traceback.format_exception(*record.exc_info))

        return json.dumps(entry, default=str)


def setup_logging(level: Optional[str] = None, json_output: Optional[bool] = None) -> None:
    from mediabrowse.config.settings import settings

    level = level or settings.LOG_LEVEL
    if json_output is None:
        json_output = settings.is_production
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stderr)

    if json_output:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter(
                fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )

    root_logger.handlers.clear()
    root_logger.addHandler(handler)

    # Quiet noisy libraries
    for lib in ("aiohttp", "urllib3", "PIL"):
        logging.getLogger(lib).setLevel(logging.WARNING)
