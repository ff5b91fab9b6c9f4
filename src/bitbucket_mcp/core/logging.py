import logging
import os
import sys
from typing import Any, Optional

LOG_LEVEL_ENV = "BITBUCKET_LOG_LEVEL"

# Rendered in this order after level/logger/event; anything else is ignored.
LOG_EXTRA_FIELDS = (
    "tool",
    "method",
    "url",
    "status",
    "duration_ms",
    "page",
    "error_type",
    "status_code",
)


def _logfmt_value(val: Any) -> str:
    if isinstance(val, bool):
        return "true" if val else "false"
    if isinstance(val, (int, float)):
        return str(val)
    s = str(val).replace("\\", "\\\\").replace("\n", "\\n")
    if not s or any(c in s for c in ' ="'):
        s = '"' + s.replace('"', '\\"') + '"'
    return s


class LogfmtFormatter(logging.Formatter):
    """
    One logfmt line per record: level, logger, event, then the known extras.
    Values are escaped so multi-line API error bodies stay on one line.
    """

    def format(self, record: logging.LogRecord) -> str:
        pairs = [("level", record.levelname.lower()), ("logger", record.name)]

        event = record.getMessage()
        if event:
            pairs.append(("event", event))

        pairs.extend(
            (key, getattr(record, key))
            for key in LOG_EXTRA_FIELDS
            if getattr(record, key, None) is not None
        )

        if record.exc_info and record.exc_info[0] is not None:
            pairs.append(("exc_type", record.exc_info[0].__name__))

        return " ".join(f"{key}={_logfmt_value(val)}" for key, val in pairs)


def setup_logging(level: Optional[str] = None) -> None:
    """
    Send logfmt records to stderr; stdout carries the MCP stdio stream.
    The level defaults to BITBUCKET_LOG_LEVEL, then INFO.
    """
    level_name = (level or os.getenv(LOG_LEVEL_ENV) or "INFO").upper()

    root = logging.getLogger()
    for h in list(root.handlers):
        root.removeHandler(h)

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(LogfmtFormatter())
    root.addHandler(handler)
    root.setLevel(getattr(logging, level_name, logging.INFO))


__all__ = ["setup_logging", "LogfmtFormatter", "LOG_EXTRA_FIELDS", "LOG_LEVEL_ENV"]
