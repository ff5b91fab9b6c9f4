from __future__ import annotations

import logging
from typing import Any, Dict, FrozenSet

# Attributes every LogRecord already carries; passing one as `extra` raises.
RESERVED_LOG_KEYS: FrozenSet[str] = frozenset(
    logging.makeLogRecord({}).__dict__
) | {"message", "asctime"}


def _clean_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
    return {k: v for k, v in fields.items() if k not in RESERVED_LOG_KEYS}


def log_event(
    event: str,
    logger: logging.Logger | None = None,
    *,
    level: int = logging.INFO,
    **fields: Any,
) -> None:
    """Emit `event` as the message with `fields` attached for the logfmt formatter."""
    log = logger or logging.getLogger("bitbucket_mcp.observability")
    log.log(level, event, extra=_clean_fields(fields))


__all__ = ["log_event", "RESERVED_LOG_KEYS"]
