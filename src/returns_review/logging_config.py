"""Logging setup: stdout, reviewer free text kept out of the logs."""

from __future__ import annotations

import logging
import re
import sys

# Free text typed by reviewers or chat users; log only ids and statuses.
FREE_TEXT_KEYS = frozenset({"rejection_reason", "reason", "query"})
_KEYS_LONGEST_FIRST = sorted(FREE_TEXT_KEYS, key=len, reverse=True)
FREE_TEXT_PATTERN = re.compile(
    r"(\b" + "|".join(re.escape(k) for k in _KEYS_LONGEST_FIRST) + r")=('[^']*'|\"[^\"]*\"|\S+)",
    re.IGNORECASE,
)


def _redact_message(msg: str) -> str:
    """Replace reason=... / query=... in a message with [REDACTED]."""
    if not isinstance(msg, str):
        return str(msg)
    return FREE_TEXT_PATTERN.sub(r"\1=[REDACTED]", msg)


class FreeTextRedactionFilter(logging.Filter):
    """Redact free-text fields from the fully formatted message."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = _redact_message(record.getMessage())
        record.args = None
        return True


def setup_logging(log_level: str = "INFO") -> None:
    """Configure root logger: stdout, free-text redaction filter on handlers."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%SZ",
        stream=sys.stdout,
        force=True,
    )
    for handler in logging.getLogger().handlers:
        handler.addFilter(FreeTextRedactionFilter())
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    """Return a logger for module `name` (redaction applied at the root handlers)."""
    return logging.getLogger(name)
