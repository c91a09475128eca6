"""Review context: request id and reviewer for approval decisions (CLI run or API request)."""

from __future__ import annotations

import uuid
from contextvars import ContextVar

_request_id: ContextVar[str | None] = ContextVar("review_request_id", default=None)
_reviewer: ContextVar[str | None] = ContextVar("review_reviewer", default=None)


def set_review_context(request_id: str | None, reviewer: str | None = None) -> None:
    """Bind request_id and reviewer to the current context."""
    _request_id.set(request_id)
    _reviewer.set(reviewer)


def get_request_id() -> str:
    """Return current request_id; one is generated and bound if not set."""
    rid = _request_id.get()
    if rid is None:
        rid = str(uuid.uuid4())
        _request_id.set(rid)
    return rid


def get_reviewer() -> str:
    """Return current reviewer, 'system' if not set."""
    return _reviewer.get() or "system"
