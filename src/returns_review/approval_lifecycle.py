"""Return approval lifecycle: statuses, valid transitions and validation."""

from __future__ import annotations

PENDING = "pending"
AUTO_APPROVED = "auto-approved"
MANUALLY_APPROVED = "manually-approved"
REJECTED = "rejected"

APPROVAL_STATUS_VALUES = frozenset({PENDING, AUTO_APPROVED, MANUALLY_APPROVED, REJECTED})
RISK_RATING_VALUES = frozenset({"low", "medium", "high"})

# Valid (from_status -> to_status). Only a pending return can be decided.
VALID_APPROVAL_TRANSITIONS: dict[str, frozenset[str]] = {
    PENDING: frozenset({MANUALLY_APPROVED, REJECTED}),
    AUTO_APPROVED: frozenset(),
    MANUALLY_APPROVED: frozenset(),
    REJECTED: frozenset(),
}


def initial_approval_status(rating: str) -> str:
    """Status a return starts in: medium/high wait for a reviewer, low is auto-approved."""
    if rating not in RISK_RATING_VALUES:
        raise ValueError(f"rating must be one of {sorted(RISK_RATING_VALUES)}")
    return PENDING if rating in ("medium", "high") else AUTO_APPROVED


def can_transition(current: str | None, new: str) -> bool:
    return new in VALID_APPROVAL_TRANSITIONS.get(current or "", frozenset())


def validate_approval_transition(current: str, new: str) -> None:
    """Raise ValueError if transition from current to new is invalid."""
    if current not in APPROVAL_STATUS_VALUES:
        raise ValueError(f"Current status must be one of {sorted(APPROVAL_STATUS_VALUES)}")
    if new not in APPROVAL_STATUS_VALUES:
        raise ValueError(f"New status must be one of {sorted(APPROVAL_STATUS_VALUES)}")
    allowed = VALID_APPROVAL_TRANSITIONS[current]
    if new not in allowed:
        raise ValueError(
            f"Invalid transition: {current} -> {new}. Allowed from {current}: {sorted(allowed) or 'none'}"
        )
