"""Release lifecycle state machine.

    DRAFT ──submit──> PROCESSING ──all tracks ok──> PENDING_REVIEW ──approve──> PUBLISHED
                          │                              │
                    any track fails                   reject
                          v                              v
                       REJECTED <────────────────────────┘
                          │
                          └──resubmit──> PROCESSING

PUBLISHED has no outgoing transition.
"""

from typing import Dict, FrozenSet, Optional

from .entities import ReleaseStatus
from .result import InvalidTransitionError

ALLOWED_TRANSITIONS: Dict[ReleaseStatus, FrozenSet[ReleaseStatus]] = {
    ReleaseStatus.DRAFT: frozenset({ReleaseStatus.PROCESSING}),
    ReleaseStatus.PROCESSING: frozenset({ReleaseStatus.PENDING_REVIEW, ReleaseStatus.REJECTED}),
    ReleaseStatus.PENDING_REVIEW: frozenset({ReleaseStatus.PUBLISHED, ReleaseStatus.REJECTED}),
    ReleaseStatus.REJECTED: frozenset({ReleaseStatus.PROCESSING}),
    ReleaseStatus.PUBLISHED: frozenset(),
}

SUBMITTABLE_STATUSES = frozenset({ReleaseStatus.DRAFT, ReleaseStatus.REJECTED})
REVIEW_OUTCOMES = frozenset({ReleaseStatus.PUBLISHED, ReleaseStatus.REJECTED})
EDITABLE_STATUSES = SUBMITTABLE_STATUSES


def can_transition(current: ReleaseStatus, target: ReleaseStatus) -> bool:
    """Check whether a release in `current` may move to `target`."""
    return target in ALLOWED_TRANSITIONS[current]


def ensure_transition(current: ReleaseStatus, target: ReleaseStatus, action: str = "moved") -> None:
    """Raise InvalidTransitionError unless current → target is allowed."""
    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Release is currently in '{current.value}' status and cannot be {action}.",
            current=current,
            target=target,
        )


def reason_for(status: ReleaseStatus, reason: Optional[str]) -> Optional[str]:
    """Error reason to store alongside `status`.

    Only REJECTED keeps a reason; every other status clears it.
    """
    if status is not ReleaseStatus.REJECTED:
        return None
    return reason or None


def is_terminal(status: ReleaseStatus) -> bool:
    return not ALLOWED_TRANSITIONS[status]
