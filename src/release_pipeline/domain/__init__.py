"""
Domain Layer - Release lifecycle

Entities, the status state machine, the store contract and the Result
pattern used by the gates.
"""

from .entities import (
    Page,
    Release,
    ReleaseStatus,
    Requester,
    Track,
    UserRole,
    Verdict,
    VerdictStatus,
    utcnow,
)
from .repositories import ReleaseFilter, ReleaseRepository, normalize_order
from .result import (
    AuthorizationError,
    ConflictError,
    DomainError,
    Failure,
    InvalidTransitionError,
    NotFoundError,
    Result,
    StatusConflictError,
    Success,
    ValidationError,
    failure,
    partition,
    success,
)
from .state_machine import (
    ALLOWED_TRANSITIONS,
    EDITABLE_STATUSES,
    REVIEW_OUTCOMES,
    SUBMITTABLE_STATUSES,
    can_transition,
    ensure_transition,
    is_terminal,
    reason_for,
)

__all__ = [
    # Entities
    "Page",
    "Release",
    "ReleaseStatus",
    "Requester",
    "Track",
    "UserRole",
    "Verdict",
    "VerdictStatus",
    "utcnow",
    # Store contract
    "ReleaseFilter",
    "ReleaseRepository",
    "normalize_order",
    # Result pattern
    "Result",
    "Success",
    "Failure",
    "success",
    "failure",
    "partition",
    "DomainError",
    "ValidationError",
    "NotFoundError",
    "AuthorizationError",
    "InvalidTransitionError",
    "ConflictError",
    "StatusConflictError",
    # State machine
    "ALLOWED_TRANSITIONS",
    "EDITABLE_STATUSES",
    "REVIEW_OUTCOMES",
    "SUBMITTABLE_STATUSES",
    "can_transition",
    "ensure_transition",
    "is_terminal",
    "reason_for",
]
