"""Admin Decision Gate - publish or reject a processed release."""

import logging
from typing import Optional, Union

from ..domain.entities import Release, ReleaseStatus, Requester
from ..domain.repositories import ReleaseRepository
from ..domain.result import (
    AuthorizationError,
    DomainError,
    InvalidTransitionError,
    NotFoundError,
    Result,
    StatusConflictError,
    ValidationError,
    failure,
    success,
)
from ..domain.state_machine import REVIEW_OUTCOMES, ensure_transition
from ..events import EventBus, ReleaseReviewed

logger = logging.getLogger(__name__)


class AdminDecisionGate:
    """Where an admin finalizes a PENDING_REVIEW release."""

    def __init__(self, repository: ReleaseRepository, event_bus: Optional[EventBus] = None):
        self.repository = repository
        self.event_bus = event_bus

    async def decide(
        self,
        release_id: str,
        outcome: Union[ReleaseStatus, str],
        requester: Requester,
        reason: Optional[str] = None,
    ) -> Result[Release, DomainError]:
        """
        Publish or reject a release awaiting review.

        Args:
            release_id: Release under review
            outcome: PUBLISHED or REJECTED
            requester: Must be an admin
            reason: Mandatory, non-blank explanation when rejecting

        Returns:
            Success with the updated release, or Failure without any
            state change.
        """
        if not requester.is_admin:
            return failure(AuthorizationError("Only ADMIN can approve or reject releases."))

        release = await self.repository.get(release_id)
        if release is None:
            return failure(NotFoundError("Release not found."))

        if release.status is not ReleaseStatus.PENDING_REVIEW:
            return failure(InvalidTransitionError(
                f"Release is currently in '{release.status.value}' status and cannot be approved or rejected.",
                current=release.status,
            ))

        try:
            target = ReleaseStatus(outcome)
        except ValueError:
            target = None
        if target not in REVIEW_OUTCOMES:
            return failure(ValidationError("Invalid status provided. Must be PUBLISHED or REJECTED."))

        reason = reason.strip() if reason else None
        if target is ReleaseStatus.REJECTED and not reason:
            return failure(ValidationError("A processing_error_reason is required when rejecting a release."))

        try:
            ensure_transition(release.status, target, "approved or rejected")
            updated = await self.repository.set_status(
                release_id, target, reason, expected=ReleaseStatus.PENDING_REVIEW
            )
        except (InvalidTransitionError, StatusConflictError) as e:
            return failure(e)

        if updated is None:
            return failure(NotFoundError("Release not found."))

        logger.info(f"Release {release_id} reviewed by {requester.user_id}: {target.value}")
        if self.event_bus:
            await self.event_bus.publish(ReleaseReviewed(
                aggregate_id=release_id,
                reviewer_id=requester.user_id,
                outcome=target.value,
                reason=updated.processing_error_reason,
            ))
        return success(updated)
