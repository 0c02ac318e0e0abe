"""Submission Gate - entry point that starts processing for a release."""

import logging
from typing import Optional

from ..domain.entities import Release, ReleaseStatus, Requester
from ..domain.repositories import ReleaseRepository
from ..domain.result import (
    AuthorizationError,
    ConflictError,
    DomainError,
    InvalidTransitionError,
    NotFoundError,
    Result,
    StatusConflictError,
    failure,
    success,
)
from ..domain.state_machine import ensure_transition
from ..events import EventBus, ReleaseSubmitted
from ..processing.orchestrator import ReleaseOrchestrator
from ..processing.task_registry import ProcessingTaskRegistry
from ..processing.track_processor import describe_error

logger = logging.getLogger(__name__)


class SubmissionGate:
    """
    Validates a submission, flips the release to PROCESSING and
    schedules the orchestrator without waiting for it.

    The caller only ever observes PROCESSING; the outcome has to be
    polled from the release status.
    """

    def __init__(
        self,
        repository: ReleaseRepository,
        orchestrator: ReleaseOrchestrator,
        registry: Optional[ProcessingTaskRegistry] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self.repository = repository
        self.orchestrator = orchestrator
        self.registry = registry if registry is not None else ProcessingTaskRegistry()
        self.event_bus = event_bus

    async def submit(self, release_id: str, requester: Requester) -> Result[Release, DomainError]:
        """
        Submit a release for processing.

        Args:
            release_id: Release to submit
            requester: Owning artist or an admin

        Returns:
            Success with the release in PROCESSING, or Failure with
            NotFoundError, AuthorizationError, InvalidTransitionError or
            ConflictError. A Failure never changes state.
        """
        release = await self.repository.get(release_id)
        if release is None:
            return failure(NotFoundError("Release not found."))

        if not requester.can_manage(release):
            return failure(AuthorizationError("You can only submit your own releases for processing."))

        try:
            ensure_transition(release.status, ReleaseStatus.PROCESSING, "submitted for processing")
        except InvalidTransitionError as e:
            return failure(e)

        if self.registry.is_running(release_id):
            return failure(ConflictError(f"Release {release_id} is already processing."))

        try:
            updated = await self.repository.set_status(
                release_id, ReleaseStatus.PROCESSING, expected=release.status
            )
        except StatusConflictError as e:
            logger.warning(f"Submission of release {release_id} lost a concurrent update: {e}")
            return failure(ConflictError(f"Release {release_id} is already processing."))

        if updated is None:
            return failure(NotFoundError("Release not found."))

        logger.info(f"Release {release_id} submitted for processing by {requester.user_id}")
        if self.event_bus:
            await self.event_bus.publish(ReleaseSubmitted(
                aggregate_id=release_id,
                requested_by=requester.user_id,
                previous_status=release.status.value,
            ))

        self.registry.spawn(release_id, self._run(release_id))
        return success(updated)

    async def _run(self, release_id: str) -> None:
        """Background run with a last-resort REJECTED write."""
        try:
            await self.orchestrator.process_release(release_id)
        except Exception as e:
            logger.error(f"Error during background processing for release {release_id}: {e}", exc_info=True)
            try:
                await self.repository.set_status(
                    release_id,
                    ReleaseStatus.REJECTED,
                    f"Initial processing failed: {describe_error(e)}",
                    expected=ReleaseStatus.PROCESSING,
                )
            except StatusConflictError as conflict:
                logger.warning(f"Release {release_id} left PROCESSING before the failure was recorded: {conflict}")
            raise
