"""
Release Orchestrator - drives a release from PROCESSING to its outcome.

Fans the track processor out over every track of a release, waits for
all of them to settle, aggregates the verdicts and writes the release
status. A run never leaves a release in PROCESSING because of an error
it caught.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from ..domain.entities import Release, ReleaseStatus, Track, Verdict, VerdictStatus, utcnow
from ..domain.repositories import ReleaseRepository
from ..domain.result import StatusConflictError
from ..events import EventBus, ReleaseProcessingCompleted, TrackProcessed
from ..exceptions import ReleasePipelineError
from ..models.config import ProcessingConfig
from .log_sink import InMemoryProcessingLogSink, ProcessingLogSink
from .stages import SimulatedStageRunner, StageRunner
from .track_processor import TrackProcessor, describe_error

logger = logging.getLogger(__name__)

NOT_FOUND_REASON = "Release not found during processing."
CANCELLED_REASON = "Processing cancelled."


@dataclass(frozen=True, slots=True)
class ReleaseOutcome:
    """Aggregated decision for one processing run."""
    status: ReleaseStatus
    reason: Optional[str] = None
    failed_track_ids: List[str] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.status is ReleaseStatus.PENDING_REVIEW


def aggregate_verdicts(tracks: Sequence[Track], verdicts: Sequence[Verdict]) -> ReleaseOutcome:
    """
    Reduce per-track verdicts to a release outcome.

    The release succeeds only if every track has a SUCCESS verdict. A
    track without a verdict counts as failed. Failures are reported in
    track order, so the result does not depend on the order in which
    verdicts arrived.
    """
    by_track = {verdict.track_id: verdict for verdict in verdicts}

    failures = []
    for track in tracks:
        verdict = by_track.get(track.id)
        if verdict is None:
            failures.append((track, "No verdict recorded."))
        elif not verdict.succeeded:
            failures.append((track, verdict.message))

    if not failures:
        return ReleaseOutcome(status=ReleaseStatus.PENDING_REVIEW)

    details = "; ".join(f"Track {track.title} ({track.id}): {message}" for track, message in failures)
    return ReleaseOutcome(
        status=ReleaseStatus.REJECTED,
        reason=f"Failed to process {len(failures)} track(s): {details}",
        failed_track_ids=[track.id for track, _ in failures],
    )


class ReleaseOrchestrator:
    """Runs and aggregates per-track processing for a release."""

    def __init__(
        self,
        repository: ReleaseRepository,
        track_processor: TrackProcessor,
        log_sink: Optional[ProcessingLogSink] = None,
        event_bus: Optional[EventBus] = None,
        run_timeout: Optional[float] = None,
        max_concurrent_tracks: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        """
        Initialize the orchestrator.

        Args:
            repository: Release store
            track_processor: Processor applied to every track
            log_sink: Where verdicts of each run are kept
            event_bus: Optional bus for lifecycle events
            run_timeout: Deadline in seconds for a whole run (None: no deadline)
            max_concurrent_tracks: Bound on tracks processed at once (None: all)
            clock: Source of verdict timestamps
        """
        self.repository = repository
        self.track_processor = track_processor
        self.log_sink = log_sink if log_sink is not None else InMemoryProcessingLogSink()
        self.event_bus = event_bus
        self.run_timeout = run_timeout
        self.max_concurrent_tracks = max_concurrent_tracks
        self.clock = clock

    @classmethod
    def from_config(
        cls,
        repository: ReleaseRepository,
        config: ProcessingConfig,
        stage_runner: Optional[StageRunner] = None,
        log_sink: Optional[ProcessingLogSink] = None,
        event_bus: Optional[EventBus] = None,
    ) -> "ReleaseOrchestrator":
        runner = stage_runner or SimulatedStageRunner.from_config(config)
        return cls(
            repository=repository,
            track_processor=TrackProcessor(runner, parallel_stages=config.parallel_stages),
            log_sink=log_sink,
            event_bus=event_bus,
            run_timeout=config.run_timeout,
            max_concurrent_tracks=config.max_concurrent_tracks,
        )

    async def process_release(self, release_id: str) -> None:
        """
        Process every track of a release and write the outcome.

        Track failures and orchestrator errors end as a REJECTED write.
        Only a failure to write that status escapes this method.
        """
        logger.info(f"Starting background processing for release {release_id}")
        try:
            if self.run_timeout is None:
                outcome = await self._evaluate_guarded(release_id)
            else:
                outcome = await asyncio.wait_for(self._evaluate_guarded(release_id), self.run_timeout)
        except asyncio.CancelledError:
            logger.warning(f"Processing for release {release_id} cancelled. Setting status to REJECTED.")
            await self._finish(release_id, ReleaseOutcome(ReleaseStatus.REJECTED, CANCELLED_REASON))
            raise
        except asyncio.TimeoutError:
            reason = f"Processing timed out after {self.run_timeout}s."
            logger.error(f"Processing for release {release_id} timed out. Setting status to REJECTED.")
            await self._finish(release_id, ReleaseOutcome(ReleaseStatus.REJECTED, reason))
            return
        except Exception as e:
            logger.error(f"Critical error during release processing for {release_id}: {e}", exc_info=True)
            reason = f"Critical processing error: {describe_error(e)}"
            await self._finish(release_id, ReleaseOutcome(ReleaseStatus.REJECTED, reason))
            return

        if outcome is None:
            return

        if outcome.succeeded:
            logger.info(f"All tracks for release {release_id} processed successfully. Setting status to PENDING_REVIEW.")
        else:
            logger.error(f"Processing FAILED for release {release_id}. Setting status to REJECTED. Reason: {outcome.reason}")
        await self._finish(release_id, outcome)

    async def _evaluate_guarded(self, release_id: str) -> Optional[ReleaseOutcome]:
        # only the run deadline may surface as a TimeoutError
        try:
            return await self._evaluate(release_id)
        except (asyncio.TimeoutError, TimeoutError) as e:
            raise ReleasePipelineError(describe_error(e)) from e

    async def _evaluate(self, release_id: str) -> Optional[ReleaseOutcome]:
        """Load the release, process its tracks and decide. None means already handled."""
        release = await self.repository.get(release_id)
        if release is None:
            logger.error(f"Release {release_id} not found for processing.")
            await self.repository.set_status(release_id, ReleaseStatus.REJECTED, NOT_FOUND_REASON)
            return None

        tracks = await self.repository.get_tracks(release_id)
        self.log_sink.clear(release_id)
        if not tracks:
            logger.warning(f"Release {release_id} has no tracks to process. Setting to PENDING_REVIEW.")
            return ReleaseOutcome(status=ReleaseStatus.PENDING_REVIEW)

        verdicts = await self._process_tracks(release, tracks)
        self.log_sink.append(release_id, verdicts)
        return aggregate_verdicts(tracks, verdicts)

    async def _process_tracks(self, release: Release, tracks: List[Track]) -> List[Verdict]:
        semaphore = asyncio.Semaphore(self.max_concurrent_tracks) if self.max_concurrent_tracks else None

        async def run(track: Track) -> Verdict:
            if semaphore is None:
                return await self.track_processor.process_track(track)
            async with semaphore:
                return await self.track_processor.process_track(track)

        # Every track settles before the release is decided.
        results = await asyncio.gather(*(run(track) for track in tracks), return_exceptions=True)

        verdicts = []
        for track, result in zip(tracks, results):
            if isinstance(result, BaseException):
                logger.error(f"Track {track.id} of release {release.id} raised: {result!r}")
                result = Verdict(
                    track_id=track.id,
                    timestamp=self.clock(),
                    status=VerdictStatus.FAILED,
                    message=f"Unexpected processing error: {describe_error(result)}",
                )
            verdicts.append(result)

        if self.event_bus:
            for verdict in verdicts:
                await self.event_bus.publish(TrackProcessed(
                    aggregate_id=release.id,
                    track_id=verdict.track_id,
                    status=verdict.status.value,
                    message=verdict.message,
                ))
        return verdicts

    async def _finish(self, release_id: str, outcome: ReleaseOutcome) -> Optional[Release]:
        """Write the outcome, provided the release is still PROCESSING."""
        try:
            updated = await self.repository.set_status(
                release_id, outcome.status, outcome.reason, expected=ReleaseStatus.PROCESSING
            )
        except StatusConflictError as e:
            logger.warning(f"Dropping {outcome.status.value} outcome for release {release_id}: {e}")
            return None

        if updated is None:
            logger.warning(f"Release {release_id} disappeared before its outcome could be written")
            return None

        if self.event_bus:
            await self.event_bus.publish(ReleaseProcessingCompleted(
                aggregate_id=release_id,
                outcome=outcome.status.value,
                failed_track_ids=list(outcome.failed_track_ids),
                reason=outcome.reason,
            ))
        return updated
