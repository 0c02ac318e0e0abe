"""Track processor: both stages for one track, merged into a verdict."""

import asyncio
import logging
from datetime import datetime
from typing import Callable, List, Tuple

from ..domain.entities import Track, Verdict, VerdictStatus, utcnow
from .stages import StageKind, StageResult, StageRunner

logger = logging.getLogger(__name__)

STAGE_ORDER = (StageKind.TRANSCODE, StageKind.METADATA_EXTRACT)
SUCCESS_MESSAGE = "Track processed successfully."


def describe_error(error: BaseException) -> str:
    """Human-readable text for an exception, never empty."""
    return str(error) or "Unknown error"


class TrackProcessor:
    """Runs the fixed two-stage check for a single track."""

    def __init__(
        self,
        stage_runner: StageRunner,
        parallel_stages: bool = False,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.stage_runner = stage_runner
        self.parallel_stages = parallel_stages
        self.clock = clock

    async def process_track(self, track: Track) -> Verdict:
        """
        Process one track and return its verdict.

        The verdict is SUCCESS only if every stage succeeded. Stage
        exceptions are converted to a FAILED verdict; this method does
        not raise.
        """
        try:
            outcomes = await self._run_stages(track)
        except Exception as e:
            logger.error(f"Unexpected error processing track {track.id}: {e}", exc_info=True)
            return self._verdict(track, VerdictStatus.FAILED, f"Unexpected error: {describe_error(e)}")

        if all(result.success for _, result in outcomes):
            return self._verdict(track, VerdictStatus.SUCCESS, SUCCESS_MESSAGE)

        message = "; ".join(f"{kind.label}: {result.message}" for kind, result in outcomes)
        return self._verdict(track, VerdictStatus.FAILED, message)

    async def _run_stages(self, track: Track) -> List[Tuple[StageKind, StageResult]]:
        if self.parallel_stages:
            # every stage settles before a failure is surfaced
            results = await asyncio.gather(
                *(self.stage_runner.run_stage(kind, track) for kind in STAGE_ORDER),
                return_exceptions=True,
            )
            for result in results:
                if isinstance(result, BaseException):
                    raise result
            return list(zip(STAGE_ORDER, results))

        outcomes = []
        for kind in STAGE_ORDER:
            outcomes.append((kind, await self.stage_runner.run_stage(kind, track)))
        return outcomes

    def _verdict(self, track: Track, status: VerdictStatus, message: str) -> Verdict:
        return Verdict(track_id=track.id, timestamp=self.clock(), status=status, message=message)
