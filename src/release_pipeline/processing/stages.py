"""Per-track processing stages.

A StageRunner performs one stage (transcode or metadata extraction) for
one track. SimulatedStageRunner stands in for a real media pipeline
with randomized latency and randomized failures; its randomness and
its sleep are injectable so runs can be made deterministic.
"""

import asyncio
import logging
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

from ..domain.entities import Track
from ..models.config import ProcessingConfig, StageProfile

logger = logging.getLogger(__name__)

SleepFunc = Callable[[float], Awaitable[None]]


class StageKind(Enum):
    """The two per-track processing stages."""
    TRANSCODE = "transcode"
    METADATA_EXTRACT = "metadata_extract"

    @property
    def label(self) -> str:
        return _STAGE_LABELS[self]


_STAGE_LABELS = {
    StageKind.TRANSCODE: "Transcoding",
    StageKind.METADATA_EXTRACT: "Metadata",
}

_STAGE_MESSAGES = {
    StageKind.TRANSCODE: ("Audio transcoding successful.", "Simulated audio transcoding failed."),
    StageKind.METADATA_EXTRACT: ("Metadata extraction successful.", "Simulated metadata extraction failed."),
}

_STAGE_NAMES = {
    StageKind.TRANSCODE: "audio transcoding",
    StageKind.METADATA_EXTRACT: "metadata extraction",
}


@dataclass(frozen=True, slots=True)
class StageResult:
    """Outcome of one stage for one track."""
    success: bool
    message: str


class StageRunner(ABC):
    """Capability that runs a single processing stage for a track."""

    @abstractmethod
    async def run_stage(self, kind: StageKind, track: Track) -> StageResult:
        """Run `kind` for `track`. A stage failure is a result, not an exception."""
        pass


class SimulatedStageRunner(StageRunner):
    """Stage runner with random latency and random failures."""

    def __init__(
        self,
        profiles: Optional[Dict[StageKind, StageProfile]] = None,
        rng: Optional[random.Random] = None,
        sleep: SleepFunc = asyncio.sleep,
        time_scale: float = 1.0,
    ):
        """
        Initialize the simulated runner.

        Args:
            profiles: Latency/failure profile per stage (defaults to the
                transcode 5-10s/10% and metadata 1-3s/5% profiles)
            rng: Random source for latency and failure draws
            sleep: Awaitable used to wait out the simulated latency
            time_scale: Multiplier applied to every delay (0 skips waiting)
        """
        defaults = ProcessingConfig()
        self.profiles = {
            StageKind.TRANSCODE: defaults.transcode,
            StageKind.METADATA_EXTRACT: defaults.metadata,
        }
        if profiles:
            self.profiles.update(profiles)
        self.rng = rng or random.Random()
        self.sleep = sleep
        self.time_scale = time_scale

    @classmethod
    def from_config(cls, config: ProcessingConfig, sleep: SleepFunc = asyncio.sleep) -> "SimulatedStageRunner":
        return cls(
            profiles={
                StageKind.TRANSCODE: config.transcode,
                StageKind.METADATA_EXTRACT: config.metadata,
            },
            rng=random.Random(config.seed),
            sleep=sleep,
            time_scale=config.time_scale,
        )

    def draw(self, kind: StageKind) -> tuple:
        """Draw (delay_seconds, should_fail) for one run of `kind`."""
        profile = self.profiles[kind]
        # Millisecond granularity, both bounds inclusive.
        delay_ms = self.rng.randint(round(profile.min_latency * 1000), round(profile.max_latency * 1000))
        should_fail = self.rng.random() < profile.failure_probability
        return delay_ms / 1000, should_fail

    async def run_stage(self, kind: StageKind, track: Track) -> StageResult:
        delay, should_fail = self.draw(kind)

        scaled = delay * self.time_scale
        if scaled > 0:
            await self.sleep(scaled)

        ok_message, failed_message = _STAGE_MESSAGES[kind]
        name = _STAGE_NAMES[kind]
        if should_fail:
            logger.warning(f"Simulated {name} FAILED for track {track.id} (release {track.release_id})")
            return StageResult(success=False, message=failed_message)

        logger.info(f"Simulated {name} SUCCESS for track {track.id} (release {track.release_id}) in {delay}s")
        return StageResult(success=True, message=ok_message)
