"""Background processing pipeline: stages, track processor, orchestrator."""

from .log_sink import InMemoryProcessingLogSink, ProcessingLogSink
from .orchestrator import ReleaseOrchestrator, ReleaseOutcome, aggregate_verdicts
from .stages import SimulatedStageRunner, StageKind, StageResult, StageRunner
from .task_registry import ProcessingTaskRegistry
from .track_processor import TrackProcessor

__all__ = [
    "StageKind",
    "StageResult",
    "StageRunner",
    "SimulatedStageRunner",
    "TrackProcessor",
    "ReleaseOrchestrator",
    "ReleaseOutcome",
    "aggregate_verdicts",
    "ProcessingLogSink",
    "InMemoryProcessingLogSink",
    "ProcessingTaskRegistry",
]
