"""Release Pipeline

Lifecycle state machine and asynchronous processing for music releases.
"""

__version__ = "0.1.0"

from .application import AdminDecisionGate, ReleaseCatalogService, ReleaseChanges, SubmissionGate
from .domain import (
    Release,
    ReleaseStatus,
    Requester,
    Track,
    UserRole,
    Verdict,
    VerdictStatus,
)
from .exceptions import ConfigurationError, ReleasePipelineError, SchedulingError, StorageError
from .infrastructure import InMemoryReleaseRepository, SQLiteReleaseRepository
from .models import Config, ProcessingConfig, load_config
from .processing import (
    InMemoryProcessingLogSink,
    ProcessingTaskRegistry,
    ReleaseOrchestrator,
    SimulatedStageRunner,
    TrackProcessor,
)

__all__ = [
    "__version__",
    "Release",
    "ReleaseStatus",
    "Requester",
    "Track",
    "UserRole",
    "Verdict",
    "VerdictStatus",
    "SubmissionGate",
    "AdminDecisionGate",
    "ReleaseCatalogService",
    "ReleaseChanges",
    "InMemoryReleaseRepository",
    "SQLiteReleaseRepository",
    "ReleaseOrchestrator",
    "TrackProcessor",
    "SimulatedStageRunner",
    "ProcessingTaskRegistry",
    "InMemoryProcessingLogSink",
    "Config",
    "ProcessingConfig",
    "load_config",
    "ReleasePipelineError",
    "ConfigurationError",
    "StorageError",
    "SchedulingError",
]
