"""Processing log sinks.

Verdicts are diagnostic only; the authoritative outcome is the release
status. The sink is owned by whoever owns the orchestrator.
"""

from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Optional

from ..domain.entities import Verdict


class ProcessingLogSink(ABC):
    """Stores the verdicts of the latest processing run per release."""

    @abstractmethod
    def append(self, release_id: str, verdicts: Iterable[Verdict]) -> None:
        """Add verdicts to the release's log."""
        pass

    @abstractmethod
    def get(self, release_id: str) -> Optional[List[Verdict]]:
        """Verdicts for the release, or None if it was never processed."""
        pass

    @abstractmethod
    def clear(self, release_id: str) -> None:
        """Forget the release's log, before a new run starts."""
        pass


class InMemoryProcessingLogSink(ProcessingLogSink):
    """Process-local sink; lost on restart."""

    def __init__(self):
        self._logs: Dict[str, List[Verdict]] = {}

    def append(self, release_id: str, verdicts: Iterable[Verdict]) -> None:
        self._logs.setdefault(release_id, []).extend(verdicts)

    def get(self, release_id: str) -> Optional[List[Verdict]]:
        entries = self._logs.get(release_id)
        return list(entries) if entries is not None else None

    def clear(self, release_id: str) -> None:
        self._logs.pop(release_id, None)
