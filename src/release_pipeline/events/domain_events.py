"""
Domain Events - Release lifecycle events.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .event_bus import DomainEvent


@dataclass(kw_only=True)
class ReleaseCreated(DomainEvent):
    """Event fired when an artist creates a draft release."""
    artist_id: str
    title: str

    def _get_event_data(self) -> Dict[str, Any]:
        return {"artist_id": self.artist_id, "title": self.title}


@dataclass(kw_only=True)
class ReleaseSubmitted(DomainEvent):
    """Event fired when a release is flipped to PROCESSING."""
    requested_by: str
    previous_status: str

    def _get_event_data(self) -> Dict[str, Any]:
        return {"requested_by": self.requested_by, "previous_status": self.previous_status}


@dataclass(kw_only=True)
class TrackProcessed(DomainEvent):
    """Event fired once per track when its verdict is known."""
    track_id: str
    status: str
    message: str

    def _get_event_data(self) -> Dict[str, Any]:
        return {"track_id": self.track_id, "status": self.status, "message": self.message}


@dataclass(kw_only=True)
class ReleaseProcessingCompleted(DomainEvent):
    """Event fired when the orchestrator has written the outcome of a run."""
    outcome: str  # PENDING_REVIEW or REJECTED
    failed_track_ids: List[str] = field(default_factory=list)
    reason: Optional[str] = None

    def _get_event_data(self) -> Dict[str, Any]:
        return {
            "outcome": self.outcome,
            "failed_track_ids": self.failed_track_ids,
            "reason": self.reason,
        }


@dataclass(kw_only=True)
class ReleaseReviewed(DomainEvent):
    """Event fired when an admin publishes or rejects a release."""
    reviewer_id: str
    outcome: str
    reason: Optional[str] = None

    def _get_event_data(self) -> Dict[str, Any]:
        return {"reviewer_id": self.reviewer_id, "outcome": self.outcome, "reason": self.reason}


@dataclass(kw_only=True)
class ReleaseDeleted(DomainEvent):
    """Event fired when a release and its tracks are removed."""
    deleted_by: str

    def _get_event_data(self) -> Dict[str, Any]:
        return {"deleted_by": self.deleted_by}
