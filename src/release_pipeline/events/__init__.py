"""
Event System - Release lifecycle events

Lets observers (notifications, audit, metrics) follow releases through
the pipeline without the gates knowing about them.
"""

from .event_bus import DomainEvent, EventBus
from .domain_events import (
    ReleaseCreated,
    ReleaseDeleted,
    ReleaseProcessingCompleted,
    ReleaseReviewed,
    ReleaseSubmitted,
    TrackProcessed,
)

__all__ = [
    # Core event system
    "EventBus",
    "DomainEvent",
    # Domain events
    "ReleaseCreated",
    "ReleaseSubmitted",
    "TrackProcessed",
    "ReleaseProcessingCompleted",
    "ReleaseReviewed",
    "ReleaseDeleted",
]
