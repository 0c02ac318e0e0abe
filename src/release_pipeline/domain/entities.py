"""Release domain entities.

A Release is the aggregate root of the lifecycle state machine; its
Tracks live and die with it. Verdicts are the ephemeral per-track
outcome of one processing run.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from math import ceil
from typing import Generic, List, Optional, TypeVar
from uuid import uuid4

T = TypeVar('T')


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


class ReleaseStatus(Enum):
    """Lifecycle status of a release."""
    DRAFT = "DRAFT"
    PROCESSING = "PROCESSING"
    PENDING_REVIEW = "PENDING_REVIEW"
    PUBLISHED = "PUBLISHED"
    REJECTED = "REJECTED"


class UserRole(Enum):
    """Role of an authenticated requester."""
    ARTIST = "ARTIST"
    ADMIN = "ADMIN"


class VerdictStatus(Enum):
    """Outcome of processing a single track."""
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


@dataclass(frozen=True, slots=True)
class Requester:
    """An already-authenticated caller."""
    user_id: str
    role: UserRole

    @property
    def is_admin(self) -> bool:
        return self.role is UserRole.ADMIN

    def can_manage(self, release: "Release") -> bool:
        """Owners and admins may modify or submit a release."""
        return self.is_admin or release.artist_id == self.user_id


@dataclass(kw_only=True)
class Release:
    """
    An artist's album or single submission.

    The status field is the only channel through which processing
    outcomes reach the artist; processing_error_reason carries the
    explanation when the release is rejected.
    """

    id: str = field(default_factory=lambda: str(uuid4()))
    artist_id: str
    title: str
    genre: str
    cover_art_url: Optional[str] = None
    status: ReleaseStatus = ReleaseStatus.DRAFT
    processing_error_reason: Optional[str] = None
    is_featured: bool = False
    track_count: int = 0

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @property
    def is_published(self) -> bool:
        return self.status is ReleaseStatus.PUBLISHED

    def to_dict(self) -> dict:
        """Convert to dictionary for display and serialization."""
        return {
            "id": self.id,
            "artist_id": self.artist_id,
            "title": self.title,
            "genre": self.genre,
            "cover_art_url": self.cover_art_url,
            "status": self.status.value,
            "processing_error_reason": self.processing_error_reason,
            "is_featured": self.is_featured,
            "track_count": self.track_count,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(kw_only=True)
class Track:
    """One audio item belonging to a release."""

    id: str = field(default_factory=lambda: str(uuid4()))
    release_id: str
    title: str
    track_number: int
    isrc: Optional[str] = None
    audio_url: Optional[str] = None
    duration: Optional[float] = None  # seconds

    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "release_id": self.release_id,
            "title": self.title,
            "track_number": self.track_number,
            "isrc": self.isrc,
            "audio_url": self.audio_url,
            "duration": self.duration,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass(frozen=True, slots=True)
class Verdict:
    """Per-track outcome of one processing run."""
    track_id: str
    timestamp: datetime
    status: VerdictStatus
    message: str

    @property
    def succeeded(self) -> bool:
        return self.status is VerdictStatus.SUCCESS

    def to_dict(self) -> dict:
        return {
            "track_id": self.track_id,
            "timestamp": self.timestamp.isoformat(),
            "status": self.status.value,
            "message": self.message,
        }


@dataclass(frozen=True, slots=True)
class Page(Generic[T]):
    """One page of a paginated listing."""
    items: List[T]
    total: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return ceil(self.total / self.limit) if self.limit else 0
