"""Release store repository interface.

The store is the persistence boundary of the pipeline. Implementations
must be linearizable per release id: a write is fully visible to the
next read of the same id.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

from .entities import Release, ReleaseStatus, Track

ORDERABLE_COLUMNS = ("created_at", "title", "genre", "status")


@dataclass(frozen=True, slots=True)
class ReleaseFilter:
    """Criteria for listing releases."""
    artist_id: Optional[str] = None
    status: Optional[ReleaseStatus] = None
    search: Optional[str] = None  # case-insensitive match on title or genre
    is_featured: Optional[bool] = None


def normalize_order(order_by: Optional[str]) -> str:
    """Whitelist a sort column, falling back to created_at."""
    return order_by if order_by in ORDERABLE_COLUMNS else "created_at"


class ReleaseRepository(ABC):
    """Repository for releases and their tracks."""

    @abstractmethod
    async def get(self, release_id: str) -> Optional[Release]:
        """Find a release by its ID, with track_count populated."""
        pass

    @abstractmethod
    async def get_tracks(self, release_id: str) -> List[Track]:
        """Get a release's tracks ordered by track_number."""
        pass

    @abstractmethod
    async def set_status(
        self,
        release_id: str,
        status: ReleaseStatus,
        reason: Optional[str] = None,
        expected: Optional[ReleaseStatus] = None,
    ) -> Optional[Release]:
        """Write status and error reason.

        When `expected` is given the write only happens if the stored
        status still equals it; otherwise StatusConflictError is raised.

        Returns:
            The updated release, or None if the release does not exist.
        """
        pass

    @abstractmethod
    async def create(self, release: Release) -> Release:
        """Insert a new release."""
        pass

    @abstractmethod
    async def update(self, release: Release) -> Optional[Release]:
        """Persist title, genre, cover art, featured flag and error reason."""
        pass

    @abstractmethod
    async def delete(self, release_id: str) -> bool:
        """Delete a release and its tracks."""
        pass

    @abstractmethod
    async def add_track(self, track: Track) -> Track:
        """Insert a track."""
        pass

    @abstractmethod
    async def get_track(self, track_id: str) -> Optional[Track]:
        pass

    @abstractmethod
    async def delete_track(self, track_id: str) -> bool:
        pass

    @abstractmethod
    async def find(
        self,
        criteria: Optional[ReleaseFilter] = None,
        offset: int = 0,
        limit: Optional[int] = None,
        order_by: str = "created_at",
        descending: bool = True,
    ) -> List[Release]:
        """Find releases matching the criteria."""
        pass

    @abstractmethod
    async def count(self, criteria: Optional[ReleaseFilter] = None) -> int:
        """Count releases matching the criteria."""
        pass
