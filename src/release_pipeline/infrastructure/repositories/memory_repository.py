"""
In-memory release repository.

Used by the tests and for single-process development. Entities are
copied on the way in and out so callers never share mutable state with
the store.
"""

import asyncio
from dataclasses import replace
from typing import Dict, List, Optional

from ...domain.entities import Release, ReleaseStatus, Track, utcnow
from ...domain.repositories import ReleaseFilter, ReleaseRepository, normalize_order
from ...domain.result import StatusConflictError
from ...domain.state_machine import reason_for


def _sort_key(order_by: str):
    if order_by == "status":
        return lambda release: release.status.value
    if order_by in ("title", "genre"):
        return lambda release: getattr(release, order_by).lower()
    return lambda release: release.created_at


def _matches(release: Release, criteria: ReleaseFilter) -> bool:
    if criteria.artist_id is not None and release.artist_id != criteria.artist_id:
        return False
    if criteria.status is not None and release.status is not criteria.status:
        return False
    if criteria.is_featured is not None and release.is_featured != criteria.is_featured:
        return False
    if criteria.search:
        needle = criteria.search.lower()
        if needle not in release.title.lower() and needle not in release.genre.lower():
            return False
    return True


class InMemoryReleaseRepository(ReleaseRepository):
    """In-memory implementation of ReleaseRepository."""

    def __init__(self):
        self._releases: Dict[str, Release] = {}
        self._tracks: Dict[str, Track] = {}
        self._lock = asyncio.Lock()

    def _snapshot(self, release: Release) -> Release:
        count = sum(1 for track in self._tracks.values() if track.release_id == release.id)
        return replace(release, track_count=count)

    async def get(self, release_id: str) -> Optional[Release]:
        release = self._releases.get(release_id)
        return self._snapshot(release) if release else None

    async def get_tracks(self, release_id: str) -> List[Track]:
        tracks = [replace(t) for t in self._tracks.values() if t.release_id == release_id]
        return sorted(tracks, key=lambda track: track.track_number)

    async def set_status(
        self,
        release_id: str,
        status: ReleaseStatus,
        reason: Optional[str] = None,
        expected: Optional[ReleaseStatus] = None,
    ) -> Optional[Release]:
        async with self._lock:
            release = self._releases.get(release_id)
            if release is None:
                return None
            if expected is not None and release.status is not expected:
                raise StatusConflictError(release_id, expected, release.status)

            updated = replace(
                release,
                status=status,
                processing_error_reason=reason_for(status, reason),
                updated_at=utcnow(),
            )
            self._releases[release_id] = updated
            return self._snapshot(updated)

    async def create(self, release: Release) -> Release:
        async with self._lock:
            stored = replace(release, track_count=0)
            self._releases[stored.id] = stored
            return self._snapshot(stored)

    async def update(self, release: Release) -> Optional[Release]:
        async with self._lock:
            current = self._releases.get(release.id)
            if current is None:
                return None
            # Status is owned by set_status; a concurrent status write must not be undone here.
            updated = replace(
                current,
                title=release.title,
                genre=release.genre,
                cover_art_url=release.cover_art_url,
                is_featured=release.is_featured,
                processing_error_reason=reason_for(current.status, release.processing_error_reason),
                updated_at=utcnow(),
            )
            self._releases[release.id] = updated
            return self._snapshot(updated)

    async def delete(self, release_id: str) -> bool:
        async with self._lock:
            if self._releases.pop(release_id, None) is None:
                return False
            for track_id in [t.id for t in self._tracks.values() if t.release_id == release_id]:
                del self._tracks[track_id]
            return True

    async def add_track(self, track: Track) -> Track:
        async with self._lock:
            stored = replace(track)
            self._tracks[stored.id] = stored
            return replace(stored)

    async def get_track(self, track_id: str) -> Optional[Track]:
        track = self._tracks.get(track_id)
        return replace(track) if track else None

    async def delete_track(self, track_id: str) -> bool:
        async with self._lock:
            return self._tracks.pop(track_id, None) is not None

    async def find(
        self,
        criteria: Optional[ReleaseFilter] = None,
        offset: int = 0,
        limit: Optional[int] = None,
        order_by: str = "created_at",
        descending: bool = True,
    ) -> List[Release]:
        criteria = criteria or ReleaseFilter()
        releases = [r for r in self._releases.values() if _matches(r, criteria)]
        releases.sort(key=_sort_key(normalize_order(order_by)), reverse=descending)

        releases = releases[offset:]
        if limit is not None:
            releases = releases[:limit]
        return [self._snapshot(release) for release in releases]

    async def count(self, criteria: Optional[ReleaseFilter] = None) -> int:
        criteria = criteria or ReleaseFilter()
        return sum(1 for release in self._releases.values() if _matches(release, criteria))
