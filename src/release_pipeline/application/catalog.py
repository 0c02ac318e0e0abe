"""Catalogue service - release and track management outside the lifecycle gates.

Creating, editing and deleting releases and tracks, plus the artist,
admin and public listings. Status is never changed here; that is the
job of the submission and review gates.
"""

import logging
from dataclasses import dataclass, replace
from typing import List, Optional

from ..domain.entities import Page, Release, ReleaseStatus, Requester, Track, UserRole
from ..domain.repositories import ReleaseFilter, ReleaseRepository, normalize_order
from ..domain.result import (
    AuthorizationError,
    DomainError,
    InvalidTransitionError,
    NotFoundError,
    Result,
    ValidationError,
    failure,
    success,
)
from ..domain.state_machine import EDITABLE_STATUSES
from ..events import EventBus, ReleaseCreated, ReleaseDeleted

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 10
PUBLIC_PAGE_SIZE = 12
MAX_PAGE_SIZE = 100


@dataclass(frozen=True, slots=True)
class ReleaseChanges:
    """Editable release fields; None leaves a field unchanged."""
    title: Optional[str] = None
    genre: Optional[str] = None
    cover_art_url: Optional[str] = None
    is_featured: Optional[bool] = None


def _clamp_paging(page: int, limit: int) -> tuple:
    page = max(1, page)
    limit = min(max(1, limit), MAX_PAGE_SIZE)
    return page, limit


class ReleaseCatalogService:
    """Service for release and track management."""

    def __init__(self, repository: ReleaseRepository, event_bus: Optional[EventBus] = None):
        self.repository = repository
        self.event_bus = event_bus

    async def create_release(
        self,
        requester: Requester,
        title: str,
        genre: str,
        cover_art_url: Optional[str] = None,
    ) -> Result[Release, DomainError]:
        """Create a DRAFT release owned by the requesting artist."""
        if requester.role is not UserRole.ARTIST:
            return failure(AuthorizationError("Only ARTIST can create releases."))

        title, genre = (title or "").strip(), (genre or "").strip()
        if not title or not genre:
            return failure(ValidationError("Title and genre are required."))

        release = await self.repository.create(Release(
            artist_id=requester.user_id,
            title=title,
            genre=genre,
            cover_art_url=cover_art_url,
        ))
        logger.info(f"Release {release.id} created by artist {requester.user_id}")

        if self.event_bus:
            await self.event_bus.publish(ReleaseCreated(
                aggregate_id=release.id, artist_id=release.artist_id, title=release.title
            ))
        return success(release)

    async def get_release(self, release_id: str) -> Result[Release, DomainError]:
        release = await self.repository.get(release_id)
        if release is None:
            return failure(NotFoundError("Release not found."))
        return success(release)

    async def get_tracks(self, release_id: str) -> List[Track]:
        return await self.repository.get_tracks(release_id)

    async def update_release(
        self,
        release_id: str,
        requester: Requester,
        changes: ReleaseChanges,
    ) -> Result[Release, DomainError]:
        """Edit title, genre, cover art or the featured flag."""
        loaded = await self._load_managed(release_id, requester, "update")
        if loaded.is_failure():
            return loaded
        release = loaded.value()

        if changes.title is not None and not changes.title.strip():
            return failure(ValidationError("Title cannot be empty."))
        if changes.genre is not None and not changes.genre.strip():
            return failure(ValidationError("Genre cannot be empty."))

        edited = replace(
            release,
            title=changes.title.strip() if changes.title is not None else release.title,
            genre=changes.genre.strip() if changes.genre is not None else release.genre,
            cover_art_url=changes.cover_art_url if changes.cover_art_url is not None else release.cover_art_url,
            is_featured=changes.is_featured if changes.is_featured is not None else release.is_featured,
        )
        updated = await self.repository.update(edited)
        if updated is None:
            return failure(NotFoundError("Release not found after update attempt."))
        return success(updated)

    async def delete_release(self, release_id: str, requester: Requester) -> Result[bool, DomainError]:
        """Delete a release together with its tracks."""
        loaded = await self._load_managed(release_id, requester, "delete")
        if loaded.is_failure():
            return loaded

        if not await self.repository.delete(release_id):
            return failure(NotFoundError("Release not found."))
        logger.info(f"Release {release_id} deleted by {requester.user_id}")

        if self.event_bus:
            await self.event_bus.publish(ReleaseDeleted(aggregate_id=release_id, deleted_by=requester.user_id))
        return success(True)

    async def add_track(
        self,
        release_id: str,
        requester: Requester,
        title: str,
        track_number: int,
        isrc: Optional[str] = None,
        audio_url: Optional[str] = None,
        duration: Optional[float] = None,
    ) -> Result[Track, DomainError]:
        """Add a track to a release that is still editable (DRAFT or REJECTED)."""
        loaded = await self._load_editable(release_id, requester, "add tracks to")
        if loaded.is_failure():
            return loaded

        title = (title or "").strip()
        if not title or track_number is None:
            return failure(ValidationError("Title and track number are required."))
        if track_number < 1:
            return failure(ValidationError("Track number must be a positive integer."))
        if duration is not None and duration < 0:
            return failure(ValidationError("Duration cannot be negative."))

        existing = await self.repository.get_tracks(release_id)
        if any(track.track_number == track_number for track in existing):
            return failure(ValidationError(f"Track number {track_number} is already used on this release."))

        track = await self.repository.add_track(Track(
            release_id=release_id,
            title=title,
            track_number=track_number,
            isrc=isrc,
            audio_url=audio_url,
            duration=duration,
        ))
        return success(track)

    async def remove_track(self, track_id: str, requester: Requester) -> Result[bool, DomainError]:
        track = await self.repository.get_track(track_id)
        if track is None:
            return failure(NotFoundError("Track not found."))

        loaded = await self._load_editable(track.release_id, requester, "delete tracks from")
        if loaded.is_failure():
            return loaded

        return success(await self.repository.delete_track(track_id))

    async def list_releases(
        self,
        requester: Requester,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
        order_by: str = "created_at",
        descending: bool = True,
    ) -> Page[Release]:
        """Admins see every release, artists only their own."""
        criteria = ReleaseFilter() if requester.is_admin else ReleaseFilter(artist_id=requester.user_id)
        return await self._page(criteria, page, limit, order_by, descending)

    async def list_published(
        self,
        search: Optional[str] = None,
        is_featured: Optional[bool] = None,
        page: int = 1,
        limit: int = PUBLIC_PAGE_SIZE,
        order_by: str = "created_at",
        descending: bool = True,
    ) -> Page[Release]:
        """The public catalogue."""
        if order_by == "status":
            order_by = "created_at"
        criteria = ReleaseFilter(
            status=ReleaseStatus.PUBLISHED,
            search=search.strip() if search and search.strip() else None,
            is_featured=is_featured,
        )
        return await self._page(criteria, page, limit, order_by, descending)

    async def get_published_release(self, release_id: str) -> Result[Release, DomainError]:
        release = await self.repository.get(release_id)
        if release is None or not release.is_published:
            return failure(NotFoundError("Release not found."))
        return success(release)

    async def _page(
        self,
        criteria: ReleaseFilter,
        page: int,
        limit: int,
        order_by: str,
        descending: bool,
    ) -> Page[Release]:
        page, limit = _clamp_paging(page, limit)
        items = await self.repository.find(
            criteria,
            offset=(page - 1) * limit,
            limit=limit,
            order_by=normalize_order(order_by),
            descending=descending,
        )
        total = await self.repository.count(criteria)
        return Page(items=items, total=total, page=page, limit=limit)

    async def _load_managed(self, release_id: str, requester: Requester, action: str) -> Result[Release, DomainError]:
        release = await self.repository.get(release_id)
        if release is None:
            return failure(NotFoundError("Release not found."))
        if not requester.can_manage(release):
            return failure(AuthorizationError(f"You can only {action} your own releases."))
        return success(release)

    async def _load_editable(self, release_id: str, requester: Requester, action: str) -> Result[Release, DomainError]:
        loaded = await self._load_managed(release_id, requester, action)
        if loaded.is_success() and loaded.value().status not in EDITABLE_STATUSES:
            status = loaded.value().status.value
            return failure(InvalidTransitionError(
                f"Release is currently in '{status}' status; tracks can only change while DRAFT or REJECTED."
            ))
        return loaded
