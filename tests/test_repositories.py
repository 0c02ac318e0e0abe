"""Contract tests run against both release store implementations."""

import asyncio

import pytest

from release_pipeline.domain.entities import Release, ReleaseStatus, Track
from release_pipeline.domain.repositories import ReleaseFilter
from release_pipeline.domain.result import StatusConflictError
from release_pipeline.exceptions import StorageError
from release_pipeline.infrastructure import InMemoryReleaseRepository, SQLiteReleaseRepository


@pytest.fixture(params=["memory", "sqlite"])
def store(request, tmp_path):
    if request.param == "memory":
        return InMemoryReleaseRepository()
    return SQLiteReleaseRepository(tmp_path / "db" / "releases.db")


async def add_release(store, title="Night Drive", genre="Synthwave", artist_id="artist-1", **fields):
    return await store.create(Release(artist_id=artist_id, title=title, genre=genre, **fields))


class TestReleases:
    """Test release CRUD."""

    @pytest.mark.asyncio
    async def test_create_and_get(self, store):
        created = await add_release(store, cover_art_url="https://img/cover.png")

        loaded = await store.get(created.id)

        assert loaded.id == created.id
        assert loaded.title == "Night Drive"
        assert loaded.status is ReleaseStatus.DRAFT
        assert loaded.cover_art_url == "https://img/cover.png"
        assert loaded.track_count == 0
        assert loaded.created_at.tzinfo is not None

    @pytest.mark.asyncio
    async def test_get_missing(self, store):
        assert await store.get("missing") is None

    @pytest.mark.asyncio
    async def test_returned_objects_are_copies(self, store):
        created = await add_release(store)
        created.title = "Mutated"
        assert (await store.get(created.id)).title == "Night Drive"

    @pytest.mark.asyncio
    async def test_update_never_changes_status(self, store):
        created = await add_release(store)
        await store.set_status(created.id, ReleaseStatus.PROCESSING)

        created.title = "Renamed"
        created.status = ReleaseStatus.PUBLISHED
        updated = await store.update(created)

        assert updated.title == "Renamed"
        assert updated.status is ReleaseStatus.PROCESSING

    @pytest.mark.asyncio
    async def test_update_reason_only_kept_when_rejected(self, store):
        created = await add_release(store)
        created.processing_error_reason = "stray"
        assert (await store.update(created)).processing_error_reason is None

        rejected = await store.set_status(created.id, ReleaseStatus.REJECTED, "Clipping")
        assert (await store.update(rejected)).processing_error_reason == "Clipping"

    @pytest.mark.asyncio
    async def test_update_missing(self, store):
        assert await store.update(Release(artist_id="a", title="t", genre="g")) is None

    @pytest.mark.asyncio
    async def test_delete_cascades_to_tracks(self, store):
        created = await add_release(store)
        track = await store.add_track(Track(release_id=created.id, title="Intro", track_number=1))

        assert await store.delete(created.id) is True
        assert await store.get_track(track.id) is None
        assert await store.get_tracks(created.id) == []
        assert await store.delete(created.id) is False


class TestSetStatus:
    """Test status writes and compare-and-swap."""

    @pytest.mark.asyncio
    async def test_rejected_stores_reason(self, store):
        created = await add_release(store)
        updated = await store.set_status(created.id, ReleaseStatus.REJECTED, "Bad audio")
        assert updated.status is ReleaseStatus.REJECTED
        assert updated.processing_error_reason == "Bad audio"

    @pytest.mark.asyncio
    async def test_non_rejected_clears_reason(self, store):
        created = await add_release(store)
        await store.set_status(created.id, ReleaseStatus.REJECTED, "Bad audio")

        updated = await store.set_status(created.id, ReleaseStatus.PROCESSING, "ignored")

        assert updated.processing_error_reason is None

    @pytest.mark.asyncio
    async def test_expected_status_matches(self, store):
        created = await add_release(store)
        updated = await store.set_status(created.id, ReleaseStatus.PROCESSING, expected=ReleaseStatus.DRAFT)
        assert updated.status is ReleaseStatus.PROCESSING

    @pytest.mark.asyncio
    async def test_expected_status_mismatch_raises(self, store):
        created = await add_release(store)
        await store.set_status(created.id, ReleaseStatus.PROCESSING)

        with pytest.raises(StatusConflictError) as exc_info:
            await store.set_status(created.id, ReleaseStatus.PROCESSING, expected=ReleaseStatus.DRAFT)

        assert exc_info.value.actual is ReleaseStatus.PROCESSING
        assert (await store.get(created.id)).status is ReleaseStatus.PROCESSING

    @pytest.mark.asyncio
    async def test_missing_release_returns_none(self, store):
        assert await store.set_status("missing", ReleaseStatus.REJECTED, "gone") is None
        assert await store.set_status("missing", ReleaseStatus.REJECTED, expected=ReleaseStatus.PROCESSING) is None

    @pytest.mark.asyncio
    async def test_concurrent_swaps_single_winner(self, store):
        created = await add_release(store)

        results = await asyncio.gather(
            *(store.set_status(created.id, ReleaseStatus.PROCESSING, expected=ReleaseStatus.DRAFT) for _ in range(5)),
            return_exceptions=True,
        )

        assert sum(1 for r in results if isinstance(r, Release)) == 1
        assert sum(1 for r in results if isinstance(r, StatusConflictError)) == 4


class TestTracks:
    """Test track storage."""

    @pytest.mark.asyncio
    async def test_tracks_sorted_by_number(self, store):
        created = await add_release(store)
        for number, title in [(3, "Outro"), (1, "Intro"), (2, "Middle")]:
            await store.add_track(Track(release_id=created.id, title=title, track_number=number))

        tracks = await store.get_tracks(created.id)

        assert [t.title for t in tracks] == ["Intro", "Middle", "Outro"]
        assert (await store.get(created.id)).track_count == 3

    @pytest.mark.asyncio
    async def test_delete_track(self, store):
        created = await add_release(store)
        track = await store.add_track(Track(release_id=created.id, title="Intro", track_number=1))

        assert await store.delete_track(track.id) is True
        assert await store.delete_track(track.id) is False

    @pytest.mark.asyncio
    async def test_get_track(self, store):
        created = await add_release(store)
        track = await store.add_track(Track(release_id=created.id, title="Intro", track_number=1, duration=12.5))

        loaded = await store.get_track(track.id)

        assert loaded.title == "Intro"
        assert loaded.duration == 12.5


class TestFind:
    """Test filtering, ordering and paging."""

    @pytest.mark.asyncio
    async def test_filters(self, store):
        await add_release(store, title="Blue Train", genre="Jazz", status=ReleaseStatus.PUBLISHED)
        await add_release(store, title="Kind of Blue", genre="Jazz", artist_id="artist-2")
        await add_release(store, title="Red", genre="Rock", status=ReleaseStatus.PUBLISHED, is_featured=True)

        assert await store.count() == 3
        assert await store.count(ReleaseFilter(artist_id="artist-2")) == 1
        assert await store.count(ReleaseFilter(status=ReleaseStatus.PUBLISHED)) == 2
        assert await store.count(ReleaseFilter(is_featured=True)) == 1

        blue = await store.find(ReleaseFilter(search="BLUE"), order_by="title", descending=False)
        assert [r.title for r in blue] == ["Blue Train", "Kind of Blue"]
        rock = await store.find(ReleaseFilter(search="rock"))
        assert [r.title for r in rock] == ["Red"]

    @pytest.mark.asyncio
    async def test_search_treats_wildcards_as_text(self, store):
        await add_release(store, title="Night Drive", genre="Synthwave")
        await add_release(store, title="100% Pure", genre="Drum_and_Bass")
        await add_release(store, title="C:\\Mixes", genre="Ambient")

        assert [r.title for r in await store.find(ReleaseFilter(search="_"))] == ["100% Pure"]
        assert [r.title for r in await store.find(ReleaseFilter(search="%"))] == ["100% Pure"]
        assert [r.title for r in await store.find(ReleaseFilter(search="\\"))] == ["C:\\Mixes"]
        assert await store.count(ReleaseFilter(search="Night%Drive")) == 0

    @pytest.mark.asyncio
    async def test_order_and_paging(self, store):
        for title in ["delta", "Alpha", "charlie", "Bravo"]:
            await add_release(store, title=title)

        ordered = await store.find(order_by="title", descending=False)
        assert [r.title for r in ordered] == ["Alpha", "Bravo", "charlie", "delta"]

        page = await store.find(order_by="title", descending=True, offset=1, limit=2)
        assert [r.title for r in page] == ["charlie", "Bravo"]

    @pytest.mark.asyncio
    async def test_unknown_order_column_is_ignored(self, store):
        await add_release(store)
        assert len(await store.find(order_by="artist_id; --")) == 1


class TestSQLiteSpecifics:
    """Behaviour specific to the SQLite store."""

    @pytest.mark.asyncio
    async def test_data_survives_new_instance(self, tmp_path):
        path = tmp_path / "releases.db"
        created = await add_release(SQLiteReleaseRepository(path))

        reopened = SQLiteReleaseRepository(path)

        assert (await reopened.get(created.id)).title == "Night Drive"

    @pytest.mark.asyncio
    async def test_duplicate_track_number_is_a_storage_error(self, tmp_path):
        store = SQLiteReleaseRepository(tmp_path / "releases.db")
        created = await add_release(store)
        await store.add_track(Track(release_id=created.id, title="Intro", track_number=1))

        with pytest.raises(StorageError):
            await store.add_track(Track(release_id=created.id, title="Again", track_number=1))
