"""Shared fixtures for the release pipeline tests."""

import asyncio
from datetime import datetime, timezone

import pytest

from release_pipeline.domain import Release, ReleaseStatus, Requester, Track, UserRole
from release_pipeline.infrastructure import InMemoryReleaseRepository
from release_pipeline.processing import (
    InMemoryProcessingLogSink,
    ProcessingTaskRegistry,
    ReleaseOrchestrator,
    StageResult,
    StageRunner,
    TrackProcessor,
)

FIXED_NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class ScriptedStageRunner(StageRunner):
    """Stage runner whose outcome is decided per track title.

    failures: {(track_title, StageKind): message} for stages that fail
    errors: {track_title: exception} raised by every stage of that track
    """

    def __init__(self, failures=None, errors=None, delay: float = 0.0):
        self.failures = failures or {}
        self.errors = errors or {}
        self.delay = delay
        self.calls = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def run_stage(self, kind, track):
        self.calls.append((kind, track.title))
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            if track.title in self.errors:
                raise self.errors[track.title]
            message = self.failures.get((track.title, kind))
            if message is not None:
                return StageResult(success=False, message=message)
            return StageResult(success=True, message=f"{kind.value} ok")
        finally:
            self.in_flight -= 1


@pytest.fixture
def repository():
    return InMemoryReleaseRepository()


@pytest.fixture
def artist():
    return Requester(user_id="artist-1", role=UserRole.ARTIST)


@pytest.fixture
def other_artist():
    return Requester(user_id="artist-2", role=UserRole.ARTIST)


@pytest.fixture
def admin():
    return Requester(user_id="admin-1", role=UserRole.ADMIN)


@pytest.fixture
def runner():
    return ScriptedStageRunner()


@pytest.fixture
def log_sink():
    return InMemoryProcessingLogSink()


@pytest.fixture
def registry():
    return ProcessingTaskRegistry()


@pytest.fixture
def orchestrator(repository, runner, log_sink):
    return ReleaseOrchestrator(
        repository,
        TrackProcessor(runner, clock=lambda: FIXED_NOW),
        log_sink=log_sink,
        clock=lambda: FIXED_NOW,
    )


@pytest.fixture
def seed_release(repository):
    """Factory storing a release with one track per title."""

    async def _seed(
        status=ReleaseStatus.DRAFT,
        titles=("Intro", "Outro"),
        artist_id="artist-1",
        title="Night Drive",
        genre="Synthwave",
        **fields,
    ):
        release = await repository.create(Release(
            artist_id=artist_id, title=title, genre=genre, status=status, **fields
        ))
        for number, track_title in enumerate(titles, start=1):
            await repository.add_track(Track(release_id=release.id, title=track_title, track_number=number))
        return await repository.get(release.id)

    return _seed
