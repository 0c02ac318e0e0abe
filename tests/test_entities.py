"""Tests for the release domain entities."""

from datetime import timezone

from release_pipeline.domain.entities import (
    Page,
    Release,
    ReleaseStatus,
    Requester,
    Track,
    UserRole,
    Verdict,
    VerdictStatus,
    utcnow,
)


class TestRelease:
    """Test Release defaults and serialization."""

    def test_defaults(self):
        release = Release(artist_id="a-1", title="Night Drive", genre="Synthwave")
        assert release.status is ReleaseStatus.DRAFT
        assert release.processing_error_reason is None
        assert release.is_featured is False
        assert release.id
        assert release.created_at.tzinfo is not None

    def test_ids_are_unique(self):
        first = Release(artist_id="a-1", title="A", genre="B")
        second = Release(artist_id="a-1", title="A", genre="B")
        assert first.id != second.id

    def test_to_dict(self):
        release = Release(artist_id="a-1", title="Night Drive", genre="Synthwave",
                          status=ReleaseStatus.REJECTED, processing_error_reason="Bad audio")
        data = release.to_dict()
        assert data["status"] == "REJECTED"
        assert data["processing_error_reason"] == "Bad audio"
        assert data["created_at"].endswith("+00:00")

    def test_is_published(self):
        assert Release(artist_id="a", title="t", genre="g", status=ReleaseStatus.PUBLISHED).is_published
        assert not Release(artist_id="a", title="t", genre="g").is_published


class TestRequester:
    """Test ownership rules."""

    def test_owner_can_manage(self):
        release = Release(artist_id="a-1", title="t", genre="g")
        assert Requester("a-1", UserRole.ARTIST).can_manage(release)
        assert not Requester("a-2", UserRole.ARTIST).can_manage(release)

    def test_admin_can_manage_anything(self):
        release = Release(artist_id="a-1", title="t", genre="g")
        admin = Requester("root", UserRole.ADMIN)
        assert admin.is_admin
        assert admin.can_manage(release)


class TestVerdictAndTrack:
    """Test Verdict and Track."""

    def test_verdict(self):
        verdict = Verdict(track_id="t-1", timestamp=utcnow(), status=VerdictStatus.SUCCESS, message="ok")
        assert verdict.succeeded
        assert verdict.to_dict()["status"] == "SUCCESS"
        assert verdict.timestamp.tzinfo is timezone.utc

    def test_track_to_dict(self):
        track = Track(release_id="r-1", title="Intro", track_number=1, duration=93.5)
        data = track.to_dict()
        assert data["release_id"] == "r-1"
        assert data["track_number"] == 1
        assert data["duration"] == 93.5
        assert data["isrc"] is None


class TestPage:
    """Test pagination metadata."""

    def test_total_pages(self):
        assert Page(items=[], total=25, page=1, limit=10).total_pages == 3
        assert Page(items=[], total=20, page=1, limit=10).total_pages == 2
        assert Page(items=[], total=0, page=1, limit=10).total_pages == 0
