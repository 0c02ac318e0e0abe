"""Tests for the command line interface."""

import asyncio
import json

import pytest
from click.testing import CliRunner

from release_pipeline.cli import cli
from release_pipeline.domain.entities import ReleaseStatus
from release_pipeline.infrastructure import SQLiteReleaseRepository
from release_pipeline.models.config import load_config


def write_config(path, failure_probability):
    stage = {"min_latency": 0, "max_latency": 0, "failure_probability": failure_probability}
    path.write_text(json.dumps({
        "processing": {"transcode": stage, "metadata": stage, "time_scale": 0},
    }), encoding="utf-8")
    return path


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "releases.db"


@pytest.fixture
def passing_config(tmp_path):
    return write_config(tmp_path / "passing.json", 0.0)


@pytest.fixture
def failing_config(tmp_path):
    return write_config(tmp_path / "failing.json", 1.0)


class CliHarness:
    """Runs CLI commands against one database."""

    def __init__(self, db_path):
        self.db_path = db_path
        self.runner = CliRunner()

    def invoke(self, *args, user="artist-1", role="ARTIST", config=None):
        base = ["--db", str(self.db_path), "--user", user, "--role", role]
        if config is not None:
            base += ["--config", str(config)]
        return self.runner.invoke(cli, base + list(args))

    def releases(self):
        return asyncio.run(SQLiteReleaseRepository(self.db_path).find())

    def create_with_tracks(self, *titles):
        assert self.invoke("create", "Night Drive", "Synthwave").exit_code == 0
        release = self.releases()[0]
        for number, title in enumerate(titles, start=1):
            result = self.invoke("add-track", release.id, title, "--number", str(number))
            assert result.exit_code == 0, result.output
        return release


@pytest.fixture
def harness(db_path):
    return CliHarness(db_path)


class TestCatalogueCommands:
    """Test create, update, list, show and delete."""

    def test_create(self, harness):
        result = harness.invoke("create", "Night Drive", "Synthwave", "--cover-art-url", "https://img/1.png")

        assert result.exit_code == 0, result.output
        assert "Created release" in result.output
        release = harness.releases()[0]
        assert release.status is ReleaseStatus.DRAFT
        assert release.cover_art_url == "https://img/1.png"

    def test_admin_cannot_create(self, harness):
        result = harness.invoke("create", "Night Drive", "Synthwave", user="root", role="ADMIN")
        assert result.exit_code == 1
        assert "Only ARTIST can create releases." in result.output

    def test_add_track_to_missing_release(self, harness):
        result = harness.invoke("add-track", "missing", "Intro", "--number", "1")
        assert result.exit_code == 1
        assert "Release not found." in result.output

    def test_update_and_show(self, harness):
        release = harness.create_with_tracks("Intro")

        assert harness.invoke("update", release.id, "--genre", "House", "--featured").exit_code == 0
        result = harness.invoke("show", release.id)

        assert result.exit_code == 0, result.output
        assert "House" in result.output
        assert "Featured: Yes" in result.output
        assert "(final)" not in result.output
        assert "Intro" in result.output

    def test_list_scoped_to_artist(self, harness):
        harness.create_with_tracks()

        own = harness.invoke("list")
        other = harness.invoke("list", user="artist-2")
        admin = harness.invoke("list", user="root", role="admin")

        assert "(1 total)" in own.output
        assert "(0 total)" in other.output
        assert "(1 total)" in admin.output

    def test_delete(self, harness):
        release = harness.create_with_tracks("Intro")

        result = harness.invoke("delete", release.id, "--yes")

        assert result.exit_code == 0, result.output
        assert harness.releases() == []

    def test_remove_track(self, harness):
        release = harness.create_with_tracks("Intro", "Outro")
        tracks = asyncio.run(SQLiteReleaseRepository(harness.db_path).get_tracks(release.id))

        result = harness.invoke("remove-track", tracks[0].id)

        assert result.exit_code == 0, result.output
        assert harness.releases()[0].track_count == 1


class TestLifecycleCommands:
    """Test submit and review end to end."""

    def test_submit_then_publish(self, harness, passing_config):
        release = harness.create_with_tracks("Intro", "Outro")

        submitted = harness.invoke("submit", release.id, config=passing_config)
        assert submitted.exit_code == 0, submitted.output
        assert "PENDING_REVIEW" in submitted.output
        assert "Track verdicts" in submitted.output

        reviewed = harness.invoke("review", release.id, "published", user="root", role="ADMIN")
        assert reviewed.exit_code == 0, reviewed.output
        assert harness.releases()[0].status is ReleaseStatus.PUBLISHED
        shown = harness.invoke("show", release.id)
        assert "PUBLISHED (final)" in shown.output

        catalogue = harness.invoke("catalogue")
        assert "(1 total)" in catalogue.output

    def test_submit_with_failing_stages(self, harness, failing_config):
        release = harness.create_with_tracks("Intro")

        result = harness.invoke("submit", release.id, "--seed", "3", config=failing_config)

        assert result.exit_code == 0, result.output
        assert "REJECTED" in result.output
        assert "Failed to process 1 track(s)" in result.output
        stored = harness.releases()[0]
        assert stored.status is ReleaseStatus.REJECTED

    def test_submit_unknown_release(self, harness, passing_config):
        result = harness.invoke("submit", "missing", config=passing_config)
        assert result.exit_code == 1
        assert "Release not found." in result.output

    def test_reject_requires_reason(self, harness, passing_config):
        release = harness.create_with_tracks("Intro")
        harness.invoke("submit", release.id, config=passing_config)

        result = harness.invoke("review", release.id, "REJECTED", user="root", role="ADMIN")

        assert result.exit_code == 1
        assert "processing_error_reason is required" in result.output
        assert harness.releases()[0].status is ReleaseStatus.PENDING_REVIEW

    def test_artist_cannot_review(self, harness, passing_config):
        release = harness.create_with_tracks("Intro")
        harness.invoke("submit", release.id, config=passing_config)

        result = harness.invoke("review", release.id, "PUBLISHED")

        assert result.exit_code == 1
        assert "Only ADMIN can approve or reject releases." in result.output

    def test_empty_catalogue(self, harness):
        result = harness.invoke("catalogue", "--search", "jazz")
        assert result.exit_code == 0
        assert "No published releases found" in result.output


class TestConfigCommands:
    """Test configuration handling."""

    def test_invalid_config(self, harness, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"processing": {"time_scale": -1}}), encoding="utf-8")

        result = harness.invoke("list", config=path)

        assert result.exit_code == 1
        assert "Invalid configuration" in result.output

    def test_init_config(self, harness, tmp_path):
        path = tmp_path / "config.json"

        result = harness.invoke("init-config", str(path))

        assert result.exit_code == 0, result.output
        assert load_config(path).storage.db_path == harness.db_path
        assert harness.invoke("init-config", str(path)).exit_code == 1
