"""Tests for the release lifecycle state machine."""

import pytest

from release_pipeline.domain.entities import ReleaseStatus
from release_pipeline.domain.result import InvalidTransitionError
from release_pipeline.domain.state_machine import (
    ALLOWED_TRANSITIONS,
    SUBMITTABLE_STATUSES,
    can_transition,
    ensure_transition,
    is_terminal,
    reason_for,
)

DRAFT = ReleaseStatus.DRAFT
PROCESSING = ReleaseStatus.PROCESSING
PENDING_REVIEW = ReleaseStatus.PENDING_REVIEW
PUBLISHED = ReleaseStatus.PUBLISHED
REJECTED = ReleaseStatus.REJECTED


class TestTransitions:
    """Test the allowed transition table."""

    @pytest.mark.parametrize("current,target", [
        (DRAFT, PROCESSING),
        (PROCESSING, PENDING_REVIEW),
        (PROCESSING, REJECTED),
        (PENDING_REVIEW, PUBLISHED),
        (PENDING_REVIEW, REJECTED),
        (REJECTED, PROCESSING),
    ])
    def test_allowed(self, current, target):
        assert can_transition(current, target)
        ensure_transition(current, target)

    @pytest.mark.parametrize("current,target", [
        (DRAFT, PUBLISHED),
        (DRAFT, PENDING_REVIEW),
        (PROCESSING, PUBLISHED),
        (PENDING_REVIEW, PROCESSING),
        (REJECTED, PUBLISHED),
        (PUBLISHED, REJECTED),
    ])
    def test_forbidden(self, current, target):
        assert not can_transition(current, target)

    def test_every_status_has_an_entry(self):
        assert set(ALLOWED_TRANSITIONS) == set(ReleaseStatus)

    def test_published_is_terminal(self):
        assert is_terminal(PUBLISHED)
        assert not any(can_transition(PUBLISHED, target) for target in ReleaseStatus)
        assert not is_terminal(REJECTED)

    def test_submittable_statuses(self):
        assert SUBMITTABLE_STATUSES == {DRAFT, REJECTED}

    def test_ensure_transition_message(self):
        with pytest.raises(InvalidTransitionError) as exc_info:
            ensure_transition(PUBLISHED, PROCESSING, "submitted for processing")
        assert str(exc_info.value) == (
            "Release is currently in 'PUBLISHED' status and cannot be submitted for processing."
        )
        assert exc_info.value.current is PUBLISHED
        assert exc_info.value.target is PROCESSING


class TestReasonFor:
    """Test which statuses keep an error reason."""

    def test_rejected_keeps_reason(self):
        assert reason_for(REJECTED, "Bad audio") == "Bad audio"

    def test_empty_reason_becomes_none(self):
        assert reason_for(REJECTED, "") is None

    @pytest.mark.parametrize("status", [DRAFT, PROCESSING, PENDING_REVIEW, PUBLISHED])
    def test_other_statuses_clear_reason(self, status):
        assert reason_for(status, "stale reason") is None
