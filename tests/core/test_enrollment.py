"""Tests for participant enrollment and administration."""

from datetime import datetime, timedelta, timezone

import pytest

from olympiad.core.editions import create_edition, update_edition
from olympiad.core.enrollment import (
    ALREADY_ENROLLED,
    EDITION_NOT_OPEN,
    delete_participant,
    enroll_participant,
    list_participants,
    list_user_enrollments,
    update_participant_action,
)
from olympiad.core.errors import NotFoundError, RuleViolationError
from olympiad.core.progression import list_progressions


def _iso(days: int) -> str:
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


class TestEnrollmentWindow:
    def test_enrollment_outside_window_rejected(self, admin, make_participant):
        closed = create_edition(
            {
                "name": "Last year",
                "year": 2025,
                "status": "OPEN",
                "enrollment_start": _iso(-60),
                "enrollment_end": _iso(-30),
            },
            admin_id=admin.id,
        )
        with pytest.raises(NotFoundError, match=EDITION_NOT_OPEN):
            make_participant(edition_id=closed["id"])

    def test_draft_edition_rejected(self, edition, make_participant):
        update_edition(edition["id"], {"status": "DRAFT"})
        with pytest.raises(NotFoundError, match=EDITION_NOT_OPEN):
            make_participant()

    def test_unknown_edition(self, make_participant):
        with pytest.raises(NotFoundError):
            make_participant(edition_id="missing")


class TestEnrollParticipant:
    def test_creates_participant_at_beginner(self, make_participant):
        participant = make_participant()
        assert participant["current_stage"] == "Beginner"
        assert participant["is_active"] is True
        assert participant["subjects"] == ["Math"]
        assert participant["user_id"] == participant["email"]

    def test_creates_initial_progression_row(self, edition, make_participant):
        participant = make_participant()
        rows, total = list_progressions({"edition_id": edition["id"]}, page=1, limit=10)
        assert total == 1
        assert rows[0]["participant_id"] == participant["id"]
        assert rows[0]["current_stage"] == "Beginner"
        assert rows[0]["stage_completed"] is False

    def test_duplicate_enrollment(self, make_participant):
        make_participant(email="same@example.org")
        with pytest.raises(RuleViolationError, match=ALREADY_ENROLLED):
            make_participant(email="same@example.org")

    def test_user_id_is_case_insensitive_email(self, make_participant):
        make_participant(email="Same@Example.org")
        with pytest.raises(RuleViolationError, match=ALREADY_ENROLLED):
            make_participant(email="same@example.org")

    def test_inactive_level(self, edition, make_participant):
        update_edition(edition["id"], {"active_levels": ["Primary"]})
        with pytest.raises(RuleViolationError, match="not active"):
            make_participant()

    def test_age_outside_range(self, make_participant):
        with pytest.raises(RuleViolationError, match="Age"):
            make_participant(date_of_birth="1990-01-01")

    def test_subject_not_offered(self, make_participant):
        with pytest.raises(RuleViolationError, match="Subjects not available"):
            make_participant(subjects=["Astrology"])

    def test_minor_needs_consent(self, make_participant):
        with pytest.raises(RuleViolationError, match="consent"):
            make_participant(parent_consent=False)

    def test_missing_required_field(self, edition):
        with pytest.raises(RuleViolationError, match="first_name"):
            enroll_participant({"edition_id": edition["id"], "email": "x@example.org"})

    def test_failed_rule_leaves_nothing_behind(self, edition, make_participant):
        with pytest.raises(RuleViolationError):
            make_participant(subjects=["Astrology"])
        rows, total = list_participants({"edition_id": edition["id"]}, None, page=1, limit=10)
        assert total == 0


class TestListParticipants:
    def test_filters_and_pagination(self, edition, make_participant):
        for _ in range(3):
            make_participant()
        make_participant(subjects=["Physics"])

        rows, total = list_participants({"edition_id": edition["id"]}, None, page=1, limit=2)
        assert total == 4
        assert len(rows) == 2

        rows, total = list_participants({"edition_id": edition["id"]}, "Physics", page=1, limit=10)
        assert total == 1
        assert rows[0]["subjects"] == ["Physics"]
        assert rows[0]["edition_name"] == edition["name"]

    def test_user_enrollments(self, make_participant):
        participant = make_participant(user_id="guardian-1")
        enrollments = list_user_enrollments("guardian-1")
        assert [e["id"] for e in enrollments] == [participant["id"]]


class TestParticipantActions:
    def test_update_status(self, make_participant):
        participant = make_participant()
        updated = update_participant_action(participant["id"], "update_status", {"is_active": False})
        assert updated["is_active"] is False

    def test_update_stage_opens_progression_row(self, edition, make_participant):
        participant = make_participant()
        updated = update_participant_action(
            participant["id"], "update_stage", {"current_stage": "Theory"}
        )
        assert updated["current_stage"] == "Theory"
        rows, _ = list_progressions(
            {"edition_id": edition["id"], "current_stage": "Theory"}, page=1, limit=10
        )
        assert [r["participant_id"] for r in rows] == [participant["id"]]

    def test_update_info_requires_fields(self, make_participant):
        participant = make_participant()
        with pytest.raises(RuleViolationError, match="No fields"):
            update_participant_action(participant["id"], "update_info", {})
        updated = update_participant_action(
            participant["id"], "update_info", {"school_name": "Hill School"}
        )
        assert updated["school_name"] == "Hill School"

    def test_unknown_action(self, make_participant):
        participant = make_participant()
        with pytest.raises(RuleViolationError, match="Invalid action"):
            update_participant_action(participant["id"], "promote", {})

    def test_delete(self, edition, make_participant):
        participant = make_participant()
        delete_participant(participant["id"])
        _, total = list_participants({"edition_id": edition["id"]}, None, page=1, limit=10)
        assert total == 0

    def test_delete_missing(self, db):
        with pytest.raises(NotFoundError):
            delete_participant("missing")
