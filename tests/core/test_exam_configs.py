"""Tests for exam configurations."""

import pytest

from olympiad.core.errors import NotFoundError, RuleViolationError
from olympiad.core.exam_configs import (
    create_config,
    delete_config,
    list_configs,
    update_config,
)
from olympiad.core.exam_sessions import create_session
from olympiad.core.questions import update_question


def _config_values(edition, **overrides):
    values = {
        "edition_id": edition["id"],
        "name": "Beginner Math",
        "education_level": "O-Level",
        "subject": "Math",
        "stage": "Beginner",
        "total_questions": 2,
        "duration_minutes": 20,
    }
    values.update(overrides)
    return values


class TestCreateConfig:
    def test_defaults(self, admin, edition, make_question):
        make_question()
        make_question()
        config = create_config(_config_values(edition), admin_id=admin.id)

        assert config["status"] == "draft"
        assert config["max_attempts"] == 1
        assert config["randomize_questions"] is True
        assert config["requires_supervision"] is False
        assert config["questions_per_difficulty"] == {"easy": 0, "medium": 1, "hard": 0}

    def test_explicit_distribution_kept(self, admin, edition, make_question):
        make_question()
        make_question()
        config = create_config(
            _config_values(edition, questions_per_difficulty={"easy": 2}),
            admin_id=admin.id,
        )
        assert config["questions_per_difficulty"] == {"easy": 2, "medium": 0, "hard": 0}

    def test_not_enough_questions(self, admin, edition, make_question):
        make_question()
        with pytest.raises(RuleViolationError, match="Found 1, need 2"):
            create_config(_config_values(edition), admin_id=admin.id)

    def test_inactive_questions_not_counted(self, admin, edition, make_question):
        make_question()
        retired = make_question()
        update_question(retired["id"], {"is_active": False})
        with pytest.raises(RuleViolationError, match="Found 1"):
            create_config(_config_values(edition), admin_id=admin.id)

    def test_unknown_edition(self, admin, edition):
        values = _config_values(edition, edition_id="missing")
        with pytest.raises(NotFoundError):
            create_config(values, admin_id=admin.id)

    def test_inactive_level(self, admin, edition):
        with pytest.raises(RuleViolationError, match="not active"):
            create_config(_config_values(edition, education_level="University"), admin_id=admin.id)

    @pytest.mark.parametrize(
        "field,value,message",
        [
            ("total_questions", 0, "total_questions"),
            ("duration_minutes", 0, "duration_minutes"),
            ("status", "live", "Invalid status"),
            ("name", "", "name"),
        ],
    )
    def test_invalid_settings(self, admin, edition, field, value, message):
        with pytest.raises(RuleViolationError, match=message):
            create_config(_config_values(edition, **{field: value}), admin_id=admin.id)

    def test_window_must_be_ordered(self, admin, edition, make_question):
        make_question()
        make_question()
        values = _config_values(
            edition,
            start_time="2026-06-01T10:00:00Z",
            end_time="2026-06-01T09:00:00Z",
        )
        with pytest.raises(RuleViolationError, match="End time"):
            create_config(values, admin_id=admin.id)


class TestUpdateAndDelete:
    def test_list_with_session_count(self, exam_config, make_participant):
        participant = make_participant()
        create_session(exam_config["id"], participant["id"])

        rows = list_configs({"subject": "Math"})
        assert len(rows) == 1
        assert rows[0]["session_count"] == 1
        assert rows[0]["created_by_name"] == "Ada Admin"
        assert list_configs({"stage": "Final"}) == []

    def test_update_status_and_window(self, exam_config):
        updated = update_config(
            exam_config["id"],
            {"status": "active", "start_time": "2026-06-01T09:00:00+03:00"},
        )
        assert updated["status"] == "active"
        assert updated["start_time"] == "2026-06-01T06:00:00+00:00"

    def test_update_ignores_other_fields(self, exam_config):
        with pytest.raises(RuleViolationError, match="No fields"):
            update_config(exam_config["id"], {"name": "Renamed"})

    def test_update_rejects_reversed_window(self, exam_config):
        update_config(exam_config["id"], {"end_time": "2026-06-01T12:00:00Z"})
        with pytest.raises(RuleViolationError, match="End time"):
            update_config(exam_config["id"], {"start_time": "2026-06-01T13:00:00Z"})

    def test_update_missing(self, db):
        with pytest.raises(NotFoundError):
            update_config("missing", {"status": "active"})

    def test_delete_unused(self, exam_config):
        delete_config(exam_config["id"])
        assert list_configs({}) == []

    def test_delete_with_sessions_refused(self, exam_config, make_participant):
        participant = make_participant()
        create_session(exam_config["id"], participant["id"])
        with pytest.raises(RuleViolationError, match="existing sessions"):
            delete_config(exam_config["id"])
