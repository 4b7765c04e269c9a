"""Tests for stage scoring, ranking and advancement."""

import pytest

from olympiad.core.editions import create_edition, update_stage_rules
from olympiad.core.enrollment import list_participants
from olympiad.core.errors import NotFoundError, RuleViolationError
from olympiad.core.progression import (
    NO_EXAM_REASON,
    apply_progression_action,
    auto_progress,
    bulk_update,
    delete_progression,
    get_leaderboard,
    list_progressions,
    record_stage_score,
    recalculate_rankings,
    run_progression,
)


def _stage_of(participant):
    rows, _ = list_participants({"edition_id": participant["edition_id"]}, None, page=1, limit=50)
    return next(r["current_stage"] for r in rows if r["id"] == participant["id"])


def _beginner_rows(edition):
    rows, _ = list_progressions(
        {"edition_id": edition["id"], "current_stage": "Beginner"}, page=1, limit=50
    )
    return {r["participant_id"]: r for r in rows}


def _record(participant, score, max_score=40, **extra):
    values = {
        "participant_id": participant["id"],
        "edition_id": participant["edition_id"],
        "current_stage": "Beginner",
        "stage_score": score,
        "stage_max_score": max_score,
    }
    values.update(extra)
    return record_stage_score(values)


class TestRecordStageScore:
    def test_scores_and_ranks(self, edition, make_participant):
        first = make_participant()
        second = make_participant()

        _record(first, 20)
        row = _record(second, 30)
        assert row["stage_percentage"] == 75.0
        assert row["stage_completed"] is True
        assert row["stage_rank"] == 1
        assert row["total_participants"] == 2
        assert _beginner_rows(edition)[first["id"]]["stage_rank"] == 2

    def test_can_progress_advances(self, make_participant):
        participant = make_participant()
        _record(participant, 30, can_progress=True, progression_reason="Manual")
        assert _stage_of(participant) == "Theory"

    def test_rescore_keeps_completion_date(self, make_participant):
        participant = make_participant()
        first = _record(participant, 10)
        again = _record(participant, 35)
        assert again["id"] == first["id"]
        assert again["completion_date"] == first["completion_date"]
        assert again["stage_score"] == 35.0

    def test_score_above_max(self, make_participant):
        with pytest.raises(RuleViolationError, match="between 0"):
            _record(make_participant(), 50)

    def test_unknown_stage(self, make_participant):
        with pytest.raises(RuleViolationError, match="Invalid stage"):
            _record(make_participant(), 10, current_stage="Semifinal")

    def test_participant_of_other_edition(self, admin, make_participant):
        other = create_edition(
            {
                "name": "STEM Olympiad 2027",
                "year": 2027,
                "enrollment_start": "2027-01-01T00:00:00Z",
                "enrollment_end": "2027-03-01T00:00:00Z",
            },
            admin_id=admin.id,
        )
        participant = make_participant()
        with pytest.raises(NotFoundError):
            record_stage_score(
                {
                    "participant_id": participant["id"],
                    "edition_id": other["id"],
                    "current_stage": "Beginner",
                    "stage_score": 1,
                    "stage_max_score": 2,
                }
            )

    def test_levels_ranked_separately(self, make_participant):
        o_level = make_participant()
        a_level = make_participant(education_level="A-Level", date_of_birth="2008-01-01")
        _record(o_level, 30)
        row = _record(a_level, 10)
        assert row["stage_rank"] == 1
        assert row["total_participants"] == 1


class TestRunProgression:
    def test_pass_mark_applied(self, edition, make_participant, sit_exam):
        strong = make_participant()
        borderline = make_participant()
        weak = make_participant()
        absent = make_participant()
        sit_exam(strong, correct=4)
        sit_exam(borderline, correct=3)
        sit_exam(weak, correct=2)

        summary = run_progression(edition["id"], "Beginner")
        assert summary["evaluated"] == 3
        assert summary["advanced"] == 2
        assert summary["by_level"] == {"O-Level": {"evaluated": 3, "advanced": 2}}

        rows = _beginner_rows(edition)
        assert rows[strong["id"]]["stage_rank"] == 1
        assert rows[strong["id"]]["stage_percentage"] == 66.67
        assert rows[borderline["id"]]["can_progress"] is True
        assert rows[weak["id"]]["can_progress"] is False
        assert "below pass mark" in rows[weak["id"]]["progression_reason"]
        assert rows[absent["id"]]["stage_rank"] is None
        assert rows[absent["id"]]["progression_reason"] == NO_EXAM_REASON

        assert _stage_of(strong) == "Theory"
        assert _stage_of(borderline) == "Theory"
        assert _stage_of(weak) == "Beginner"
        _, total = list_progressions(
            {"edition_id": edition["id"], "current_stage": "Theory"}, page=1, limit=50
        )
        assert total == 2

    def test_running_twice_moves_nobody_further(self, edition, make_participant, sit_exam):
        participant = make_participant()
        sit_exam(participant)
        first = run_progression(edition["id"], "Beginner")
        second = run_progression(edition["id"], "Beginner")
        assert first["advanced"] == 1
        assert second["advanced"] == 0
        assert second["by_level"]["O-Level"]["advanced"] == 0
        assert _stage_of(participant) == "Theory"

    def test_ties_share_rank(self, edition, make_participant, sit_exam):
        first = make_participant()
        second = make_participant()
        third = make_participant()
        sit_exam(first, correct=4)
        sit_exam(second, correct=4)
        sit_exam(third, correct=3)

        run_progression(edition["id"], "Beginner")
        rows = _beginner_rows(edition)
        assert rows[first["id"]]["stage_rank"] == 1
        assert rows[second["id"]]["stage_rank"] == 1
        assert rows[third["id"]]["stage_rank"] == 3

    def test_stage_without_rules_advances_nobody(self, edition, make_participant, sit_exam):
        update_stage_rules(
            edition["id"],
            "Beginner",
            {"pass_percentage": None, "top_percent": None, "pass_count": None},
        )
        participant = make_participant()
        sit_exam(participant)

        summary = run_progression(edition["id"], "Beginner")
        assert summary["advanced"] == 0
        assert _stage_of(participant) == "Beginner"

    def test_pass_count_rule(self, edition, make_participant, sit_exam):
        update_stage_rules(
            edition["id"], "Beginner", {"pass_percentage": None, "pass_count": 1}
        )
        best = make_participant()
        runner_up = make_participant()
        sit_exam(best, correct=4)
        sit_exam(runner_up, correct=3)

        summary = run_progression(edition["id"], "Beginner")
        assert summary["advanced"] == 1
        assert _stage_of(runner_up) == "Beginner"

    def test_unknown_edition(self, db):
        with pytest.raises(NotFoundError):
            run_progression("missing", "Beginner")


class TestAdminActions:
    def test_recalculate(self, edition, make_participant):
        _record(make_participant(), 10)
        _record(make_participant(), 20)
        assert recalculate_rankings(edition["id"], "Beginner") == {"updated_count": 2}

    def test_auto_progress_threshold(self, edition, make_participant):
        high = make_participant()
        low = make_participant()
        _record(high, 30)
        _record(low, 20)

        result = auto_progress(edition["id"], "Beginner", 60)
        assert result == {"progressed_count": 1}
        rows = _beginner_rows(edition)
        assert rows[high["id"]]["progression_reason"] == "Auto-progressed: score 75.0% >= 60%"
        assert _stage_of(high) == "Theory"
        assert _stage_of(low) == "Beginner"

    def test_auto_progress_threshold_range(self, edition):
        with pytest.raises(RuleViolationError, match="threshold"):
            auto_progress(edition["id"], "Beginner", 150)

    def test_auto_progress_threshold_not_a_number(self, edition):
        with pytest.raises(RuleViolationError, match="number"):
            auto_progress(edition["id"], "Beginner", "sixty")
        with pytest.raises(RuleViolationError, match="number"):
            apply_progression_action(
                "auto_progress", {"edition_id": edition["id"], "stage": "Beginner"}
            )

    def test_bulk_update_skips_unknown_ids(self, edition, make_participant):
        participant = make_participant()
        row = _beginner_rows(edition)[participant["id"]]
        result = bulk_update(
            [
                {"id": row["id"], "can_progress": True, "progression_reason": "Appeal upheld"},
                {"id": "missing", "can_progress": True},
            ]
        )
        assert result["updated_count"] == 1
        assert result["records"][0]["can_progress"] is True
        assert result["records"][0]["progression_reason"] == "Appeal upheld"

    def test_bulk_update_needs_list(self, db):
        with pytest.raises(RuleViolationError, match="Updates array"):
            bulk_update(None)

    def test_dispatch(self, edition, make_participant, sit_exam):
        sit_exam(make_participant())
        result = apply_progression_action(
            "run_progression", {"edition_id": edition["id"], "stage": "Beginner"}
        )
        assert result["advanced"] == 1

        with pytest.raises(RuleViolationError, match="required"):
            apply_progression_action("recalculate_rankings", {"edition_id": edition["id"]})
        with pytest.raises(RuleViolationError, match="Invalid action"):
            apply_progression_action("promote_all", {})

    def test_leaderboard(self, edition, make_participant):
        first = make_participant()
        second = make_participant()
        unranked = make_participant()
        _record(first, 35)
        _record(second, 25)

        board = get_leaderboard(edition["id"], "Beginner")
        assert [e["participant_id"] for e in board] == [first["id"], second["id"]]
        assert unranked["id"] not in {e["participant_id"] for e in board}
        assert get_leaderboard(edition["id"], "Beginner", education_level="A-Level") == []
        assert len(get_leaderboard(edition["id"], "Beginner", limit=1)) == 1

    def test_list_filter_can_progress(self, edition, make_participant):
        _record(make_participant(), 30, can_progress=True)
        _record(make_participant(), 10)
        rows, total = list_progressions(
            {"edition_id": edition["id"], "can_progress": True}, page=1, limit=50
        )
        assert total == 1
        assert rows[0]["edition_name"] == "STEM Olympiad 2026"

    def test_delete(self, edition, make_participant):
        participant = make_participant()
        row = _beginner_rows(edition)[participant["id"]]
        delete_progression(row["id"])
        assert participant["id"] not in _beginner_rows(edition)
        with pytest.raises(NotFoundError):
            delete_progression(row["id"])
