"""Stage progression: scoring, ranking and advancement.

Participants compete within a ranking group: the same edition, stage and
education level. Ranks are standard competition ranks by percentage, then
raw score. A participant advances when every rule of the stage is met;
advancing moves them to the next stage and opens their progression row
there. Only participants still at the evaluated stage are moved, so
running progression twice gives the same result.
"""

from __future__ import annotations

import sqlite3
from collections import defaultdict
from typing import Any

import structlog

from olympiad.core.errors import NotFoundError, RuleViolationError
from olympiad.core.grading import percentage
from olympiad.core.ranking import competition_rank, decide_advancement
from olympiad.core.stages import STAGES, is_known_stage, next_stage
from olympiad.db.database import get_db, now_iso
from olympiad.db.editions_repository import get_edition, get_stage
from olympiad.db.exams_repository import list_completed_stage_sessions
from olympiad.db.participants_repository import get_participant, update_participant
from olympiad.db.progression_repository import (
    delete_progression as delete_progression_row,
    get_progression,
    get_progression_for,
    leaderboard as leaderboard_rows,
    list_group_levels,
    list_progressions as list_progression_rows,
    list_ranking_group,
    update_progression,
    upsert_progression,
)

logger = structlog.get_logger(__name__)

PROGRESSION_ACTIONS = ("recalculate_rankings", "auto_progress", "run_progression", "bulk_update")
NO_EXAM_REASON = "No completed exam for this stage"


def _check_stage(stage: str | None) -> str:
    if not stage or not is_known_stage(stage):
        raise RuleViolationError(f"Invalid stage: {stage}")
    return stage


def _ranking_key(row: dict[str, Any]) -> tuple:
    return (row["stage_percentage"], row["stage_score"])


def rank_group(
    conn: sqlite3.Connection, edition_id: str, stage: str, education_level: str
) -> list[tuple[int, dict[str, Any]]]:
    """Re-rank one group; rows without a completed stage get no rank.

    Returns:
        (rank, row) pairs of the ranked rows, best first
    """
    rows = list_ranking_group(conn, edition_id, stage, education_level)
    scored = [r for r in rows if r["stage_completed"]]
    ranked = competition_rank(scored, key=_ranking_key)

    for rank, row in ranked:
        update_progression(
            conn, row["id"], {"stage_rank": rank, "total_participants": len(scored)}
        )
    for row in rows:
        if not row["stage_completed"]:
            update_progression(
                conn, row["id"], {"stage_rank": None, "total_participants": len(scored)}
            )
    return ranked


def _advance(conn: sqlite3.Connection, participant_id: str, edition_id: str, stage: str) -> bool:
    """Move a participant from ``stage`` to the next one.

    Returns:
        True if the participant moved
    """
    participant = get_participant(conn, participant_id)
    if participant is None or participant["current_stage"] != stage:
        return False
    following = next_stage(stage)
    update_participant(conn, participant_id, {"current_stage": following})
    if following in STAGES:
        upsert_progression(conn, participant_id, edition_id, following)
    logger.debug("progression.advanced", participant_id=participant_id, to_stage=following)
    return True


def record_stage_score(values: dict[str, Any]) -> dict[str, Any]:
    """Record a participant's score for a stage and re-rank the group.

    When ``can_progress`` is set the participant advances as well.

    Raises:
        RuleViolationError: On missing fields or unknown stage
        NotFoundError: If the participant is not in the edition
    """
    participant_id = values.get("participant_id")
    edition_id = values.get("edition_id")
    if not participant_id or not edition_id:
        raise RuleViolationError("Missing required fields")
    stage = _check_stage(values.get("current_stage"))

    score = float(values.get("stage_score") or 0)
    max_score = float(values.get("stage_max_score") or 0)
    if score < 0 or max_score < 0 or (max_score and score > max_score):
        raise RuleViolationError("Stage score must be between 0 and the max score")
    can_progress = bool(values.get("can_progress"))

    with get_db() as conn:
        participant = get_participant(conn, participant_id)
        if participant is None or participant["edition_id"] != edition_id:
            raise NotFoundError("Participant not found in this edition")

        existing = get_progression_for(conn, participant_id, edition_id, stage)
        completion_date = (existing or {}).get("completion_date") or now_iso()
        progression_id = upsert_progression(
            conn,
            participant_id,
            edition_id,
            stage,
            {
                "stage_score": score,
                "stage_max_score": max_score,
                "stage_percentage": percentage(score, max_score),
                "stage_completed": True,
                "completion_date": completion_date,
                "can_progress": can_progress,
                "progression_reason": values.get("progression_reason"),
            },
        )
        rank_group(conn, edition_id, stage, participant["education_level"])
        if can_progress:
            _advance(conn, participant_id, edition_id, stage)
        progression = get_progression(conn, progression_id)

    logger.info(
        "progression.score_recorded",
        participant_id=participant_id,
        stage=stage,
        percentage=progression["stage_percentage"],
    )
    return progression


def recalculate_rankings(edition_id: str, stage: str) -> dict[str, Any]:
    stage = _check_stage(stage)
    with get_db() as conn:
        updated = 0
        for level in list_group_levels(conn, edition_id, stage):
            updated += len(rank_group(conn, edition_id, stage, level))
    logger.info("progression.rankings_recalculated", edition_id=edition_id, stage=stage)
    return {"updated_count": updated}


def auto_progress(edition_id: str, stage: str, threshold_percentage: float) -> dict[str, Any]:
    """Advance everyone at or above a score threshold."""
    stage = _check_stage(stage)
    try:
        threshold_percentage = float(threshold_percentage)
    except (TypeError, ValueError):
        raise RuleViolationError("threshold_percentage must be a number") from None
    if not 0 <= threshold_percentage <= 100:
        raise RuleViolationError("threshold_percentage must be between 0 and 100")

    progressed = 0
    with get_db() as conn:
        for level in list_group_levels(conn, edition_id, stage):
            for row in list_ranking_group(conn, edition_id, stage, level):
                if not row["stage_completed"] or row["stage_percentage"] < threshold_percentage:
                    continue
                if not row["can_progress"]:
                    update_progression(
                        conn,
                        row["id"],
                        {
                            "can_progress": True,
                            "progression_reason": (
                                f"Auto-progressed: score {row['stage_percentage']}% "
                                f">= {threshold_percentage:g}%"
                            ),
                        },
                    )
                if _advance(conn, row["participant_id"], edition_id, stage):
                    progressed += 1

    logger.info("progression.auto_progress", edition_id=edition_id, stage=stage, progressed=progressed)
    return {"progressed_count": progressed}


def _best_attempt_totals(sessions: list[dict[str, Any]]) -> dict[str, dict[str, Any]]:
    """Sum each participant's best attempt per exam of the stage."""
    best: dict[tuple[str, str], dict[str, Any]] = {}
    for session in sessions:
        key = (session["participant_id"], session["exam_config_id"])
        current = best.get(key)
        if current is None or (session["percentage_score"], session["total_score"]) > (
            current["percentage_score"],
            current["total_score"],
        ):
            best[key] = session

    totals: dict[str, dict[str, Any]] = defaultdict(lambda: {"score": 0.0, "max_score": 0.0})
    for (participant_id, _), session in best.items():
        totals[participant_id]["score"] += session["total_score"]
        totals[participant_id]["max_score"] += session["max_score"]
    return totals


def run_progression(edition_id: str, stage: str) -> dict[str, Any]:
    """Score, rank and advance every participant of a stage.

    Steps, in one transaction:
      1. Sum each participant's best completed attempt per exam of the stage.
      2. Store the stage score on their progression row.
      3. Rank each education level group.
      4. Apply the stage's rules and record the reason for each decision.
      5. Advance the qualifiers and open their next-stage row.

    Returns:
        Summary with evaluated and advanced counts per education level
    """
    stage = _check_stage(stage)

    with get_db() as conn:
        if get_edition(conn, edition_id) is None:
            raise NotFoundError("Edition not found")
        rules = get_stage(conn, edition_id, stage) or {}

        totals = _best_attempt_totals(list_completed_stage_sessions(conn, edition_id, stage))
        for participant_id, total in totals.items():
            existing = get_progression_for(conn, participant_id, edition_id, stage)
            upsert_progression(
                conn,
                participant_id,
                edition_id,
                stage,
                {
                    "stage_score": total["score"],
                    "stage_max_score": total["max_score"],
                    "stage_percentage": percentage(total["score"], total["max_score"]),
                    "stage_completed": True,
                    "completion_date": (existing or {}).get("completion_date") or now_iso(),
                },
            )

        summary: dict[str, dict[str, int]] = {}
        for level in list_group_levels(conn, edition_id, stage):
            ranked = rank_group(conn, edition_id, stage, level)
            advanced = 0
            for rank, row in ranked:
                decision = decide_advancement(
                    rank,
                    len(ranked),
                    row["stage_percentage"],
                    pass_percentage=rules.get("pass_percentage"),
                    top_percent=rules.get("top_percent"),
                    pass_count=rules.get("pass_count"),
                )
                update_progression(
                    conn,
                    row["id"],
                    {"can_progress": decision.can_progress, "progression_reason": decision.reason},
                )
                if decision.can_progress and _advance(
                    conn, row["participant_id"], edition_id, stage
                ):
                    advanced += 1

            for row in list_ranking_group(conn, edition_id, stage, level):
                if not row["stage_completed"]:
                    update_progression(
                        conn,
                        row["id"],
                        {"can_progress": False, "progression_reason": NO_EXAM_REASON},
                    )
            summary[level] = {"evaluated": len(ranked), "advanced": advanced}

    logger.info("progression.run", edition_id=edition_id, stage=stage, summary=summary)
    return {
        "edition_id": edition_id,
        "stage": stage,
        "evaluated": sum(s["evaluated"] for s in summary.values()),
        "advanced": sum(s["advanced"] for s in summary.values()),
        "by_level": summary,
    }


def bulk_update(updates: list[dict[str, Any]]) -> dict[str, Any]:
    """Set can_progress and reason on several progression rows."""
    if not isinstance(updates, list):
        raise RuleViolationError("Updates array is required")

    updated = []
    with get_db() as conn:
        for update in updates:
            if not update.get("id") or get_progression(conn, update["id"]) is None:
                continue
            update_progression(
                conn,
                update["id"],
                {
                    "can_progress": bool(update.get("can_progress")),
                    "progression_reason": update.get("progression_reason"),
                },
            )
            updated.append(get_progression(conn, update["id"]))

    logger.info("progression.bulk_updated", count=len(updated))
    return {"updated_count": len(updated), "records": updated}


def apply_progression_action(action: str, data: dict[str, Any]) -> dict[str, Any]:
    """Dispatch a PUT action on the progression resource."""
    if action not in PROGRESSION_ACTIONS:
        raise RuleViolationError(f"Invalid action: {action}")

    if action == "recalculate_rankings":
        if not data.get("edition_id") or not data.get("current_stage"):
            raise RuleViolationError("Edition ID and current stage are required")
        return recalculate_rankings(data["edition_id"], data["current_stage"])
    if action == "auto_progress":
        if not data.get("edition_id") or not data.get("stage"):
            raise RuleViolationError("Edition ID, stage, and threshold percentage are required")
        return auto_progress(data["edition_id"], data["stage"], data.get("threshold_percentage"))
    if action == "run_progression":
        if not data.get("edition_id") or not data.get("stage"):
            raise RuleViolationError("Edition ID and stage are required")
        return run_progression(data["edition_id"], data["stage"])
    return bulk_update(data.get("updates"))


def list_progressions(
    filters: dict[str, Any], page: int, limit: int
) -> tuple[list[dict[str, Any]], int]:
    with get_db() as conn:
        return list_progression_rows(conn, filters, limit=limit, offset=(page - 1) * limit)


def get_leaderboard(
    edition_id: str, stage: str, education_level: str | None = None, limit: int = 10
) -> list[dict[str, Any]]:
    stage = _check_stage(stage)
    with get_db() as conn:
        return leaderboard_rows(conn, edition_id, stage, education_level, limit)


def delete_progression(progression_id: str) -> None:
    with get_db() as conn:
        if get_progression(conn, progression_id) is None:
            raise NotFoundError("Progression record not found")
        delete_progression_row(conn, progression_id)
    logger.info("progression.deleted", progression_id=progression_id)
