"""Final stage: venues, results and awards."""

from __future__ import annotations

import sqlite3
from typing import Any

import structlog

from olympiad.config import load_app_config
from olympiad.core.errors import ConflictError, NotFoundError, RuleViolationError
from olympiad.core.ranking import award_for_rank, competition_rank
from olympiad.db.database import get_db, now_iso
from olympiad.db.editions_repository import get_edition
from olympiad.db.finals_repository import (
    count_venue_results,
    delete_result as delete_result_row,
    delete_venue as delete_venue_row,
    get_result,
    get_venue,
    insert_result,
    insert_venue,
    list_results,
    list_venue_results,
    list_venues,
    update_result as update_result_row,
    update_venue as update_venue_row,
)
from olympiad.db.participants_repository import get_participant

logger = structlog.get_logger(__name__)

ATTENDANCE_STATUSES = ("PRESENT", "ABSENT")
AWARD_CATEGORIES = ("GOLD", "SILVER", "BRONZE", "MERIT", "PARTICIPATION")


def _check_result_values(values: dict[str, Any]) -> None:
    attendance = values.get("attendance_status")
    if attendance is not None and attendance not in ATTENDANCE_STATUSES:
        raise RuleViolationError(f"Invalid attendance status: {attendance}")
    award = values.get("award_category")
    if award is not None and award not in AWARD_CATEGORIES:
        raise RuleViolationError(f"Invalid award category: {award}")
    score = values.get("final_score")
    if score is not None and score < 0:
        raise RuleViolationError("Final score cannot be negative")


# =============================================================================
# VENUES
# =============================================================================


def create_venue(values: dict[str, Any]) -> dict[str, Any]:
    """Create the venue of one (edition, level, subject) final.

    Raises:
        NotFoundError: If the edition does not exist
        ConflictError: If the final already has a venue
    """
    for name in ("edition_id", "education_level", "subject", "venue_name", "event_date"):
        if not values.get(name):
            raise RuleViolationError(f"Missing required field: {name}")
    if values.get("capacity") is not None and values["capacity"] < 1:
        raise RuleViolationError("Capacity must be at least 1")

    with get_db() as conn:
        if get_edition(conn, values["edition_id"]) is None:
            raise NotFoundError("Edition not found")
        try:
            venue_id = insert_venue(conn, values)
        except sqlite3.IntegrityError:
            raise ConflictError(
                "A venue already exists for this edition, level and subject"
            ) from None
        venue = get_venue(conn, venue_id)

    logger.info("finals.venue_created", venue_id=venue_id)
    return venue


def update_venue(venue_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    if not fields:
        raise RuleViolationError("No fields to update")
    with get_db() as conn:
        venue = get_venue(conn, venue_id)
        if venue is None:
            raise NotFoundError("Venue not found")
        capacity = fields.get("capacity")
        if capacity is not None and capacity < venue["assigned_count"]:
            raise RuleViolationError(
                f"Capacity cannot be below the {venue['assigned_count']} assigned finalists"
            )
        try:
            update_venue_row(conn, venue_id, fields)
        except sqlite3.IntegrityError:
            raise ConflictError(
                "A venue already exists for this edition, level and subject"
            ) from None
        updated = get_venue(conn, venue_id)
    logger.info("finals.venue_updated", venue_id=venue_id)
    return updated


def delete_venue(venue_id: str) -> None:
    with get_db() as conn:
        if get_venue(conn, venue_id) is None:
            raise NotFoundError("Venue not found")
        if count_venue_results(conn, venue_id):
            raise RuleViolationError("Cannot delete venue with existing results")
        delete_venue_row(conn, venue_id)
    logger.info("finals.venue_deleted", venue_id=venue_id)


# =============================================================================
# RESULTS
# =============================================================================


def create_result(values: dict[str, Any], admin_id: str) -> dict[str, Any]:
    """Register a finalist at a venue, optionally with their result.

    Raises:
        NotFoundError: If the venue or participant does not exist
        RuleViolationError: If the participant is from another edition,
            level or subject than the venue, or the venue is full
        ConflictError: If the participant already has this result
    """
    for name in ("participant_id", "final_venue_id"):
        if not values.get(name):
            raise RuleViolationError(f"Missing required field: {name}")
    _check_result_values(values)

    with get_db() as conn:
        venue = get_venue(conn, values["final_venue_id"])
        if venue is None:
            raise NotFoundError("Venue not found")
        participant = get_participant(conn, values["participant_id"])
        if participant is None:
            raise NotFoundError("Participant not found")
        if participant["edition_id"] != venue["edition_id"]:
            raise RuleViolationError("Participant does not belong to the venue's edition")
        if participant["education_level"] != venue["education_level"]:
            raise RuleViolationError("Participant's education level does not match the venue")
        if values.get("subject") and values["subject"] != venue["subject"]:
            raise RuleViolationError("Result subject must match the venue subject")
        if participant["subjects"] and venue["subject"] not in participant["subjects"]:
            raise RuleViolationError("Participant is not registered for the venue subject")
        if venue["capacity"] is not None and venue["assigned_count"] >= venue["capacity"]:
            raise RuleViolationError("Venue is at full capacity")

        record = dict(values)
        record["subject"] = values.get("subject") or venue["subject"]
        if record.get("final_score") is not None or record.get("attendance_status"):
            record["entered_by_admin_id"] = admin_id
            record["entered_at"] = now_iso()
        try:
            result_id = insert_result(conn, record)
        except sqlite3.IntegrityError:
            raise ConflictError(
                "Participant already has a result for this venue and subject"
            ) from None
        result = get_result(conn, result_id)

    logger.info("finals.result_created", result_id=result_id)
    return result


def update_result(result_id: str, fields: dict[str, Any], admin_id: str) -> dict[str, Any]:
    if not fields:
        raise RuleViolationError("No fields to update")
    _check_result_values(fields)
    fields = dict(fields)
    if {"final_score", "attendance_status", "final_rank", "award_category"} & fields.keys():
        fields["entered_by_admin_id"] = admin_id
        fields["entered_at"] = now_iso()

    with get_db() as conn:
        if get_result(conn, result_id) is None:
            raise NotFoundError("Result not found")
        update_result_row(conn, result_id, fields)
        result = get_result(conn, result_id)
    logger.info("finals.result_updated", result_id=result_id)
    return result


def delete_result(result_id: str) -> None:
    with get_db() as conn:
        if get_result(conn, result_id) is None:
            raise NotFoundError("Result not found")
        delete_result_row(conn, result_id)
    logger.info("finals.result_deleted", result_id=result_id)


def rank_venue(venue_id: str, admin_id: str) -> list[dict[str, Any]]:
    """Rank a venue's present finalists by score and assign awards.

    Absent finalists and those without a score get no rank and no award.

    Returns:
        The venue's results after ranking
    """
    finals_config = load_app_config().finals

    with get_db() as conn:
        if get_venue(conn, venue_id) is None:
            raise NotFoundError("Venue not found")
        results = list_venue_results(conn, venue_id)
        scored = [
            r for r in results
            if r["attendance_status"] == "PRESENT" and r["final_score"] is not None
        ]
        ranked = competition_rank(scored, key=lambda r: (r["final_score"],))
        stamp = now_iso()

        for rank, result in ranked:
            award = award_for_rank(
                rank, len(ranked), finals_config.award_bands, finals_config.default_award
            )
            update_result_row(
                conn,
                result["id"],
                {
                    "final_rank": rank,
                    "award_category": award,
                    "entered_by_admin_id": admin_id,
                    "entered_at": stamp,
                },
            )
        ranked_ids = {r["id"] for _, r in ranked}
        for result in results:
            if result["id"] not in ranked_ids:
                update_result_row(
                    conn, result["id"], {"final_rank": None, "award_category": None}
                )

        updated = list_venue_results(conn, venue_id)

    logger.info("finals.venue_ranked", venue_id=venue_id, ranked=len(ranked))
    return sorted(updated, key=lambda r: (r["final_rank"] is None, r["final_rank"] or 0))


def get_finals_overview(
    filters: dict[str, Any], page: int, limit: int
) -> dict[str, Any]:
    """Venues and a page of results for the given filters."""
    venue_filters = {k: filters.get(k) for k in ("edition_id", "education_level", "subject")}
    with get_db() as conn:
        venues = list_venues(conn, venue_filters)
        results, total = list_results(conn, filters, limit=limit, offset=(page - 1) * limit)
    return {"venues": venues, "results": results, "total": total}
