"""Participant enrollment and administration.

Both the admin back-office and guardians enroll participants through
enroll_participant(), so the same eligibility rules apply on either path.
"""

from __future__ import annotations

import sqlite3
from datetime import date, datetime, timezone
from typing import Any

import structlog

from olympiad.core.eligibility import check_eligibility, parse_date
from olympiad.core.errors import NotFoundError, RuleViolationError
from olympiad.core.stages import COMPLETED_STAGE, STAGES
from olympiad.db.database import get_db, now_iso
from olympiad.db.editions_repository import get_edition
from olympiad.db.minors_repository import get_minor
from olympiad.db.participants_repository import (
    count_sessions,
    delete_participant as delete_participant_row,
    find_enrollment,
    get_participant,
    insert_participant,
    list_enrollments_for_user,
    list_participants as list_participant_rows,
    update_participant,
)
from olympiad.db.progression_repository import upsert_progression

logger = structlog.get_logger(__name__)

OPEN_STATUSES = ("OPEN", "ACTIVE")
EDITION_NOT_OPEN = "Edition not found or not open for enrollment"
ALREADY_ENROLLED = "Participant is already enrolled in this edition"

PARTICIPANT_ACTIONS = ("update_status", "update_stage", "update_info")


def _load_open_edition(conn: sqlite3.Connection, edition_id: str, now: str) -> dict[str, Any]:
    edition = get_edition(conn, edition_id)
    if (
        edition is None
        or edition["status"] not in OPEN_STATUSES
        or not edition["enrollment_start"] <= now <= edition["enrollment_end"]
    ):
        raise NotFoundError(EDITION_NOT_OPEN)
    return edition


def enroll_participant(values: dict[str, Any], today: date | None = None) -> dict[str, Any]:
    """Enroll a participant in an open edition.

    Checks run in order: edition open, not already enrolled, level active,
    age within the level's rule, subjects valid, consent for minors. The
    participant and its Beginner progression row are created together.

    Args:
        values: Participant fields; user_id defaults to the email
        today: Current date (injectable for tests)

    Returns:
        The created participant

    Raises:
        NotFoundError: If the edition is missing or not open
        RuleViolationError: On a duplicate enrollment or failed rule
    """
    required = ["edition_id", "first_name", "email", "education_level"]
    # minors enroll under their profile's full name, which may be a single word
    if not values.get("minor_profile_id"):
        required.append("last_name")
    for name in required:
        if not values.get(name):
            raise RuleViolationError(f"Missing required field: {name}")

    today = today or datetime.now(timezone.utc).date()
    record = dict(values)
    record["user_id"] = values.get("user_id") or values["email"].strip().lower()
    record["subjects"] = list(values.get("subjects") or [])
    dob = parse_date(values.get("date_of_birth"))
    record["date_of_birth"] = dob.isoformat() if dob else None

    with get_db() as conn:
        edition = _load_open_edition(conn, record["edition_id"], now_iso())

        if find_enrollment(
            conn, edition["id"], record["user_id"], record.get("minor_profile_id")
        ):
            raise RuleViolationError(ALREADY_ENROLLED)

        check_eligibility(
            edition,
            record["education_level"],
            record["subjects"],
            dob,
            bool(record.get("parent_consent")),
            today,
        )

        try:
            participant_id = insert_participant(conn, record)
        except sqlite3.IntegrityError:
            raise RuleViolationError(ALREADY_ENROLLED) from None
        upsert_progression(conn, participant_id, edition["id"], STAGES[0])
        participant = get_participant(conn, participant_id)

    logger.info(
        "enrollment.created",
        participant_id=participant_id,
        edition_id=record["edition_id"],
        education_level=record["education_level"],
    )
    return participant


def enroll_minor(
    guardian: dict[str, Any],
    minor_profile_id: str,
    values: dict[str, Any],
    today: date | None = None,
) -> dict[str, Any]:
    """Enroll one of a guardian's minors.

    Name and date of birth come from the minor's profile; consent is
    recorded as given by the guardian.

    Args:
        guardian: Dict with id, email, full_name of the guardian session
        minor_profile_id: Minor to enroll
        values: edition_id, education_level, subjects and optional
            email, phone, school_name, district
        today: Current date (injectable for tests)
    """
    with get_db() as conn:
        minor = get_minor(conn, minor_profile_id, guardian["id"])
    if minor is None:
        raise NotFoundError("Minor profile not found")

    first_name, _, last_name = minor["full_name"].partition(" ")
    record = {
        "user_id": guardian["id"],
        "minor_profile_id": minor["id"],
        "edition_id": values.get("edition_id"),
        "first_name": first_name,
        "last_name": last_name.strip(),
        "email": values.get("email") or guardian["email"],
        "phone": values.get("phone"),
        "date_of_birth": minor["date_of_birth"],
        "education_level": values.get("education_level"),
        "school_name": values.get("school_name") or minor.get("school_name"),
        "district": values.get("district") or minor.get("district"),
        "subjects": values.get("subjects") or [],
        "parent_consent": True,
        "consent_given_by": guardian["full_name"],
        "consent_contact": values.get("phone") or guardian["email"],
    }
    return enroll_participant(record, today=today)


def list_participants(
    filters: dict[str, Any], subject: str | None, page: int, limit: int
) -> tuple[list[dict[str, Any]], int]:
    with get_db() as conn:
        return list_participant_rows(
            conn, filters, subject=subject, limit=limit, offset=(page - 1) * limit
        )


def list_user_enrollments(user_id: str) -> list[dict[str, Any]]:
    with get_db() as conn:
        return list_enrollments_for_user(conn, user_id)


def update_participant_action(
    participant_id: str, action: str, data: dict[str, Any]
) -> dict[str, Any]:
    """Apply an admin action to a participant.

    Actions:
        update_status: {is_active}
        update_stage: {current_stage}; also opens the stage's progression row
        update_info: any of {phone, school_name, district}

    Raises:
        NotFoundError: If the participant does not exist
        RuleViolationError: On an unknown action or invalid data
    """
    if action not in PARTICIPANT_ACTIONS:
        raise RuleViolationError(f"Invalid action: {action}")

    with get_db() as conn:
        participant = get_participant(conn, participant_id)
        if participant is None:
            raise NotFoundError("Participant not found")

        if action == "update_status":
            if data.get("is_active") is None:
                raise RuleViolationError("is_active is required")
            update_participant(conn, participant_id, {"is_active": bool(data["is_active"])})

        elif action == "update_stage":
            stage = data.get("current_stage")
            if stage not in (*STAGES, COMPLETED_STAGE):
                raise RuleViolationError(f"Invalid stage: {stage}")
            update_participant(conn, participant_id, {"current_stage": stage})
            if stage in STAGES:
                upsert_progression(conn, participant_id, participant["edition_id"], stage)

        else:
            fields = {
                k: data[k]
                for k in ("phone", "school_name", "district")
                if data.get(k) is not None
            }
            if not fields:
                raise RuleViolationError("No fields to update")
            update_participant(conn, participant_id, fields)

        updated = get_participant(conn, participant_id)

    logger.info("participants.updated", participant_id=participant_id, action=action)
    return updated


def delete_participant(participant_id: str) -> None:
    """Remove a participant who never started an exam.

    Raises:
        NotFoundError: If the participant does not exist
        RuleViolationError: If exam sessions exist
    """
    with get_db() as conn:
        if get_participant(conn, participant_id) is None:
            raise NotFoundError("Participant not found")
        if count_sessions(conn, participant_id):
            raise RuleViolationError("Cannot delete participant with exam sessions")
        delete_participant_row(conn, participant_id)

    logger.info("participants.deleted", participant_id=participant_id)
