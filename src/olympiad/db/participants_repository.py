"""Repository functions for olympiad_participants table."""

from __future__ import annotations

import sqlite3
from typing import Any

import structlog

from olympiad.db.database import (
    build_set_clause,
    build_where,
    insert_row,
    new_id,
    now_iso,
    row_to_dict,
    rows_to_dicts,
)

logger = structlog.get_logger(__name__)

PARTICIPANT_JSON_FIELDS = ("subjects",)

PARTICIPANT_COLUMNS = (
    "user_id",
    "minor_profile_id",
    "edition_id",
    "first_name",
    "last_name",
    "email",
    "phone",
    "date_of_birth",
    "education_level",
    "school_name",
    "district",
    "subjects",
    "parent_consent",
    "consent_given_by",
    "consent_contact",
)

UPDATABLE_COLUMNS = ("phone", "school_name", "district", "is_active", "current_stage")

_LIST_FILTERS = {
    "edition_id": "p.edition_id",
    "education_level": "p.education_level",
    "current_stage": "p.current_stage",
    "is_active": "p.is_active",
}


def insert_participant(conn: sqlite3.Connection, values: dict[str, Any]) -> str:
    """Insert a participant at the Beginner stage and return its id.

    Raises:
        sqlite3.IntegrityError: If the (edition, user, minor) enrollment exists
    """
    participant_id = new_id()
    now = now_iso()
    row = {"id": participant_id}
    row.update({name: values.get(name) for name in PARTICIPANT_COLUMNS})
    row["subjects"] = values.get("subjects") or []
    row["parent_consent"] = bool(values.get("parent_consent"))
    row.update(
        {
            "enrollment_date": now,
            "is_active": True,
            "current_stage": "Beginner",
            "created_at": now,
            "updated_at": now,
        }
    )
    insert_row(conn, "olympiad_participants", row)
    logger.debug("participants.inserted", participant_id=participant_id)
    return participant_id


def get_participant(
    conn: sqlite3.Connection, participant_id: str
) -> dict[str, Any] | None:
    row = conn.execute(
        "SELECT * FROM olympiad_participants WHERE id = ?", (participant_id,)
    ).fetchone()
    return _decode(row_to_dict(row, PARTICIPANT_JSON_FIELDS))


def find_enrollment(
    conn: sqlite3.Connection,
    edition_id: str,
    user_id: str,
    minor_profile_id: str | None,
) -> dict[str, Any] | None:
    """Find an existing enrollment of the same person in an edition."""
    row = conn.execute(
        """
        SELECT * FROM olympiad_participants
        WHERE edition_id = ? AND user_id = ?
          AND COALESCE(minor_profile_id, '') = COALESCE(?, '')
        """,
        (edition_id, user_id, minor_profile_id),
    ).fetchone()
    return _decode(row_to_dict(row, PARTICIPANT_JSON_FIELDS))


def list_participants(
    conn: sqlite3.Connection,
    filters: dict[str, Any],
    subject: str | None = None,
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[dict[str, Any]], int]:
    """List participants with edition name and current-stage progress.

    Args:
        conn: Open connection
        filters: Equality filters (edition_id, education_level,
            current_stage, is_active)
        subject: Only participants who chose this subject
        limit: Page size
        offset: Rows to skip

    Returns:
        (rows, total) where total ignores pagination
    """
    where, params = build_where(filters, _LIST_FILTERS)
    if subject:
        where += " AND " if where else " WHERE "
        where += "p.subjects LIKE ?"
        params.append(f'%"{subject}"%')

    rows = conn.execute(
        f"""
        SELECT p.*,
               e.name AS edition_name,
               e.year AS edition_year,
               sp.stage_score, sp.stage_percentage, sp.stage_rank, sp.can_progress,
               (SELECT COUNT(*) FROM exam_sessions s
                WHERE s.participant_id = p.id) AS exam_sessions_count,
               (SELECT COUNT(*) FROM exam_answers a
                JOIN exam_sessions s ON s.id = a.session_id
                WHERE s.participant_id = p.id
                  AND a.answered_at IS NOT NULL) AS answered_questions_count
        FROM olympiad_participants p
        LEFT JOIN olympiad_editions e ON e.id = p.edition_id
        LEFT JOIN stage_progression sp
               ON sp.participant_id = p.id
              AND sp.edition_id = p.edition_id
              AND sp.current_stage = p.current_stage
        {where}
        ORDER BY p.created_at DESC
        LIMIT ? OFFSET ?
        """,
        [*params, limit, offset],
    ).fetchall()

    total = conn.execute(
        f"SELECT COUNT(*) FROM olympiad_participants p {where}", params
    ).fetchone()[0]

    return [_decode(r) for r in rows_to_dicts(rows, PARTICIPANT_JSON_FIELDS)], total


def list_enrollments_for_user(
    conn: sqlite3.Connection, user_id: str
) -> list[dict[str, Any]]:
    """List every enrollment made by an account, with edition name."""
    rows = conn.execute(
        """
        SELECT p.*, e.name AS edition_name, e.year AS edition_year,
               e.status AS edition_status
        FROM olympiad_participants p
        JOIN olympiad_editions e ON e.id = p.edition_id
        WHERE p.user_id = ?
        ORDER BY p.created_at DESC
        """,
        (user_id,),
    ).fetchall()
    return [_decode(r) for r in rows_to_dicts(rows, PARTICIPANT_JSON_FIELDS)]


def update_participant(
    conn: sqlite3.Connection, participant_id: str, fields: dict[str, Any]
) -> None:
    """Update the given mutable columns of a participant."""
    fields = {k: v for k, v in fields.items() if k in UPDATABLE_COLUMNS}
    fields["updated_at"] = now_iso()
    clause, params = build_set_clause(fields)
    conn.execute(
        f"UPDATE olympiad_participants SET {clause} WHERE id = ?",
        [*params, participant_id],
    )


def delete_participant(conn: sqlite3.Connection, participant_id: str) -> None:
    conn.execute("DELETE FROM olympiad_participants WHERE id = ?", (participant_id,))


def count_sessions(conn: sqlite3.Connection, participant_id: str) -> int:
    return conn.execute(
        "SELECT COUNT(*) FROM exam_sessions WHERE participant_id = ?",
        (participant_id,),
    ).fetchone()[0]


def _decode(data: dict[str, Any] | None) -> dict[str, Any] | None:
    """Turn 0/1 flag columns back into booleans."""
    if data is None:
        return None
    for name in ("parent_consent", "is_active", "can_progress"):
        if data.get(name) is not None:
            data[name] = bool(data[name])
    return data
