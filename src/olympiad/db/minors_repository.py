"""Repository functions for minor_profiles table."""

from __future__ import annotations

import sqlite3
from typing import Any

import structlog

from olympiad.db.database import (
    build_set_clause,
    insert_row,
    new_id,
    now_iso,
    row_to_dict,
    rows_to_dicts,
)

logger = structlog.get_logger(__name__)

MINOR_COLUMNS = (
    "full_name",
    "date_of_birth",
    "gender",
    "school_name",
    "class_grade",
    "district",
    "national_id",
    "student_number",
)


def insert_minor(
    conn: sqlite3.Connection, guardian_id: str, values: dict[str, Any]
) -> dict[str, Any]:
    """Insert a minor profile owned by a guardian."""
    minor_id = new_id()
    now = now_iso()
    row = {"id": minor_id, "guardian_id": guardian_id}
    row.update({name: values.get(name) for name in MINOR_COLUMNS})
    row.update({"created_at": now, "updated_at": now})
    insert_row(conn, "minor_profiles", row)
    logger.debug("minors.inserted", minor_id=minor_id, guardian_id=guardian_id)
    return get_minor(conn, minor_id, guardian_id)


def get_minor(
    conn: sqlite3.Connection, minor_id: str, guardian_id: str
) -> dict[str, Any] | None:
    """Get a minor profile, only if it belongs to the guardian."""
    row = conn.execute(
        "SELECT * FROM minor_profiles WHERE id = ? AND guardian_id = ?",
        (minor_id, guardian_id),
    ).fetchone()
    return row_to_dict(row)


def list_minors(conn: sqlite3.Connection, guardian_id: str) -> list[dict[str, Any]]:
    """List a guardian's minors, newest first, with enrollment counts."""
    rows = conn.execute(
        """
        SELECT m.*,
               (SELECT COUNT(*) FROM olympiad_participants p
                WHERE p.minor_profile_id = m.id) AS enrollment_count
        FROM minor_profiles m
        WHERE m.guardian_id = ?
        ORDER BY m.created_at DESC
        """,
        (guardian_id,),
    ).fetchall()
    return rows_to_dicts(rows)


def update_minor(
    conn: sqlite3.Connection, minor_id: str, fields: dict[str, Any]
) -> None:
    """Update the given columns of a minor profile."""
    fields = {k: v for k, v in fields.items() if k in MINOR_COLUMNS}
    fields["updated_at"] = now_iso()
    clause, params = build_set_clause(fields)
    conn.execute(f"UPDATE minor_profiles SET {clause} WHERE id = ?", [*params, minor_id])


def delete_minor(conn: sqlite3.Connection, minor_id: str) -> None:
    conn.execute("DELETE FROM minor_profiles WHERE id = ?", (minor_id,))


def count_minor_enrollments(conn: sqlite3.Connection, minor_id: str) -> int:
    """Count editions the minor is enrolled in."""
    return conn.execute(
        "SELECT COUNT(*) FROM olympiad_participants WHERE minor_profile_id = ?",
        (minor_id,),
    ).fetchone()[0]
