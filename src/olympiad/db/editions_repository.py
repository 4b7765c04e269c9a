"""Repository functions for olympiad_editions and edition_stages tables."""

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

EDITION_JSON_FIELDS = ("active_levels", "active_subjects", "age_rules")

EDITION_COLUMNS = (
    "name",
    "year",
    "theme",
    "description",
    "enrollment_start",
    "enrollment_end",
    "status",
    "active_levels",
    "active_subjects",
    "age_rules",
    "max_subjects_per_participant",
    "reference_date",
)

STAGE_RULE_COLUMNS = (
    "start_date",
    "end_date",
    "pass_percentage",
    "top_percent",
    "pass_count",
)

_LIST_FILTERS = {"status": "e.status", "year": "e.year"}


def insert_edition(
    conn: sqlite3.Connection, values: dict[str, Any], admin_id: str
) -> str:
    """Insert an edition and return its id."""
    edition_id = new_id()
    now = now_iso()
    row = {"id": edition_id}
    row.update({name: values.get(name) for name in EDITION_COLUMNS})
    row.update({"created_by_admin_id": admin_id, "created_at": now, "updated_at": now})
    insert_row(conn, "olympiad_editions", row)
    logger.debug("editions.inserted", edition_id=edition_id)
    return edition_id


def get_edition(conn: sqlite3.Connection, edition_id: str) -> dict[str, Any] | None:
    """Get an edition with creator name and participant count."""
    row = conn.execute(
        """
        SELECT e.*, a.full_name AS created_by_name,
               (SELECT COUNT(*) FROM olympiad_participants p
                WHERE p.edition_id = e.id) AS participant_count
        FROM olympiad_editions e
        LEFT JOIN admins a ON a.id = e.created_by_admin_id
        WHERE e.id = ?
        """,
        (edition_id,),
    ).fetchone()
    return row_to_dict(row, EDITION_JSON_FIELDS)


def list_editions(
    conn: sqlite3.Connection, status: str | None = None, year: int | None = None
) -> list[dict[str, Any]]:
    """List editions, newest year first."""
    where, params = build_where({"status": status, "year": year}, _LIST_FILTERS)
    rows = conn.execute(
        f"""
        SELECT e.*, a.full_name AS created_by_name,
               (SELECT COUNT(*) FROM olympiad_participants p
                WHERE p.edition_id = e.id) AS participant_count
        FROM olympiad_editions e
        LEFT JOIN admins a ON a.id = e.created_by_admin_id
        {where}
        ORDER BY e.year DESC, e.created_at DESC
        """,
        params,
    ).fetchall()
    return rows_to_dicts(rows, EDITION_JSON_FIELDS)


def list_open_editions(conn: sqlite3.Connection, now: str) -> list[dict[str, Any]]:
    """List editions accepting enrollments at the given instant."""
    rows = conn.execute(
        """
        SELECT * FROM olympiad_editions
        WHERE status IN ('OPEN', 'ACTIVE')
          AND enrollment_start <= ? AND enrollment_end >= ?
        ORDER BY enrollment_end ASC
        """,
        (now, now),
    ).fetchall()
    return rows_to_dicts(rows, EDITION_JSON_FIELDS)


def update_edition(
    conn: sqlite3.Connection, edition_id: str, fields: dict[str, Any]
) -> None:
    """Update the given columns of an edition."""
    fields = {k: v for k, v in fields.items() if k in EDITION_COLUMNS}
    fields["updated_at"] = now_iso()
    clause, params = build_set_clause(fields)
    conn.execute(
        f"UPDATE olympiad_editions SET {clause} WHERE id = ?", [*params, edition_id]
    )


def delete_edition(conn: sqlite3.Connection, edition_id: str) -> None:
    conn.execute("DELETE FROM olympiad_editions WHERE id = ?", (edition_id,))


def count_participants(conn: sqlite3.Connection, edition_id: str) -> int:
    return conn.execute(
        "SELECT COUNT(*) FROM olympiad_participants WHERE edition_id = ?",
        (edition_id,),
    ).fetchone()[0]


def get_edition_statistics(conn: sqlite3.Connection, edition_id: str) -> dict[str, Any]:
    """Aggregate figures shown on the edition detail page."""
    by_level = conn.execute(
        """
        SELECT education_level, COUNT(*) AS n FROM olympiad_participants
        WHERE edition_id = ? GROUP BY education_level
        """,
        (edition_id,),
    ).fetchall()
    by_stage = conn.execute(
        """
        SELECT current_stage, COUNT(*) AS n FROM olympiad_participants
        WHERE edition_id = ? GROUP BY current_stage
        """,
        (edition_id,),
    ).fetchall()
    exam_configs = conn.execute(
        "SELECT COUNT(*) FROM exam_configurations WHERE edition_id = ?",
        (edition_id,),
    ).fetchone()[0]
    completed_sessions = conn.execute(
        """
        SELECT COUNT(*) FROM exam_sessions s
        JOIN exam_configurations c ON c.id = s.exam_config_id
        WHERE c.edition_id = ? AND s.status = 'completed'
        """,
        (edition_id,),
    ).fetchone()[0]
    pending_marking = conn.execute(
        """
        SELECT COUNT(*) FROM marking_queue m
        JOIN exam_sessions s ON s.id = m.session_id
        JOIN exam_configurations c ON c.id = s.exam_config_id
        WHERE c.edition_id = ? AND m.status IN ('pending', 'in_progress')
        """,
        (edition_id,),
    ).fetchone()[0]

    return {
        "participants_by_level": {r["education_level"]: r["n"] for r in by_level},
        "participants_by_stage": {r["current_stage"]: r["n"] for r in by_stage},
        "exam_configurations": exam_configs,
        "completed_sessions": completed_sessions,
        "pending_marking": pending_marking,
    }


# =============================================================================
# STAGES
# =============================================================================


def insert_stage(
    conn: sqlite3.Connection,
    edition_id: str,
    stage_number: int,
    stage_name: str,
    rules: dict[str, Any],
) -> None:
    """Insert one stage row for an edition."""
    row = {
        "id": new_id(),
        "edition_id": edition_id,
        "stage_number": stage_number,
        "stage_name": stage_name,
    }
    row.update({name: rules.get(name) for name in STAGE_RULE_COLUMNS})
    row["created_at"] = now_iso()
    insert_row(conn, "edition_stages", row)


def list_stages(conn: sqlite3.Connection, edition_id: str) -> list[dict[str, Any]]:
    rows = conn.execute(
        "SELECT * FROM edition_stages WHERE edition_id = ? ORDER BY stage_number",
        (edition_id,),
    ).fetchall()
    return rows_to_dicts(rows)


def get_stage(
    conn: sqlite3.Connection, edition_id: str, stage_name: str
) -> dict[str, Any] | None:
    row = conn.execute(
        "SELECT * FROM edition_stages WHERE edition_id = ? AND stage_name = ?",
        (edition_id, stage_name),
    ).fetchone()
    return row_to_dict(row)


def update_stage(
    conn: sqlite3.Connection, edition_id: str, stage_name: str, fields: dict[str, Any]
) -> None:
    """Update rule columns of one stage (None clears a rule)."""
    fields = {k: v for k, v in fields.items() if k in STAGE_RULE_COLUMNS}
    if not fields:
        return
    clause, params = build_set_clause(fields)
    conn.execute(
        f"UPDATE edition_stages SET {clause} WHERE edition_id = ? AND stage_name = ?",
        [*params, edition_id, stage_name],
    )
