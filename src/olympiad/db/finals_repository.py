"""Repository functions for final_venues and final_results tables."""

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

VENUE_COLUMNS = (
    "edition_id",
    "education_level",
    "subject",
    "venue_name",
    "venue_address",
    "venue_map_link",
    "district",
    "event_date",
    "capacity",
)

RESULT_COLUMNS = (
    "participant_id",
    "final_venue_id",
    "subject",
    "attendance_status",
    "final_score",
    "final_rank",
    "award_category",
    "certificate_url",
    "entered_by_admin_id",
    "entered_at",
)

_VENUE_FILTERS = {
    "edition_id": "v.edition_id",
    "education_level": "v.education_level",
    "subject": "v.subject",
}

_RESULT_FILTERS = {
    "edition_id": "v.edition_id",
    "education_level": "v.education_level",
    "subject": "r.subject",
    "final_venue_id": "r.final_venue_id",
}


# =============================================================================
# VENUES
# =============================================================================


def insert_venue(conn: sqlite3.Connection, values: dict[str, Any]) -> str:
    """Insert a final venue and return its id.

    Raises:
        sqlite3.IntegrityError: If a venue exists for the edition, level and subject
    """
    venue_id = new_id()
    now = now_iso()
    row = {"id": venue_id}
    row.update({name: values.get(name) for name in VENUE_COLUMNS})
    row.update({"created_at": now, "updated_at": now})
    insert_row(conn, "final_venues", row)
    logger.debug("finals.venue_inserted", venue_id=venue_id)
    return venue_id


def get_venue(conn: sqlite3.Connection, venue_id: str) -> dict[str, Any] | None:
    row = conn.execute(
        """
        SELECT v.*,
               (SELECT COUNT(*) FROM final_results r
                WHERE r.final_venue_id = v.id) AS assigned_count
        FROM final_venues v WHERE v.id = ?
        """,
        (venue_id,),
    ).fetchone()
    return row_to_dict(row)


def list_venues(
    conn: sqlite3.Connection, filters: dict[str, Any]
) -> list[dict[str, Any]]:
    where, params = build_where(filters, _VENUE_FILTERS)
    rows = conn.execute(
        f"""
        SELECT v.*, e.name AS edition_name,
               (SELECT COUNT(*) FROM final_results r
                WHERE r.final_venue_id = v.id) AS assigned_count
        FROM final_venues v
        JOIN olympiad_editions e ON e.id = v.edition_id
        {where}
        ORDER BY v.event_date, v.education_level, v.subject
        """,
        params,
    ).fetchall()
    return rows_to_dicts(rows)


def update_venue(conn: sqlite3.Connection, venue_id: str, fields: dict[str, Any]) -> None:
    fields = {k: v for k, v in fields.items() if k in VENUE_COLUMNS}
    fields["updated_at"] = now_iso()
    clause, params = build_set_clause(fields)
    conn.execute(f"UPDATE final_venues SET {clause} WHERE id = ?", [*params, venue_id])


def delete_venue(conn: sqlite3.Connection, venue_id: str) -> None:
    conn.execute("DELETE FROM final_venues WHERE id = ?", (venue_id,))


# =============================================================================
# RESULTS
# =============================================================================


def insert_result(conn: sqlite3.Connection, values: dict[str, Any]) -> str:
    """Insert a final result and return its id.

    Raises:
        sqlite3.IntegrityError: If the participant already has a result for
            the venue and subject
    """
    result_id = new_id()
    now = now_iso()
    row = {"id": result_id}
    row.update({name: values.get(name) for name in RESULT_COLUMNS})
    row.update({"created_at": now, "updated_at": now})
    insert_row(conn, "final_results", row)
    logger.debug("finals.result_inserted", result_id=result_id)
    return result_id


def get_result(conn: sqlite3.Connection, result_id: str) -> dict[str, Any] | None:
    row = conn.execute(
        "SELECT * FROM final_results WHERE id = ?", (result_id,)
    ).fetchone()
    return row_to_dict(row)


def list_results(
    conn: sqlite3.Connection,
    filters: dict[str, Any],
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[dict[str, Any]], int]:
    """List results with participant and venue details.

    Returns:
        (rows, total) where total ignores pagination
    """
    where, params = build_where(filters, _RESULT_FILTERS)
    joins = """
        FROM final_results r
        JOIN final_venues v ON v.id = r.final_venue_id
        JOIN olympiad_participants p ON p.id = r.participant_id
    """
    rows = conn.execute(
        f"""
        SELECT r.*, p.first_name, p.last_name, p.school_name, p.district,
               v.venue_name, v.education_level, v.event_date
        {joins}
        {where}
        ORDER BY r.final_rank IS NULL, r.final_rank, r.created_at
        LIMIT ? OFFSET ?
        """,
        [*params, limit, offset],
    ).fetchall()
    total = conn.execute(f"SELECT COUNT(*) {joins} {where}", params).fetchone()[0]
    return rows_to_dicts(rows), total


def list_venue_results(
    conn: sqlite3.Connection, venue_id: str
) -> list[dict[str, Any]]:
    rows = conn.execute(
        "SELECT * FROM final_results WHERE final_venue_id = ? ORDER BY created_at",
        (venue_id,),
    ).fetchall()
    return rows_to_dicts(rows)


def count_venue_results(conn: sqlite3.Connection, venue_id: str) -> int:
    return conn.execute(
        "SELECT COUNT(*) FROM final_results WHERE final_venue_id = ?", (venue_id,)
    ).fetchone()[0]


def update_result(
    conn: sqlite3.Connection, result_id: str, fields: dict[str, Any]
) -> None:
    fields = {k: v for k, v in fields.items() if k in RESULT_COLUMNS}
    fields["updated_at"] = now_iso()
    clause, params = build_set_clause(fields)
    conn.execute(f"UPDATE final_results SET {clause} WHERE id = ?", [*params, result_id])


def delete_result(conn: sqlite3.Connection, result_id: str) -> None:
    conn.execute("DELETE FROM final_results WHERE id = ?", (result_id,))
