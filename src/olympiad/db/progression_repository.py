"""Repository functions for stage_progression table."""

from __future__ import annotations

import sqlite3
from typing import Any

import structlog

from olympiad.db.database import (
    build_set_clause,
    build_where,
    new_id,
    now_iso,
    row_to_dict,
    rows_to_dicts,
)

logger = structlog.get_logger(__name__)

PROGRESSION_COLUMNS = (
    "stage_completed",
    "completion_date",
    "stage_score",
    "stage_max_score",
    "stage_percentage",
    "stage_rank",
    "total_participants",
    "can_progress",
    "progression_reason",
)

_LIST_FILTERS = {
    "edition_id": "sp.edition_id",
    "education_level": "p.education_level",
    "current_stage": "sp.current_stage",
    "can_progress": "sp.can_progress",
}


def upsert_progression(
    conn: sqlite3.Connection,
    participant_id: str,
    edition_id: str,
    stage: str,
    fields: dict[str, Any] | None = None,
) -> str:
    """Create or update the progression row of a participant for a stage.

    Returns:
        Id of the progression row
    """
    fields = {k: v for k, v in (fields or {}).items() if k in PROGRESSION_COLUMNS}
    existing = get_progression_for(conn, participant_id, edition_id, stage)
    now = now_iso()

    if existing is not None:
        if fields:
            fields["updated_at"] = now
            clause, params = build_set_clause(fields)
            conn.execute(
                f"UPDATE stage_progression SET {clause} WHERE id = ?",
                [*params, existing["id"]],
            )
        return existing["id"]

    progression_id = new_id()
    columns = ["id", "participant_id", "edition_id", "current_stage", *fields,
               "created_at", "updated_at"]
    _, params = build_set_clause(fields)
    values = [progression_id, participant_id, edition_id, stage, *params, now, now]
    conn.execute(
        f"INSERT INTO stage_progression ({', '.join(columns)}) "
        f"VALUES ({', '.join('?' for _ in columns)})",
        values,
    )
    logger.debug(
        "progression.inserted", participant_id=participant_id, stage=stage
    )
    return progression_id


def get_progression(
    conn: sqlite3.Connection, progression_id: str
) -> dict[str, Any] | None:
    row = conn.execute(
        """
        SELECT sp.*, p.education_level, p.first_name, p.last_name
        FROM stage_progression sp
        JOIN olympiad_participants p ON p.id = sp.participant_id
        WHERE sp.id = ?
        """,
        (progression_id,),
    ).fetchone()
    return _decode(row_to_dict(row))


def get_progression_for(
    conn: sqlite3.Connection, participant_id: str, edition_id: str, stage: str
) -> dict[str, Any] | None:
    row = conn.execute(
        """
        SELECT * FROM stage_progression
        WHERE participant_id = ? AND edition_id = ? AND current_stage = ?
        """,
        (participant_id, edition_id, stage),
    ).fetchone()
    return _decode(row_to_dict(row))


def list_progressions(
    conn: sqlite3.Connection,
    filters: dict[str, Any],
    limit: int = 50,
    offset: int = 0,
) -> tuple[list[dict[str, Any]], int]:
    """List progression rows with participant details, best first."""
    where, params = build_where(filters, _LIST_FILTERS)
    joins = """
        FROM stage_progression sp
        JOIN olympiad_participants p ON p.id = sp.participant_id
        JOIN olympiad_editions e ON e.id = sp.edition_id
    """
    rows = conn.execute(
        f"""
        SELECT sp.*, p.first_name, p.last_name, p.email, p.education_level,
               p.school_name, p.district, e.name AS edition_name
        {joins}
        {where}
        ORDER BY sp.stage_percentage DESC, sp.stage_score DESC
        LIMIT ? OFFSET ?
        """,
        [*params, limit, offset],
    ).fetchall()
    total = conn.execute(f"SELECT COUNT(*) {joins} {where}", params).fetchone()[0]
    return [_decode(r) for r in rows_to_dicts(rows)], total


def list_ranking_group(
    conn: sqlite3.Connection, edition_id: str, stage: str, education_level: str
) -> list[dict[str, Any]]:
    """Progression rows competing against each other for a stage."""
    rows = conn.execute(
        """
        SELECT sp.*, p.education_level, p.current_stage AS participant_stage
        FROM stage_progression sp
        JOIN olympiad_participants p ON p.id = sp.participant_id
        WHERE sp.edition_id = ? AND sp.current_stage = ? AND p.education_level = ?
        """,
        (edition_id, stage, education_level),
    ).fetchall()
    return [_decode(r) for r in rows_to_dicts(rows)]


def list_group_levels(
    conn: sqlite3.Connection, edition_id: str, stage: str
) -> list[str]:
    """Education levels that have progression rows for a stage."""
    rows = conn.execute(
        """
        SELECT DISTINCT p.education_level
        FROM stage_progression sp
        JOIN olympiad_participants p ON p.id = sp.participant_id
        WHERE sp.edition_id = ? AND sp.current_stage = ?
        ORDER BY p.education_level
        """,
        (edition_id, stage),
    ).fetchall()
    return [r[0] for r in rows]


def leaderboard(
    conn: sqlite3.Connection,
    edition_id: str,
    stage: str,
    education_level: str | None = None,
    limit: int = 10,
) -> list[dict[str, Any]]:
    """Top ranked participants of a stage."""
    params: list[Any] = [edition_id, stage]
    level_clause = ""
    if education_level:
        level_clause = "AND p.education_level = ?"
        params.append(education_level)
    rows = conn.execute(
        f"""
        SELECT sp.participant_id, sp.stage_score, sp.stage_max_score,
               sp.stage_percentage, sp.stage_rank, sp.total_participants,
               sp.can_progress, p.first_name, p.last_name, p.education_level,
               p.school_name, p.district
        FROM stage_progression sp
        JOIN olympiad_participants p ON p.id = sp.participant_id
        WHERE sp.edition_id = ? AND sp.current_stage = ? {level_clause}
          AND sp.stage_rank IS NOT NULL
        ORDER BY sp.stage_rank ASC, sp.stage_percentage DESC
        LIMIT ?
        """,
        [*params, limit],
    ).fetchall()
    return [_decode(r) for r in rows_to_dicts(rows)]


def update_progression(
    conn: sqlite3.Connection, progression_id: str, fields: dict[str, Any]
) -> None:
    fields = {k: v for k, v in fields.items() if k in PROGRESSION_COLUMNS}
    fields["updated_at"] = now_iso()
    clause, params = build_set_clause(fields)
    conn.execute(
        f"UPDATE stage_progression SET {clause} WHERE id = ?",
        [*params, progression_id],
    )


def delete_progression(conn: sqlite3.Connection, progression_id: str) -> None:
    conn.execute("DELETE FROM stage_progression WHERE id = ?", (progression_id,))


def _decode(data: dict[str, Any] | None) -> dict[str, Any] | None:
    if data is None:
        return None
    for name in ("stage_completed", "can_progress"):
        if data.get(name) is not None:
            data[name] = bool(data[name])
    return data
