"""Repository functions for question_bank table."""

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

QUESTION_JSON_FIELDS = ("options",)

QUESTION_COLUMNS = (
    "question_text",
    "question_type",
    "difficulty",
    "subject",
    "education_level",
    "stage",
    "options",
    "correct_answer",
    "explanation",
    "points_value",
    "time_limit_seconds",
    "is_active",
)

_LIST_FILTERS = {
    "subject": "subject",
    "education_level": "education_level",
    "stage": "stage",
    "difficulty": "difficulty",
    "question_type": "question_type",
}


def insert_question(
    conn: sqlite3.Connection, values: dict[str, Any], admin_id: str
) -> str:
    """Insert a question and return its id."""
    question_id = new_id()
    now = now_iso()
    row = {"id": question_id}
    row.update({name: values.get(name) for name in QUESTION_COLUMNS})
    row["is_active"] = True
    row.update({"created_by_admin_id": admin_id, "created_at": now, "updated_at": now})
    insert_row(conn, "question_bank", row)
    logger.debug("questions.inserted", question_id=question_id)
    return question_id


def get_question(conn: sqlite3.Connection, question_id: str) -> dict[str, Any] | None:
    row = conn.execute(
        "SELECT * FROM question_bank WHERE id = ?", (question_id,)
    ).fetchone()
    return _decode(row_to_dict(row, QUESTION_JSON_FIELDS))


def list_questions(
    conn: sqlite3.Connection,
    filters: dict[str, Any],
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[dict[str, Any]], int]:
    """List active questions, newest first.

    Returns:
        (rows, total) where total ignores pagination
    """
    where, params = build_where(filters, _LIST_FILTERS)
    where += " AND is_active = 1" if where else " WHERE is_active = 1"

    rows = conn.execute(
        f"""
        SELECT * FROM question_bank {where}
        ORDER BY created_at DESC
        LIMIT ? OFFSET ?
        """,
        [*params, limit, offset],
    ).fetchall()
    total = conn.execute(
        f"SELECT COUNT(*) FROM question_bank {where}", params
    ).fetchone()[0]
    return [_decode(r) for r in rows_to_dicts(rows, QUESTION_JSON_FIELDS)], total


def list_active_candidates(
    conn: sqlite3.Connection,
    subject: str,
    education_level: str,
    stage: str,
) -> list[dict[str, Any]]:
    """All active questions matching subject, level and stage."""
    rows = conn.execute(
        """
        SELECT * FROM question_bank
        WHERE subject = ? AND education_level = ? AND stage = ? AND is_active = 1
        ORDER BY created_at
        """,
        (subject, education_level, stage),
    ).fetchall()
    return [_decode(r) for r in rows_to_dicts(rows, QUESTION_JSON_FIELDS)]


def count_active_candidates(
    conn: sqlite3.Connection, subject: str, education_level: str, stage: str
) -> int:
    return conn.execute(
        """
        SELECT COUNT(*) FROM question_bank
        WHERE subject = ? AND education_level = ? AND stage = ? AND is_active = 1
        """,
        (subject, education_level, stage),
    ).fetchone()[0]


def update_question(
    conn: sqlite3.Connection, question_id: str, fields: dict[str, Any]
) -> None:
    fields = {k: v for k, v in fields.items() if k in QUESTION_COLUMNS}
    fields["updated_at"] = now_iso()
    clause, params = build_set_clause(fields)
    conn.execute(
        f"UPDATE question_bank SET {clause} WHERE id = ?", [*params, question_id]
    )


def delete_question(conn: sqlite3.Connection, question_id: str) -> None:
    conn.execute("DELETE FROM question_bank WHERE id = ?", (question_id,))


def count_question_usage(conn: sqlite3.Connection, question_id: str) -> int:
    """Count exam answers referencing the question."""
    return conn.execute(
        "SELECT COUNT(*) FROM exam_answers WHERE question_id = ?", (question_id,)
    ).fetchone()[0]


def _decode(data: dict[str, Any] | None) -> dict[str, Any] | None:
    if data is not None and data.get("is_active") is not None:
        data["is_active"] = bool(data["is_active"])
    return data
