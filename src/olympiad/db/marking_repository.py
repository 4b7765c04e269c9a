"""Repository functions for marking_queue table."""

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

ITEM_COLUMNS = (
    "assigned_marker_id",
    "marked_by_admin_id",
    "status",
    "manual_score",
    "final_score",
    "marker_feedback",
    "moderator_feedback",
    "assigned_at",
    "marking_started_at",
    "marking_completed_at",
)

_LIST_FILTERS = {
    "status": "m.status",
    "assigned_marker_id": "m.assigned_marker_id",
    "subject": "q.subject",
    "education_level": "q.education_level",
}


def enqueue_answer(
    conn: sqlite3.Connection,
    session_id: str,
    question_id: str,
    answer_id: str,
    auto_score: float | None = None,
    ignore_duplicate: bool = False,
) -> str | None:
    """Add an answer to the marking queue in 'pending' status.

    Args:
        conn: Open connection
        session_id: Exam session
        question_id: Question answered
        answer_id: Answer row to mark
        auto_score: Score given by automatic grading, if any
        ignore_duplicate: Silently skip when the item already exists

    Returns:
        New item id, or None when skipped as duplicate

    Raises:
        sqlite3.IntegrityError: On duplicate unless ignore_duplicate is set
    """
    item_id = new_id()
    now = now_iso()
    verb = "INSERT OR IGNORE" if ignore_duplicate else "INSERT"
    cursor = conn.execute(
        f"""
        {verb} INTO marking_queue (
            id, session_id, question_id, answer_id, status, auto_score,
            created_at, updated_at
        ) VALUES (?, ?, ?, ?, 'pending', ?, ?, ?)
        """,
        (item_id, session_id, question_id, answer_id, auto_score, now, now),
    )
    if cursor.rowcount == 0:
        return None
    logger.debug("marking.enqueued", item_id=item_id, answer_id=answer_id)
    return item_id


def get_item(conn: sqlite3.Connection, item_id: str) -> dict[str, Any] | None:
    """Get a queue item with the answer's max points."""
    row = conn.execute(
        """
        SELECT m.*, a.max_points
        FROM marking_queue m
        JOIN exam_answers a ON a.id = m.answer_id
        WHERE m.id = ?
        """,
        (item_id,),
    ).fetchone()
    return row_to_dict(row)


def list_items(
    conn: sqlite3.Connection,
    filters: dict[str, Any],
    limit: int = 20,
    offset: int = 0,
) -> tuple[list[dict[str, Any]], int]:
    """List queue items, oldest first, with answer and question context.

    Returns:
        (rows, total) where total ignores pagination
    """
    where, params = build_where(filters, _LIST_FILTERS)
    joins = """
        FROM marking_queue m
        JOIN exam_answers a ON a.id = m.answer_id
        JOIN question_bank q ON q.id = m.question_id
        JOIN exam_sessions s ON s.id = m.session_id
        JOIN exam_configurations c ON c.id = s.exam_config_id
        JOIN olympiad_participants p ON p.id = s.participant_id
        LEFT JOIN admins mk ON mk.id = m.assigned_marker_id
    """
    rows = conn.execute(
        f"""
        SELECT m.*,
               a.selected_answer, a.max_points,
               q.question_text, q.question_type, q.subject, q.education_level,
               q.correct_answer, q.explanation,
               p.first_name, p.last_name,
               c.name AS exam_name,
               mk.full_name AS marker_name
        {joins}
        {where}
        ORDER BY m.created_at ASC
        LIMIT ? OFFSET ?
        """,
        [*params, limit, offset],
    ).fetchall()
    total = conn.execute(f"SELECT COUNT(*) {joins} {where}", params).fetchone()[0]
    return rows_to_dicts(rows), total


def update_item(conn: sqlite3.Connection, item_id: str, fields: dict[str, Any]) -> None:
    fields = {k: v for k, v in fields.items() if k in ITEM_COLUMNS}
    fields["updated_at"] = now_iso()
    clause, params = build_set_clause(fields)
    conn.execute(f"UPDATE marking_queue SET {clause} WHERE id = ?", [*params, item_id])


def delete_item(conn: sqlite3.Connection, item_id: str) -> None:
    conn.execute("DELETE FROM marking_queue WHERE id = ?", (item_id,))
