"""Repository functions for exam configurations, sessions and answers."""

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

CONFIG_JSON_FIELDS = ("questions_per_difficulty",)

CONFIG_COLUMNS = (
    "edition_id",
    "name",
    "description",
    "education_level",
    "subject",
    "stage",
    "total_questions",
    "questions_per_difficulty",
    "randomize_questions",
    "randomize_options",
    "duration_minutes",
    "start_time",
    "end_time",
    "requires_supervision",
    "max_attempts",
    "status",
)

SESSION_COLUMNS = (
    "started_at",
    "completed_at",
    "last_activity_at",
    "last_resumed_at",
    "time_remaining_seconds",
    "is_paused",
    "status",
    "total_score",
    "max_score",
    "percentage_score",
)

ANSWER_COLUMNS = (
    "selected_answer",
    "is_correct",
    "points_earned",
    "time_taken_seconds",
    "answered_at",
    "is_flagged_for_review",
)

ACTIVE_SESSION_STATUSES = ("created", "started", "in_progress")

_CONFIG_FILTERS = {
    "edition_id": "c.edition_id",
    "education_level": "c.education_level",
    "subject": "c.subject",
    "stage": "c.stage",
    "status": "c.status",
}

_SESSION_FILTERS = {
    "exam_config_id": "s.exam_config_id",
    "participant_id": "s.participant_id",
    "status": "s.status",
}

_FLAGS = (
    "randomize_questions",
    "randomize_options",
    "requires_supervision",
    "is_paused",
    "is_flagged_for_review",
)


# =============================================================================
# CONFIGURATIONS
# =============================================================================


def insert_config(
    conn: sqlite3.Connection, values: dict[str, Any], admin_id: str
) -> str:
    """Insert an exam configuration and return its id."""
    config_id = new_id()
    now = now_iso()
    row = {"id": config_id}
    row.update({name: values.get(name) for name in CONFIG_COLUMNS})
    row.update({"created_by_admin_id": admin_id, "created_at": now, "updated_at": now})
    insert_row(conn, "exam_configurations", row)
    logger.debug("exam_configs.inserted", config_id=config_id)
    return config_id


def get_config(conn: sqlite3.Connection, config_id: str) -> dict[str, Any] | None:
    row = conn.execute(
        "SELECT * FROM exam_configurations WHERE id = ?", (config_id,)
    ).fetchone()
    return _decode(row_to_dict(row, CONFIG_JSON_FIELDS))


def list_configs(
    conn: sqlite3.Connection, filters: dict[str, Any]
) -> list[dict[str, Any]]:
    """List configurations with edition name, creator and session count."""
    where, params = build_where(filters, _CONFIG_FILTERS)
    rows = conn.execute(
        f"""
        SELECT c.*, e.name AS edition_name, a.full_name AS created_by_name,
               (SELECT COUNT(*) FROM exam_sessions s
                WHERE s.exam_config_id = c.id) AS session_count
        FROM exam_configurations c
        LEFT JOIN olympiad_editions e ON e.id = c.edition_id
        LEFT JOIN admins a ON a.id = c.created_by_admin_id
        {where}
        ORDER BY c.created_at DESC
        """,
        params,
    ).fetchall()
    return [_decode(r) for r in rows_to_dicts(rows, CONFIG_JSON_FIELDS)]


def update_config(
    conn: sqlite3.Connection, config_id: str, fields: dict[str, Any]
) -> None:
    fields = {k: v for k, v in fields.items() if k in CONFIG_COLUMNS}
    fields["updated_at"] = now_iso()
    clause, params = build_set_clause(fields)
    conn.execute(
        f"UPDATE exam_configurations SET {clause} WHERE id = ?", [*params, config_id]
    )


def delete_config(conn: sqlite3.Connection, config_id: str) -> None:
    conn.execute("DELETE FROM exam_configurations WHERE id = ?", (config_id,))


def count_config_sessions(conn: sqlite3.Connection, config_id: str) -> int:
    return conn.execute(
        "SELECT COUNT(*) FROM exam_sessions WHERE exam_config_id = ?", (config_id,)
    ).fetchone()[0]


# =============================================================================
# SESSIONS
# =============================================================================


def insert_session(
    conn: sqlite3.Connection,
    exam_config_id: str,
    participant_id: str,
    session_code: str,
    duration_minutes: int,
) -> str:
    """Insert a session in 'created' status with the full time allowance."""
    session_id = new_id()
    now = now_iso()
    insert_row(
        conn,
        "exam_sessions",
        {
            "id": session_id,
            "exam_config_id": exam_config_id,
            "participant_id": participant_id,
            "session_code": session_code,
            "duration_minutes": duration_minutes,
            "time_remaining_seconds": duration_minutes * 60,
            "status": "created",
            "created_at": now,
            "updated_at": now,
        },
    )
    logger.debug("exam_sessions.inserted", session_id=session_id)
    return session_id


def get_session(conn: sqlite3.Connection, session_id: str) -> dict[str, Any] | None:
    row = conn.execute(
        "SELECT * FROM exam_sessions WHERE id = ?", (session_id,)
    ).fetchone()
    return _decode(row_to_dict(row))


def session_code_exists(conn: sqlite3.Connection, session_code: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM exam_sessions WHERE session_code = ?", (session_code,)
    ).fetchone()
    return row is not None


def list_sessions(
    conn: sqlite3.Connection, filters: dict[str, Any]
) -> list[dict[str, Any]]:
    """List sessions with participant and exam names."""
    where, params = build_where(filters, _SESSION_FILTERS)
    rows = conn.execute(
        f"""
        SELECT s.*, c.name AS exam_name, c.subject, c.stage, c.education_level,
               p.first_name, p.last_name
        FROM exam_sessions s
        JOIN exam_configurations c ON c.id = s.exam_config_id
        JOIN olympiad_participants p ON p.id = s.participant_id
        {where}
        ORDER BY s.created_at DESC
        """,
        params,
    ).fetchall()
    return [_decode(r) for r in rows_to_dicts(rows)]


def find_active_session(
    conn: sqlite3.Connection, exam_config_id: str, participant_id: str
) -> dict[str, Any] | None:
    placeholders = ", ".join("?" for _ in ACTIVE_SESSION_STATUSES)
    row = conn.execute(
        f"""
        SELECT * FROM exam_sessions
        WHERE exam_config_id = ? AND participant_id = ?
          AND status IN ({placeholders})
        """,
        (exam_config_id, participant_id, *ACTIVE_SESSION_STATUSES),
    ).fetchone()
    return _decode(row_to_dict(row))


def count_completed_attempts(
    conn: sqlite3.Connection, exam_config_id: str, participant_id: str
) -> int:
    return conn.execute(
        """
        SELECT COUNT(*) FROM exam_sessions
        WHERE exam_config_id = ? AND participant_id = ? AND status = 'completed'
        """,
        (exam_config_id, participant_id),
    ).fetchone()[0]


def update_session(
    conn: sqlite3.Connection, session_id: str, fields: dict[str, Any]
) -> None:
    fields = {k: v for k, v in fields.items() if k in SESSION_COLUMNS}
    fields["updated_at"] = now_iso()
    clause, params = build_set_clause(fields)
    conn.execute(f"UPDATE exam_sessions SET {clause} WHERE id = ?", [*params, session_id])


def list_completed_stage_sessions(
    conn: sqlite3.Connection, edition_id: str, stage: str
) -> list[dict[str, Any]]:
    """Completed sessions for every exam of one stage of an edition."""
    rows = conn.execute(
        """
        SELECT s.id, s.participant_id, s.exam_config_id, s.total_score,
               s.max_score, s.percentage_score, p.education_level
        FROM exam_sessions s
        JOIN exam_configurations c ON c.id = s.exam_config_id
        JOIN olympiad_participants p ON p.id = s.participant_id
        WHERE c.edition_id = ? AND c.stage = ? AND s.status = 'completed'
        """,
        (edition_id, stage),
    ).fetchall()
    return rows_to_dicts(rows)


# =============================================================================
# ANSWERS
# =============================================================================


def insert_answer(
    conn: sqlite3.Connection,
    session_id: str,
    question_id: str,
    question_order: int,
    max_points: float,
) -> None:
    """Insert an unanswered answer slot for a question of the session."""
    insert_row(
        conn,
        "exam_answers",
        {
            "id": new_id(),
            "session_id": session_id,
            "question_id": question_id,
            "question_order": question_order,
            "max_points": max_points,
            "points_earned": 0,
        },
    )


def get_answer(conn: sqlite3.Connection, answer_id: str) -> dict[str, Any] | None:
    row = conn.execute("SELECT * FROM exam_answers WHERE id = ?", (answer_id,)).fetchone()
    return _decode(row_to_dict(row))


def get_session_answer(
    conn: sqlite3.Connection, session_id: str, question_id: str
) -> dict[str, Any] | None:
    """Get the answer row of a question in a session, with question details."""
    row = conn.execute(
        """
        SELECT a.*, q.question_type, q.correct_answer
        FROM exam_answers a
        JOIN question_bank q ON q.id = a.question_id
        WHERE a.session_id = ? AND a.question_id = ?
        """,
        (session_id, question_id),
    ).fetchone()
    return _decode(row_to_dict(row))


def list_session_answers(
    conn: sqlite3.Connection, session_id: str
) -> list[dict[str, Any]]:
    """Answer rows of a session in question order, with question type."""
    rows = conn.execute(
        """
        SELECT a.*, q.question_type
        FROM exam_answers a
        JOIN question_bank q ON q.id = a.question_id
        WHERE a.session_id = ?
        ORDER BY a.question_order
        """,
        (session_id,),
    ).fetchall()
    return [_decode(r) for r in rows_to_dicts(rows)]


def list_session_questions(
    conn: sqlite3.Connection, session_id: str
) -> list[dict[str, Any]]:
    """Questions drawn for a session, in the order they were drawn."""
    rows = conn.execute(
        """
        SELECT q.*
        FROM exam_answers a
        JOIN question_bank q ON q.id = a.question_id
        WHERE a.session_id = ?
        ORDER BY a.question_order
        """,
        (session_id,),
    ).fetchall()
    return rows_to_dicts(rows, ("options",))


def update_answer(
    conn: sqlite3.Connection, answer_id: str, fields: dict[str, Any]
) -> None:
    fields = {k: v for k, v in fields.items() if k in ANSWER_COLUMNS}
    clause, params = build_set_clause(fields)
    conn.execute(f"UPDATE exam_answers SET {clause} WHERE id = ?", [*params, answer_id])


def sum_session_points(conn: sqlite3.Connection, session_id: str) -> tuple[float, float]:
    """Return (points earned, max points) over all answers of a session."""
    row = conn.execute(
        """
        SELECT COALESCE(SUM(points_earned), 0), COALESCE(SUM(max_points), 0)
        FROM exam_answers WHERE session_id = ?
        """,
        (session_id,),
    ).fetchone()
    return float(row[0]), float(row[1])


def _decode(data: dict[str, Any] | None) -> dict[str, Any] | None:
    if data is None:
        return None
    for name in _FLAGS:
        if data.get(name) is not None:
            data[name] = bool(data[name])
    if "is_correct" in data and data["is_correct"] is not None:
        data["is_correct"] = bool(data["is_correct"])
    return data
