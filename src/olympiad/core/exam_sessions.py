"""Exam session lifecycle.

A session is one attempt of one participant at one exam configuration:

    created -> started -> in_progress -> completed
                  \\            \\-> abandoned
                   \\-> completed / abandoned

The time allowance is kept as ``time_remaining_seconds`` as of
``last_resumed_at``; pausing folds the elapsed time into it.
"""

from __future__ import annotations

import random
import secrets
import sqlite3
from datetime import datetime
from typing import Any

import structlog

from olympiad.core.clock import parse_instant, utc_now
from olympiad.core.errors import ConflictError, NotFoundError, RuleViolationError
from olympiad.core.grading import SUBJECTIVE_TYPES, grade_answer, percentage
from olympiad.core.question_selection import public_question, select_questions
from olympiad.db.database import get_db
from olympiad.db.exams_repository import (
    ACTIVE_SESSION_STATUSES,
    count_completed_attempts,
    find_active_session,
    get_config,
    get_session,
    get_session_answer,
    insert_answer,
    insert_session,
    list_session_answers,
    list_sessions as list_session_rows,
    session_code_exists,
    sum_session_points,
    update_answer,
    update_session,
)
from olympiad.db.marking_repository import enqueue_answer
from olympiad.db.participants_repository import get_participant
from olympiad.db.questions_repository import list_active_candidates

logger = structlog.get_logger(__name__)

AVAILABLE_CONFIG_STATUSES = ("ready", "active")
ANSWERING_STATUSES = ("started", "in_progress")

SESSION_ACTIONS = ("start", "submit_answer", "flag", "pause", "resume", "finish", "abandon")
ACTION_NOT_ALLOWED = "Session not found or action not allowed"


def _generate_session_code(conn: sqlite3.Connection) -> str:
    """Random 8-character upper-case hex code, unique among sessions."""
    while True:
        code = secrets.token_hex(4).upper()
        if not session_code_exists(conn, code):
            return code


def remaining_seconds(session: dict[str, Any], now: datetime) -> int | None:
    """Seconds left in the session at ``now``.

    Returns:
        None before the session starts; otherwise never below 0
    """
    stored = session.get("time_remaining_seconds")
    if stored is None:
        return None
    if session["is_paused"] or session["status"] not in ANSWERING_STATUSES:
        return max(stored, 0)
    resumed = session.get("last_resumed_at") or session.get("started_at")
    if not resumed:
        return max(stored, 0)
    elapsed = (now - parse_instant(resumed)).total_seconds()
    return max(int(stored - elapsed), 0)


def refresh_session_score(conn: sqlite3.Connection, session_id: str) -> None:
    """Recompute total, max and percentage from the session's answers."""
    total, maximum = sum_session_points(conn, session_id)
    update_session(
        conn,
        session_id,
        {
            "total_score": total,
            "max_score": maximum,
            "percentage_score": percentage(total, maximum),
        },
    )


def create_session(
    exam_config_id: str,
    participant_id: str,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Open an exam session and draw its questions.

    Args:
        exam_config_id: Exam configuration to sit
        participant_id: Participant sitting the exam
        rng: Random source for question and option order
        now: Current time (injectable for tests)

    Returns:
        Dict with ``session`` and ``questions`` (no answers included)

    Raises:
        NotFoundError: If the configuration is not available or the
            participant is missing or inactive
        RuleViolationError: If the participant does not match the exam,
            the exam window is closed, a session is already active or
            attempts are exhausted
    """
    rng = rng or random.Random()
    now = now or utc_now()

    with get_db() as conn:
        config = get_config(conn, exam_config_id)
        if config is None or config["status"] not in AVAILABLE_CONFIG_STATUSES:
            raise NotFoundError("Exam configuration not found or not available")

        participant = get_participant(conn, participant_id)
        if participant is None or not participant["is_active"]:
            raise NotFoundError("Participant not found or inactive")

        if participant["education_level"] != config["education_level"]:
            raise RuleViolationError("Participant education level does not match the exam")
        if participant["current_stage"] != config["stage"]:
            raise RuleViolationError(
                f"Participant is at stage {participant['current_stage']}, "
                f"exam is for {config['stage']}"
            )
        if participant["subjects"] and config["subject"] not in participant["subjects"]:
            raise RuleViolationError("Participant is not registered for this subject")

        if config["start_time"] and now < parse_instant(config["start_time"]):
            raise RuleViolationError("Exam has not started yet")
        if config["end_time"] and now > parse_instant(config["end_time"]):
            raise RuleViolationError("Exam has ended")

        if find_active_session(conn, exam_config_id, participant_id):
            raise RuleViolationError("Participant already has an active session for this exam")
        attempts = count_completed_attempts(conn, exam_config_id, participant_id)
        if attempts >= config["max_attempts"]:
            raise RuleViolationError(
                f"Maximum attempts reached ({config['max_attempts']})"
            )

        candidates = list_active_candidates(
            conn, config["subject"], config["education_level"], config["stage"]
        )
        selected = select_questions(
            candidates,
            config["total_questions"],
            per_difficulty=config["questions_per_difficulty"],
            rng=rng,
        )
        if not selected:
            raise RuleViolationError("No questions available for this exam")
        if not config["randomize_questions"]:
            order = {q["id"]: i for i, q in enumerate(candidates)}
            selected.sort(key=lambda q: order[q["id"]])

        session_id = insert_session(
            conn,
            exam_config_id,
            participant_id,
            _generate_session_code(conn),
            config["duration_minutes"],
        )
        for position, question in enumerate(selected, start=1):
            insert_answer(conn, session_id, question["id"], position, question["points_value"])
        refresh_session_score(conn, session_id)
        session = get_session(conn, session_id)

    logger.info(
        "exam_sessions.created",
        session_id=session_id,
        participant_id=participant_id,
        questions=len(selected),
    )
    return {
        "session": session,
        "questions": [
            public_question(q, config["randomize_options"], rng) for q in selected
        ],
    }


def list_sessions(filters: dict[str, Any]) -> list[dict[str, Any]]:
    with get_db() as conn:
        return list_session_rows(conn, filters)


def apply_session_action(
    session_id: str,
    action: str,
    data: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Apply a lifecycle action to a session.

    Args:
        session_id: Session to act on
        action: start, submit_answer, flag, pause, resume, finish or abandon
        data: Action payload (question_id, selected_answer, time_taken,
            flagged)
        now: Current time (injectable for tests)

    Returns:
        Updated session, with ``time_remaining_seconds`` as of now

    Raises:
        RuleViolationError: On an unknown action or missing payload
        NotFoundError: If the session is missing, the action is not allowed
            in its state, or the question is not part of the session
        ConflictError: If an answer arrives after the time ran out
    """
    if action not in SESSION_ACTIONS:
        raise RuleViolationError(f"Invalid action: {action}")
    data = data or {}
    now = now or utc_now()
    stamp = now.isoformat()

    with get_db() as conn:
        session = get_session(conn, session_id)
        if session is None:
            raise NotFoundError(ACTION_NOT_ALLOWED)
        status = session["status"]

        if action == "start":
            if status != "created":
                raise NotFoundError(ACTION_NOT_ALLOWED)
            update_session(
                conn,
                session_id,
                {
                    "status": "started",
                    "started_at": stamp,
                    "last_resumed_at": stamp,
                    "last_activity_at": stamp,
                },
            )

        elif action == "submit_answer":
            _submit_answer(conn, session, data, now)

        elif action == "flag":
            if status not in ANSWERING_STATUSES:
                raise NotFoundError(ACTION_NOT_ALLOWED)
            answer = _session_answer(conn, session_id, data)
            update_answer(
                conn,
                answer["id"],
                {"is_flagged_for_review": bool(data.get("flagged", True))},
            )
            update_session(conn, session_id, {"last_activity_at": stamp})

        elif action == "pause":
            if status != "in_progress" or session["is_paused"]:
                raise NotFoundError(ACTION_NOT_ALLOWED)
            update_session(
                conn,
                session_id,
                {
                    "is_paused": True,
                    "time_remaining_seconds": remaining_seconds(session, now),
                    "last_activity_at": stamp,
                },
            )

        elif action == "resume":
            if not session["is_paused"] or status not in ANSWERING_STATUSES:
                raise NotFoundError(ACTION_NOT_ALLOWED)
            update_session(
                conn,
                session_id,
                {"is_paused": False, "last_resumed_at": stamp, "last_activity_at": stamp},
            )

        elif action == "finish":
            if status not in ANSWERING_STATUSES:
                raise NotFoundError(ACTION_NOT_ALLOWED)
            _finish(conn, session, now)

        else:
            if status not in ACTIVE_SESSION_STATUSES:
                raise NotFoundError(ACTION_NOT_ALLOWED)
            update_session(
                conn,
                session_id,
                {
                    "status": "abandoned",
                    "time_remaining_seconds": remaining_seconds(session, now),
                    "completed_at": stamp,
                    "last_activity_at": stamp,
                },
            )

        updated = get_session(conn, session_id)

    updated["time_remaining_seconds"] = remaining_seconds(updated, now)
    logger.info("exam_sessions.action", session_id=session_id, action=action)
    return updated


def _session_answer(
    conn: sqlite3.Connection, session_id: str, data: dict[str, Any]
) -> dict[str, Any]:
    question_id = data.get("question_id")
    if not question_id:
        raise RuleViolationError("question_id is required")
    answer = get_session_answer(conn, session_id, question_id)
    if answer is None:
        raise NotFoundError("Question is not part of this session")
    return answer


def _submit_answer(
    conn: sqlite3.Connection,
    session: dict[str, Any],
    data: dict[str, Any],
    now: datetime,
) -> None:
    if session["status"] not in ANSWERING_STATUSES or session["is_paused"]:
        raise NotFoundError(ACTION_NOT_ALLOWED)
    if data.get("selected_answer") is None:
        raise RuleViolationError("Question ID and answer are required")
    if remaining_seconds(session, now) == 0:
        raise ConflictError("Exam time has expired")

    answer = _session_answer(conn, session["id"], data)
    grade = grade_answer(
        answer["question_type"],
        answer["correct_answer"],
        data["selected_answer"],
        answer["max_points"],
    )
    update_answer(
        conn,
        answer["id"],
        {
            "selected_answer": str(data["selected_answer"]),
            "is_correct": grade.is_correct,
            "points_earned": grade.points_earned,
            "time_taken_seconds": int(data.get("time_taken") or 0),
            "answered_at": now.isoformat(),
            "is_flagged_for_review": grade.needs_review or answer["is_flagged_for_review"],
        },
    )
    update_session(
        conn,
        session["id"],
        {"status": "in_progress", "last_activity_at": now.isoformat()},
    )
    refresh_session_score(conn, session["id"])


def _finish(conn: sqlite3.Connection, session: dict[str, Any], now: datetime) -> None:
    session_id = session["id"]
    refresh_session_score(conn, session_id)
    update_session(
        conn,
        session_id,
        {
            "status": "completed",
            "completed_at": now.isoformat(),
            "last_activity_at": now.isoformat(),
            "time_remaining_seconds": remaining_seconds(session, now),
            "is_paused": False,
        },
    )

    queued = 0
    for answer in list_session_answers(conn, session_id):
        if (
            answer["question_type"] in SUBJECTIVE_TYPES
            and answer["is_flagged_for_review"]
            and answer["selected_answer"] is not None
        ):
            if enqueue_answer(
                conn,
                session_id,
                answer["question_id"],
                answer["id"],
                auto_score=answer["points_earned"],
                ignore_duplicate=True,
            ):
                queued += 1

    logger.info("exam_sessions.finished", session_id=session_id, queued_for_marking=queued)
