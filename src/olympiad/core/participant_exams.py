"""Exams as seen by a guardian sitting them with their enrolled minor.

A guardian reaches only participants they enrolled (``user_id`` is the
guardian's id) and the sessions of those participants. Anything else is
reported as not found. Pausing, resuming and abandoning stay with the
admins supervising the exam.
"""

from __future__ import annotations

import random
import sqlite3
from datetime import datetime
from typing import Any

import structlog

from olympiad.core.clock import utc_now
from olympiad.core.errors import NotFoundError, RuleViolationError
from olympiad.core.exam_sessions import (
    ACTION_NOT_ALLOWED,
    AVAILABLE_CONFIG_STATUSES,
    apply_session_action,
    create_session,
    remaining_seconds,
)
from olympiad.core.question_selection import public_question
from olympiad.db.database import get_db
from olympiad.db.exams_repository import (
    get_session,
    list_configs,
    list_session_questions,
    list_sessions,
)
from olympiad.db.participants_repository import get_participant

logger = structlog.get_logger(__name__)

GUARDIAN_SESSION_ACTIONS = ("start", "submit_answer", "flag", "finish")


def _owned_participant(
    conn: sqlite3.Connection, participant_id: str, guardian_id: str
) -> dict[str, Any]:
    participant = get_participant(conn, participant_id)
    if participant is None or participant["user_id"] != guardian_id:
        raise NotFoundError("Participant not found")
    return participant


def _owned_session(
    conn: sqlite3.Connection, session_id: str, guardian_id: str
) -> dict[str, Any]:
    session = get_session(conn, session_id)
    participant = get_participant(conn, session["participant_id"]) if session else None
    if participant is None or participant["user_id"] != guardian_id:
        raise NotFoundError(ACTION_NOT_ALLOWED)
    return session


def list_participant_exams(participant_id: str, guardian_id: str) -> dict[str, Any]:
    """Exams the participant can sit now, plus their sessions so far.

    An exam is offered when it is ready or active and matches the
    participant's edition, level, current stage and chosen subjects.

    Raises:
        NotFoundError: If the participant is not one of the guardian's
    """
    with get_db() as conn:
        participant = _owned_participant(conn, participant_id, guardian_id)
        configs = list_configs(
            conn,
            {
                "edition_id": participant["edition_id"],
                "education_level": participant["education_level"],
                "stage": participant["current_stage"],
            },
        )
        sessions = list_sessions(conn, {"participant_id": participant_id})

    subjects = participant["subjects"]
    exams = [
        c
        for c in configs
        if c["status"] in AVAILABLE_CONFIG_STATUSES and (not subjects or c["subject"] in subjects)
    ]
    return {"exams": exams, "sessions": sessions}


def open_session(
    exam_config_id: str,
    participant_id: str,
    guardian_id: str,
    rng: random.Random | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Open a session for one of the guardian's participants.

    Raises:
        NotFoundError: If the participant is not one of the guardian's
    """
    with get_db() as conn:
        _owned_participant(conn, participant_id, guardian_id)
    created = create_session(exam_config_id, participant_id, rng=rng, now=now)
    logger.info(
        "participant_exams.opened",
        session_id=created["session"]["id"],
        guardian_id=guardian_id,
    )
    return created


def get_session_questions(
    session_id: str, guardian_id: str, now: datetime | None = None
) -> dict[str, Any]:
    """Session and its questions, for picking the exam up again."""
    now = now or utc_now()
    with get_db() as conn:
        session = _owned_session(conn, session_id, guardian_id)
        questions = list_session_questions(conn, session_id)
    session["time_remaining_seconds"] = remaining_seconds(session, now)
    return {
        "session": session,
        "questions": [public_question(q, shuffle_options=False) for q in questions],
    }


def apply_participant_action(
    session_id: str,
    action: str,
    guardian_id: str,
    data: dict[str, Any] | None = None,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Start, answer, flag or finish a session the guardian owns.

    Raises:
        RuleViolationError: On an action reserved to admins
        NotFoundError: If the session is not one of the guardian's
    """
    if action not in GUARDIAN_SESSION_ACTIONS:
        raise RuleViolationError(f"Invalid action: {action}")
    with get_db() as conn:
        _owned_session(conn, session_id, guardian_id)
    return apply_session_action(session_id, action, data, now=now)
