"""Question bank management."""

from __future__ import annotations

import random
from typing import Any

import structlog

from olympiad.core.errors import NotFoundError, RuleViolationError
from olympiad.core.question_selection import DIFFICULTIES, select_questions
from olympiad.core.stages import is_known_stage
from olympiad.db.database import get_db
from olympiad.db.questions_repository import (
    count_question_usage,
    delete_question as delete_question_row,
    get_question,
    insert_question,
    list_active_candidates,
    list_questions as list_question_rows,
    update_question as update_question_row,
)

logger = structlog.get_logger(__name__)

QUESTION_TYPES = ("multiple_choice", "true_false", "short_answer", "essay")


def validate_question(question: dict[str, Any]) -> None:
    """Check a complete question for consistency.

    Raises:
        RuleViolationError: On an unknown type, difficulty or stage, or an
            answer that does not fit the question type
    """
    for name in ("question_text", "subject", "education_level", "stage"):
        if not question.get(name):
            raise RuleViolationError(f"Missing required field: {name}")
    if question.get("correct_answer") in (None, ""):
        raise RuleViolationError("Missing required field: correct_answer")

    qtype = question.get("question_type")
    if qtype not in QUESTION_TYPES:
        raise RuleViolationError(f"Invalid question type: {qtype}")
    if question.get("difficulty") not in DIFFICULTIES:
        raise RuleViolationError(f"Invalid difficulty: {question.get('difficulty')}")
    if not is_known_stage(question["stage"]):
        raise RuleViolationError(f"Invalid stage: {question['stage']}")
    if (question.get("points_value") or 0) <= 0:
        raise RuleViolationError("Points value must be positive")

    if qtype == "multiple_choice":
        options = question.get("options") or []
        if len(options) < 2:
            raise RuleViolationError("Multiple choice questions need at least 2 options")
        if question["correct_answer"] not in options:
            raise RuleViolationError("Correct answer must be one of the options")
    elif qtype == "true_false":
        if str(question["correct_answer"]).strip().lower() not in ("true", "false"):
            raise RuleViolationError("True/false answer must be 'true' or 'false'")


def create_question(values: dict[str, Any], admin_id: str) -> dict[str, Any]:
    question = dict(values)
    question.setdefault("points_value", 1.0)
    question.setdefault("time_limit_seconds", 60)
    if question.get("question_type") == "true_false":
        question["correct_answer"] = str(question.get("correct_answer", "")).strip().lower()
    validate_question(question)

    with get_db() as conn:
        question_id = insert_question(conn, question, admin_id)
        created = get_question(conn, question_id)

    logger.info("questions.created", question_id=question_id, subject=question["subject"])
    return created


def list_questions(
    filters: dict[str, Any], page: int, limit: int
) -> tuple[list[dict[str, Any]], int]:
    with get_db() as conn:
        return list_question_rows(conn, filters, limit=limit, offset=(page - 1) * limit)


def get_question_by_id(question_id: str) -> dict[str, Any]:
    with get_db() as conn:
        question = get_question(conn, question_id)
    if question is None:
        raise NotFoundError("Question not found")
    return question


def update_question(question_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    """Partial update, re-validating the merged question."""
    if not fields:
        raise RuleViolationError("No fields to update")

    with get_db() as conn:
        current = get_question(conn, question_id)
        if current is None:
            raise NotFoundError("Question not found")
        merged = {**current, **fields}
        if merged.get("question_type") == "true_false":
            merged["correct_answer"] = str(merged["correct_answer"]).strip().lower()
            if "correct_answer" in fields:
                fields["correct_answer"] = merged["correct_answer"]
        validate_question(merged)
        update_question_row(conn, question_id, fields)
        updated = get_question(conn, question_id)

    logger.info("questions.updated", question_id=question_id)
    return updated


def delete_question(question_id: str) -> str:
    """Delete a question, or deactivate it when exam answers reference it.

    Returns:
        'deleted' or 'deactivated'
    """
    with get_db() as conn:
        if get_question(conn, question_id) is None:
            raise NotFoundError("Question not found")
        if count_question_usage(conn, question_id):
            update_question_row(conn, question_id, {"is_active": False})
            outcome = "deactivated"
        else:
            delete_question_row(conn, question_id)
            outcome = "deleted"

    logger.info("questions.removed", question_id=question_id, outcome=outcome)
    return outcome


def select_random_questions(
    subject: str,
    education_level: str,
    stage: str,
    total_questions: int,
    per_difficulty: dict[str, int] | None = None,
    exclude_ids: list[str] | None = None,
    rng: random.Random | None = None,
) -> list[dict[str, Any]]:
    """Draw questions for an exam from the active bank."""
    if total_questions < 1:
        raise RuleViolationError("total_questions must be at least 1")
    with get_db() as conn:
        candidates = list_active_candidates(conn, subject, education_level, stage)
    return select_questions(
        candidates,
        total_questions,
        per_difficulty=per_difficulty,
        exclude_ids=exclude_ids,
        rng=rng,
    )
