"""Answer grading.

Objective questions (multiple choice, true/false) are graded automatically
by comparing the normalized answer with the stored correct answer.
Subjective questions (short answer, essay) earn nothing until a marker
scores them through the marking queue.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

OBJECTIVE_TYPES = ("multiple_choice", "true_false")
SUBJECTIVE_TYPES = ("short_answer", "essay")


@dataclass
class AnswerGrade:
    """Outcome of grading one answer."""

    is_correct: bool | None
    points_earned: float
    needs_review: bool


def _normalize_text(response: Any) -> str | None:
    """Lower-case and collapse whitespace, or None if empty."""
    if response is None:
        return None
    text = " ".join(str(response).split()).lower()
    return text or None


def _normalize_tf_response(response: Any) -> bool | None:
    """Normalize TF response to bool or None if invalid/empty.

    Args:
        response: Raw response (bool, str, int, or None)

    Returns:
        Boolean or None if response is empty/invalid
    """
    if response is None:
        return None
    if isinstance(response, bool):
        return response
    if isinstance(response, str):
        stripped = response.strip().lower()
        if stripped in ("true", "t", "1", "yes"):
            return True
        if stripped in ("false", "f", "0", "no"):
            return False
        return None
    if isinstance(response, int):
        return response != 0
    return None


def grade_answer(
    question_type: str,
    correct_answer: Any,
    selected_answer: Any,
    max_points: float,
) -> AnswerGrade:
    """Grade a submitted answer.

    Args:
        question_type: One of the question bank types
        correct_answer: Stored correct answer
        selected_answer: Answer given by the participant
        max_points: Points awarded for a correct answer

    Returns:
        AnswerGrade; subjective answers come back ungraded and flagged
    """
    if question_type in SUBJECTIVE_TYPES:
        return AnswerGrade(is_correct=None, points_earned=0.0, needs_review=True)

    if question_type == "true_false":
        given = _normalize_tf_response(selected_answer)
        expected = _normalize_tf_response(correct_answer)
        is_correct = given is not None and given == expected
    else:
        given_text = _normalize_text(selected_answer)
        is_correct = given_text is not None and given_text == _normalize_text(correct_answer)

    return AnswerGrade(
        is_correct=is_correct,
        points_earned=float(max_points) if is_correct else 0.0,
        needs_review=False,
    )


def percentage(score: float, max_score: float) -> float:
    """Score as a percentage rounded to two decimals (0 when max is 0)."""
    if max_score <= 0:
        return 0.0
    return round(score / max_score * 100, 2)
