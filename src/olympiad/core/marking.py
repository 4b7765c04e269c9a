"""Manual marking of subjective answers.

Queue items move pending -> in_progress -> completed, optionally through
requires_review when a moderator must confirm the mark. Every mark is
written back to the answer and the session score is recomputed in the same
transaction.
"""

from __future__ import annotations

import sqlite3
from typing import Any

import structlog

from olympiad.core.errors import ConflictError, NotFoundError, RuleViolationError
from olympiad.core.exam_sessions import refresh_session_score
from olympiad.db.database import get_db, now_iso
from olympiad.db.exams_repository import get_answer, update_answer
from olympiad.db.marking_repository import (
    delete_item,
    enqueue_answer,
    get_item,
    list_items,
    update_item,
)

logger = structlog.get_logger(__name__)

MARKING_ACTIONS = ("assign", "start_marking", "submit_mark", "moderate", "unassign")
ACTION_NOT_ALLOWED = "Marking item not found or action not allowed"


def list_queue(
    filters: dict[str, Any], page: int, limit: int
) -> tuple[list[dict[str, Any]], int]:
    with get_db() as conn:
        return list_items(conn, filters, limit=limit, offset=(page - 1) * limit)


def add_to_queue(session_id: str, question_id: str, answer_id: str) -> dict[str, Any]:
    """Queue an answer for manual marking.

    Raises:
        NotFoundError: If the answer does not belong to the session/question
        ConflictError: If the answer is already queued
    """
    with get_db() as conn:
        answer = get_answer(conn, answer_id)
        if (
            answer is None
            or answer["session_id"] != session_id
            or answer["question_id"] != question_id
        ):
            raise NotFoundError("Answer not found for this session and question")
        try:
            item_id = enqueue_answer(
                conn, session_id, question_id, answer_id, auto_score=answer["points_earned"]
            )
        except sqlite3.IntegrityError:
            raise ConflictError("Answer is already in the marking queue") from None
        item = get_item(conn, item_id)

    logger.info("marking.added", item_id=item_id)
    return item


def _check_score(value: Any, max_points: float, name: str) -> float:
    if value is None:
        raise RuleViolationError(f"{name} is required")
    try:
        score = float(value)
    except (TypeError, ValueError):
        raise RuleViolationError(f"{name} must be a number") from None
    if not 0 <= score <= max_points:
        raise RuleViolationError(f"{name} must be between 0 and {max_points}")
    return score


def _write_back(conn: sqlite3.Connection, item: dict[str, Any], score: float) -> None:
    update_answer(
        conn,
        item["answer_id"],
        {"points_earned": score, "is_correct": score >= item["max_points"]},
    )
    refresh_session_score(conn, item["session_id"])


def apply_marking_action(
    item_id: str, action: str, admin_id: str, data: dict[str, Any] | None = None
) -> dict[str, Any]:
    """Apply a marking action on behalf of an admin.

    Args:
        item_id: Queue item
        action: assign, start_marking, submit_mark, moderate or unassign
        admin_id: Acting admin (from the session)
        data: assigned_marker_id, manual_score, marker_feedback,
            requires_review, final_score, moderator_feedback

    Returns:
        Updated queue item

    Raises:
        RuleViolationError: On an unknown action or out-of-range score
        NotFoundError: If the item is missing or the action not allowed
    """
    if action not in MARKING_ACTIONS:
        raise RuleViolationError(f"Invalid action: {action}")
    data = data or {}
    now = now_iso()

    with get_db() as conn:
        item = get_item(conn, item_id)
        if item is None:
            raise NotFoundError(ACTION_NOT_ALLOWED)
        status = item["status"]

        if action == "assign":
            if status != "pending":
                raise NotFoundError(ACTION_NOT_ALLOWED)
            update_item(
                conn,
                item_id,
                {
                    "assigned_marker_id": data.get("assigned_marker_id") or admin_id,
                    "assigned_at": now,
                    "status": "in_progress",
                },
            )

        elif action == "start_marking":
            if status not in ("pending", "in_progress"):
                raise NotFoundError(ACTION_NOT_ALLOWED)
            update_item(
                conn,
                item_id,
                {
                    "assigned_marker_id": admin_id,
                    "marking_started_at": now,
                    "status": "in_progress",
                },
            )

        elif action == "submit_mark":
            if status not in ("pending", "in_progress"):
                raise NotFoundError(ACTION_NOT_ALLOWED)
            score = _check_score(data.get("manual_score"), item["max_points"], "manual_score")
            update_item(
                conn,
                item_id,
                {
                    "manual_score": score,
                    "final_score": score,
                    "marker_feedback": data.get("marker_feedback"),
                    "marked_by_admin_id": admin_id,
                    "marking_completed_at": now,
                    "status": "requires_review" if data.get("requires_review") else "completed",
                },
            )
            _write_back(conn, item, score)

        elif action == "moderate":
            if status != "requires_review":
                raise NotFoundError(ACTION_NOT_ALLOWED)
            score = _check_score(data.get("final_score"), item["max_points"], "final_score")
            update_item(
                conn,
                item_id,
                {
                    "final_score": score,
                    "moderator_feedback": data.get("moderator_feedback"),
                    "status": "completed",
                },
            )
            _write_back(conn, item, score)

        else:
            if status != "in_progress":
                raise NotFoundError(ACTION_NOT_ALLOWED)
            update_item(
                conn,
                item_id,
                {
                    "assigned_marker_id": None,
                    "assigned_at": None,
                    "marking_started_at": None,
                    "status": "pending",
                },
            )

        updated = get_item(conn, item_id)

    logger.info("marking.action", item_id=item_id, action=action, admin_id=admin_id)
    return updated


def remove_from_queue(item_id: str) -> None:
    """Delete a pending queue item.

    Raises:
        NotFoundError: If the item does not exist
        RuleViolationError: If marking already started
    """
    with get_db() as conn:
        item = get_item(conn, item_id)
        if item is None:
            raise NotFoundError("Marking item not found")
        if item["status"] != "pending":
            raise RuleViolationError("Only pending marking items can be deleted")
        delete_item(conn, item_id)
    logger.info("marking.removed", item_id=item_id)
