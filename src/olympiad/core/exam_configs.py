"""Exam configuration management."""

from __future__ import annotations

from typing import Any

import structlog

from olympiad.core.clock import normalize_instant
from olympiad.core.errors import NotFoundError, RuleViolationError
from olympiad.core.question_selection import difficulty_counts
from olympiad.core.stages import is_known_stage
from olympiad.db.database import get_db
from olympiad.db.editions_repository import get_edition
from olympiad.db.exams_repository import (
    count_config_sessions,
    delete_config as delete_config_row,
    get_config,
    insert_config,
    list_configs as list_config_rows,
    update_config as update_config_row,
)
from olympiad.db.questions_repository import count_active_candidates

logger = structlog.get_logger(__name__)

CONFIG_STATUSES = ("draft", "ready", "active", "completed", "cancelled")
UPDATABLE_FIELDS = ("status", "start_time", "end_time")
FLAG_DEFAULTS = {
    "randomize_questions": True,
    "randomize_options": True,
    "requires_supervision": False,
}


def create_config(values: dict[str, Any], admin_id: str) -> dict[str, Any]:
    """Create an exam configuration.

    Raises:
        NotFoundError: If the edition does not exist
        RuleViolationError: If the level is inactive, the stage unknown, the
            settings invalid or the bank holds too few questions
    """
    for name in ("edition_id", "name", "education_level", "subject", "stage"):
        if not values.get(name):
            raise RuleViolationError(f"Missing required field: {name}")
    total = values.get("total_questions") or 0
    if total < 1:
        raise RuleViolationError("total_questions must be at least 1")
    if (values.get("duration_minutes") or 0) < 1:
        raise RuleViolationError("duration_minutes must be at least 1")
    if (values.get("max_attempts") or 1) < 1:
        raise RuleViolationError("max_attempts must be at least 1")

    status = values.get("status") or "draft"
    if status not in CONFIG_STATUSES:
        raise RuleViolationError(f"Invalid status: {status}")

    record = dict(values)
    record["status"] = status
    record["max_attempts"] = values.get("max_attempts") or 1
    for flag, default in FLAG_DEFAULTS.items():
        if record.get(flag) is None:
            record[flag] = default
    record["questions_per_difficulty"] = difficulty_counts(
        total, values.get("questions_per_difficulty")
    )
    record["start_time"] = normalize_instant(values.get("start_time"), "start_time")
    record["end_time"] = normalize_instant(values.get("end_time"), "end_time")
    if record["start_time"] and record["end_time"] and record["end_time"] <= record["start_time"]:
        raise RuleViolationError("End time must be after start time")

    with get_db() as conn:
        edition = get_edition(conn, record["edition_id"])
        if edition is None:
            raise NotFoundError("Edition not found")
        if record["education_level"] not in edition["active_levels"]:
            raise RuleViolationError(
                f"Education level '{record['education_level']}' is not active for this edition"
            )
        if not is_known_stage(record["stage"]):
            raise RuleViolationError(f"Invalid stage: {record['stage']}")

        available = count_active_candidates(
            conn, record["subject"], record["education_level"], record["stage"]
        )
        if available < total:
            raise RuleViolationError(
                f"Not enough questions available. Found {available}, need {total}"
            )

        config_id = insert_config(conn, record, admin_id)
        config = get_config(conn, config_id)

    logger.info("exam_configs.created", config_id=config_id, subject=record["subject"])
    return config


def list_configs(filters: dict[str, Any]) -> list[dict[str, Any]]:
    with get_db() as conn:
        return list_config_rows(conn, filters)


def update_config(config_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    """Update status and/or time window of a configuration."""
    fields = {k: v for k, v in fields.items() if k in UPDATABLE_FIELDS and v is not None}
    if not fields:
        raise RuleViolationError("No fields to update")
    if "status" in fields and fields["status"] not in CONFIG_STATUSES:
        raise RuleViolationError(f"Invalid status: {fields['status']}")
    for name in ("start_time", "end_time"):
        if name in fields:
            fields[name] = normalize_instant(fields[name], name)

    with get_db() as conn:
        config = get_config(conn, config_id)
        if config is None:
            raise NotFoundError("Exam configuration not found")
        start = fields.get("start_time", config["start_time"])
        end = fields.get("end_time", config["end_time"])
        if start and end and end <= start:
            raise RuleViolationError("End time must be after start time")
        update_config_row(conn, config_id, fields)
        updated = get_config(conn, config_id)

    logger.info("exam_configs.updated", config_id=config_id, fields=sorted(fields))
    return updated


def delete_config(config_id: str) -> None:
    with get_db() as conn:
        if get_config(conn, config_id) is None:
            raise NotFoundError("Exam configuration not found")
        if count_config_sessions(conn, config_id):
            raise RuleViolationError("Cannot delete exam configuration with existing sessions")
        delete_config_row(conn, config_id)
    logger.info("exam_configs.deleted", config_id=config_id)
