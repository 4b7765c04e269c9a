"""Minor profiles managed by guardians."""

from __future__ import annotations

from typing import Any

import structlog

from olympiad.core.eligibility import parse_date
from olympiad.core.errors import NotFoundError, RuleViolationError
from olympiad.db.database import get_db
from olympiad.db.minors_repository import (
    count_minor_enrollments,
    delete_minor as delete_minor_row,
    get_minor as get_minor_row,
    insert_minor,
    list_minors as list_minor_rows,
    update_minor as update_minor_row,
)

logger = structlog.get_logger(__name__)


def _normalize(values: dict[str, Any]) -> dict[str, Any]:
    values = dict(values)
    if "full_name" in values:
        values["full_name"] = (values["full_name"] or "").strip()
        if not values["full_name"]:
            raise RuleViolationError("Full name is required")
    if values.get("date_of_birth") is not None:
        values["date_of_birth"] = parse_date(values["date_of_birth"]).isoformat()
    return values


def create_minor(guardian_id: str, values: dict[str, Any]) -> dict[str, Any]:
    if not values.get("full_name") or not values.get("date_of_birth"):
        raise RuleViolationError("Full name and date of birth are required")
    with get_db() as conn:
        minor = insert_minor(conn, guardian_id, _normalize(values))
    logger.info("minors.created", minor_id=minor["id"], guardian_id=guardian_id)
    return minor


def list_minors(guardian_id: str) -> list[dict[str, Any]]:
    with get_db() as conn:
        return list_minor_rows(conn, guardian_id)


def get_minor(guardian_id: str, minor_id: str) -> dict[str, Any]:
    with get_db() as conn:
        minor = get_minor_row(conn, minor_id, guardian_id)
    if minor is None:
        raise NotFoundError("Minor profile not found")
    return minor


def update_minor(guardian_id: str, minor_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    """Change only the provided fields of a guardian's minor."""
    if not fields:
        raise RuleViolationError("No fields to update")
    with get_db() as conn:
        if get_minor_row(conn, minor_id, guardian_id) is None:
            raise NotFoundError("Minor profile not found")
        update_minor_row(conn, minor_id, _normalize(fields))
        minor = get_minor_row(conn, minor_id, guardian_id)
    logger.info("minors.updated", minor_id=minor_id)
    return minor


def delete_minor(guardian_id: str, minor_id: str) -> None:
    """Delete a guardian's minor that has no enrollments."""
    with get_db() as conn:
        if get_minor_row(conn, minor_id, guardian_id) is None:
            raise NotFoundError("Minor profile not found")
        if count_minor_enrollments(conn, minor_id):
            raise RuleViolationError("Cannot delete a minor with existing enrollments")
        delete_minor_row(conn, minor_id)
    logger.info("minors.deleted", minor_id=minor_id)
