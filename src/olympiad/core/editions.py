"""Olympiad edition lifecycle.

An edition is one yearly run of the competition. It owns the enrollment
window, the active levels and subjects, the age rules per level and the
advancement rules of its four stages.
"""

from __future__ import annotations

from typing import Any

import structlog

from olympiad.config import load_app_config
from olympiad.core.clock import normalize_instant, parse_instant
from olympiad.core.eligibility import parse_date
from olympiad.core.errors import NotFoundError, RuleViolationError
from olympiad.core.stages import STAGES, default_stage_rules, stage_number
from olympiad.db.database import check_database_status, get_db, initialize_schema, now_iso
from olympiad.db.editions_repository import (
    count_participants,
    delete_edition as delete_edition_row,
    get_edition,
    get_edition_statistics,
    get_stage,
    insert_edition,
    insert_stage,
    list_editions as list_edition_rows,
    list_open_editions as list_open_edition_rows,
    list_stages,
    update_edition as update_edition_row,
    update_stage,
)

logger = structlog.get_logger(__name__)

EDITION_STATUSES = ("DRAFT", "OPEN", "ACTIVE", "COMPLETED", "CANCELLED")
TERMINAL_STATUSES = ("COMPLETED", "CANCELLED")


def _check_window(start: str, end: str) -> None:
    if parse_instant(end, "enrollment_end") <= parse_instant(start, "enrollment_start"):
        raise RuleViolationError("Enrollment end must be after enrollment start")


def _check_settings(values: dict[str, Any]) -> None:
    levels = values.get("active_levels")
    if levels is not None and not levels:
        raise RuleViolationError("At least one education level must be active")
    maximum = values.get("max_subjects_per_participant")
    if maximum is not None and maximum < 1:
        raise RuleViolationError("Max subjects per participant must be at least 1")
    for level, rule in (values.get("age_rules") or {}).items():
        low, high = rule.get("min"), rule.get("max")
        if low is not None and high is not None and low > high:
            raise RuleViolationError(f"Age rule for {level} has min above max")


def create_edition(values: dict[str, Any], admin_id: str) -> dict[str, Any]:
    """Create an edition with its four stages.

    Missing level, subject and age settings are taken from configuration.
    The schema is created first if the database was never initialized.

    Args:
        values: Edition fields from the request
        admin_id: Creating admin

    Returns:
        The created edition with its stages
    """
    if not values.get("name") or not values.get("year"):
        raise RuleViolationError("Name and year are required")
    if not values.get("enrollment_start") or not values.get("enrollment_end"):
        raise RuleViolationError("Enrollment start and end are required")
    _check_window(values["enrollment_start"], values["enrollment_end"])

    status = values.get("status") or "DRAFT"
    if status not in EDITION_STATUSES:
        raise RuleViolationError(f"Invalid status: {status}")

    defaults = load_app_config().edition_defaults
    record = dict(values)
    record["status"] = status
    record["enrollment_start"] = normalize_instant(values["enrollment_start"], "enrollment_start")
    record["enrollment_end"] = normalize_instant(values["enrollment_end"], "enrollment_end")
    record["active_levels"] = values.get("active_levels") or list(defaults.active_levels)
    record["active_subjects"] = values.get("active_subjects") or dict(defaults.active_subjects)
    record["age_rules"] = values.get("age_rules") or dict(defaults.age_rules)
    record["max_subjects_per_participant"] = (
        values.get("max_subjects_per_participant") or defaults.max_subjects_per_participant
    )
    if values.get("reference_date"):
        record["reference_date"] = parse_date(values["reference_date"]).isoformat()
    _check_settings(record)

    if not check_database_status()["initialized"]:
        logger.info("editions.auto_initializing_schema")
        with get_db() as conn:
            initialize_schema(conn)

    stage_rules = default_stage_rules()
    with get_db() as conn:
        edition_id = insert_edition(conn, record, admin_id)
        for stage in STAGES:
            insert_stage(conn, edition_id, stage_number(stage), stage, stage_rules[stage])
        edition = get_edition(conn, edition_id)
        edition["stages"] = list_stages(conn, edition_id)

    logger.info("editions.created", edition_id=edition_id, name=record["name"])
    return edition


def list_editions(status: str | None = None, year: int | None = None) -> list[dict[str, Any]]:
    with get_db() as conn:
        return list_edition_rows(conn, status=status, year=year)


def list_open_editions() -> list[dict[str, Any]]:
    """Editions currently accepting enrollments."""
    with get_db() as conn:
        return list_open_edition_rows(conn, now_iso())


def get_edition_detail(edition_id: str) -> dict[str, Any]:
    """Edition with stages and statistics.

    Raises:
        NotFoundError: If the edition does not exist
    """
    with get_db() as conn:
        edition = get_edition(conn, edition_id)
        if edition is None:
            raise NotFoundError("Edition not found")
        edition["stages"] = list_stages(conn, edition_id)
        edition["statistics"] = get_edition_statistics(conn, edition_id)
    return edition


def update_edition(edition_id: str, fields: dict[str, Any]) -> dict[str, Any]:
    """Apply a partial update to an edition.

    Raises:
        NotFoundError: If the edition does not exist
        RuleViolationError: On an unknown status, a change away from a
            terminal status, or an inverted enrollment window
    """
    if not fields:
        raise RuleViolationError("No fields to update")

    with get_db() as conn:
        edition = get_edition(conn, edition_id)
        if edition is None:
            raise NotFoundError("Edition not found")

        new_status = fields.get("status")
        if new_status is not None:
            if new_status not in EDITION_STATUSES:
                raise RuleViolationError(f"Invalid status: {new_status}")
            if edition["status"] in TERMINAL_STATUSES and new_status != edition["status"]:
                raise RuleViolationError(
                    f"Edition is {edition['status']} and can no longer change status"
                )

        for name in ("enrollment_start", "enrollment_end"):
            if fields.get(name):
                fields[name] = normalize_instant(fields[name], name)
        if fields.get("reference_date"):
            fields["reference_date"] = parse_date(fields["reference_date"]).isoformat()
        _check_window(
            fields.get("enrollment_start") or edition["enrollment_start"],
            fields.get("enrollment_end") or edition["enrollment_end"],
        )
        _check_settings(fields)

        update_edition_row(conn, edition_id, fields)
        updated = get_edition(conn, edition_id)

    logger.info("editions.updated", edition_id=edition_id, fields=sorted(fields))
    return updated


def delete_edition(edition_id: str) -> None:
    """Delete an edition that has no participants.

    Raises:
        NotFoundError: If the edition does not exist
        RuleViolationError: If participants are enrolled
    """
    with get_db() as conn:
        if get_edition(conn, edition_id) is None:
            raise NotFoundError("Edition not found")
        enrolled = count_participants(conn, edition_id)
        if enrolled:
            raise RuleViolationError(
                f"Cannot delete edition with {enrolled} enrolled participants"
            )
        delete_edition_row(conn, edition_id)

    logger.info("editions.deleted", edition_id=edition_id)


def update_stage_rules(
    edition_id: str, stage_name: str, fields: dict[str, Any]
) -> dict[str, Any]:
    """Change the dates or advancement rules of one stage.

    Raises:
        NotFoundError: If the edition or stage does not exist
        RuleViolationError: On out-of-range rule values
    """
    if not fields:
        raise RuleViolationError("No fields to update")
    for name in ("pass_percentage", "top_percent"):
        value = fields.get(name)
        if value is not None and not 0 <= value <= 100:
            raise RuleViolationError(f"{name} must be between 0 and 100")
    if fields.get("pass_count") is not None and fields["pass_count"] < 1:
        raise RuleViolationError("pass_count must be at least 1")

    with get_db() as conn:
        if get_stage(conn, edition_id, stage_name) is None:
            raise NotFoundError("Stage not found")
        update_stage(conn, edition_id, stage_name, fields)
        stage = get_stage(conn, edition_id, stage_name)

    logger.info("editions.stage_updated", edition_id=edition_id, stage=stage_name)
    return stage
