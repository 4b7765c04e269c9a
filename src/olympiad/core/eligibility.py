"""Enrollment eligibility checks.

Pure functions validating a prospective participant against an edition's
settings. Each check raises RuleViolationError with a message suitable for
the person filling the enrollment form.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from olympiad.core.errors import RuleViolationError

ADULT_AGE = 18


def parse_date(value: str | date | None) -> date | None:
    """Parse an ISO date or datetime string to a date."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00")).date()
    except ValueError:
        raise RuleViolationError(f"Invalid date: {value}") from None


def calculate_age(date_of_birth: date, on_date: date) -> int:
    """Exact age in whole years on a given date."""
    age = on_date.year - date_of_birth.year
    if (on_date.month, on_date.day) < (date_of_birth.month, date_of_birth.day):
        age -= 1
    return age


def check_education_level(edition: dict[str, Any], education_level: str) -> None:
    if education_level not in edition["active_levels"]:
        raise RuleViolationError(
            f"Education level '{education_level}' is not active for this edition"
        )


def check_age(
    edition: dict[str, Any],
    education_level: str,
    date_of_birth: date,
    today: date,
) -> int:
    """Check the age rule of the level on the edition's reference date.

    Returns:
        Age used for the check
    """
    reference = parse_date(edition.get("reference_date")) or today
    age = calculate_age(date_of_birth, reference)
    rule = edition["age_rules"].get(education_level)
    if rule is None:
        return age

    minimum = rule.get("min")
    maximum = rule.get("max")
    if (minimum is not None and age < minimum) or (maximum is not None and age > maximum):
        raise RuleViolationError(
            f"Age {age} is outside the allowed range {minimum}-{maximum} "
            f"for {education_level}"
        )
    return age


def check_subjects(
    edition: dict[str, Any], education_level: str, subjects: list[str]
) -> None:
    allowed = edition["active_subjects"].get(education_level, [])
    invalid = [s for s in subjects if s not in allowed]
    if invalid:
        raise RuleViolationError(
            f"Subjects not available for {education_level}: {', '.join(invalid)}"
        )

    maximum = edition["max_subjects_per_participant"]
    if len(subjects) > maximum:
        raise RuleViolationError(f"At most {maximum} subjects may be selected")


def requires_consent(date_of_birth: date | None, today: date) -> bool:
    """Whether a parent or guardian must consent (under 18 today)."""
    if date_of_birth is None:
        return False
    return calculate_age(date_of_birth, today) < ADULT_AGE


def check_eligibility(
    edition: dict[str, Any],
    education_level: str,
    subjects: list[str],
    date_of_birth: str | date | None,
    parent_consent: bool,
    today: date,
) -> None:
    """Run every eligibility check in enrollment order.

    Args:
        edition: Edition row with decoded JSON settings
        education_level: Requested level
        subjects: Requested subjects
        date_of_birth: Participant's birth date, if known
        parent_consent: Whether consent was recorded
        today: Current date

    Raises:
        RuleViolationError: On the first failed check
    """
    check_education_level(edition, education_level)

    dob = parse_date(date_of_birth)
    if dob is not None:
        check_age(edition, education_level, dob, today)

    check_subjects(edition, education_level, subjects)

    if requires_consent(dob, today) and not parent_consent:
        raise RuleViolationError(
            "Parent or guardian consent is required for participants under 18"
        )
