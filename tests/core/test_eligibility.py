"""Tests for enrollment eligibility rules."""

from datetime import date

import pytest

from olympiad.core.eligibility import (
    calculate_age,
    check_age,
    check_eligibility,
    check_subjects,
    parse_date,
    requires_consent,
)
from olympiad.core.errors import RuleViolationError

TODAY = date(2026, 10, 19)


@pytest.fixture
def edition():
    return {
        "active_levels": ["Primary", "O-Level"],
        "active_subjects": {"Primary": ["Math", "Science"], "O-Level": ["Math", "Physics", "ICT"]},
        "age_rules": {"Primary": {"min": 9, "max": 15}, "O-Level": {"min": 11, "max": 18}},
        "max_subjects_per_participant": 2,
        "reference_date": None,
    }


class TestCalculateAge:
    def test_birthday_passed(self):
        assert calculate_age(date(2010, 3, 1), TODAY) == 16

    def test_birthday_not_yet(self):
        assert calculate_age(date(2010, 12, 1), TODAY) == 15

    def test_birthday_today(self):
        assert calculate_age(date(2010, 10, 19), TODAY) == 16


class TestParseDate:
    def test_date_and_datetime_strings(self):
        assert parse_date("2010-05-04") == date(2010, 5, 4)
        assert parse_date("2010-05-04T10:00:00Z") == date(2010, 5, 4)

    def test_empty_is_none(self):
        assert parse_date(None) is None
        assert parse_date("") is None

    def test_invalid_raises(self):
        with pytest.raises(RuleViolationError, match="Invalid date"):
            parse_date("04/05/2010")


class TestCheckAge:
    def test_within_range(self, edition):
        assert check_age(edition, "Primary", date(2014, 1, 1), TODAY) == 12

    def test_too_old_message_has_age_and_range(self, edition):
        with pytest.raises(RuleViolationError) as exc:
            check_age(edition, "Primary", date(2008, 1, 1), TODAY)
        assert "Age 18" in exc.value.message
        assert "9-15" in exc.value.message

    def test_reference_date_used_instead_of_today(self, edition):
        # 16 today, but only 15 on the reference date
        edition["reference_date"] = "2025-06-30"
        assert check_age(edition, "Primary", date(2010, 1, 1), TODAY) == 15

    def test_level_without_rule_accepts_any_age(self, edition):
        edition["age_rules"].pop("O-Level")
        assert check_age(edition, "O-Level", date(1990, 1, 1), TODAY) == 36


class TestCheckSubjects:
    def test_unknown_subject(self, edition):
        with pytest.raises(RuleViolationError, match="Biology"):
            check_subjects(edition, "O-Level", ["Math", "Biology"])

    def test_too_many_subjects(self, edition):
        with pytest.raises(RuleViolationError, match="At most 2"):
            check_subjects(edition, "O-Level", ["Math", "Physics", "ICT"])

    def test_empty_subjects_allowed(self, edition):
        check_subjects(edition, "O-Level", [])


class TestConsent:
    def test_minor_requires_consent(self):
        assert requires_consent(date(2010, 1, 1), TODAY) is True

    def test_adult_does_not(self):
        assert requires_consent(date(2008, 1, 1), TODAY) is False

    def test_unknown_birth_date_does_not(self):
        assert requires_consent(None, TODAY) is False


class TestCheckEligibility:
    def test_eligible(self, edition):
        check_eligibility(edition, "O-Level", ["Math"], "2010-01-01", True, TODAY)

    def test_inactive_level_checked_first(self, edition):
        with pytest.raises(RuleViolationError, match="not active"):
            check_eligibility(edition, "A-Level", ["Biology"], "1990-01-01", False, TODAY)

    def test_minor_without_consent(self, edition):
        with pytest.raises(RuleViolationError, match="consent"):
            check_eligibility(edition, "O-Level", ["Math"], "2010-01-01", False, TODAY)

    def test_adult_without_consent(self, edition):
        check_eligibility(edition, "O-Level", ["Math"], "2008-01-01", False, TODAY)
