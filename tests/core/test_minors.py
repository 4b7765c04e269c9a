"""Tests for guardian-managed minor profiles."""

import pytest

from olympiad.core.accounts import signup_guardian
from olympiad.core.enrollment import enroll_minor
from olympiad.core.errors import NotFoundError, RuleViolationError
from olympiad.core.minors import create_minor, delete_minor, get_minor, list_minors, update_minor


@pytest.fixture
def guardian(db):
    return signup_guardian("parent@example.org", "parent-pass", "Pat Parent")


@pytest.fixture
def minor(guardian):
    return create_minor(
        guardian.id,
        {"full_name": "Sam Parent", "date_of_birth": "2012-04-05", "school_name": "Lake Primary"},
    )


def _guardian_dict(guardian):
    return {"id": guardian.id, "email": guardian.email, "full_name": guardian.full_name}


class TestMinorProfiles:
    def test_create_and_get(self, guardian, minor):
        fetched = get_minor(guardian.id, minor["id"])
        assert fetched["full_name"] == "Sam Parent"
        assert fetched["date_of_birth"] == "2012-04-05"

    def test_required_fields(self, guardian):
        with pytest.raises(RuleViolationError):
            create_minor(guardian.id, {"full_name": "No Birthday"})

    def test_list_own_only(self, guardian, minor):
        other = signup_guardian("other@example.org", "other-pass", "Other")
        create_minor(other.id, {"full_name": "Kid Other", "date_of_birth": "2013-01-01"})
        assert [m["id"] for m in list_minors(guardian.id)] == [minor["id"]]

    def test_other_guardian_gets_not_found(self, minor):
        other = signup_guardian("other@example.org", "other-pass", "Other")
        with pytest.raises(NotFoundError):
            get_minor(other.id, minor["id"])
        with pytest.raises(NotFoundError):
            delete_minor(other.id, minor["id"])

    def test_partial_update(self, guardian, minor):
        updated = update_minor(guardian.id, minor["id"], {"class_grade": "P6"})
        assert updated["class_grade"] == "P6"
        assert updated["school_name"] == "Lake Primary"

    def test_delete(self, guardian, minor):
        delete_minor(guardian.id, minor["id"])
        assert list_minors(guardian.id) == []


class TestEnrollMinor:
    def test_profile_fills_participant(self, edition, guardian, minor):
        participant = enroll_minor(
            _guardian_dict(guardian),
            minor["id"],
            {"edition_id": edition["id"], "education_level": "O-Level", "subjects": ["Math"]},
        )
        assert participant["first_name"] == "Sam"
        assert participant["last_name"] == "Parent"
        assert participant["date_of_birth"] == "2012-04-05"
        assert participant["parent_consent"] is True
        assert participant["consent_given_by"] == "Pat Parent"
        assert participant["minor_profile_id"] == minor["id"]
        assert participant["user_id"] == guardian.id

    def test_single_word_name(self, edition, guardian):
        minor = create_minor(guardian.id, {"full_name": "Akello", "date_of_birth": "2012-04-05"})
        participant = enroll_minor(
            _guardian_dict(guardian),
            minor["id"],
            {"edition_id": edition["id"], "education_level": "O-Level"},
        )
        assert participant["first_name"] == "Akello"
        assert participant["last_name"] == ""

    def test_two_minors_same_guardian(self, edition, guardian, minor):
        sibling = create_minor(guardian.id, {"full_name": "Alex Parent", "date_of_birth": "2013-02-02"})
        values = {"edition_id": edition["id"], "education_level": "O-Level"}
        enroll_minor(_guardian_dict(guardian), minor["id"], values)
        enroll_minor(_guardian_dict(guardian), sibling["id"], values)
        assert list_minors(guardian.id)[0]["enrollment_count"] == 1

    def test_same_minor_twice(self, edition, guardian, minor):
        values = {"edition_id": edition["id"], "education_level": "O-Level"}
        enroll_minor(_guardian_dict(guardian), minor["id"], values)
        with pytest.raises(RuleViolationError, match="already enrolled"):
            enroll_minor(_guardian_dict(guardian), minor["id"], values)

    def test_enrolled_minor_cannot_be_deleted(self, edition, guardian, minor):
        enroll_minor(
            _guardian_dict(guardian),
            minor["id"],
            {"edition_id": edition["id"], "education_level": "O-Level"},
        )
        with pytest.raises(RuleViolationError, match="enrollments"):
            delete_minor(guardian.id, minor["id"])

    def test_someone_elses_minor(self, edition, minor):
        other = signup_guardian("other@example.org", "other-pass", "Other")
        with pytest.raises(NotFoundError):
            enroll_minor(
                _guardian_dict(other),
                minor["id"],
                {"edition_id": edition["id"], "education_level": "O-Level"},
            )
