"""Shared fixtures.

Every test that touches storage runs against a fresh SQLite file inside
tmp_path, with the working directory moved there so the configuration file
and database never leak between tests.
"""

import random
from datetime import date, datetime, timedelta, timezone
from itertools import count

import pytest
from fastapi.testclient import TestClient

from olympiad.config import clear_config_cache
from olympiad.core.accounts import create_admin
from olympiad.core.editions import create_edition
from olympiad.core.enrollment import enroll_participant
from olympiad.core.exam_configs import create_config
from olympiad.core.exam_sessions import apply_session_action, create_session
from olympiad.core.questions import create_question
from olympiad.db.database import init_db
from olympiad.web.api import create_app

ADMIN_EMAIL = "admin@example.org"
ADMIN_PASSWORD = "admin-pass-1"

TEST_CONFIG = """\
database:
  path: db/test.db
auth:
  jwt_secret: test-secret
  bcrypt_rounds: 4
"""


def dob_for_age(age: int) -> str:
    """Birth date giving exactly ``age`` years today."""
    return date(date.today().year - age, 1, 1).isoformat()


def iso_in(**delta) -> str:
    return (datetime.now(timezone.utc) + timedelta(**delta)).isoformat()


@pytest.fixture
def db(tmp_path, monkeypatch):
    """Fresh database and config in an isolated working directory."""
    monkeypatch.chdir(tmp_path)
    for name in ("OLYMPIAD_DB_PATH", "JWT_SECRET", "OLYMPIAD_COOKIE_SECURE"):
        monkeypatch.delenv(name, raising=False)

    config_dir = tmp_path / "data" / "config"
    config_dir.mkdir(parents=True)
    (config_dir / "olympiad_config_v1.yaml").write_text(TEST_CONFIG, encoding="utf-8")
    clear_config_cache()

    db_path = tmp_path / "db" / "test.db"
    init_db(db_path)
    yield db_path
    clear_config_cache()


@pytest.fixture
def admin(db):
    return create_admin(ADMIN_EMAIL, ADMIN_PASSWORD, "Ada Admin")


@pytest.fixture
def edition(admin):
    """Edition open for enrollment, with default levels, subjects and rules."""
    return create_edition(
        {
            "name": "STEM Olympiad 2026",
            "year": 2026,
            "enrollment_start": iso_in(days=-1),
            "enrollment_end": iso_in(days=30),
            "status": "OPEN",
        },
        admin_id=admin.id,
    )


@pytest.fixture
def make_participant(edition):
    """Factory enrolling O-Level Math participants in the open edition."""
    numbers = count(1)

    def _make(**overrides):
        n = next(numbers)
        values = {
            "edition_id": edition["id"],
            "first_name": f"Student{n}",
            "last_name": "Okello",
            "email": f"student{n}@example.org",
            "date_of_birth": dob_for_age(16),
            "education_level": "O-Level",
            "subjects": ["Math"],
            "parent_consent": True,
            "consent_given_by": "Parent",
        }
        values.update(overrides)
        return enroll_participant(values)

    return _make


@pytest.fixture
def make_question(admin):
    """Factory adding O-Level Math Beginner questions to the bank."""

    def _make(**overrides):
        values = {
            "question_text": "What is 2 + 2?",
            "question_type": "multiple_choice",
            "difficulty": "easy",
            "subject": "Math",
            "education_level": "O-Level",
            "stage": "Beginner",
            "options": ["2", "3", "4", "5"],
            "correct_answer": "4",
            "points_value": 1.0,
        }
        values.update(overrides)
        return create_question(values, admin_id=admin.id)

    return _make


@pytest.fixture
def client(db):
    """Test client bound to the fresh database (no session)."""
    with TestClient(create_app(db_path=db)) as test_client:
        yield test_client


@pytest.fixture
def admin_client(client, admin):
    """Test client logged in as the admin."""
    response = client.post(
        "/api/admin/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
    )
    assert response.status_code == 200
    return client


@pytest.fixture
def exam_config(admin, edition, make_question):
    """Ready Beginner Math exam: four 1-point multiple choice questions and
    one 2-point short answer, all of which are drawn."""
    for _ in range(4):
        make_question()
    make_question(
        question_text="Explain why the sky looks blue.",
        question_type="short_answer",
        difficulty="medium",
        options=None,
        correct_answer="Rayleigh scattering",
        points_value=2.0,
    )
    return create_config(
        {
            "edition_id": edition["id"],
            "name": "Beginner Math",
            "education_level": "O-Level",
            "subject": "Math",
            "stage": "Beginner",
            "total_questions": 5,
            "duration_minutes": 30,
            "status": "ready",
        },
        admin_id=admin.id,
    )


@pytest.fixture
def sit_exam(exam_config):
    """Factory running a participant through the whole exam.

    ``correct`` multiple choice answers are right, the rest wrong; the short
    answer is always given and left for marking.
    """

    def _sit(participant, correct=4):
        created = create_session(exam_config["id"], participant["id"], rng=random.Random(7))
        session_id = created["session"]["id"]
        apply_session_action(session_id, "start")
        right = 0
        for question in created["questions"]:
            if question["question_type"] == "multiple_choice":
                answer = "4" if right < correct else "2"
                right += 1
            else:
                answer = "Light scatters off air molecules"
            apply_session_action(
                session_id,
                "submit_answer",
                {"question_id": question["id"], "selected_answer": answer},
            )
        return apply_session_action(session_id, "finish")

    return _sit
