"""Tests for guardian exam endpoints."""

import pytest
from fastapi.testclient import TestClient

from olympiad.web.api import create_app


def _signup(client, email):
    response = client.post(
        "/api/participant/auth/signup",
        json={"email": email, "password": "parent-pass-1", "full_name": "Pat Parent"},
    )
    assert response.status_code == 201


@pytest.fixture
def enrolled(client, edition, exam_config):
    """Guardian client and the participant enrolled for their minor."""
    _signup(client, "parent@example.org")
    minor = client.post(
        "/api/participant/minors",
        json={"full_name": "Sam Parent", "date_of_birth": "2012-04-05"},
    ).json()
    response = client.post(
        "/api/participant/enrollments",
        json={
            "minor_profile_id": minor["id"],
            "edition_id": edition["id"],
            "education_level": "O-Level",
            "subjects": ["Math"],
        },
    )
    assert response.status_code == 201
    return client, response.json()


@pytest.fixture
def other_guardian(db):
    """Client signed in as a guardian with no minors."""
    with TestClient(create_app(db_path=db)) as other:
        _signup(other, "other@example.org")
        yield other


def _open(client, exam_config, participant):
    return client.post(
        "/api/participant/exams/sessions",
        json={"exam_config_id": exam_config["id"], "participant_id": participant["id"]},
    )


def _act(client, session_id, action, data=None):
    return client.put(
        "/api/participant/exams/sessions",
        json={"session_id": session_id, "action": action, "data": data or {}},
    )


class TestListExams:
    """Tests for GET /api/participant/exams."""

    def test_lists_available_exam(self, enrolled, exam_config):
        """The ready exam for the participant's stage and subject is offered."""
        client, participant = enrolled
        response = client.get(
            "/api/participant/exams", params={"participant_id": participant["id"]}
        )
        assert response.status_code == 200
        data = response.json()
        assert [e["id"] for e in data["exams"]] == [exam_config["id"]]
        assert data["exams"][0]["duration_minutes"] == 30
        assert data["sessions"] == []

    def test_other_guardians_participant(self, enrolled, other_guardian):
        """Another guardian's participant is not found."""
        _, participant = enrolled
        response = other_guardian.get(
            "/api/participant/exams", params={"participant_id": participant["id"]}
        )
        assert response.status_code == 404

    def test_requires_guardian(self, client, make_participant):
        """Anonymous callers are rejected."""
        response = client.get(
            "/api/participant/exams", params={"participant_id": make_participant()["id"]}
        )
        assert response.status_code == 401


class TestSitExam:
    """Tests for /api/participant/exams/sessions."""

    def test_full_attempt(self, enrolled, exam_config):
        """A guardian opens, answers and finishes their minor's exam."""
        client, participant = enrolled
        response = _open(client, exam_config, participant)
        assert response.status_code == 201
        created = response.json()
        session_id = created["session"]["id"]

        assert _act(client, session_id, "start").status_code == 200
        for question in created["questions"]:
            answer = "4" if question["question_type"] == "multiple_choice" else "Rayleigh"
            response = _act(
                client,
                session_id,
                "submit_answer",
                {"question_id": question["id"], "selected_answer": answer},
            )
            assert response.status_code == 200
        finished = _act(client, session_id, "finish").json()["session"]
        assert finished["status"] == "completed"
        assert finished["total_score"] == 4.0

        listing = client.get(
            "/api/participant/exams", params={"participant_id": participant["id"]}
        ).json()
        assert [s["id"] for s in listing["sessions"]] == [session_id]

    def test_resume_fetches_questions(self, enrolled, exam_config):
        """Questions come back in the drawn order, without answers."""
        client, participant = enrolled
        created = _open(client, exam_config, participant).json()
        session_id = created["session"]["id"]

        response = client.get(f"/api/participant/exams/sessions/{session_id}")
        assert response.status_code == 200
        data = response.json()
        assert [q["id"] for q in data["questions"]] == [q["id"] for q in created["questions"]]
        assert all("correct_answer" not in q for q in data["questions"])

    def test_admin_actions_refused(self, enrolled, exam_config):
        """Pausing and abandoning stay with admins."""
        client, participant = enrolled
        session_id = _open(client, exam_config, participant).json()["session"]["id"]
        _act(client, session_id, "start")
        assert _act(client, session_id, "pause").status_code == 400
        assert _act(client, session_id, "abandon").status_code == 400

    def test_other_guardian_cannot_open(self, enrolled, exam_config, other_guardian):
        """Sessions cannot be opened for someone else's participant."""
        _, participant = enrolled
        assert _open(other_guardian, exam_config, participant).status_code == 404

    def test_other_guardian_cannot_act(self, enrolled, exam_config, other_guardian):
        """Someone else's session is not found."""
        client, participant = enrolled
        session_id = _open(client, exam_config, participant).json()["session"]["id"]
        assert _act(other_guardian, session_id, "start").status_code == 404
        response = other_guardian.get(f"/api/participant/exams/sessions/{session_id}")
        assert response.status_code == 404

    def test_admin_enrolled_participant_out_of_reach(
        self, enrolled, exam_config, make_participant
    ):
        """Participants enrolled by admins belong to no guardian."""
        client, _ = enrolled
        assert _open(client, exam_config, make_participant()).status_code == 404
