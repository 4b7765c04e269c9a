"""Tests for edition endpoints."""

from conftest import iso_in


def _edition_body(**overrides):
    body = {
        "name": "STEM Olympiad 2027",
        "year": 2027,
        "enrollment_start": iso_in(days=-1),
        "enrollment_end": iso_in(days=20),
        "status": "OPEN",
    }
    body.update(overrides)
    return body


class TestCreateEdition:
    """Tests for POST /api/olympiad/editions."""

    def test_create_with_defaults(self, admin_client):
        """Edition gets configured levels and its four stages."""
        response = admin_client.post("/api/olympiad/editions", json=_edition_body())
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "OPEN"
        assert data["active_levels"] == ["Primary", "O-Level", "A-Level"]
        assert data["max_subjects_per_participant"] == 3

        detail = admin_client.get(f"/api/olympiad/editions/{data['id']}").json()
        assert [s["stage_name"] for s in detail["stages"]] == [
            "Beginner",
            "Theory",
            "Practical",
            "Final",
        ]

    def test_window_must_be_ordered(self, admin_client):
        """End of enrollment before its start is refused."""
        body = _edition_body(enrollment_start=iso_in(days=5), enrollment_end=iso_in(days=1))
        response = admin_client.post("/api/olympiad/editions", json=body)
        assert response.status_code == 400

    def test_requires_admin(self, client):
        """Anonymous callers cannot create editions."""
        response = client.post("/api/olympiad/editions", json=_edition_body())
        assert response.status_code == 401


class TestListEditions:
    """Tests for GET /api/olympiad/editions and /open."""

    def test_filters(self, admin_client, edition):
        """Status and year filters narrow the list."""
        admin_client.post("/api/olympiad/editions", json=_edition_body(status="DRAFT"))

        data = admin_client.get("/api/olympiad/editions").json()
        assert data["count"] == 2
        data = admin_client.get("/api/olympiad/editions", params={"status": "DRAFT"}).json()
        assert [e["year"] for e in data["editions"]] == [2027]
        data = admin_client.get("/api/olympiad/editions", params={"year": 2026}).json()
        assert [e["name"] for e in data["editions"]] == ["STEM Olympiad 2026"]

    def test_open_is_public(self, client, edition):
        """Open editions are listed without a session."""
        response = client.get("/api/olympiad/editions/open")
        assert response.status_code == 200
        assert [e["id"] for e in response.json()["editions"]] == [edition["id"]]

    def test_missing_edition(self, admin_client):
        """Unknown ids give 404."""
        assert admin_client.get("/api/olympiad/editions/missing").status_code == 404


class TestUpdateAndDelete:
    """Tests for PUT/DELETE /api/olympiad/editions/{id}."""

    def test_partial_update(self, admin_client, edition):
        """Only the fields sent change."""
        response = admin_client.put(
            f"/api/olympiad/editions/{edition['id']}", json={"theme": "Climate"}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["theme"] == "Climate"
        assert data["status"] == "OPEN"

    def test_stage_rules(self, admin_client, edition):
        """A stage's advancement rule can be changed."""
        response = admin_client.put(
            f"/api/olympiad/editions/{edition['id']}/stages/Theory",
            json={"top_percent": 40},
        )
        assert response.status_code == 200
        assert response.json()["top_percent"] == 40

    def test_stage_rule_out_of_range(self, admin_client, edition):
        """Percentages above 100 are refused."""
        response = admin_client.put(
            f"/api/olympiad/editions/{edition['id']}/stages/Theory",
            json={"top_percent": 140},
        )
        assert response.status_code == 400

    def test_delete_with_participants_refused(self, admin_client, edition, make_participant):
        """Editions with enrollments cannot be deleted."""
        make_participant()
        response = admin_client.delete(f"/api/olympiad/editions/{edition['id']}")
        assert response.status_code == 400
        assert "1 enrolled participants" in response.json()["detail"]

    def test_delete_empty(self, admin_client, edition):
        """An edition nobody joined can be deleted."""
        response = admin_client.delete(f"/api/olympiad/editions/{edition['id']}")
        assert response.status_code == 204
        assert admin_client.get(f"/api/olympiad/editions/{edition['id']}").status_code == 404
