"""Tests for error translation."""

from fastapi.testclient import TestClient

from olympiad.core.errors import ConflictError
from olympiad.web.api import create_app


class TestDomainErrors:
    """Domain errors map to their HTTP status with a detail message."""

    def test_not_found(self, admin_client):
        """Missing records give 404."""
        response = admin_client.get("/api/olympiad/editions/missing")
        assert response.status_code == 404
        assert "detail" in response.json()

    def test_conflict(self, client):
        """A second account with the same email gives 409."""
        body = {"email": "parent@example.org", "password": "parent-pass-1", "full_name": "Pat"}
        assert client.post("/api/participant/auth/signup", json=body).status_code == 201
        response = client.post("/api/participant/auth/signup", json=body)
        assert response.status_code == 409

    def test_raised_in_custom_route(self, db):
        """Any route raising a domain error gets the same treatment."""
        app = create_app(db_path=db)

        @app.get("/boom-conflict")
        async def boom_conflict():
            raise ConflictError("Already there")

        with TestClient(app) as client:
            response = client.get("/boom-conflict")
        assert response.status_code == 409
        assert response.json() == {"detail": "Already there"}


class TestUnhandledErrors:
    """Unexpected failures become a generic 500."""

    def test_generic_message(self, db):
        """Internals are not leaked to the caller."""
        app = create_app(db_path=db)

        @app.get("/boom")
        async def boom():
            raise RuntimeError("secret internals")

        with TestClient(app, raise_server_exceptions=False) as client:
            response = client.get("/boom")
        assert response.status_code == 500
        assert response.json() == {"detail": "Internal server error"}
