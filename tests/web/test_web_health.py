"""Tests for the health endpoint."""

from olympiad import __version__
from olympiad.web.schemas import HealthResponse


class TestHealthEndpoint:
    """Tests for GET /health."""

    def test_health_returns_ok(self, client):
        """Health endpoint returns status ok."""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    def test_health_returns_version(self, client):
        """Health endpoint reports the package version."""
        data = client.get("/health").json()
        assert data["version"] == __version__

    def test_schema_default_version(self):
        """The response model defaults to the package version too."""
        assert HealthResponse().version == __version__

    def test_health_returns_timestamp(self, client):
        """Health endpoint returns an ISO timestamp."""
        data = client.get("/health").json()
        assert "T" in data["timestamp"]
