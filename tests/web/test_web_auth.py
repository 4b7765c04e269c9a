"""Tests for admin and guardian authentication endpoints."""

from olympiad.auth.sessions import ADMIN_COOKIE, PARTICIPANT_COOKIE

from conftest import ADMIN_EMAIL, ADMIN_PASSWORD


class TestAdminAuth:
    """Tests for /api/admin/auth."""

    def test_login_sets_cookie(self, client, admin):
        """Valid credentials return the admin and set the session cookie."""
        response = client.post(
            "/api/admin/auth/login", json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD}
        )
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == ADMIN_EMAIL
        assert data["kind"] == "admin"
        assert "password_hash" not in data
        assert ADMIN_COOKIE in response.cookies

    def test_login_email_case_insensitive(self, client, admin):
        """Email is matched regardless of case."""
        response = client.post(
            "/api/admin/auth/login",
            json={"email": ADMIN_EMAIL.upper(), "password": ADMIN_PASSWORD},
        )
        assert response.status_code == 200

    def test_wrong_password(self, client, admin):
        """Bad credentials are rejected with a generic message."""
        response = client.post(
            "/api/admin/auth/login", json={"email": ADMIN_EMAIL, "password": "nope-nope"}
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Invalid email or password"

    def test_me_requires_session(self, client):
        """Without a cookie the admin area is closed."""
        response = client.get("/api/admin/auth/me")
        assert response.status_code == 401
        assert response.json()["detail"] == "Admin authentication required"

    def test_me_and_logout(self, admin_client):
        """Logged-in admin can read their profile until logging out."""
        response = admin_client.get("/api/admin/auth/me")
        assert response.status_code == 200
        assert response.json()["full_name"] == "Ada Admin"

        assert admin_client.post("/api/admin/auth/logout").status_code == 200
        assert admin_client.get("/api/admin/auth/me").status_code == 401

    def test_tampered_cookie(self, client, admin):
        """A forged cookie does not open a session."""
        response = client.get(
            "/api/admin/auth/me", headers={"Cookie": f"{ADMIN_COOKIE}=not-a-token"}
        )
        assert response.status_code == 401


class TestGuardianAuth:
    """Tests for /api/participant/auth."""

    def _signup(self, client, email="parent@example.org"):
        return client.post(
            "/api/participant/auth/signup",
            json={
                "email": email,
                "password": "parent-pass-1",
                "full_name": "Pat Parent",
                "relationship": "Mother",
            },
        )

    def test_signup_logs_in(self, client):
        """Signup creates the guardian and sets the participant cookie."""
        response = self._signup(client)
        assert response.status_code == 201
        data = response.json()
        assert data["kind"] == "guardian"
        assert data["relationship"] == "Mother"
        assert PARTICIPANT_COOKIE in response.cookies

        me = client.get("/api/participant/auth/me")
        assert me.status_code == 200
        assert me.json()["email"] == "parent@example.org"

    def test_duplicate_signup(self, client):
        """Registering the same email twice conflicts."""
        self._signup(client)
        response = self._signup(client, email="PARENT@example.org")
        assert response.status_code == 409

    def test_short_password(self, client):
        """Request validation rejects short passwords."""
        response = client.post(
            "/api/participant/auth/signup",
            json={"email": "p@example.org", "password": "short", "full_name": "P"},
        )
        assert response.status_code == 422

    def test_login_after_logout(self, client):
        """Guardian can log back in with their password."""
        self._signup(client)
        client.post("/api/participant/auth/logout")
        assert client.get("/api/participant/auth/me").status_code == 401

        response = client.post(
            "/api/participant/auth/login",
            json={"email": "parent@example.org", "password": "parent-pass-1"},
        )
        assert response.status_code == 200
        assert client.get("/api/participant/auth/me").status_code == 200

    def test_guardian_cookie_does_not_open_admin_area(self, client):
        """Sessions are bound to the kind of account."""
        self._signup(client)
        token = client.cookies.get(PARTICIPANT_COOKIE)
        response = client.get("/api/admin/auth/me", headers={"Cookie": f"{ADMIN_COOKIE}={token}"})
        assert response.status_code == 401

    def test_admin_cannot_log_in_as_guardian(self, client, admin):
        """Admin credentials are not valid on the guardian login."""
        response = client.post(
            "/api/participant/auth/login",
            json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
        )
        assert response.status_code == 401
