"""
Tests for authentication: registration, login, logout, session management.
"""

from datetime import timedelta

from sqlalchemy import select, update

from civisure.auth import (
    hash_password,
    verify_password,
    sign_session_id,
    unsign_session_id,
    SESSION_COOKIE_NAME,
)
from civisure.models import User, UserSession
from civisure.timestamps import now_utc
from tests.conftest import TEST_PASSWORD, login_as


# =============================================================================
# PASSWORD HASHING
# =============================================================================

class TestPasswordHashing:
    def test_hash_password_records_iterations_salt_and_hash(self):
        """Hashed password should be in iterations$salt$hash format."""
        result = hash_password("mypassword", iterations=1000)
        iterations, salt, pwd_hash = result.split("$")
        assert iterations == "1000"
        assert len(salt) == 32  # 16 bytes = 32 hex chars
        assert len(pwd_hash) == 64  # SHA-256 = 64 hex chars

    def test_hash_password_produces_unique_salts(self):
        """Two hashes of the same password should have different salts."""
        hash1 = hash_password("samepassword", iterations=1000)
        hash2 = hash_password("samepassword", iterations=1000)
        assert hash1 != hash2

    def test_verify_password_correct(self):
        hashed = hash_password("correct_password", iterations=1000)
        assert verify_password("correct_password", hashed) is True

    def test_verify_password_incorrect(self):
        hashed = hash_password("correct_password", iterations=1000)
        assert verify_password("wrong_password", hashed) is False

    def test_verify_password_malformed_hash(self):
        """Malformed hash string should not crash, just return False."""
        assert verify_password("anything", "not-a-valid-hash") is False
        assert verify_password("anything", "") is False
        assert verify_password("anything", "abc$salt$hash") is False


# =============================================================================
# SESSION COOKIES
# =============================================================================

class TestSessionCookie:
    def test_sign_and_unsign_roundtrip(self):
        token = sign_session_id("abc123")
        assert unsign_session_id(token) == "abc123"

    def test_tampered_cookie_rejected(self):
        token = sign_session_id("abc123")
        assert unsign_session_id(token + "tampered") is None

    def test_garbage_cookie_rejected(self):
        assert unsign_session_id("not-a-valid-token-at-all") is None


# =============================================================================
# REGISTRATION
# =============================================================================

class TestRegistration:
    async def test_register_creates_user(self, client, db):
        """Registration stores a citizen account with a hashed password."""
        response = await client.post("/api/auth/register", json={
            "email": "New.User@Example.com",
            "password": "SecurePass123",
            "fullName": "New User",
            "phone": "0821234567",
        })
        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Registration successful"

        user = await db.get(User, body["user_id"])
        assert user.email == "new.user@example.com"
        assert user.role == "user"
        assert user.password_hash != "SecurePass123"

    async def test_register_accepts_snake_case_fields(self, client):
        response = await client.post("/api/auth/register", json={
            "email": "snake@example.com",
            "password": "SecurePass123",
            "full_name": "Snake Case",
        })
        assert response.status_code == 201

    async def test_register_duplicate_email_conflict(self, client, test_user):
        response = await client.post("/api/auth/register", json={
            "email": "testuser@example.com",
            "password": "SecurePass123",
            "fullName": "Duplicate",
        })
        assert response.status_code == 409
        assert response.json()["success"] is False

    async def test_register_short_password_rejected(self, client):
        response = await client.post("/api/auth/register", json={
            "email": "short@example.com",
            "password": "short",
            "fullName": "Short Password",
        })
        assert response.status_code == 400

    async def test_register_missing_fields_rejected(self, client):
        response = await client.post("/api/auth/register", json={"email": "x@example.com"})
        assert response.status_code == 400
        assert response.json()["success"] is False

    async def test_register_malformed_email_rejected(self, client):
        response = await client.post("/api/auth/register", json={
            "email": "not-an-email",
            "password": "SecurePass123",
            "fullName": "Bad Email",
        })
        assert response.status_code == 400


# =============================================================================
# LOGIN / LOGOUT
# =============================================================================

class TestLogin:
    async def test_login_sets_cookie_and_returns_user(self, client, test_user, db):
        response = await client.post("/api/auth/login", json={
            "email": "testuser@example.com",
            "password": TEST_PASSWORD,
        })
        assert response.status_code == 200
        body = response.json()
        assert body["user"] == {
            "id": test_user.id,
            "email": "testuser@example.com",
            "full_name": "Test User",
            "role": "user",
        }
        assert SESSION_COOKIE_NAME in response.cookies

        sessions = (await db.execute(select(UserSession))).scalars().all()
        assert len(sessions) == 1
        assert sessions[0].user_id == test_user.id

    async def test_login_stamps_last_login(self, client, test_user, db):
        await login_as(client, test_user.email)
        await db.refresh(test_user)
        assert test_user.last_login is not None

    async def test_wrong_password_and_unknown_email_look_the_same(self, client, test_user):
        wrong = await client.post("/api/auth/login", json={
            "email": "testuser@example.com", "password": "WrongPassword1",
        })
        unknown = await client.post("/api/auth/login", json={
            "email": "nobody@example.com", "password": "WrongPassword1",
        })
        assert wrong.status_code == unknown.status_code == 401
        assert wrong.json() == unknown.json() == {"success": False, "message": "Invalid credentials"}

    async def test_login_missing_password(self, client):
        response = await client.post("/api/auth/login", json={"email": "testuser@example.com"})
        assert response.status_code == 400

    async def test_login_purges_expired_sessions(self, client, test_user, admin_user, db):
        """Sessions nobody presents again are removed on the next login."""
        past = now_utc() - timedelta(days=2)
        db.add(UserSession(id="abandoned", user_id=admin_user.id, created_at=past, expires_at=past))
        db.add(UserSession(
            id="still-valid", user_id=admin_user.id, created_at=now_utc(),
            expires_at=now_utc() + timedelta(hours=1),
        ))
        await db.commit()

        await login_as(client, test_user.email)

        ids = set((await db.execute(select(UserSession.id))).scalars().all())
        assert "abandoned" not in ids
        assert "still-valid" in ids
        assert len(ids) == 2


class TestSessionCheck:
    async def test_check_without_session(self, client):
        response = await client.get("/api/auth/check")
        assert response.status_code == 200
        assert response.json() == {"success": True, "authenticated": False}

    async def test_check_with_session(self, auth_client, test_user):
        response = await auth_client.get("/api/auth/check")
        body = response.json()
        assert body["authenticated"] is True
        assert body["user"]["id"] == test_user.id
        assert body["user"]["role"] == "user"

    async def test_expired_session_is_treated_as_absent(self, auth_client, db):
        """An expired session row is ignored and removed."""
        await db.execute(update(UserSession).values(expires_at=now_utc() - timedelta(minutes=1)))
        await db.commit()

        response = await auth_client.get("/api/auth/check")
        assert response.json()["authenticated"] is False
        remaining = (await db.execute(select(UserSession))).scalars().all()
        assert remaining == []

    async def test_forged_cookie_is_ignored(self, client, test_user):
        client.cookies.set(SESSION_COOKIE_NAME, sign_session_id("made-up-session-id"))
        response = await client.get("/api/auth/check")
        assert response.json()["authenticated"] is False


class TestLogout:
    async def test_logout_deletes_session(self, auth_client, db):
        response = await auth_client.post("/api/auth/logout")
        assert response.status_code == 200
        assert response.json()["message"] == "Logout successful"

        remaining = (await db.execute(select(UserSession))).scalars().all()
        assert remaining == []

    async def test_logout_without_session_succeeds(self, client):
        """Logout is idempotent."""
        first = await client.post("/api/auth/logout")
        second = await client.post("/api/auth/logout")
        assert first.status_code == second.status_code == 200


# =============================================================================
# AUTHORIZATION GATES
# =============================================================================

class TestAuthorizationGates:
    async def test_protected_route_requires_login(self, client):
        response = await client.get("/api/sos/user/history")
        assert response.status_code == 401
        assert response.json()["success"] is False

    async def test_admin_route_forbidden_for_citizen(self, auth_client):
        response = await auth_client.get("/api/admin/dashboard")
        assert response.status_code == 403
        assert response.json()["message"] == "Admin access required"

    async def test_admin_route_forbidden_without_session(self, client):
        response = await client.get("/api/admin/dashboard")
        assert response.status_code == 403

    async def test_role_is_read_from_the_current_user(self, auth_client, test_user, db):
        """Promoting a logged-in user takes effect on their next request."""
        await db.execute(update(User).where(User.id == test_user.id).values(role="admin"))
        await db.commit()

        response = await auth_client.get("/api/admin/dashboard")
        assert response.status_code == 200
