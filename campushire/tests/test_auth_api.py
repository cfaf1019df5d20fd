"""Registration, login and token handling"""

from campushire.core.security import generate_reset_token
from campushire.models.mongodb_models import User, UserRole

PNG = ("id.png", b"\x89PNG\r\n\x1a\nfake-image-bytes", "image/png")


class TestRegistration:

    async def test_student_registration_starts_unverified(self, client):
        response = await client.post(
            "/api/auth/register",
            data={"name": "Rafi", "email": "Rafi@Campus.edu", "password": "secret123", "role": "Student"},
            files={"id_card": PNG},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert "wait for admin verification" in body["message"]

        user = await User.find_one(User.email == "rafi@campus.edu")
        assert user.is_verified is False
        assert user.student_verification.document_uploaded is True
        assert user.profile.id_card.startswith("idcards/")

    async def test_id_card_is_required_for_students(self, client):
        response = await client.post(
            "/api/auth/register",
            data={"name": "Rafi", "email": "rafi@campus.edu", "password": "secret123", "role": "Student"},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "BRACU ID card is required for verification"

    async def test_duplicate_email(self, client, student):
        response = await client.post(
            "/api/auth/register",
            data={"name": "Copy", "email": student.email, "password": "secret123", "role": "Recruiter"},
        )

        assert response.status_code == 400
        assert response.json()["message"] == "User with this email already exists"

    async def test_rejects_disallowed_id_card_type(self, client):
        response = await client.post(
            "/api/auth/register",
            data={"name": "Rafi", "email": "rafi@campus.edu", "password": "secret123", "role": "Alumni"},
            files={"id_card": ("id.exe", b"MZ", "application/octet-stream")},
        )

        assert response.status_code == 400
        assert response.json()["message"].startswith("Invalid file type")


class TestLogin:

    async def test_login_returns_token(self, client, student):
        response = await client.post("/api/auth/login", json={"email": student.email, "password": "Password123"})

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["token"]
        assert data["user"]["role"] == "Student"

    async def test_wrong_password(self, client, student):
        response = await client.post("/api/auth/login", json={"email": student.email, "password": "nope"})

        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Invalid credentials"}

    async def test_unverified_account(self, client, make_user):
        user = await make_user(UserRole.ALUMNI, is_verified=False)

        response = await client.post("/api/auth/login", json={"email": user.email, "password": "Password123"})

        assert response.status_code == 401
        assert "pending verification" in response.json()["message"]

    async def test_blocked_account(self, client, make_user):
        user = await make_user(UserRole.STUDENT, is_blocked=True)

        response = await client.post("/api/auth/login", json={"email": user.email, "password": "Password123"})

        assert response.status_code == 401
        assert response.json()["message"] == "Account has been blocked. Please contact admin."

    async def test_validation_errors_are_400(self, client):
        response = await client.post("/api/auth/login", json={"email": "not-an-email"})

        assert response.status_code == 400
        assert response.json()["success"] is False


class TestTokens:

    async def test_me(self, client, recruiter, auth_headers):
        response = await client.get("/api/auth/me", headers=auth_headers(recruiter))

        assert response.status_code == 200
        assert response.json()["data"]["user"]["email"] == recruiter.email

    async def test_missing_token(self, client):
        response = await client.get("/api/auth/me")

        assert response.status_code == 401
        assert response.json()["message"] == "Not authorized, no valid token"

    async def test_garbage_token(self, client):
        response = await client.get("/api/auth/me", headers={"Authorization": "Bearer not.a.jwt"})

        assert response.status_code == 401

    async def test_blocked_user_token_is_refused(self, client, make_user, auth_headers):
        user = await make_user(UserRole.STUDENT, is_blocked=True)

        response = await client.get("/api/auth/me", headers=auth_headers(user))

        assert response.status_code == 401

    async def test_role_guard(self, client, student, auth_headers):
        response = await client.get("/api/admin/dashboard", headers=auth_headers(student))

        assert response.status_code == 403
        assert response.json()["message"] == "Access denied. Insufficient permissions."


class TestPasswordReset:

    async def test_unknown_email(self, client):
        response = await client.post("/api/auth/forgot-password", json={"email": "ghost@campus.edu"})

        assert response.status_code == 404

    async def test_reset_with_valid_token(self, client, student):
        token, token_hash, expires_at = generate_reset_token()
        student.password_reset_token = token_hash
        student.password_reset_expires = expires_at
        await student.save()

        response = await client.post("/api/auth/reset-password", json={"token": token, "password": "brandnew1"})
        assert response.status_code == 200

        login = await client.post("/api/auth/login", json={"email": student.email, "password": "brandnew1"})
        assert login.status_code == 200

    async def test_reset_with_unknown_token(self, client):
        response = await client.post("/api/auth/reset-password", json={"token": "abc", "password": "brandnew1"})

        assert response.status_code == 400
        assert response.json()["message"] == "Invalid or expired reset token"
