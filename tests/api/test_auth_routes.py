"""
HTTP-level tests: every auth route through create_app("testing"), with the
mail sender and the Google validator replaced by mocks.
"""
from datetime import timedelta

import pytest

from models import storage
from models.user import User
from services.exceptions import EmailSendError, GoogleTokenError
from services.google_auth import GoogleIdentity
from utils.security import utcnow

API = "/api/v1/auth"


@pytest.fixture
def app(email_service, google_validator):
    from api import create_app

    app = create_app("testing", email_service=email_service, google_validator=google_validator)
    yield app
    storage.close()
    storage.drop_all()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def register(client, email_service):
    """Register through the API and return the raw verification token that was mailed."""

    def _register(email="user@test.com", username="testuser", password="Password123!"):
        response = client.post(f"{API}/register", json={"email": email, "username": username, "password": password})
        assert response.status_code == 200
        return email_service.send_verification_email.call_args.args[2]

    return _register


@pytest.fixture
def verified_login(client, register):
    """Register, verify and log in; returns the token pair JSON."""

    def _verified_login(email="user@test.com", password="Password123!"):
        token = register(email=email, password=password)
        assert client.get(f"{API}/verify-email", query_string={"token": token}).status_code == 200
        response = client.post(f"{API}/login", json={"email": email, "password": password})
        assert response.status_code == 200
        return response.get_json()

    return _verified_login


def bearer(tokens):
    return {"Authorization": f"Bearer {tokens['access_token']}"}


class TestRegisterRoute:
    def test_register(self, client, email_service):
        response = client.post(f"{API}/register", json={"email": "a@b.com", "username": "a", "password": "P1!"})

        assert response.status_code == 200
        assert response.get_json() == {"message": "Registration successful. Please check your email."}
        email_service.send_verification_email.assert_called_once()
        assert storage.find_user_by_email("a@b.com").email_verified is False

    def test_duplicate_email(self, client, register):
        register(email="a@b.com")
        response = client.post(f"{API}/register", json={"email": "A@B.com ", "username": "x", "password": "P1!"})

        assert response.status_code == 400
        body = response.get_json()
        assert body["error"] == "VALIDATION_ERROR"
        assert body["details"] == {"email": ["This Email Already Registered."]}

    def test_concurrent_duplicate_hits_unique_constraint(self, client, email_service, register, monkeypatch):
        """A second registration that slips past the lookup is stopped by the unique index."""
        register(email="a@b.com")
        monkeypatch.setattr(storage, "find_user_by_email", lambda email: None)

        response = client.post(f"{API}/register", json={"email": "a@b.com", "username": "b", "password": "P1!"})

        assert response.status_code == 409
        assert response.get_json() == {"error": "CONFLICT", "message": "Unique constraint violated.", "status": 409}
        assert storage.count(User) == 1
        assert email_service.send_verification_email.call_count == 1

    def test_mail_failure_still_registers(self, client, email_service):
        email_service.send_verification_email.side_effect = EmailSendError("a@b.com")

        response = client.post(f"{API}/register", json={"email": "a@b.com", "username": "a", "password": "P1!"})

        assert response.status_code == 200
        assert "couldn't send the verification email" in response.get_json()["message"]
        assert storage.find_user_by_email("a@b.com") is not None

    def test_invalid_body(self, client):
        response = client.post(f"{API}/register", json={"email": "not-an-email", "username": ""})

        assert response.status_code == 422
        details = response.get_json()["details"]
        assert {"email", "username", "password"} <= set(details)


class TestLoginRoute:
    def test_unverified_user_is_forbidden(self, client, register):
        register()
        response = client.post(f"{API}/login", json={"email": "user@test.com", "password": "Password123!"})
        assert response.status_code == 403
        assert response.get_json()["message"] == "Email not verified"

    def test_wrong_password(self, client, verified_login):
        verified_login()
        response = client.post(f"{API}/login", json={"email": "user@test.com", "password": "nope"})
        assert response.status_code == 401
        assert response.get_json() == {"error": "UNAUTHORIZED", "message": "Invalid credentials", "status": 401}

    def test_login_and_me(self, client, verified_login):
        tokens = verified_login()
        assert set(tokens) == {"access_token", "refresh_token", "expires_at"}

        response = client.get("/api/v1/users/me", headers=bearer(tokens))

        assert response.status_code == 200
        data = response.get_json()["data"]
        assert data["email"] == "user@test.com"
        assert data["email_verified"] is True
        assert data["roles"] == ["User"]
        assert "password_hash" not in data


class TestVerifyEmailRoute:
    def test_token_is_single_use(self, client, register):
        token = register()
        first = client.get(f"{API}/verify-email", query_string={"token": token})
        second = client.get(f"{API}/verify-email", query_string={"token": token})

        assert first.status_code == 200
        assert second.status_code == 400
        assert second.get_json()["message"] == "Invalid or expired token."

    def test_missing_token(self, client):
        assert client.get(f"{API}/verify-email").status_code == 400


class TestRefreshRoute:
    def test_rotation(self, client, verified_login):
        tokens = verified_login()

        response = client.post(f"{API}/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert response.status_code == 200
        rotated = response.get_json()
        assert rotated["refresh_token"] != tokens["refresh_token"]

        replay = client.post(f"{API}/refresh", json={"refresh_token": tokens["refresh_token"]})
        assert replay.status_code == 400
        assert replay.get_json()["message"] == "Invalid refresh token"

    def test_missing_field(self, client):
        assert client.post(f"{API}/refresh", json={}).status_code == 422


class TestRevokeAndLogoutRoutes:
    def test_requires_bearer_token(self, client):
        assert client.post(f"{API}/revoke", json={"refresh_token": "x"}).status_code == 401
        assert client.post(f"{API}/logout", json={"refresh_token": "x"}).status_code == 401

    def test_rejects_bad_bearer_token(self, client):
        response = client.post(f"{API}/logout", json={"refresh_token": "x"}, headers={"Authorization": "Bearer junk"})
        assert response.status_code == 401

    def test_revoke_is_idempotent(self, client, verified_login):
        tokens = verified_login()
        body = {"refresh_token": tokens["refresh_token"]}

        assert client.post(f"{API}/revoke", json=body, headers=bearer(tokens)).status_code == 204
        assert client.post(f"{API}/revoke", json=body, headers=bearer(tokens)).status_code == 204
        assert client.post(f"{API}/refresh", json=body).status_code == 400

    def test_revoke_unknown_token(self, client, verified_login):
        tokens = verified_login()
        response = client.post(f"{API}/revoke", json={"refresh_token": "nope"}, headers=bearer(tokens))
        assert response.status_code == 404
        assert response.get_json()["message"] == "Refresh token not found"

    def test_logout_twice_is_rejected(self, client, verified_login):
        tokens = verified_login()
        body = {"refresh_token": tokens["refresh_token"]}

        assert client.post(f"{API}/logout", json=body, headers=bearer(tokens)).status_code == 204
        second = client.post(f"{API}/logout", json=body, headers=bearer(tokens))
        assert second.status_code == 400
        assert second.get_json()["message"] == "Invalid refresh token"

    def test_cannot_revoke_someone_elses_token(self, client, verified_login):
        alice = verified_login(email="alice@test.com")
        bob = verified_login(email="bob@test.com")

        response = client.post(f"{API}/revoke", json={"refresh_token": alice["refresh_token"]}, headers=bearer(bob))

        assert response.status_code == 404
        assert client.post(f"{API}/refresh", json={"refresh_token": alice["refresh_token"]}).status_code == 200


class TestPasswordResetRoutes:
    def test_unknown_email_looks_like_success(self, client, email_service):
        response = client.post(f"{API}/forgot-password", json={"email": "nobody@test.com"})
        assert response.status_code == 200
        assert response.get_json() == {"message": "If email exists, reset link sent"}
        email_service.send_password_reset_email.assert_not_called()

    def test_forgot_then_reset_then_login(self, client, email_service, verified_login):
        verified_login()
        # registration stamped no cooldown, so the first reset request goes out
        assert client.post(f"{API}/forgot-password", json={"email": "user@test.com"}).status_code == 200
        reset_token = email_service.send_password_reset_email.call_args.args[2]

        response = client.post(f"{API}/reset-password", json={"token": reset_token, "new_password": "Fresh1!"})
        assert response.status_code == 200
        assert response.get_json() == {"message": "Password reset successfully"}

        old = client.post(f"{API}/login", json={"email": "user@test.com", "password": "Password123!"})
        new = client.post(f"{API}/login", json={"email": "user@test.com", "password": "Fresh1!"})
        assert old.status_code == 401
        assert new.status_code == 200

        reuse = client.post(f"{API}/reset-password", json={"token": reset_token, "new_password": "Again1!"})
        assert reuse.status_code == 400

    def test_cooldown_returns_429_with_retry_after(self, client, register):
        register()
        assert client.post(f"{API}/forgot-password", json={"email": "user@test.com"}).status_code == 200

        response = client.post(f"{API}/forgot-password", json={"email": "user@test.com"})

        assert response.status_code == 429
        body = response.get_json()
        assert body["error"] == "RATE_LIMITED"
        seconds = body["details"]["retry_after_seconds"]
        assert 0 < seconds <= 300
        assert response.headers["Retry-After"] == str(seconds)
        assert body["message"] == f"Please wait {seconds} seconds before requesting another email."

    def test_mail_failure_is_500_and_keeps_no_cooldown(self, client, email_service, register):
        register()
        email_service.send_password_reset_email.side_effect = EmailSendError("user@test.com")

        response = client.post(f"{API}/forgot-password", json={"email": "user@test.com"})

        assert response.status_code == 500
        assert response.get_json()["error"] == "INTERNAL_ERROR"
        assert storage.find_user_by_email("user@test.com").last_security_email_sent_at is None


class TestResendVerificationRoute:
    def test_resend_then_verify(self, client, email_service, register):
        first_token = register()

        response = client.post(f"{API}/resend-verification", json={"email": "user@test.com"})

        assert response.status_code == 200
        second_token = email_service.send_verification_email.call_args.args[2]
        assert second_token != first_token
        assert client.get(f"{API}/verify-email", query_string={"token": first_token}).status_code == 400
        assert client.get(f"{API}/verify-email", query_string={"token": second_token}).status_code == 200

    def test_second_resend_is_rate_limited(self, client, register):
        register()
        client.post(f"{API}/resend-verification", json={"email": "user@test.com"})
        response = client.post(f"{API}/resend-verification", json={"email": "user@test.com"})
        assert response.status_code == 429

    def test_cooldown_expires(self, client, email_service, register):
        register()
        user = storage.find_user_by_email("user@test.com")
        user.last_security_email_sent_at = utcnow() - timedelta(minutes=5, seconds=1)
        storage.save()

        response = client.post(f"{API}/resend-verification", json={"email": "user@test.com"})

        assert response.status_code == 200
        assert email_service.send_verification_email.call_count == 2


class TestGoogleLoginRoute:
    def test_creates_account(self, client, google_validator):
        google_validator.validate.return_value = GoogleIdentity(subject="s", email="g@gmail.com", name="G User")

        response = client.post(f"{API}/auth/google-login", json={"id_token": "google-token"})

        assert response.status_code == 200
        tokens = response.get_json()
        me = client.get("/api/v1/users/me", headers=bearer(tokens)).get_json()["data"]
        assert me["email"] == "g@gmail.com"
        assert me["email_verified"] is True
        assert me["roles"] == ["User"]

    def test_invalid_token(self, client, google_validator):
        google_validator.validate.side_effect = GoogleTokenError("bad")
        response = client.post(f"{API}/auth/google-login", json={"id_token": "forged"})
        assert response.status_code == 401


class TestMiscRoutes:
    def test_health(self, client):
        assert client.get("/api/v1/health").get_json()["status"] == "ok"

    def test_me_for_deleted_user(self, client, verified_login):
        tokens = verified_login()
        storage.get_session().delete(storage.find_user_by_email("user@test.com"))
        storage.save()

        response = client.get("/api/v1/users/me", headers=bearer(tokens))

        assert response.status_code == 404
        assert response.get_json()["message"] == "User Not Exist"

    def test_unknown_route(self, client):
        response = client.get("/api/v1/nope")
        assert response.status_code == 404
        assert response.get_json()["error"] == "NOT_FOUND"

    def test_users_are_isolated_between_apps(self, client):
        assert storage.count(User) == 0
