# Overview: Pytest coverage for sign-up, sign-in, sign-out and session timeouts.

"""
Authentication Tests

SECURITY TESTS: passwords are bcrypt-hashed and strength-checked, tokens are
stored hashed, and sessions expire on absolute and idle timeouts.
"""

from datetime import timedelta

import pytest

from utang.models import SessionToken, User
from utang.services.auth_service import (
    PasswordValidationError,
    authenticate,
    create_user,
    validate_password_strength,
)
from utang.services.session_service import (
    SESSION_IDLE_TIMEOUT,
    create_session,
    hash_token,
    revoke_session,
    validate_session,
)
from utang.time_utils import utcnow
from utang.validation import ConflictError, ValidationError
from conftest import DEFAULT_PASSWORD, auth_headers


class TestPasswordStrength:
    @pytest.mark.parametrize("password", ["Short1!", "alllower1!", "ALLUPPER1!", "NoDigits!!", "NoSpecial12"])
    def test_weak_passwords_rejected(self, password):
        with pytest.raises(PasswordValidationError):
            validate_password_strength(password)

    def test_strong_password_accepted(self):
        validate_password_strength(DEFAULT_PASSWORD)


class TestAuthService:
    def test_create_user_hashes_password(self, db_session):
        user = create_user(name="Nena", email="  Nena@Example.com ", password=DEFAULT_PASSWORD)
        assert user.email == "nena@example.com"
        assert user.password_hash != DEFAULT_PASSWORD
        assert user.password_hash.startswith("$2")

    def test_duplicate_email_conflicts(self, db_session, user_one):
        with pytest.raises(ConflictError):
            create_user(name="Again", email=user_one.email.upper(), password=DEFAULT_PASSWORD)

    def test_invalid_email_rejected(self, db_session):
        with pytest.raises(ValidationError):
            create_user(name="Nena", email="not-an-email", password=DEFAULT_PASSWORD)

    @pytest.mark.parametrize("overrides", [{"email": 5}, {"password": 12345678}, {"name": ["Nena"]}, {"image": 1}])
    def test_non_string_fields_rejected(self, db_session, overrides):
        fields = {"name": "Nena", "email": "nena@example.com", "password": DEFAULT_PASSWORD, **overrides}
        with pytest.raises(ValidationError):
            create_user(**fields)

    def test_authenticate(self, db_session, user_one):
        assert authenticate(user_one.email, DEFAULT_PASSWORD).id == user_one.id
        assert authenticate(user_one.email, "Wrong123!") is None
        assert authenticate("nobody@example.com", DEFAULT_PASSWORD) is None


class TestSessions:
    def test_token_stored_hashed(self, db_session, user_one):
        session, token = create_session(user_id=user_one.id)
        assert session.token_hash == hash_token(token)
        assert db_session.query(SessionToken).filter_by(token_hash=token).count() == 0

    def test_validate_session(self, db_session, user_one):
        _, token = create_session(user_id=user_one.id)
        context = validate_session(token)
        assert context is not None
        assert context.user_id == user_one.id

    def test_absolute_timeout(self, db_session, user_one):
        session, token = create_session(user_id=user_one.id)
        session.expires_at = utcnow() - timedelta(minutes=1)
        db_session.commit()
        assert validate_session(token) is None

    def test_idle_timeout_revokes(self, db_session, user_one):
        session, token = create_session(user_id=user_one.id)
        session.last_used_at = utcnow() - SESSION_IDLE_TIMEOUT - timedelta(minutes=1)
        db_session.commit()

        assert validate_session(token) is None
        db_session.refresh(session)
        assert session.is_revoked
        assert session.revoked_reason == "Idle timeout"

    def test_revoked_session_rejected(self, db_session, user_one):
        _, token = create_session(user_id=user_one.id)
        assert revoke_session(token)
        assert validate_session(token) is None
        assert not revoke_session(token)


class TestAuthRoutes:
    def test_sign_up_returns_token(self, client, db_session):
        response = client.post('/api/auth/sign-up', json={
            "name": "Nena",
            "email": "nena@example.com",
            "password": DEFAULT_PASSWORD,
        })
        assert response.status_code == 201
        body = response.get_json()
        assert body["user"]["email"] == "nena@example.com"
        assert "passwordHash" not in body["user"]

        listed = client.get('/api/stores', headers=auth_headers(body["token"]))
        assert listed.status_code == 200
        assert listed.headers["x-total-count"] == "0"

    def test_sign_up_weak_password_is_400(self, client, db_session):
        response = client.post('/api/auth/sign-up', json={
            "name": "Nena",
            "email": "nena@example.com",
            "password": "weak",
        })
        assert response.status_code == 400
        assert db_session.query(User).count() == 0

    @pytest.mark.parametrize("payload", [
        {"name": "Nena", "email": 5, "password": DEFAULT_PASSWORD},
        {"name": "Nena", "email": "nena@example.com", "password": 12345678},
        ["not", "an", "object"],
    ])
    def test_sign_up_malformed_fields_is_400(self, client, db_session, payload):
        response = client.post('/api/auth/sign-up', json=payload)
        assert response.status_code == 400
        assert db_session.query(User).count() == 0

    def test_sign_up_duplicate_is_409(self, client, db_session, user_one):
        response = client.post('/api/auth/sign-up', json={
            "name": "Nena",
            "email": user_one.email,
            "password": DEFAULT_PASSWORD,
        })
        assert response.status_code == 409

    def test_sign_in(self, client, db_session, user_one):
        response = client.post('/api/auth/sign-in', json={"email": user_one.email, "password": DEFAULT_PASSWORD})
        assert response.status_code == 200
        assert response.get_json()["user"]["id"] == user_one.id

    def test_sign_in_bad_credentials_is_401(self, client, db_session, user_one):
        response = client.post('/api/auth/sign-in', json={"email": user_one.email, "password": "Wrong123!"})
        assert response.status_code == 401

    def test_sign_in_non_string_credentials_is_400(self, client, db_session, user_one):
        response = client.post('/api/auth/sign-in', json={"email": user_one.email, "password": 12345678})
        assert response.status_code == 400

    def test_sign_in_missing_fields_is_400(self, client, db_session):
        assert client.post('/api/auth/sign-in', json={"email": "x@example.com"}).status_code == 400

    def test_session_and_sign_out(self, client, db_session, user_one):
        token = client.post(
            '/api/auth/sign-in', json={"email": user_one.email, "password": DEFAULT_PASSWORD}
        ).get_json()["token"]
        headers = auth_headers(token)

        session = client.get('/api/auth/session', headers=headers)
        assert session.status_code == 200
        assert session.get_json()["user"]["id"] == user_one.id

        assert client.post('/api/auth/sign-out', headers=headers).status_code == 200
        assert client.get('/api/auth/session', headers=headers).status_code == 401
        assert client.get('/api/stores', headers=headers).status_code == 401

    def test_sign_out_without_token_is_401(self, client, db_session):
        assert client.post('/api/auth/sign-out').status_code == 401
