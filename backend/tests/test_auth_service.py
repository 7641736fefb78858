"""
Authentication and session tests.

Verifies:
- Password strength and bcrypt hashing
- Email uniqueness through the user_by_email index
- Session tokens are stored hashed and expire
- Deactivated users are rejected at login and on every request
"""

import unittest
from datetime import timedelta

import pytest

from tablepos.services import auth_service, kv_store, session_service
from tablepos.services.auth_service import PasswordValidationError, ROLE_CASHIER
from tablepos.time_utils import to_utc_z, utcnow
from tablepos.validation import ConflictError, ForbiddenError, ValidationError

from conftest import TEST_PASSWORD, make_user


class PasswordStrengthTests(unittest.TestCase):

    def test_accepts_strong_password(self):
        auth_service.validate_password_strength("Password123!")

    def test_rejects_weak_passwords(self):
        for weak in ("short1!", "password123!", "PASSWORD123!", "Password!!!", "Password123"):
            with self.assertRaises(PasswordValidationError):
                auth_service.validate_password_strength(weak)

    def test_password_error_is_validation_error(self):
        self.assertTrue(issubclass(PasswordValidationError, ValidationError))


class TestUsers:

    def test_create_user_hashes_password(self, db_session):
        user = make_user(ROLE_CASHIER)

        assert user["id"].startswith("user_profile:")
        assert user["passwordHash"] != TEST_PASSWORD
        assert auth_service.verify_password(TEST_PASSWORD, user["passwordHash"])
        assert "passwordHash" not in auth_service.public_profile(user)

    def test_email_is_unique_case_insensitive(self, db_session):
        make_user(ROLE_CASHIER, "Cashier@Test.local")
        with pytest.raises(ConflictError):
            make_user(ROLE_CASHIER, "cashier@test.local")

    def test_invalid_role(self, db_session):
        with pytest.raises(ValidationError):
            auth_service.create_user("x@test.local", TEST_PASSWORD, "X", "manager")

    def test_authenticate(self, db_session):
        user = make_user(ROLE_CASHIER)
        assert auth_service.authenticate("CASHIER@test.local", TEST_PASSWORD)["id"] == user["id"]
        assert auth_service.authenticate("cashier@test.local", "Wrong123!") is None
        assert auth_service.authenticate("nobody@test.local", TEST_PASSWORD) is None
        assert auth_service.authenticate("not-an-email", TEST_PASSWORD) is None

    def test_deactivated_user_cannot_log_in(self, db_session):
        user = make_user(ROLE_CASHIER)
        auth_service.set_user_status(user["id"], False, "left the company")

        with pytest.raises(ForbiddenError, match="left the company"):
            auth_service.authenticate("cashier@test.local", TEST_PASSWORD)

    def test_profile_edit_cannot_change_role(self, db_session):
        user = make_user(ROLE_CASHIER)
        updated = auth_service.update_profile(user["id"], {"name": "Ana", "role": "admin"})
        assert updated["name"] == "Ana"
        assert updated["role"] == ROLE_CASHIER


class TestSessions:

    def test_token_resolves_to_user(self, db_session):
        user = make_user(ROLE_CASHIER)
        session, token = session_service.create_session(user["id"])

        context = session_service.validate_session(token)
        assert context.user_id == user["id"]
        assert context.role == ROLE_CASHIER
        # Only the hash is stored
        key = session_service.SESSION_PREFIX + session_service.hash_token(token)
        assert kv_store.get(key)["userId"] == user["id"]
        assert kv_store.get(session_service.SESSION_PREFIX + token) is None

    def test_unknown_token(self, db_session):
        assert session_service.validate_session("not-a-token") is None
        assert session_service.validate_session(None) is None

    def test_revoked_token(self, db_session):
        user = make_user(ROLE_CASHIER)
        _, token = session_service.create_session(user["id"])
        assert session_service.revoke_session(token) is True
        assert session_service.validate_session(token) is None

    def test_expired_token_is_removed(self, db_session):
        user = make_user(ROLE_CASHIER)
        session, token = session_service.create_session(user["id"])
        key = session_service.SESSION_PREFIX + session_service.hash_token(token)
        kv_store.set(key, {**session, "expiresAt": to_utc_z(utcnow() - timedelta(minutes=1))})

        assert session_service.validate_session(token) is None
        assert kv_store.get(key) is None
        assert session_service.cleanup_expired_sessions() == 0

    def test_deactivated_user_session_rejected(self, db_session):
        user = make_user(ROLE_CASHIER)
        _, token = session_service.create_session(user["id"])
        auth_service.set_user_status(user["id"], False)
        assert session_service.validate_session(token) is None
