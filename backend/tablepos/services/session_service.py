# Overview: Bearer session tokens stored hashed in the key-value store.

"""
Session Token Management Service

WHY: Resolve an Authorization: Bearer <token> header to a user profile.

SECURITY FEATURES:
- Cryptographically secure random tokens (32 bytes)
- Tokens hashed with SHA-256 before storage; key is session:<hash>
- Absolute timeout (SESSION_TTL_HOURS)
- Revocable on logout; deactivated users are rejected on every request
"""

import hashlib
import secrets
from dataclasses import dataclass
from datetime import timedelta

from flask import current_app

from tablepos.time_utils import parse_iso_datetime, to_utc_z, utcnow
from . import kv_store
from .repository import user_profiles


SESSION_PREFIX = "session:"


@dataclass
class SessionContext:
    """Authenticated identity returned by validate_session."""
    user: dict
    session: dict

    @property
    def user_id(self) -> str:
        return self.user["id"]

    @property
    def role(self) -> str:
        return self.user.get("role")


def generate_token() -> str:
    """64-character hex string (32 bytes of entropy). Never stored."""
    return secrets.token_hex(32)


def hash_token(token: str) -> str:
    """SHA-256 is enough for high-entropy tokens (unlike passwords)."""
    return hashlib.sha256(token.encode('utf-8')).hexdigest()


def create_session(user_id: str) -> tuple[dict, str]:
    """
    Create a session for a user.

    Returns (session_record, plaintext_token). Only the hash is stored.
    """
    plaintext_token = generate_token()
    now = utcnow()
    ttl = timedelta(hours=current_app.config.get("SESSION_TTL_HOURS", 24))

    session = {
        "userId": user_id,
        "createdAt": to_utc_z(now),
        "expiresAt": to_utc_z(now + ttl),
    }
    kv_store.insert(f"{SESSION_PREFIX}{hash_token(plaintext_token)}", session)
    return session, plaintext_token


def validate_session(token: str) -> SessionContext | None:
    """
    Return SessionContext if the token is valid.

    Returns None if the token is unknown or expired, or the user is
    missing or deactivated. Expired sessions are deleted on sight.
    """
    if not token:
        return None
    key = f"{SESSION_PREFIX}{hash_token(token)}"
    session = kv_store.get(key)
    if not session:
        return None

    expires_at = parse_iso_datetime(session.get("expiresAt"))
    if expires_at is None or expires_at < utcnow():
        kv_store.delete(key)
        return None

    user_id = session.get("userId")
    user = user_profiles.get(user_id) if user_id else None
    if not user or user.get("active") is False:
        kv_store.delete(key)
        return None

    return SessionContext(user=user, session=session)


def revoke_session(token: str) -> bool:
    """Returns True if a session was removed."""
    return kv_store.delete(f"{SESSION_PREFIX}{hash_token(token)}")


def cleanup_expired_sessions() -> int:
    """Delete expired sessions. Returns count removed."""
    now = utcnow()
    removed = 0
    for entry in kv_store.get_entries_by_prefix(SESSION_PREFIX):
        expires_at = parse_iso_datetime((entry.value or {}).get("expiresAt"))
        if expires_at is None or expires_at < now:
            if kv_store.delete(entry.key):
                removed += 1
    return removed
