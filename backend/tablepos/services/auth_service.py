# Overview: Staff accounts stored as user profiles; password hashing and login checks.

"""
Authentication Service

WHY: Every order, payment and closing records who did it. Profiles live in
the key-value store under user_profile:<uuid>, with a user_by_email:<email>
index for login.

SECURITY NOTES:
- Passwords hashed with bcrypt (cost factor BCRYPT_ROUNDS, default 12)
- Minimum 8 characters, upper, lower, digit and special char
- passwordHash never leaves this module (see public_profile)
- Deactivated users cannot log in
- Session tokens managed separately (see session_service.py)
"""

import re
import uuid

import bcrypt
from flask import current_app

from ..validation import ConflictError, ForbiddenError, NotFoundError, ValidationError, parse_choice
from . import kv_store
from .repository import user_profiles


ROLE_ADMIN = "admin"
ROLE_WAITER = "waiter"
ROLE_CASHIER = "cashier"
ROLE_COOK = "cook"
ROLE_CUSTOMER = "customer"

VALID_ROLES = {ROLE_ADMIN, ROLE_WAITER, ROLE_CASHIER, ROLE_COOK, ROLE_CUSTOMER}
STAFF_ROLES = VALID_ROLES - {ROLE_CUSTOMER}

EMAIL_INDEX_PREFIX = "user_by_email:"


class PasswordValidationError(ValidationError):
    """Raised when password doesn't meet strength requirements."""
    pass


def validate_password_strength(password: str) -> None:
    """
    Validate password meets strength requirements.

    Raises PasswordValidationError if requirements not met.
    """
    if not isinstance(password, str) or len(password) < 8:
        raise PasswordValidationError("Password must be at least 8 characters long")

    if not re.search(r'[A-Z]', password):
        raise PasswordValidationError("Password must contain at least one uppercase letter")

    if not re.search(r'[a-z]', password):
        raise PasswordValidationError("Password must contain at least one lowercase letter")

    if not re.search(r'\d', password):
        raise PasswordValidationError("Password must contain at least one digit")

    if not re.search(r"[!@#$%^&*(),.'\":{}|<>]", password):
        raise PasswordValidationError("Password must contain at least one special character")


def hash_password(password: str) -> str:
    """Hash password using bcrypt (BCRYPT_ROUNDS, default 12). Validated first."""
    validate_password_strength(password)
    salt = bcrypt.gensalt(rounds=current_app.config.get("BCRYPT_ROUNDS", 12))
    hashed = bcrypt.hashpw(password.encode('utf-8'), salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Timing-safe check via bcrypt.checkpw. Malformed hashes never match."""
    if not password or not password_hash:
        return False
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError:
        return False


def normalize_email(email: str) -> str:
    if not isinstance(email, str) or "@" not in email:
        raise ValidationError("A valid email is required")
    return email.strip().lower()


def public_profile(profile: dict | None) -> dict | None:
    if profile is None:
        return None
    return {k: v for k, v in profile.items() if k != "passwordHash"}


def create_user(
    email: str,
    password: str,
    name: str,
    role: str,
    phone: str = "",
    *,
    actor: str | None = None,
) -> dict:
    """
    Create a profile and its email index entry.

    Raises:
        ValidationError: bad email/role/password
        ConflictError: email already registered
    """
    email = normalize_email(email)
    parse_choice(role, "role", VALID_ROLES)
    password_hash = hash_password(password)

    profile_key = user_profiles.key_for(str(uuid.uuid4()))
    # Claim the email first so two signups cannot share it
    try:
        kv_store.insert(f"{EMAIL_INDEX_PREFIX}{email}", profile_key)
    except ConflictError:
        raise ConflictError(f"Email {email} is already registered")

    profile = user_profiles.create({
        "email": email,
        "name": name or email,
        "role": role,
        "phone": phone or "",
        "avatar": "",
        "active": True,
        "passwordHash": password_hash,
    }, actor=actor, identifier=profile_key)
    return profile


def get_user(user_id: str) -> dict | None:
    return user_profiles.get(user_id)


def get_user_by_email(email: str) -> dict | None:
    profile_key = kv_store.get(f"{EMAIL_INDEX_PREFIX}{normalize_email(email)}")
    if not profile_key:
        return None
    return user_profiles.get(profile_key)


def list_users() -> list[dict]:
    return [public_profile(p) for p in user_profiles.list()]


def authenticate(email: str, password: str) -> dict | None:
    """
    Return the profile if credentials match, None otherwise.

    Raises:
        ForbiddenError: account deactivated
    """
    try:
        profile = get_user_by_email(email)
    except ValidationError:
        return None
    if profile is None or not verify_password(password, profile.get("passwordHash", "")):
        return None
    if profile.get("active") is False:
        reason = profile.get("deactivationNote") or "not specified"
        raise ForbiddenError(f"Account deactivated. Reason: {reason}")
    return profile


def update_profile(user_id: str, updates: dict, *, actor: str | None = None) -> dict:
    """Self-service profile edit; id, role, email and password are not writable here."""
    if not isinstance(updates, dict):
        raise ValidationError("Request body must be a JSON object")
    allowed = {"name", "phone", "avatar"}
    clean = {k: v for k, v in updates.items() if k in allowed}
    profile = user_profiles.update(user_id, clean, actor=actor)
    return public_profile(profile)


def set_user_status(user_id: str, active: bool, note: str | None = None, *, actor: str | None = None) -> dict:
    """Admin activation/deactivation."""
    if user_profiles.get(user_id) is None:
        raise NotFoundError(f"User {user_id} not found")
    fields = {"active": bool(active), "deactivationNote": None if active else (note or "")}
    return public_profile(user_profiles.update(user_id, fields, actor=actor))
