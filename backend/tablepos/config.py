# backend/tablepos/config.py
from __future__ import annotations
import os


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the instance by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///tablepos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Business defaults, overridden at runtime by the "system_configuration" record
    DEFAULT_TAX_RATE = os.environ.get("DEFAULT_TAX_RATE", "19")  # percent
    DEFAULT_SERVICE_RATE = os.environ.get("DEFAULT_SERVICE_RATE", "10")  # percent
    BUSINESS_TIMEZONE = os.environ.get("BUSINESS_TIMEZONE", "America/Bogota")
    CURRENCY = os.environ.get("CURRENCY", "COP")
    RESTAURANT_NAME = os.environ.get("RESTAURANT_NAME", "SIREST")

    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "24"))

    # Bounded retry for transient store lock errors
    STORE_RETRY_ATTEMPTS = int(os.environ.get("STORE_RETRY_ATTEMPTS", "3"))
    STORE_RETRY_BACKOFF = float(os.environ.get("STORE_RETRY_BACKOFF", "0.1"))  # seconds, doubled per attempt

    # bcrypt cost factor; tests lower it
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))
