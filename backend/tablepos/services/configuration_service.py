# Overview: Business configuration (rates, timezone, currency) stored under one key.

"""
Configuration Service

The "system_configuration" record overrides the defaults from Config.
Rates are stored as percentage strings (taxRate: "19" means 19%).
"""

from __future__ import annotations

from decimal import Decimal

from flask import current_app

from tablepos.money import format_rate, percent_to_rate
from tablepos.time_utils import get_zone, now_z
from ..validation import ValidationError, parse_percent
from . import kv_store


CONFIGURATION_KEY = "system_configuration"

WRITABLE_FIELDS = {
    "restaurantName", "address", "phone", "email",
    "taxRate", "serviceRate", "currency", "timezone",
}


def default_configuration() -> dict:
    cfg = current_app.config
    return {
        "restaurantName": cfg["RESTAURANT_NAME"],
        "address": "",
        "phone": "",
        "email": "",
        "taxRate": format_rate(cfg["DEFAULT_TAX_RATE"]),
        "serviceRate": format_rate(cfg["DEFAULT_SERVICE_RATE"]),
        "currency": cfg["CURRENCY"],
        "timezone": cfg["BUSINESS_TIMEZONE"],
    }


def get_configuration() -> dict:
    stored = kv_store.get(CONFIGURATION_KEY) or {}
    return {**default_configuration(), **stored}


def has_configuration() -> bool:
    return kv_store.get(CONFIGURATION_KEY) is not None


def update_configuration(updates: dict, actor: str | None = None) -> dict:
    """
    Merge validated updates into the stored configuration.

    Raises:
        ValidationError: unknown field, bad rate, unknown timezone
    """
    if not isinstance(updates, dict):
        raise ValidationError("Request body must be a JSON object")
    unknown = sorted(set(updates) - WRITABLE_FIELDS - {"updatedAt", "updatedBy"})
    if unknown:
        raise ValidationError(f"Unknown configuration fields: {', '.join(unknown)}")

    clean = {k: v for k, v in updates.items() if k in WRITABLE_FIELDS}
    for field in ("taxRate", "serviceRate"):
        if field in clean:
            clean[field] = format_rate(parse_percent(clean[field], field))
    if "timezone" in clean:
        try:
            get_zone(clean["timezone"])
        except ValueError as exc:
            raise ValidationError(str(exc))

    stored = kv_store.get(CONFIGURATION_KEY) or {}
    merged = {**stored, **clean, "updatedAt": now_z(), "updatedBy": actor}
    kv_store.set(CONFIGURATION_KEY, merged)
    return {**default_configuration(), **merged}


def tax_rate() -> Decimal:
    return percent_to_rate(get_configuration()["taxRate"])


def service_rate() -> Decimal:
    return percent_to_rate(get_configuration()["serviceRate"])


def business_timezone() -> str:
    return get_configuration()["timezone"]
