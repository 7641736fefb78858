# backend/tablepos/services/products_service.py
"""
Products (menu / inventory) and dining tables.

Reference data outside the financial core. Products are the only kind that
can be deleted; orders keep their own copy of name and unitPrice so a
deleted or repriced product never changes an existing order.
"""
from __future__ import annotations

from ..validation import ValidationError, parse_amount, require_fields
from .repository import products, tables

PRODUCT_MUTABLE_FIELDS = {"name", "category", "price", "stock", "minStock", "image", "description"}
TABLE_MUTABLE_FIELDS = {"number", "capacity", "status", "waiter"}
TABLE_STATUSES = {"available", "occupied", "reserved"}


def _non_negative_int(value, field: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise ValidationError(f"{field} must be a non-negative integer")
    return value


def apply_product_patch(patch: dict) -> dict:
    if not isinstance(patch, dict):
        raise ValidationError("Request body must be a JSON object")
    clean = {}
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        if k == "price":
            v = f"{parse_amount(v, 'price'):.2f}"
        elif k in ("stock", "minStock"):
            v = _non_negative_int(v, k)
        clean[k] = v
    return clean


# =============================================================================
# PRODUCTS
# =============================================================================

def list_products(category: str | None = None) -> list[dict]:
    items = products.list()
    if category:
        items = [p for p in items if p.get("category") == category]
    return items


def get_product(product_id: str) -> dict:
    return products.require(product_id)


def create_product(data: dict, *, actor: str | None = None, identifier: str | None = None) -> dict:
    require_fields(data, "name", "price")
    fields = {"category": "", "stock": 0, "minStock": 0, "image": ""}
    fields.update(apply_product_patch(data))
    return products.create(fields, actor=actor, identifier=identifier)


def update_product(product_id: str, patch: dict, *, actor: str | None = None) -> dict:
    return products.update(product_id, apply_product_patch(patch), actor=actor)


def delete_product(product_id: str) -> None:
    products.delete(product_id)


def low_stock_products() -> list[dict]:
    return [p for p in products.list() if p.get("stock", 0) <= p.get("minStock", 0)]


# =============================================================================
# TABLES
# =============================================================================

def list_tables() -> list[dict]:
    def _number(table):
        number = str(table.get("number", ""))
        return (0, int(number), "") if number.isdigit() else (1, 0, number)
    return sorted(tables.list(), key=_number)


def create_table(number, capacity: int, *, actor: str | None = None) -> dict:
    number = str(number).strip()
    if not number:
        raise ValidationError("number is required")
    return tables.create({
        "number": number,
        "capacity": _non_negative_int(capacity, "capacity"),
        "status": "available",
        "waiter": None,
    }, actor=actor, identifier=number)


def update_table(table_id: str, patch: dict, *, actor: str | None = None) -> dict:
    if not isinstance(patch, dict):
        raise ValidationError("Request body must be a JSON object")
    clean = {k: v for k, v in patch.items() if k in TABLE_MUTABLE_FIELDS}
    if "status" in clean and clean["status"] not in TABLE_STATUSES:
        raise ValidationError(
            f"Invalid table status '{clean['status']}'. Must be one of: {', '.join(sorted(TABLE_STATUSES))}"
        )
    if "capacity" in clean:
        _non_negative_int(clean["capacity"], "capacity")
    return tables.update(table_id, clean, actor=actor)
