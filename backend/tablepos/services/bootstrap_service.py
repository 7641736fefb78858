# Overview: One-time bootstrap of reference data (configuration, tables, products, demo users).

"""
Bootstrap

Run once at process start or from `flask system init`. Every kind is
guarded by its own presence check, so running it again only fills what
is missing and never overwrites existing records.
"""

from __future__ import annotations

from flask import current_app

from ..validation import ConflictError
from . import auth_service, configuration_service, kv_store
from .auth_service import ROLE_ADMIN, ROLE_CASHIER, ROLE_COOK, ROLE_CUSTOMER, ROLE_WAITER
from .configuration_service import CONFIGURATION_KEY
from .products_service import create_product, create_table
from .repository import products, tables


DEFAULT_PASSWORD = "Password123!"

DEFAULT_TABLES = [
    ("1", 4), ("2", 2), ("3", 6), ("4", 4), ("5", 8), ("6", 2),
    ("7", 4), ("8", 6), ("9", 4), ("10", 2), ("11", 4), ("12", 6),
]

DEFAULT_PRODUCTS = [
    ("1", "Bandeja Paisa", "Main Courses", "28000.00", 50, 10),
    ("2", "Ajiaco", "Main Courses", "22000.00", 30, 10),
    ("3", "Sancocho", "Main Courses", "20000.00", 40, 10),
    ("4", "Arroz con Pollo", "Main Courses", "18000.00", 35, 10),
    ("5", "Lemonade", "Drinks", "5000.00", 100, 20),
    ("6", "Coffee", "Drinks", "3000.00", 150, 30),
    ("7", "Orange Juice", "Drinks", "6000.00", 80, 20),
    ("8", "Brownie", "Desserts", "8000.00", 25, 5),
]

DEFAULT_USERS = [
    ("admin@tablepos.local", "Main Administrator", ROLE_ADMIN),
    ("waiter@tablepos.local", "Floor Waiter", ROLE_WAITER),
    ("cashier@tablepos.local", "Front Cashier", ROLE_CASHIER),
    ("cook@tablepos.local", "Line Cook", ROLE_COOK),
    ("customer@tablepos.local", "Demo Customer", ROLE_CUSTOMER),
]


def ensure_configuration() -> bool:
    if configuration_service.has_configuration():
        return False
    kv_store.set(CONFIGURATION_KEY, configuration_service.default_configuration())
    return True


def ensure_tables() -> int:
    if tables.exists_any():
        return 0
    for number, capacity in DEFAULT_TABLES:
        create_table(number, capacity)
    return len(DEFAULT_TABLES)


def ensure_products() -> int:
    if products.exists_any():
        return 0
    for identifier, name, category, price, stock, min_stock in DEFAULT_PRODUCTS:
        create_product({
            "name": name,
            "category": category,
            "price": price,
            "stock": stock,
            "minStock": min_stock,
        }, identifier=identifier)
    return len(DEFAULT_PRODUCTS)


def ensure_users(password: str = DEFAULT_PASSWORD) -> int:
    created = 0
    for email, name, role in DEFAULT_USERS:
        if auth_service.get_user_by_email(email) is not None:
            continue
        try:
            auth_service.create_user(email, password, name, role)
            created += 1
        except ConflictError:
            # Another process registered it between the check and the insert
            continue
    return created


def bootstrap(include_users: bool = True) -> dict:
    """Idempotent; returns what was created per kind."""
    result = {
        "configuration": ensure_configuration(),
        "tables": ensure_tables(),
        "products": ensure_products(),
        "users": ensure_users() if include_users else 0,
    }
    current_app.logger.info("Bootstrap complete: %s", result)
    return result
