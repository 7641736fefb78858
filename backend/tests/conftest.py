"""
Pytest fixtures for TablePOS backend tests.

Provides test database setup, staff accounts with session tokens, and test client.
"""

import pytest
from tablepos import create_app
from tablepos.extensions import db
from tablepos.services import auth_service, configuration_service, order_service, session_service
from tablepos.services.auth_service import ROLE_ADMIN, ROLE_CASHIER, ROLE_COOK, ROLE_WAITER


TEST_PASSWORD = "Password123!"

TEST_CONFIG = {
    'TESTING': True,
    'SQLALCHEMY_DATABASE_URI': 'sqlite:///:memory:',
    'SQLALCHEMY_TRACK_MODIFICATIONS': False,
    'BCRYPT_ROUNDS': 4,
    'BUSINESS_TIMEZONE': 'America/Bogota',
    'DEFAULT_TAX_RATE': '19',
    'DEFAULT_SERVICE_RATE': '10',
}


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TEST_CONFIG)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


@pytest.fixture(scope='function')
def flat_rates(db_session):
    """No tax and no service charge, so totals equal subtotals."""
    configuration_service.update_configuration({"taxRate": 0, "serviceRate": 0})


def make_user(role: str, email: str | None = None) -> dict:
    return auth_service.create_user(
        email or f"{role}@test.local", TEST_PASSWORD, f"Test {role}", role
    )


def make_headers(user: dict) -> dict:
    _, token = session_service.create_session(user["id"])
    return auth_headers(token)


@pytest.fixture(scope='function')
def admin_user(db_session):
    return make_user(ROLE_ADMIN)


@pytest.fixture(scope='function')
def waiter_user(db_session):
    return make_user(ROLE_WAITER)


@pytest.fixture(scope='function')
def cashier_user(db_session):
    return make_user(ROLE_CASHIER)


@pytest.fixture(scope='function')
def cook_user(db_session):
    return make_user(ROLE_COOK)


@pytest.fixture(scope='function')
def admin_headers(admin_user):
    return make_headers(admin_user)


@pytest.fixture(scope='function')
def waiter_headers(waiter_user):
    return make_headers(waiter_user)


@pytest.fixture(scope='function')
def cashier_headers(cashier_user):
    return make_headers(cashier_user)


@pytest.fixture(scope='function')
def cook_headers(cook_user):
    return make_headers(cook_user)


def make_order(items=None, table="4", status=None) -> dict:
    """Create an order and walk it forward to `status`."""
    order = order_service.create_order(
        table,
        "Carlos",
        items or [{"productId": "product:1", "name": "Ajiaco", "unitPrice": "42.48", "quantity": 1}],
    )
    if status in (None, order_service.STATUS_PENDING):
        return order
    for step in order_service.STATUS_SEQUENCE[1:]:
        order = order_service.update_order_status(order["id"], step)
        if step == status:
            break
    return order


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}
