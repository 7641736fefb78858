"""
HTTP API tests.

Verifies:
- Unauthenticated requests return 401, wrong roles 403
- Error bodies carry {error, code} with the mapped status
- The order -> payment -> cash closing flow end to end
"""

import pytest

from tablepos.services import alert_service

from conftest import TEST_PASSWORD, make_order


ITEMS = [{"productId": "product:1", "name": "Ajiaco", "unitPrice": 42.48, "quantity": 1}]


# =============================================================================
# AUTHENTICATION
# =============================================================================


class TestUnauthenticatedAccess:

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/orders"),
            ("POST", "/api/orders"),
            ("GET", "/api/orders/ready"),
            ("POST", "/api/payments"),
            ("GET", "/api/payments"),
            ("POST", "/api/cash-closing"),
            ("GET", "/api/cash-closings"),
            ("GET", "/api/alerts"),
            ("GET", "/api/products"),
            ("GET", "/api/tables"),
            ("PUT", "/api/configuration"),
            ("GET", "/api/users"),
            ("GET", "/api/admin/consistency"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.json["code"] == "Unauthorized"

    def test_bad_token(self, client, db_session):
        resp = client.get("/api/orders", headers={"Authorization": "Bearer nope"})
        assert resp.status_code == 401


class TestLogin:

    def test_login_and_session(self, client, cashier_user):
        resp = client.post("/api/auth/login", json={"email": "cashier@test.local", "password": TEST_PASSWORD})
        assert resp.status_code == 200
        token = resp.json["accessToken"]
        assert "passwordHash" not in resp.json["user"]

        headers = {"Authorization": f"Bearer {token}"}
        assert client.get("/api/auth/session", headers=headers).json["user"]["role"] == "cashier"

        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/session", headers=headers).status_code == 401

    def test_wrong_password(self, client, cashier_user):
        resp = client.post("/api/auth/login", json={"email": "cashier@test.local", "password": "Wrong123!"})
        assert resp.status_code == 401

    def test_customer_self_signup(self, client, db_session):
        resp = client.post("/api/auth/signup", json={
            "email": "guest@test.local", "password": TEST_PASSWORD, "name": "Guest", "role": "customer",
        })
        assert resp.status_code == 201
        assert resp.json["user"]["role"] == "customer"

    def test_staff_signup_requires_admin(self, client, db_session, admin_headers):
        body = {"email": "new@test.local", "password": TEST_PASSWORD, "name": "New", "role": "cashier"}
        assert client.post("/api/auth/signup", json=body).status_code == 403
        assert client.post("/api/auth/signup", json=body, headers=admin_headers).status_code == 201


class TestRoles:

    def test_cook_cannot_pay(self, client, cook_headers):
        resp = client.post("/api/payments", json={"orderId": "order:x", "paymentMethod": "card"}, headers=cook_headers)
        assert resp.status_code == 403
        assert resp.json["code"] == "Forbidden"

    def test_cashier_cannot_edit_configuration(self, client, cashier_headers):
        resp = client.put("/api/configuration", json={"taxRate": 5}, headers=cashier_headers)
        assert resp.status_code == 403

    def test_admin_passes_role_checks(self, client, admin_headers):
        assert client.get("/api/payments", headers=admin_headers).status_code == 200


# =============================================================================
# ORDERS
# =============================================================================


class TestOrderRoutes:

    def test_create_and_advance(self, client, waiter_headers):
        resp = client.post("/api/orders", json={"tableNumber": "4", "items": ITEMS}, headers=waiter_headers)
        assert resp.status_code == 201
        order = resp.json["order"]
        assert order["subtotal"] == "42.48"
        assert order["status"] == "pending"

        resp = client.put(f"/api/orders/{order['id']}", json={"status": "preparing"}, headers=waiter_headers)
        assert resp.status_code == 200
        assert resp.json["order"]["status"] == "preparing"

    def test_empty_order(self, client, waiter_headers):
        resp = client.post("/api/orders", json={"tableNumber": "4", "items": []}, headers=waiter_headers)
        assert resp.status_code == 400
        assert resp.json == {"error": "Order must contain at least one item", "code": "ValidationError"}

    def test_illegal_transition(self, client, waiter_headers):
        order = make_order()
        resp = client.put(f"/api/orders/{order['id']}", json={"status": "served"}, headers=waiter_headers)
        assert resp.status_code == 409
        assert resp.json["code"] == "InvalidTransition"

    @pytest.mark.parametrize("unit_price", [1e30, "1e30", "1000000000.00"])
    def test_oversized_unit_price(self, client, waiter_headers, unit_price):
        items = [{"name": "Ajiaco", "unitPrice": unit_price, "quantity": 1}]
        resp = client.post("/api/orders", json={"tableNumber": "4", "items": items}, headers=waiter_headers)
        assert resp.status_code == 400
        assert resp.json["code"] == "ValidationError"

    def test_status_must_be_a_string(self, client, waiter_headers):
        order = make_order()
        resp = client.put(f"/api/orders/{order['id']}", json={"status": ["ready"]}, headers=waiter_headers)
        assert resp.status_code == 400
        assert resp.json["code"] == "ValidationError"

    def test_unknown_order(self, client, waiter_headers):
        resp = client.get("/api/orders/order:missing", headers=waiter_headers)
        assert resp.status_code == 404
        assert resp.json["code"] == "NotFound"

    def test_ready_queue(self, client, cashier_headers):
        make_order(table="1")
        ready = make_order(table="2", status="ready")
        resp = client.get("/api/orders/ready", headers=cashier_headers)
        assert [o["id"] for o in resp.json["orders"]] == [ready["id"]]
        assert resp.json["orders"][0]["estimatedTotal"] == "54.80"


# =============================================================================
# PAYMENTS AND CLOSING
# =============================================================================


class TestPaymentRoutes:

    def test_quote(self, client, cashier_headers):
        order = make_order(status="ready")
        resp = client.post("/api/payments/quote", json={"orderId": order["id"], "tip": 5}, headers=cashier_headers)
        assert resp.status_code == 200
        assert resp.json["totals"]["total"] == "59.80"
        assert resp.json["quickTips"][0] == {"percent": 10, "amount": "4.25"}

    def test_pay_once(self, client, cashier_headers):
        order = make_order(status="ready")
        body = {
            "orderId": order["id"],
            "paymentMethod": "cash",
            "tip": 5.00,
            "subtotal": 42.48, "tax": 8.07, "service": 4.25, "total": 59.80,
            "receivedAmount": 60.00,
        }

        resp = client.post("/api/payments", json=body, headers=cashier_headers)
        assert resp.status_code == 201
        assert resp.json["payment"]["change"] == "0.20"

        again = client.post("/api/payments", json=body, headers=cashier_headers)
        assert again.status_code == 409
        assert again.json["code"] == "AlreadyPaid"

        payment_id = resp.json["payment"]["id"]
        fetched = client.get(f"/api/payments/{payment_id}", headers=cashier_headers)
        assert fetched.json["payment"]["total"] == "59.80"

    def test_oversized_received_amount(self, client, cashier_headers):
        order = make_order(status="ready")
        resp = client.post("/api/payments", json={
            "orderId": order["id"], "paymentMethod": "cash", "receivedAmount": 1e30,
        }, headers=cashier_headers)
        assert resp.status_code == 400
        assert resp.json["code"] == "ValidationError"

    def test_repay_with_bad_method_is_already_paid(self, client, cashier_headers):
        order = make_order(status="ready")
        client.post("/api/payments", json={"orderId": order["id"], "paymentMethod": "card"}, headers=cashier_headers)
        resp = client.post("/api/payments", json={"orderId": order["id"], "paymentMethod": "bitcoin"}, headers=cashier_headers)
        assert resp.status_code == 409
        assert resp.json["code"] == "AlreadyPaid"

    def test_cash_short(self, client, cashier_headers):
        order = make_order(status="ready")
        resp = client.post("/api/payments", json={
            "orderId": order["id"], "paymentMethod": "cash", "receivedAmount": 10,
        }, headers=cashier_headers)
        assert resp.status_code == 400

    def test_closing_flow(self, client, cashier_headers, flat_rates):
        for amount in ("200.00", "100.00"):
            order = make_order(items=[{"name": "Menu", "unitPrice": amount, "quantity": 1}], status="ready")
            client.post("/api/payments", json={
                "orderId": order["id"], "paymentMethod": "cash", "receivedAmount": amount,
            }, headers=cashier_headers)

        summary = client.get("/api/cash-closings/summary", headers=cashier_headers)
        assert summary.json["summary"]["expectedCash"] == "300.00"

        resp = client.post("/api/cash-closing", json={"cashCount": 295}, headers=cashier_headers)
        assert resp.status_code == 201
        assert resp.json["report"]["difference"] == "-5.00"

        listing = client.get("/api/cash-closings", headers=cashier_headers)
        assert len(listing.json["closings"]) == 1

        by_day = client.get("/api/payments", query_string={"date": resp.json["report"]["date"]}, headers=cashier_headers)
        assert len(by_day.json["payments"]) == 2

    def test_negative_cash_count(self, client, cashier_headers):
        resp = client.post("/api/cash-closing", json={"cashCount": -1}, headers=cashier_headers)
        assert resp.status_code == 400


# =============================================================================
# ALERTS, REFERENCE DATA, ADMIN
# =============================================================================


class TestAlertRoutes:

    def test_list_and_acknowledge(self, client, cook_headers):
        make_order()
        alerts = client.get("/api/alerts", headers=cook_headers).json["alerts"]
        assert len(alerts) == 1

        resp = client.put(f"/api/alerts/{alerts[0]['id']}/read", headers=cook_headers)
        assert resp.status_code == 200
        assert alert_service.list_unread_alerts() == []
        assert len(client.get("/api/alerts?all=true", headers=cook_headers).json["alerts"]) == 1


class TestReferenceRoutes:

    def test_product_crud(self, client, admin_headers, waiter_headers):
        resp = client.post("/api/products", json={"name": "Tinto", "price": 2.5, "stock": 10}, headers=admin_headers)
        assert resp.status_code == 201
        product = resp.json["product"]
        assert product["price"] == "2.50"

        assert client.post("/api/products", json={"name": "X", "price": 1}, headers=waiter_headers).status_code == 403

        resp = client.put(f"/api/products/{product['id']}", json={"price": 3}, headers=admin_headers)
        assert resp.json["product"]["price"] == "3.00"

        low = client.get("/api/products?lowStock=true", headers=waiter_headers).json["products"]
        assert low == []

        assert client.delete(f"/api/products/{product['id']}", headers=admin_headers).status_code == 200
        assert client.get(f"/api/products/{product['id']}", headers=waiter_headers).status_code == 404
        assert client.get("/api/products", headers=waiter_headers).json["products"] == []

    def test_configuration(self, client, admin_headers):
        resp = client.put("/api/configuration", json={"taxRate": 8.5, "timezone": "America/Lima"}, headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["configuration"]["taxRate"] == "8.5"
        assert resp.json["configuration"]["serviceRate"] == "10"

        bad = client.put("/api/configuration", json={"taxRate": 120}, headers=admin_headers)
        assert bad.status_code == 400

    def test_consistency_report(self, client, admin_headers):
        resp = client.get("/api/admin/consistency", headers=admin_headers)
        assert resp.status_code == 200
        assert resp.json["report"]["ok"] is True


class TestSystemRoutes:

    def test_health(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        store = resp.json["checks"]["store"]
        assert store["status"] == "healthy"
        assert store["records"]["order"] == 0
        assert store["configured"] is False
