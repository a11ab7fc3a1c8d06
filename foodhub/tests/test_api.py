"""
API 集成测试
覆盖响应信封、认证授权、参数校验以及完整的下单流程
"""

from datetime import date, datetime

import pytest

API = "/api/v1"
PASSWORD = "CustomerPassword123!"


def _register(client, email, password=PASSWORD):
    response = client.post(f"{API}/auth/register", json={"email": email, "password": password})
    assert response.status_code == 201
    return response.json()["data"]


class TestEnvelope:
    """响应信封格式"""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["code"] == 200
        assert body["status"] == "OK"
        assert body["data"]["status"] == "healthy"

    def test_register_and_login(self, client):
        data = _register(client, "Fresh@Example.com")
        assert data["user"]["email"] == "fresh@example.com"
        assert data["user"]["role"] == "customer"
        assert data["token"]["token_type"] == "Bearer"

        response = client.post(f"{API}/auth/login",
                               json={"email": "fresh@example.com", "password": PASSWORD})
        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "OK"
        assert body["data"]["user"]["id"] == data["user"]["id"]

    def test_error_envelope(self, client):
        response = client.post(f"{API}/auth/login",
                               json={"email": "ghost@example.com", "password": PASSWORD})

        assert response.status_code == 401
        body = response.json()
        assert body == {
            "code": 401,
            "status": "Unauthorized",
            "error": {
                "code": "AUTHENTICATION_REQUIRED",
                "message": "Invalid email or password",
                "details": {},
            },
        }

    def test_weak_password_is_invalid_argument(self, client):
        response = client.post(f"{API}/auth/register",
                               json={"email": "weak@example.com", "password": "password"})
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_ARGUMENT"

    def test_admin_signup_forbidden(self, client):
        response = client.post(f"{API}/auth/register", json={
            "email": "boss@example.com", "password": PASSWORD, "role": "admin",
        })
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    def test_validation_error(self, client, customer, auth_headers):
        response = client.post(f"{API}/cart/items", headers=auth_headers(customer),
                               json={"menu_item_id": "x"})

        assert response.status_code == 422
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        fields = [e["field"] for e in error["details"]["validation_errors"]]
        assert "body.quantity" in fields

    def test_invalid_email_is_validation_error(self, client):
        response = client.post(f"{API}/auth/register",
                               json={"email": "not-an-email", "password": PASSWORD})
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_unknown_menu_item(self, client, customer, auth_headers):
        response = client.get(f"{API}/menus/missing", headers=auth_headers(customer))
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "NOT_FOUND"


class TestAuthorization:
    """认证与角色校验"""

    @pytest.mark.parametrize("method,path", [
        ("get", "/cart"),
        ("post", "/orders/checkout"),
        ("get", "/orders"),
        ("get", "/users/me"),
        ("get", "/logs/me"),
    ])
    def test_missing_token(self, client, method, path):
        response = getattr(client, method)(f"{API}{path}")
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTHENTICATION_REQUIRED"

    def test_garbage_token(self, client):
        response = client.get(f"{API}/cart", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401

    @pytest.mark.parametrize("method,path", [
        ("get", "/admin/orders"),
        ("get", "/admin/logs"),
        ("get", "/users"),
        ("get", "/reports/analytics?start_date=2024-01-01&end_date=2024-01-31"),
        ("patch", "/admin/menus/any-id/toggle"),
    ])
    def test_customer_on_admin_routes(self, client, customer, auth_headers, method, path):
        response = getattr(client, method)(f"{API}{path}", headers=auth_headers(customer))
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    def test_catalog_for_customers(self, client, customer, auth_headers, burger):
        response = client.get(f"{API}/menus", headers=auth_headers(customer))
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["pagination"]["total_count"] == 1
        assert data["items"][0]["price"] == "12.99"


class TestOrderFlow:
    """从建菜到下单、取消、报表的完整流程"""

    def _create_item(self, client, headers, name, price, stock, category):
        response = client.post(f"{API}/admin/menus", headers=headers, json={
            "name": name, "price": price, "category": category, "stock": stock,
        })
        assert response.status_code == 201
        return response.json()["data"]

    def test_checkout_flow(self, client, customer, admin_user, auth_headers):
        admin = auth_headers(admin_user)
        user = auth_headers(customer)
        burger = self._create_item(client, admin, "Burger", "12.99", 5, "Burgers")
        salad = self._create_item(client, admin, "Salad", "9.75", 10, "Salads")

        response = client.post(f"{API}/cart/items", headers=user,
                               json={"menu_item_id": burger["id"], "quantity": 2})
        assert response.status_code == 201
        client.post(f"{API}/cart/items", headers=user,
                    json={"menu_item_id": salad["id"], "quantity": 1})

        cart = client.get(f"{API}/cart", headers=user).json()["data"]
        assert cart["total"] == "35.73"
        assert cart["item_count"] == 2

        response = client.post(f"{API}/orders/checkout", headers=user)
        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "Created"
        order = body["data"]["order"]
        assert order["total_amount"] == "35.73"
        assert order["status"] == "pending"
        assert body["data"]["warnings"] == []

        assert client.get(f"{API}/cart/count", headers=user).json()["data"]["count"] == 0
        item = client.get(f"{API}/menus/{burger['id']}", headers=user).json()["data"]
        assert item["stock"] == 3

        history = client.get(f"{API}/orders", headers=user).json()["data"]
        assert [o["id"] for o in history["items"]] == [order["id"]]

        response = client.post(f"{API}/orders/checkout", headers=user)
        assert response.status_code == 422
        assert response.json()["error"]["code"] == "EMPTY_CART"

    def test_out_of_stock_is_conflict(self, client, customer, auth_headers, burger):
        response = client.post(f"{API}/cart/items", headers=auth_headers(customer),
                               json={"menu_item_id": burger.id, "quantity": 6})
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "OUT_OF_STOCK"

    def test_cancel_after_delivery(self, client, services, customer, admin_user,
                                   auth_headers, burger):
        services.carts.add_item(customer.id, burger.id, 1)
        order_id = services.orders.checkout(customer.id).order.id

        response = client.put(f"{API}/admin/orders/{order_id}/status",
                              headers=auth_headers(admin_user), json={"status": "delivered"})
        assert response.status_code == 200
        assert response.json()["data"]["status"] == "delivered"

        response = client.post(f"{API}/orders/{order_id}/cancel", headers=auth_headers(customer))
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INVALID_TRANSITION"

    def test_foreign_order_is_not_found(self, client, services, customer, other_customer,
                                        auth_headers, burger):
        services.carts.add_item(customer.id, burger.id, 1)
        order_id = services.orders.checkout(customer.id).order.id

        response = client.get(f"{API}/orders/{order_id}", headers=auth_headers(other_customer))
        assert response.status_code == 404

    def test_unknown_status_value(self, client, admin_user, auth_headers):
        response = client.put(f"{API}/admin/orders/some-id/status",
                              headers=auth_headers(admin_user), json={"status": "lost"})
        assert response.status_code == 422


class TestReportsAPI:

    @pytest.fixture
    def sales(self, customer, burger, insert_order):
        insert_order(customer.id, datetime(2024, 1, 5, 12, 0), [(burger.id, "Burger", 2, "12.99")])

    @pytest.mark.usefixtures("sales")
    def test_sales_report(self, client, admin_user, auth_headers):
        response = client.get(
            f"{API}/reports/sales",
            params={"start_date": "2024-01-01", "end_date": "2024-01-31", "group_by": "month"},
            headers=auth_headers(admin_user),
        )
        assert response.status_code == 200
        rows = response.json()["data"]
        assert rows == [{
            "period": "2024-01-01", "total_sales": "25.98", "order_count": 1, "items_sold": 2,
        }]

    def test_inverted_range(self, client, admin_user, auth_headers):
        response = client.get(
            f"{API}/reports/analytics",
            params={"start_date": date(2024, 2, 1).isoformat(), "end_date": "2024-01-01"},
            headers=auth_headers(admin_user),
        )
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_ARGUMENT"

    @pytest.mark.usefixtures("sales")
    def test_export_csv(self, client, admin_user, auth_headers):
        response = client.get(
            f"{API}/reports/export",
            params={"start_date": "2024-01-01", "end_date": "2024-01-31", "format": "csv"},
            headers=auth_headers(admin_user),
        )
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "sales_2024-01-01_2024-01-31.csv" in response.headers["content-disposition"]
        lines = response.text.splitlines()
        assert lines == ["Date,TotalSales,OrderCount,ItemsSold", "2024-01-05,25.98,1,2"]

    def test_admin_logs(self, client, admin_user, auth_headers, burger):
        response = client.get(f"{API}/admin/logs", params={"action": "menu_create"},
                              headers=auth_headers(admin_user))
        assert response.status_code == 200
        items = response.json()["data"]["items"]
        assert items[0]["detail_json"]["menu_item_id"] == burger.id
