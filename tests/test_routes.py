"""
HTTP tests: the pages and the JSON command endpoint behind the session cookie.
"""

import pytest
from fastapi.testclient import TestClient

from main import create_app


@pytest.fixture
def client(router, settings):
    app = create_app(settings=settings, command_router=router)
    with TestClient(app) as client:
        yield client


def login(client, username="alice", password="Passw0rd!"):
    return client.post(
        "/login",
        data={"username": username, "password": password},
        follow_redirects=False,
    )


class TestPages:

    def test_root_redirects_to_dashboard(self, client):
        response = client.get("/", follow_redirects=False)
        assert response.status_code == 302
        assert response.headers["location"] == "/dashboard"

    @pytest.mark.parametrize("path", ["/dashboard", "/transactions", "/categories", "/reports", "/settings"])
    def test_pages_require_login(self, client, path):
        response = client.get(path, follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/login"

    def test_login_page(self, client):
        response = client.get("/login")
        assert response.status_code == 200
        assert "password" in response.text

    def test_bad_login(self, client, admin_id):
        response = login(client, password="wrong")
        assert response.status_code == 401
        assert "Invalid credentials" in response.text

    def test_bootstrap_login_goes_to_password_change(self, client):
        response = login(client, "admin", "Admin@123")
        assert response.status_code == 303
        assert response.headers["location"] == "/settings?must_change=1"

        page = client.get("/settings?must_change=1")
        assert page.status_code == 200
        assert "temporary password" in page.text

    def test_dashboard_after_login(self, client, admin_id):
        response = login(client)
        assert response.headers["location"] == "/dashboard"

        page = client.get("/dashboard?period=week")
        assert page.status_code == 200
        assert "Total Balance" in page.text
        assert "User Management" not in page.text

    def test_superadmin_pages_are_hidden_from_admins(self, client, admin_id):
        login(client)
        response = client.get("/users", follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == "/dashboard"

    def test_create_transaction_through_form(self, client, admin_id, expense_category):
        login(client)
        response = client.post(
            "/transactions",
            data={
                "date": "2025-01-15",
                "type": "expense",
                "amount": "42.50",
                "category_id": str(expense_category.id),
                "description": "Weekly shop",
            },
        )
        assert response.status_code == 200
        assert "Weekly shop" in response.text
        assert "Transaction created successfully" in response.text

    def test_invalid_transaction_form_shows_error(self, client, admin_id, expense_category):
        login(client)
        response = client.post(
            "/transactions",
            data={"date": "2025-01-15", "type": "expense", "amount": "", "category_id": "", "description": "x"},
        )
        assert response.status_code == 400
        assert "Amount is required" in response.text

    def test_report_pdf(self, client, admin_id):
        login(client)
        response = client.get("/reports/pdf?month=2025-01")
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert "financial-report-2025-01.pdf" in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")

    def test_logout(self, client, admin_id):
        login(client)
        client.post("/logout")
        response = client.get("/dashboard", follow_redirects=False)
        assert response.headers["location"] == "/login"

    def test_theme_toggle(self, client):
        client.post("/theme", headers={"referer": "/login"})
        assert 'data-theme="dark"' in client.get("/login").text

    @pytest.mark.parametrize("referer, location", [
        ("http://testserver/reports?month=2025-01", "/reports?month=2025-01"),
        ("/transactions", "/transactions"),
        ("https://evil.example.com/phish", "/dashboard"),
        ("//evil.example.com/phish", "/dashboard"),
        ("javascript:alert(1)", "/dashboard"),
        (None, "/dashboard"),
    ])
    def test_theme_toggle_only_returns_to_this_app(self, client, referer, location):
        headers = {"referer": referer} if referer else {}
        response = client.post("/theme", headers=headers, follow_redirects=False)
        assert response.status_code == 303
        assert response.headers["location"] == location


class TestCommandEndpoint:

    def test_requires_session(self, client):
        body = client.post("/api/commands/getCategories", json={}).json()
        assert body == {"success": False, "message": "Unauthorized access"}

    def test_authenticate_starts_a_session(self, client, admin_id):
        body = client.post(
            "/api/commands/authenticate",
            json={"username": "alice", "password": "Passw0rd!"},
        ).json()
        assert body["success"] is True
        assert body["user"]["username"] == "alice"

        created = client.post(
            "/api/commands/createCategory",
            json={"name": "Fuel", "type": "expense", "color": "#123456"},
        ).json()
        assert created["success"] is True
        assert created["category"]["color"] == "#123456"

        listed = client.post("/api/commands/getCategories", json={"type": "expense"}).json()
        assert [c["name"] for c in listed["categories"]] == ["Fuel"]

    def test_role_gate_applies(self, client, viewer_id):
        login(client, "victor")
        body = client.post("/api/commands/getAuditLogs", json={}).json()
        assert body["message"] == "Unauthorized access"

    def test_body_must_be_an_object(self, client, admin_id):
        login(client)
        body = client.post("/api/commands/getCategories", json=[1, 2]).json()
        assert body["success"] is False

    def test_unknown_command(self, client, admin_id):
        login(client)
        body = client.post("/api/commands/frobnicate", json={}).json()
        assert body == {"success": False, "message": "Unknown command: frobnicate"}
