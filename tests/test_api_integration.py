"""
Integration tests for the Omsin Ledger API
Tests end-to-end workflows using FastAPI TestClient
"""

import pytest
from fastapi.testclient import TestClient

from omsin_bank.api import create_app
from omsin_bank.storage import InMemoryStorage
from omsin_bank.store import LedgerStore


@pytest.fixture
def store():
    """Fresh in-memory store seeded with the demo accounts"""
    store = LedgerStore(InMemoryStorage())
    store.seed_demo_data()
    return store


@pytest.fixture
def client(store):
    """Create a test client bound to the test store"""
    return TestClient(create_app(store))


def send(client, amount="100.00", to="0987654321", sender="1", description="Rent"):
    return client.post("/transfers", json={
        "from_account_id": sender,
        "to_account_number": to,
        "amount": amount,
        "description": description
    })


class TestHealthEndpoints:
    """Test basic health and root endpoints"""

    def test_health(self, client):
        r = client.get("/health")
        assert r.status_code == 200
        assert r.json()["status"] == "healthy"

    def test_root(self, client):
        r = client.get("/")
        assert r.status_code == 200
        data = r.json()
        assert data["name"] == "Omsin Financial Ledger API"
        assert "endpoints" in data


class TestAuthFlow:
    """Login, current account and logout"""

    def test_login(self, client):
        r = client.post("/auth/login", json={"email": "demo@omsin.com", "password": "demo123"})
        assert r.status_code == 200
        account = r.json()["account"]
        assert account["id"] == "1"
        assert account["name"] == "Omar Sima"
        assert "password" not in account

    def test_login_wrong_password(self, client):
        r = client.post("/auth/login", json={"email": "demo@omsin.com", "password": "nope"})
        assert r.status_code == 401
        assert r.json() == {"error": "invalid_credentials", "message": "Invalid email or password"}

    def test_login_missing_fields(self, client):
        r = client.post("/auth/login", json={"email": "", "password": ""})
        assert r.status_code == 422
        assert r.json() == {"error": "validation_error", "message": "Please fill in all fields"}

    def test_me_and_logout(self, client):
        r = client.get("/auth/me")
        assert r.status_code == 401
        assert r.json()["error"] == "not_authenticated"

        client.post("/auth/login", json={"email": "jane@omsin.com", "password": "fatou123"})
        r = client.get("/auth/me")
        assert r.status_code == 200
        assert r.json()["account_number"] == "0987654321"

        r = client.post("/auth/logout")
        assert r.json() == {"logged_out": True}
        assert client.get("/auth/me").status_code == 401

    def test_me_reflects_transfers(self, client):
        client.post("/auth/login", json={"email": "demo@omsin.com", "password": "demo123"})
        send(client)
        assert client.get("/auth/me").json()["balance"]["amount"] == "15650.50"


class TestAccountEndpoints:

    def test_get_account(self, client):
        r = client.get("/accounts/1")
        assert r.status_code == 200
        data = r.json()
        assert data["balance"] == {"amount": "15750.50", "currency": "USD"}
        assert data["account_type"] == "Savings"

    def test_unknown_account(self, client):
        r = client.get("/accounts/999")
        assert r.status_code == 404
        assert r.json()["error"] == "account_not_found"

    def test_recipients(self, client):
        r = client.get("/accounts/1/recipients")
        assert r.status_code == 200
        recipients = r.json()["recipients"]
        assert {x["account_number"] for x in recipients} == {"0987654321", "0747954315"}
        assert all("balance" not in x for x in recipients)

    def test_update_profile(self, client):
        r = client.put("/accounts/1/profile", json={
            "name": "Omar Sima",
            "email": "omar@omsin.com",
            "phone": "+220 555 0101",
            "address": "Banjul, The Gambia"
        })
        assert r.status_code == 200
        account = r.json()["account"]
        assert account["email"] == "omar@omsin.com"
        assert account["phone"] == "+220 555 0101"
        assert account["balance"]["amount"] == "15750.50"

    def test_update_profile_invalid_email(self, client):
        r = client.put("/accounts/1/profile", json={"name": "Omar Sima", "email": "omar"})
        assert r.status_code == 422
        assert r.json()["error"] == "validation_error"

    def test_summary(self, client):
        send(client)
        r = client.get("/accounts/1/summary")
        assert r.status_code == 200
        data = r.json()
        assert data["account"]["balance"]["amount"] == "15650.50"
        assert len(data["recent_transactions"]) == 1
        assert data["totals"]["debits"]["amount"] == "100.00"
        assert data["monthly_change"]["amount"] == "-100.00"


class TestTransferFlow:

    def test_transfer(self, client):
        r = send(client)
        assert r.status_code == 201
        data = r.json()
        assert data["message"] == "Successfully transferred USD 100.00 to Fatou Kah"
        assert data["sender"]["balance"]["amount"] == "15650.50"
        assert data["debit"]["balance"]["amount"] == "15650.50"
        assert data["credit"]["balance"]["amount"] == "9020.75"
        assert data["debit"]["date"] == data["credit"]["date"]
        assert "balance" not in data["recipient"]

        assert client.get("/accounts/2").json()["balance"]["amount"] == "9020.75"

    def test_numeric_amount(self, client):
        r = send(client, amount=12.5)
        assert r.status_code == 201
        assert r.json()["amount"]["amount"] == "12.50"

    @pytest.mark.parametrize("kwargs,status_code,error", [
        ({"amount": "10000.01"}, 422, "transfer_limit_exceeded"),
        ({"amount": "1e30"}, 422, "transfer_limit_exceeded"),
        ({"amount": "1" + "0" * 26}, 422, "transfer_limit_exceeded"),
        ({"amount": 1e300}, 422, "transfer_limit_exceeded"),
        ({"amount": "2000.26", "sender": "3", "to": "1234567890"}, 409, "insufficient_funds"),
        ({"to": "1234567890"}, 404, "recipient_not_found"),
        ({"to": "5555555555"}, 404, "recipient_not_found"),
        ({"sender": "999"}, 404, "account_not_found"),
        ({"amount": "abc"}, 422, "validation_error"),
        ({"description": ""}, 422, "validation_error"),
    ])
    def test_rejections_leave_balances(self, client, kwargs, status_code, error):
        r = send(client, **kwargs)
        assert r.status_code == status_code
        assert r.json()["error"] == error

        assert client.get("/accounts/1").json()["balance"]["amount"] == "15750.50"
        assert client.get("/accounts/2").json()["balance"]["amount"] == "8920.75"
        assert client.get("/accounts/3").json()["balance"]["amount"] == "2000.25"

    def test_preview(self, client):
        r = client.get("/transfers/preview", params={"account_id": "1", "amount": "100"})
        assert r.status_code == 200
        data = r.json()
        assert data["remaining_balance"]["amount"] == "15650.50"
        assert data["sufficient_funds"] is True

    def test_preview_shortfall(self, client):
        r = client.get("/transfers/preview", params={"account_id": "3", "amount": "2500"})
        assert r.status_code == 200
        data = r.json()
        assert data["remaining_balance"]["amount"] == "-499.75"
        assert data["sufficient_funds"] is False

    @pytest.mark.parametrize("amount", ["10000.01", "1e30"])
    def test_preview_over_limit(self, client, amount):
        r = client.get("/transfers/preview", params={"account_id": "1", "amount": amount})
        assert r.status_code == 422
        assert r.json()["error"] == "transfer_limit_exceeded"

    def test_malformed_body_uses_error_shape(self, client):
        r = client.post("/transfers", json={"to_account_number": "0987654321", "amount": "1"})
        assert r.status_code == 422
        data = r.json()
        assert set(data) == {"error", "message"}
        assert data["error"] == "validation_error"
        assert "from_account_id" in data["message"]

        assert client.get("/accounts/1").json()["balance"]["amount"] == "15750.50"


class TestTransactionHistory:

    def setup_transfers(self, client):
        send(client, amount="100.00", description="Rent")
        send(client, amount="25.00", sender="2", to="1234567890", description="Lunch")

    def test_list(self, client):
        self.setup_transfers(client)
        r = client.get("/accounts/1/transactions")
        assert r.status_code == 200
        data = r.json()
        assert [t["type"] for t in data["transactions"]] == ["credit", "debit"]
        assert data["totals"]["credits"]["amount"] == "25.00"
        assert data["totals"]["debits"]["amount"] == "100.00"
        assert data["totals"]["count"] == 2

    def test_filters_and_sort(self, client):
        self.setup_transfers(client)

        debits = client.get("/accounts/1/transactions", params={"type": "debit"}).json()["transactions"]
        assert [t["description"] for t in debits] == ["Transfer to Fatou Kah - Rent"]

        found = client.get("/accounts/1/transactions", params={"search": "LUNCH"}).json()["transactions"]
        assert len(found) == 1

        oldest = client.get("/accounts/1/transactions", params={"sort": "oldest"}).json()["transactions"]
        assert [t["type"] for t in oldest] == ["debit", "credit"]

        limited = client.get("/accounts/1/transactions", params={"limit": 1}).json()["transactions"]
        assert len(limited) == 1

    def test_bad_query_values(self, client):
        r = client.get("/accounts/1/transactions", params={"sort": "sideways"})
        assert r.status_code == 422
        r = client.get("/accounts/1/transactions", params={"type": "refund"})
        assert r.status_code == 422
        assert r.json()["error"] == "validation_error"

    def test_unknown_account(self, client):
        assert client.get("/accounts/999/transactions").status_code == 404
