"""
Tests for the HTTP adapter and settings

Tests cover:
1. Health check
2. Group balances response shape and netting flag
3. Error mapping for rejected input
4. Settings loaded from the environment
"""

import pytest
from decimal import Decimal
from fastapi.testclient import TestClient
from mangum import Mangum

from balances.api import app, handler
from balances.config import Settings


@pytest.fixture
def client():
    return TestClient(app)


def group_payload(**overrides) -> dict:
    payload = {
        "group": {"id": "g1", "name": "Flat", "description": "Shared flat costs"},
        "members": [
            {"id": "u1", "name": "Alice", "imageUrl": None, "role": "admin"},
            {"id": "u2", "name": "Bob", "imageUrl": None, "role": "member"},
            {"id": "u3", "name": "Carol", "imageUrl": None, "role": "member"},
        ],
        "expenses": [
            {
                "paidByUserId": "u1",
                "description": "Groceries",
                "splits": [
                    {"userId": "u1", "amount": 20, "paid": False},
                    {"userId": "u2", "amount": 20, "paid": False},
                    {"userId": "u3", "amount": 20, "paid": False},
                ],
            },
            {
                "paidByUserId": "u2",
                "splits": [{"userId": "u1", "amount": 5}],
            },
        ],
        "settlements": [
            {"paidByUserId": "u2", "receivedByUserId": "u1", "amount": 10, "note": "cash"},
        ],
    }
    payload.update(overrides)
    return payload


def debts(entries, key):
    return [(e[key], Decimal(str(e["amount"]))) for e in entries]


class TestHealth:
    """Tests for the health check and deployment entry points."""

    def test_health_check(self, client):
        """Test that the service reports itself healthy."""
        res = client.get("/health")

        assert res.status_code == 200
        assert res.json() == {"status": "healthy", "service": "group-balances"}

    def test_serverless_handler(self):
        """Test that the app is wrapped for serverless deployment."""
        assert isinstance(handler, Mangum)


class TestGroupBalancesEndpoint:
    """Tests for POST /groups/balances."""

    def test_balances(self, client):
        """Test the computed balances and the camelCase response."""
        res = client.post("/groups/balances", json=group_payload())

        assert res.status_code == 200
        data = res.json()

        alice, bob, carol = data["balances"]
        assert Decimal(str(alice["totalBalance"])) == Decimal("25")
        assert Decimal(str(bob["totalBalance"])) == Decimal("-5")
        assert Decimal(str(carol["totalBalance"])) == Decimal("-20")

        # Verify opposite debts between u1 and u2 are both reported
        assert debts(alice["owes"], "to") == [("u2", Decimal("5"))]
        assert debts(alice["owedBy"], "from") == [("u2", Decimal("10")), ("u3", Decimal("20"))]
        assert debts(bob["owes"], "to") == [("u1", Decimal("10"))]

    def test_inputs_echoed(self, client):
        """Test that group, members, raw records and the lookup map come back."""
        data = client.post("/groups/balances", json=group_payload()).json()

        assert data["group"] == {"id": "g1", "name": "Flat", "description": "Shared flat costs"}
        assert [m["id"] for m in data["members"]] == ["u1", "u2", "u3"]
        assert data["expenses"][0]["description"] == "Groceries"
        assert data["settlements"][0]["note"] == "cash"
        assert data["userLookupMap"]["u3"]["name"] == "Carol"

    def test_net_query_parameter(self, client):
        """Test that ?net=true collapses opposite debts."""
        res = client.post("/groups/balances", params={"net": "true"}, json=group_payload())

        assert res.status_code == 200
        alice, bob, _ = res.json()["balances"]
        assert alice["owes"] == []
        assert debts(bob["owes"], "to") == [("u1", Decimal("5"))]

    def test_unknown_member_rejected(self, client):
        """Test that a settlement with an outsider maps to 422."""
        payload = group_payload(settlements=[
            {"paidByUserId": "u2", "receivedByUserId": "ghost", "amount": 1},
        ])

        res = client.post("/groups/balances", json=payload)

        assert res.status_code == 422
        assert "ghost" in res.json()["detail"]

    def test_negative_amount_rejected(self, client):
        """Test that a negative split maps to 422."""
        payload = group_payload(expenses=[
            {"paidByUserId": "u1", "splits": [{"userId": "u2", "amount": -3}]},
        ])

        res = client.post("/groups/balances", json=payload)

        assert res.status_code == 422
        assert "negative" in res.json()["detail"]

    def test_duplicate_member_rejected(self, client):
        """Test that a member listed twice maps to 422."""
        payload = group_payload()
        payload["members"].append({"id": "u1", "name": "Alice again"})

        res = client.post("/groups/balances", json=payload)

        assert res.status_code == 422

    def test_malformed_body(self, client):
        """Test that a split without a member id fails validation."""
        payload = group_payload(expenses=[{"paidByUserId": "u1", "splits": [{"amount": 3}]}])

        res = client.post("/groups/balances", json=payload)

        assert res.status_code == 422

    def test_very_large_amount(self, client):
        """Test that a 28-digit split is accepted and returned in full."""
        payload = group_payload(
            expenses=[{
                "paidByUserId": "u1",
                "splits": [{"userId": "u2", "amount": "1000000000000000000000000000"}],
            }],
            settlements=[],
        )

        res = client.post("/groups/balances", json=payload)

        assert res.status_code == 200
        alice, bob, _ = res.json()["balances"]
        assert alice["totalBalance"] == "1000000000000000000000000000.00"
        assert debts(bob["owes"], "to") == [("u1", Decimal("1e27"))]

    def test_amounts_are_decimal_strings(self, client):
        """Test that money leaves the API as exact decimal strings."""
        data = client.post("/groups/balances", json=group_payload()).json()

        alice = data["balances"][0]
        assert alice["totalBalance"] == "25.00"
        assert alice["owedBy"][0]["amount"] == "10.00"


class TestSettings:
    """Tests for settings loading."""

    def test_defaults(self):
        """Test the defaults when no environment is set."""
        settings = Settings(_env_file=None)

        assert settings.net_pairwise_debts is False
        assert settings.amount_places == 2
        assert settings.origins == ["*"]

    def test_from_environment(self, monkeypatch):
        """Test that BALANCES_ variables override the defaults."""
        monkeypatch.setenv("BALANCES_NET_PAIRWISE_DEBTS", "true")
        monkeypatch.setenv("BALANCES_AMOUNT_PLACES", "3")
        monkeypatch.setenv("BALANCES_ALLOWED_ORIGINS", "https://a.example, https://b.example")

        settings = Settings(_env_file=None)

        assert settings.net_pairwise_debts is True
        assert settings.amount_places == 3
        assert settings.origins == ["https://a.example", "https://b.example"]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
