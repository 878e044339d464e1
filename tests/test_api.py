"""
Tests for the HTTP API
"""

import pytest
from datetime import timedelta

from fastapi.testclient import TestClient

from cueledger.api.server import create_app
from cueledger.core.config import LedgerConfig
from cueledger.core.models import utcnow
from cueledger.core.sessions import SessionLedger
from cueledger.core.stations import StationDirectory
from cueledger.persistence.memory import InMemoryStore

ADMIN = {"X-API-Key": "test-admin-key"}
CASHIER = {"X-API-Key": "test-cashier-key"}


@pytest.fixture
def api_store():
    return InMemoryStore()


@pytest.fixture
def client(api_store):
    config = LedgerConfig(
        database_url="memory://",
        admin_api_key="test-admin-key",
        cashier_api_key="test-cashier-key",
    )
    app = create_app(config=config, store=api_store)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def table(api_store):
    return StationDirectory(api_store).add_station("Billiard Table 1", "billiard", 100)


@pytest.fixture
def long_session(api_store, table):
    """A session that has been running for 90 minutes."""
    return SessionLedger(api_store).start_session(
        table.id, now=utcnow() - timedelta(minutes=90)
    )


class TestHealthAndAuth:

    def test_health_needs_no_key(self, client, table):
        response = client.get("/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["stations"]["available"] == 1
        assert body["active_sessions"] == 0

    def test_missing_key(self, client):
        assert client.get("/stations").status_code == 422

    def test_wrong_key(self, client):
        response = client.get("/stations", headers={"X-API-Key": "nope"})
        assert response.status_code == 401

    def test_cashier_cannot_manage_stations(self, client):
        response = client.post(
            "/stations",
            json={"name": "Table 2", "type": "billiard", "hourly_rate": 80},
            headers=CASHIER,
        )
        assert response.status_code == 403

    def test_cashier_cannot_read_reports(self, client):
        assert client.get("/reports", headers=CASHIER).status_code == 403


class TestStationEndpoints:

    def test_station_crud(self, client):
        created = client.post(
            "/stations",
            json={"name": "PS4 Station 1", "type": "ps4", "hourly_rate": 60},
            headers=ADMIN,
        )
        assert created.status_code == 201
        station_id = created.json()["id"]

        updated = client.put(f"/stations/{station_id}", json={"hourly_rate": 70}, headers=ADMIN)
        assert updated.status_code == 200
        assert updated.json()["hourly_rate"] == 70
        assert updated.json()["name"] == "PS4 Station 1"

        listed = client.get("/stations", headers=CASHIER).json()
        assert [s["id"] for s in listed] == [station_id]

        assert client.delete(f"/stations/{station_id}", headers=ADMIN).status_code == 200
        assert client.delete(f"/stations/{station_id}", headers=ADMIN).status_code == 404

    def test_invalid_station_type(self, client):
        response = client.post(
            "/stations",
            json={"name": "Xbox 1", "type": "xbox", "hourly_rate": 60},
            headers=ADMIN,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "InvalidArgument"


class TestSessionEndpoints:

    def test_start_and_list(self, client, table):
        response = client.post("/sessions", json={"station_id": table.id, "customer_name": "Ann"}, headers=CASHIER)

        assert response.status_code == 201
        assert response.json()["payment_status"] == "pending"

        active = client.get("/sessions", headers=CASHIER).json()
        assert len(active) == 1
        assert active[0]["hourly_rate"] == 100
        assert active[0]["type"] == "billiard"

    def test_busy_station_conflict(self, client, table):
        client.post("/sessions", json={"station_id": table.id}, headers=CASHIER)
        response = client.post("/sessions", json={"station_id": table.id}, headers=CASHIER)

        assert response.status_code == 409
        assert response.json()["error"] == "StationUnavailable"

    def test_partial_end_opens_credit(self, client, long_session):
        response = client.post(
            f"/sessions/{long_session.session_id}/end",
            json={"mode": "partial", "amount": 100, "customer_name": "Bob"},
            headers=CASHIER,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["final_suggested"] == 150
        assert body["final_paid"] == 100
        assert body["balance"] == 50
        assert body["session"]["payment_status"] == "partially_paid"
        assert body["credit"]["amount"] == 50

    def test_double_end_is_conflict(self, client, long_session):
        path = f"/sessions/{long_session.session_id}/end"
        client.post(path, json={"mode": "cash", "amount": 150}, headers=CASHIER)

        response = client.post(path, json={"mode": "cash", "amount": 150}, headers=CASHIER)

        assert response.status_code == 409
        assert response.json()["error"] == "SessionAlreadyClosed"

    def test_credit_without_name(self, client, long_session):
        response = client.post(
            f"/sessions/{long_session.session_id}/end",
            json={"mode": "credit"},
            headers=CASHIER,
        )
        assert response.status_code == 400
        assert response.json()["error"] == "MissingCustomerName"

    def test_unknown_session(self, client):
        response = client.post("/sessions/SES-missing/end", json={"mode": "cash", "amount": 10}, headers=CASHIER)
        assert response.status_code == 404


class TestCreditAndReportEndpoints:

    def test_credit_settlement_flow(self, client, long_session):
        client.post(
            f"/sessions/{long_session.session_id}/end",
            json={"mode": "credit", "customer_name": "Carol"},
            headers=CASHIER,
        )

        listing = client.get("/credits", params={"search": "carol"}, headers=CASHIER).json()
        assert listing["outstanding_count"] == 1
        assert listing["total_outstanding"] == 150
        credit_id = listing["credits"][0]["credit_id"]

        settled = client.post(f"/credits/{credit_id}/pay", headers=CASHIER)
        assert settled.status_code == 200
        assert settled.json()["status"] == "paid"

        again = client.post(f"/credits/{credit_id}/pay", headers=CASHIER)
        assert again.status_code == 409
        assert again.json()["error"] == "AlreadyPaid"

        payments = client.get("/payments", headers=ADMIN).json()
        assert payments["total"] == 1
        assert payments["payments"][0]["amount"] == 150

    def test_invalid_credit_status_filter(self, client):
        response = client.get("/credits", params={"status": "forgiven"}, headers=CASHIER)
        assert response.status_code == 400

    def test_report(self, client, long_session):
        client.post(
            f"/sessions/{long_session.session_id}/end",
            json={"mode": "cash", "amount": 120},
            headers=CASHIER,
        )

        report = client.get("/reports", params={"period": "monthly"}, headers=ADMIN).json()

        assert report["period"] == "monthly"
        assert len(report["data"]) == 6
        assert report["summary"]["total_revenue"] == 120
        assert report["summary"]["total_sessions"] == 1

    def test_unknown_report_period(self, client):
        response = client.get("/reports", params={"period": "yearly"}, headers=ADMIN)
        assert response.status_code == 400
