"""
Tests for the Maintenance Alert REST API.

Exercises the FastAPI router end to end against an in-memory
SQLite store; caller identity comes from request headers.
"""

import pytest
from fastapi.testclient import TestClient

from maintenance_alerts.api import create_app
from maintenance_alerts.router import get_alert_store, get_clock


ACME = {"X-Company-Id": "acme", "X-User-Id": "op-alice"}
ACME_BOB = {"X-Company-Id": "acme", "X-User-Id": "op-bob"}
GLOBEX = {"X-Company-Id": "globex", "X-User-Id": "op-eve"}


@pytest.fixture
def client(store, clock):
    app = create_app()
    app.dependency_overrides[get_alert_store] = lambda: store
    app.dependency_overrides[get_clock] = lambda: clock
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def seeded(store, alert_builder, clock):
    """Three ACME alerts (critical, warning, info) and one GLOBEX alert."""
    records = {}
    for component_id, kwargs in [
        ("pump", dict(days=3, current_stock=0)),
        ("fan", dict(days=6, current_stock=3)),
        ("belt", dict(days=9, current_stock=3)),
    ]:
        records[component_id], _ = store.create(alert_builder(component_id=component_id, **kwargs), "acme")
        clock.advance(minutes=1)
    records["globex"], _ = store.create(alert_builder(component_id="valve", days=3, current_stock=0), "globex")
    return records


# =============================================================
# TEST: Query Endpoints
# =============================================================

class TestQueryEndpoints:

    def test_list(self, client, seeded):
        response = client.get("/maintenance/alerts", headers=ACME)

        assert response.status_code == 200
        body = response.json()
        assert body["total"] == 3
        assert body["total_pages"] == 1
        assert [item["component_id"] for item in body["items"]] == ["belt", "fan", "pump"]
        assert body["items"][0]["is_stale"] is False

    def test_list_with_filters(self, client, seeded):
        response = client.get(
            "/maintenance/alerts",
            params={"severity": "critical,warning", "stock_status": "CRITICAL"},
            headers=ACME,
        )

        assert response.status_code == 200
        assert [item["component_id"] for item in response.json()["items"]] == ["pump"]

    def test_list_repeated_parameters(self, client, seeded):
        response = client.get(
            "/maintenance/alerts",
            params=[("alert_type", "WARNING_MTBF"), ("alert_type", "REORDER_RECOMMENDED")],
            headers=ACME,
        )
        assert response.json()["total"] == 2

    def test_pagination(self, client, seeded):
        response = client.get("/maintenance/alerts", params={"page": 2, "limit": 2}, headers=ACME)

        body = response.json()
        assert body["total"] == 3
        assert body["total_pages"] == 2
        assert len(body["items"]) == 1

    def test_invalid_enum_value(self, client, seeded):
        response = client.get("/maintenance/alerts", params={"severity": "PANIC"}, headers=ACME)
        assert response.status_code == 400

    def test_limit_out_of_range(self, client, seeded):
        response = client.get("/maintenance/alerts", params={"limit": 500}, headers=ACME)
        assert response.status_code == 422

    def test_missing_identity_headers(self, client, seeded):
        assert client.get("/maintenance/alerts").status_code == 422

    def test_get_alert(self, client, seeded):
        alert_id = seeded["pump"].id
        response = client.get(f"/maintenance/alerts/{alert_id}", headers=ACME)

        assert response.status_code == 200
        assert response.json()["alert_type"] == "STOCK_OUT_CRITICAL"
        assert response.json()["status"] == "ACTIVE"

    def test_get_foreign_alert_is_404(self, client, seeded):
        response = client.get(f"/maintenance/alerts/{seeded['globex'].id}", headers=ACME)
        assert response.status_code == 404

    def test_stale_flag(self, client, seeded, clock):
        clock.advance(days=8)
        response = client.get(f"/maintenance/alerts/{seeded['pump'].id}", headers=ACME)
        assert response.json()["is_stale"] is True

    def test_summary(self, client, seeded):
        body = client.get("/maintenance/alerts/summary", headers=ACME).json()

        assert body["total"] == 3
        assert body["critical"] == 1
        assert body["warning"] == 1
        assert body["info"] == 1
        assert body["by_type"]["URGENT_MTBF"] == 0

    def test_analytics(self, client, seeded):
        body = client.get("/maintenance/alerts/analytics", headers=ACME).json()

        assert body["total_active"] == 3
        assert body["by_criticality"]["A"] == 3
        assert len(body["top_components"]) == 3

    def test_trends(self, client, seeded):
        response = client.get("/maintenance/alerts/trends", params={"days": 3}, headers=ACME)

        points = response.json()
        assert len(points) == 3
        assert points[-1]["day"] == "2024-06-01"
        assert points[-1]["total"] == 3


# =============================================================
# TEST: Mutation Endpoints
# =============================================================

class TestMutationEndpoints:

    def test_resolve(self, client, seeded):
        response = client.post(
            f"/maintenance/alerts/{seeded['pump'].id}/resolve",
            json={"linked_work_order_id": "WO-7", "notes": "bearing swapped"},
            headers=ACME,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "RESOLVED"
        assert body["resolved_by"] == "op-alice"
        assert body["linked_work_order_id"] == "WO-7"

    def test_resolve_twice_is_409(self, client, seeded):
        url = f"/maintenance/alerts/{seeded['pump'].id}/resolve"
        client.post(url, json={}, headers=ACME)

        response = client.post(url, json={}, headers=ACME_BOB)

        assert response.status_code == 409
        assert response.json()["detail"]["current_status"] == "RESOLVED"
        assert "op-alice" in response.json()["detail"]["message"]

    def test_resolve_foreign_alert_is_404(self, client, seeded):
        response = client.post(
            f"/maintenance/alerts/{seeded['globex'].id}/resolve", json={}, headers=ACME
        )
        assert response.status_code == 404

    def test_dismiss(self, client, seeded):
        response = client.post(
            f"/maintenance/alerts/{seeded['fan'].id}/dismiss",
            json={"reason": "duplicate of WO-3"},
            headers=ACME,
        )

        assert response.status_code == 200
        assert response.json()["status"] == "DISMISSED"
        assert response.json()["dismiss_reason"] == "duplicate of WO-3"

    def test_dismiss_blank_reason_is_422(self, client, seeded):
        url = f"/maintenance/alerts/{seeded['fan'].id}/dismiss"

        response = client.post(url, json={"reason": "   "}, headers=ACME)

        assert response.status_code == 422
        after = client.get(f"/maintenance/alerts/{seeded['fan'].id}", headers=ACME).json()
        assert after["status"] == "ACTIVE"

    def test_dismiss_after_resolve_is_409(self, client, seeded):
        alert_id = seeded["belt"].id
        client.post(f"/maintenance/alerts/{alert_id}/resolve", json={}, headers=ACME)

        response = client.post(
            f"/maintenance/alerts/{alert_id}/dismiss", json={"reason": "noise"}, headers=ACME_BOB
        )

        assert response.status_code == 409
        assert response.json()["detail"]["current_status"] == "RESOLVED"


class TestHealth:

    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "ok"
        assert body["version"] == "1.0.0"
