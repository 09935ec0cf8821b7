"""Integration tests for stock element API endpoints."""

from decimal import Decimal

import pytest

from config import settings
from services.entity_locks import entity_locks


@pytest.fixture
def element_id(client, admin_headers, element_type) -> str:
    response = client.post(
        "/api/stock-elements",
        json={
            "name": "Paper bag",
            "initial_quantity": "20",
            "minimum_quantity": "5",
            "element_type_id": element_type.id,
        },
        headers=admin_headers,
    )
    assert response.status_code == 201
    return response.json()["id"]


class TestStockElementEndpoints:
    def test_create_and_get(self, client, user_headers, element_id):
        response = client.get(f"/api/stock-elements/{element_id}", headers=user_headers)

        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["current_quantity"]) == Decimal("20")
        assert Decimal(data["total_ingested"]) == Decimal("20")
        assert data["element_type_name"] == "Cardboard box"
        assert data["is_below_threshold"] is False

    def test_duplicate_name_is_409(self, client, admin_headers, element_id):
        response = client.post(
            "/api/stock-elements", json={"name": "Paper bag"}, headers=admin_headers
        )
        assert response.status_code == 409
        assert response.json()["error"] == "DuplicateNameError"

    def test_update_metadata(self, client, admin_headers, element_id):
        response = client.put(
            f"/api/stock-elements/{element_id}",
            json={"location": "Till 1", "minimum_quantity": "25"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["location"] == "Till 1"
        assert data["is_below_threshold"] is True
        assert Decimal(data["current_quantity"]) == Decimal("20")

    def test_ingress_egress_flow(self, client, admin_headers, user_headers, element_id, reason):
        ingress = client.post(
            f"/api/stock-elements/{element_id}/ingress",
            json={"amount": "5", "reference_document": "DN-7"},
            headers=admin_headers,
        )
        assert ingress.status_code == 201
        assert Decimal(ingress.json()["element"]["current_quantity"]) == Decimal("25")
        assert ingress.json()["movement"]["kind"] == "ingress"

        egress = client.post(
            f"/api/stock-elements/{element_id}/egress",
            json={"amount": "25", "reason_id": reason.id},
            headers=admin_headers,
        )
        assert egress.status_code == 201
        assert egress.json()["element"]["is_active"] is False
        assert egress.json()["movement"]["reason_name"] == "Sale"

        history = client.get(
            f"/api/stock-elements/{element_id}/movements", headers=user_headers
        ).json()
        assert [m["sequence"] for m in history] == [3, 2, 1]

        egress_only = client.get(
            f"/api/stock-elements/{element_id}/movements?kind=egress", headers=user_headers
        ).json()
        assert len(egress_only) == 1

    def test_egress_without_reason_is_400(self, client, admin_headers, element_id):
        response = client.post(
            f"/api/stock-elements/{element_id}/egress", json={"amount": "1"}, headers=admin_headers
        )
        assert response.status_code == 400

    def test_egress_more_than_available_is_409(self, client, admin_headers, element_id, reason):
        response = client.post(
            f"/api/stock-elements/{element_id}/egress",
            json={"amount": "21", "reason_id": reason.id},
            headers=admin_headers,
        )
        assert response.status_code == 409
        assert response.json()["error"] == "InsufficientBalanceError"

    def test_adjustment(self, client, admin_headers, element_id):
        response = client.post(
            f"/api/stock-elements/{element_id}/adjustment",
            json={"delta": "-2", "reason_text": "Torn"},
            headers=admin_headers,
        )
        assert response.status_code == 201
        movement = response.json()["movement"]
        assert Decimal(movement["amount"]) == Decimal("2")
        assert movement["adjustment_reason"] == "Torn"

        too_far = client.post(
            f"/api/stock-elements/{element_id}/adjustment",
            json={"delta": "-50", "reason_text": "Recount"},
            headers=admin_headers,
        )
        assert too_far.status_code == 409
        assert too_far.json()["error"] == "NegativeResultError"

    def test_low_stock_report(self, client, admin_headers, user_headers, element_id, reason):
        assert client.get("/api/stock-elements/low-stock", headers=user_headers).json() == []

        client.post(
            f"/api/stock-elements/{element_id}/egress",
            json={"amount": "16", "reason_id": reason.id},
            headers=admin_headers,
        )

        low = client.get("/api/stock-elements/low-stock", headers=user_headers).json()
        assert [e["id"] for e in low] == [element_id]

    def test_soft_delete_then_ingress_rejected(self, client, admin_headers, user_headers, element_id):
        deleted = client.delete(f"/api/stock-elements/{element_id}", headers=admin_headers)
        assert deleted.status_code == 200

        response = client.post(
            f"/api/stock-elements/{element_id}/ingress", json={"amount": "1"}, headers=admin_headers
        )
        assert response.status_code == 409
        assert response.json()["error"] == "EntityDeletedError"

        history = client.get(f"/api/stock-elements/{element_id}/movements", headers=user_headers)
        assert len(history.json()) == 1

    def test_verify(self, client, admin_headers, user_headers, element_id, reason):
        client.post(
            f"/api/stock-elements/{element_id}/egress",
            json={"amount": "3.5", "reason_id": reason.id},
            headers=admin_headers,
        )

        data = client.get(f"/api/stock-elements/{element_id}/verify", headers=user_headers).json()

        assert data["is_consistent"] is True
        assert Decimal(data["stored_balance"]) == Decimal("16.50")

    def test_lock_timeout_is_503_with_retry_after(
        self, client, admin_headers, element_id, monkeypatch
    ):
        monkeypatch.setattr(settings, "LEDGER_LOCK_TIMEOUT_SECONDS", 0.05)
        monkeypatch.setattr(settings, "LEDGER_LOCK_RETRIES", 0)
        key = ("stock_elements", element_id)
        assert entity_locks.acquire(key, timeout=1)
        try:
            response = client.post(
                f"/api/stock-elements/{element_id}/ingress",
                json={"amount": "1"},
                headers=admin_headers,
            )
        finally:
            entity_locks.release(key)

        assert response.status_code == 503
        assert response.headers["Retry-After"] == "1"
        assert response.json()["error"] == "ConcurrencyTimeoutError"

    def test_element_type_rename_refreshes_cached_list(
        self, client, admin_headers, user_headers, element_id, element_type
    ):
        before = client.get("/api/stock-elements", headers=user_headers).json()
        assert before[0]["element_type_name"] == "Cardboard box"

        client.put(
            f"/api/element-types/{element_type.id}",
            json={"name": "Paper goods"},
            headers=admin_headers,
        )

        after = client.get("/api/stock-elements", headers=user_headers).json()
        assert after[0]["element_type_name"] == "Paper goods"
