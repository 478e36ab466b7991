"""Contract tests for the billing API endpoints."""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from rentbill.services.preview_sequencer import preview_sequencer

STAFF_HEADERS = {"X-Actor-Id": "7"}


def _invoice_payload(room, contract, **overrides) -> dict:
    payload = {
        "contract_id": contract.id,
        "room_id": room.id,
        "month_year": "2024-03",
        "water_reading": 110,
        "elec_reading": 230,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def created_invoice(client: TestClient, billed_room) -> dict:
    room, contract = billed_room
    response = client.post(
        "/api/billing/create-invoice", json=_invoice_payload(room, contract), headers=STAFF_HEADERS
    )
    assert response.status_code == 201
    return response.json()


class TestCalculateEndpoint:
    def test_returns_preview(self, client: TestClient, billed_room):
        room, contract = billed_room

        response = client.post(
            "/api/billing/calculate",
            json={"room_id": room.id, "current_water": 110, "current_elec": 230, "month_year": "2024-03"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["prev_readings"] == {"water": 100, "elec": 200}
        assert data["usage"] == {"water": 10, "elec": 30}
        assert Decimal(data["costs"]["water"]) == Decimal("180")
        assert Decimal(data["costs"]["elec"]) == Decimal("210")
        assert Decimal(data["costs"]["rent"]) == Decimal("3000")
        assert Decimal(data["total_amount"]) == Decimal("3390")
        assert data["contract_id"] == contract.id
        assert data["stale"] is False

    def test_regression_is_422(self, client: TestClient, billed_room):
        room, _ = billed_room

        response = client.post(
            "/api/billing/calculate",
            json={"room_id": room.id, "current_water": 90, "current_elec": 230, "month_year": "2024-03"},
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "validation_error"
        assert "Water reading" in response.json()["error"]["message"]

    def test_unknown_room_is_404(self, client: TestClient):
        response = client.post(
            "/api/billing/calculate",
            json={"room_id": 999, "current_water": 1, "current_elec": 1, "month_year": "2024-03"},
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "not_found"

    def test_malformed_period_rejected(self, client: TestClient, billed_room):
        room, _ = billed_room

        response = client.post(
            "/api/billing/calculate",
            json={"room_id": room.id, "current_water": 110, "current_elec": 230, "month_year": "2024-3"},
        )

        assert response.status_code == 422

    def test_superseded_preview_is_flagged_stale(self, client: TestClient, billed_room):
        room, _ = billed_room
        body = {"room_id": room.id, "current_water": 110, "current_elec": 230, "month_year": "2024-03"}
        preview_sequencer.forget("form-stale")

        newer = client.post(
            "/api/billing/calculate", json={**body, "client_key": "form-stale", "request_id": 2}
        )
        older = client.post(
            "/api/billing/calculate", json={**body, "client_key": "form-stale", "request_id": 1}
        )

        assert newer.json()["stale"] is False
        assert older.json()["stale"] is True
        assert older.json()["request_id"] == 1
        preview_sequencer.forget("form-stale")

    def test_latest_reading(self, client: TestClient, billed_room):
        room, _ = billed_room

        response = client.get(f"/api/billing/latest-reading/{room.id}", params={"month_year": "2024-03"})

        assert response.status_code == 200
        assert response.json() == {"water": 100, "elec": 200}


class TestCreateInvoiceEndpoint:
    def test_creates_invoice(self, created_invoice):
        assert created_invoice["status"] == "pending"
        assert Decimal(created_invoice["total_amount"]) == Decimal("3390")
        assert [item["item_type"] for item in created_invoice["items"]] == ["rent", "water", "electric"]
        assert sum(Decimal(item["amount"]) for item in created_invoice["items"]) == Decimal("3390")
        assert created_invoice["settlement"] is None

    def test_duplicate_period_is_409(self, client: TestClient, billed_room, created_invoice):
        room, contract = billed_room

        response = client.post("/api/billing/create-invoice", json=_invoice_payload(room, contract))

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "conflict"

    def test_inactive_contract_is_409(self, client: TestClient, make_room, make_contract):
        room = make_room()
        contract = make_contract(room, is_active=False)

        response = client.post(
            "/api/billing/create-invoice",
            json=_invoice_payload(room, contract, water_reading=5, elec_reading=5),
        )

        assert response.status_code == 409
        assert response.json()["error"]["code"] == "no_active_contract"

    def test_move_out_with_refund(self, client: TestClient, billed_room):
        room, contract = billed_room

        response = client.post(
            "/api/billing/create-invoice",
            json=_invoice_payload(room, contract, is_move_out=True, cleaning_fee="500"),
        )

        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "paid"
        assert Decimal(data["refund_amount"]) == Decimal("6110")
        settlement = data["settlement"]
        assert Decimal(settlement["total_deductions"]) == Decimal("3890")
        assert settlement["tenant_owes"] is False
        assert settlement["message"].startswith("Refund")

    def test_move_out_with_amount_owed(self, client: TestClient, make_room, make_contract, add_reading):
        room = make_room()
        contract = make_contract(room, deposit=Decimal("3000"))
        add_reading(room, "2024-02", water=100, elec=200)

        response = client.post(
            "/api/billing/create-invoice", json=_invoice_payload(room, contract, is_move_out=True)
        )

        assert response.status_code == 201
        settlement = response.json()["settlement"]
        assert Decimal(settlement["refund"]) == Decimal("-390")
        assert Decimal(settlement["amount_owed"]) == Decimal("390")
        assert settlement["tenant_owes"] is True
        assert Decimal(response.json()["amount_due"]) == Decimal("390")

    def test_fee_with_fractions_of_a_cent_is_422(self, client: TestClient, billed_room):
        room, contract = billed_room

        response = client.post(
            "/api/billing/create-invoice",
            json=_invoice_payload(room, contract, is_move_out=True, cleaning_fee="0.005"),
        )

        assert response.status_code == 422


class TestInvoiceEndpoints:
    def test_get_and_list(self, client: TestClient, created_invoice):
        invoice_id = created_invoice["id"]

        assert client.get(f"/api/billing/{invoice_id}").json()["id"] == invoice_id
        listed = client.get("/api/billing", params={"status": "pending", "month_year": "2024-03"})
        assert [i["id"] for i in listed.json()] == [invoice_id]
        assert client.get("/api/billing/999").status_code == 404

    def test_update_status(self, client: TestClient, created_invoice):
        response = client.patch(
            f"/api/billing/{created_invoice['id']}/status", json={"status": "cancelled"}
        )

        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

    def test_unknown_status_is_422(self, client: TestClient, created_invoice):
        response = client.patch(f"/api/billing/{created_invoice['id']}/status", json={"status": "void"})

        assert response.status_code == 422

    def test_bulk_status(self, client: TestClient, created_invoice):
        response = client.patch(
            "/api/billing/bulk-status",
            json={"invoice_ids": [created_invoice["id"], 999], "status": "paid"},
        )

        assert response.status_code == 200
        data = response.json()
        assert data["updated_count"] == 1
        assert data["succeeded"] == [created_invoice["id"]]
        assert data["failed"][0]["invoice_id"] == 999

    def test_late_fee_preview_and_apply(self, client: TestClient, created_invoice):
        invoice_id = created_invoice["id"]

        preview = client.get(f"/api/billing/{invoice_id}/late-fee")
        assert preview.status_code == 200
        assert preview.json()["days_late"] == 5
        assert Decimal(preview.json()["late_fee"]) == Decimal("250")

        applied = client.post(f"/api/billing/{invoice_id}/late-fee", headers=STAFF_HEADERS)
        assert applied.status_code == 200
        assert Decimal(applied.json()["invoice"]["total_amount"]) == Decimal("3640")
        assert applied.json()["invoice"]["status"] == "overdue"

        again = client.post(f"/api/billing/{invoice_id}/late-fee")
        assert again.status_code == 409

    def test_late_fee_is_null_for_paid_invoice(self, client: TestClient, created_invoice):
        invoice_id = created_invoice["id"]
        client.patch(f"/api/billing/{invoice_id}/status", json={"status": "paid"})

        response = client.get(f"/api/billing/{invoice_id}/late-fee")

        assert response.status_code == 200
        assert response.json() is None

    def test_correct_meter_reading(self, client: TestClient, created_invoice):
        response = client.patch(
            f"/api/billing/meter-reading/{created_invoice['meter_reading_id']}",
            json={"water_reading": 115, "elec_reading": 230},
            headers=STAFF_HEADERS,
        )

        assert response.status_code == 200
        assert response.json()["water_reading"] == 115
        invoice = client.get(f"/api/billing/{created_invoice['id']}").json()
        assert Decimal(invoice["total_amount"]) == Decimal("3480")

    def test_delete_invoice(self, client: TestClient, created_invoice):
        response = client.delete(f"/api/billing/{created_invoice['id']}", headers=STAFF_HEADERS)

        assert response.status_code == 204
        assert client.get(f"/api/billing/{created_invoice['id']}").status_code == 404

    def test_contract_invoices(self, client: TestClient, billed_room, created_invoice):
        _, contract = billed_room

        response = client.get(f"/api/contracts/{contract.id}/invoices")

        assert response.status_code == 200
        assert [i["id"] for i in response.json()] == [created_invoice["id"]]
        assert client.get("/api/contracts/999/invoices").status_code == 404


def test_health(client: TestClient):
    assert client.get("/health").json() == {"status": "ok"}
