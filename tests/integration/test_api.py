"""Integration tests for API endpoints"""

import pytest
from fastapi.testclient import TestClient


@pytest.fixture
def obligation_id(client: TestClient) -> int:
    response = client.post(
        "/v1/obligations",
        json={
            "name": "Consulting",
            "total_amount": "1000",
            "payment_type": "single",
            "start_date": "2024-03-01",
            "due_date": "2024-03-31",
        },
    )
    assert response.status_code == 201
    return response.json()["id"]


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "paytrack_payment_total" in response.text


def test_request_id_header(client: TestClient):
    assert client.get("/health").headers["X-Request-ID"]
    assert client.get("/health", headers={"X-Request-ID": "abc-123"}).headers["X-Request-ID"] == "abc-123"


def test_create_installment_obligation(client: TestClient):
    """Installments come back as the full generated group"""
    response = client.post(
        "/v1/obligations",
        json={
            "name": "Forklift",
            "total_amount": "100000",
            "payment_type": "installment",
            "period_count": 3,
            "start_date": "2026-01-31",
        },
    )

    assert response.status_code == 201
    data = response.json()
    assert [p["total_amount"] for p in data] == ["33334", "33333", "33333"]
    assert [p["due_date"] for p in data] == ["2026-01-31", "2026-02-28", "2026-03-31"]


def test_create_obligation_validation(client: TestClient):
    response = client.post(
        "/v1/obligations",
        json={"name": "Forklift", "total_amount": "1000", "payment_type": "installment", "start_date": "2024-01-01"},
    )
    assert response.status_code == 422
    assert response.json()["error"] == "invalid_argument"


def test_get_and_list_obligations(client: TestClient, obligation_id: int):
    response = client.get(f"/v1/obligations/{obligation_id}")
    assert response.status_code == 200
    assert response.json()["outstanding"] == "1000"
    assert response.json()["status"] == "pending"

    listed = client.get("/v1/obligations", params={"status": "pending"}).json()
    assert [o["id"] for o in listed] == [obligation_id]

    assert client.get("/v1/obligations/999").status_code == 404


def test_payment_flow(client: TestClient, obligation_id: int):
    response = client.post(
        f"/v1/obligations/{obligation_id}/payments",
        json={"amount": "900", "payment_date": "2024-03-10", "payment_method": "transfer"},
    )
    assert response.status_code == 201
    assert response.json()["paid_amount"] == "900"
    assert response.json()["status"] == "partial"

    rejected = client.post(
        f"/v1/obligations/{obligation_id}/payments",
        json={"amount": "200", "payment_date": "2024-03-11"},
    )
    assert rejected.status_code == 409
    assert rejected.json()["error"] == "overpayment_rejected"
    assert rejected.json()["max_acceptable"] == "100"

    assert client.get(f"/v1/obligations/{obligation_id}").json()["paid_amount"] == "900"

    records = client.get("/v1/payments", params={"obligation_id": obligation_id}).json()
    assert [r["amount_paid"] for r in records] == ["900"]


def test_payment_amount_must_be_positive(client: TestClient, obligation_id: int):
    response = client.post(
        f"/v1/obligations/{obligation_id}/payments",
        json={"amount": "0", "payment_date": "2024-03-10"},
    )
    assert response.status_code == 422


def test_payment_finer_than_currency_unit_rejected(client: TestClient, obligation_id: int):
    response = client.post(
        f"/v1/obligations/{obligation_id}/payments",
        json={"amount": "0.4", "payment_date": "2024-03-10"},
    )
    assert response.status_code == 422
    assert response.json()["error"] == "invalid_argument"

    obligation = client.get(f"/v1/obligations/{obligation_id}").json()
    assert (obligation["paid_amount"], obligation["status"]) == ("0", "pending")


def test_total_finer_than_currency_unit_rejected(client: TestClient):
    response = client.post(
        "/v1/obligations",
        json={"name": "Odd", "total_amount": "100.4", "start_date": "2024-03-01", "due_date": "2024-03-31"},
    )
    assert response.status_code == 422
    assert client.get("/v1/obligations").json() == []


def test_update_rejects_null_start_and_inverted_range(client: TestClient, obligation_id: int):
    cleared = client.patch(f"/v1/obligations/{obligation_id}", json={"start_date": None})
    assert cleared.status_code == 422
    assert cleared.json()["error"] == "invalid_argument"

    inverted = client.patch(f"/v1/obligations/{obligation_id}", json={"end_date": "2024-02-01"})
    assert inverted.status_code == 422

    assert client.get(f"/v1/obligations/{obligation_id}").json()["start_date"] == "2024-03-01"


def test_update_and_delete(client: TestClient, obligation_id: int):
    response = client.patch(f"/v1/obligations/{obligation_id}", json={"due_date": "2024-03-01"})
    assert response.status_code == 200
    assert response.json()["status"] == "overdue"

    assert client.delete(f"/v1/obligations/{obligation_id}").status_code == 204
    assert client.get(f"/v1/obligations/{obligation_id}").status_code == 404


def test_overdue_and_refresh(client: TestClient):
    client.post(
        "/v1/obligations",
        json={"name": "Old", "total_amount": "100", "start_date": "2024-01-01", "due_date": "2024-02-01"},
    )

    overdue = client.get("/v1/obligations/overdue").json()
    assert [o["name"] for o in overdue["previous_months"]] == ["Old"]
    assert overdue["current_month"] == []

    assert client.post("/v1/obligations/refresh-status").json() == {"changed": 0}


def test_schedule_reschedule_flow(client: TestClient, obligation_id: int):
    created = client.post(
        "/v1/schedule",
        json={"obligation_id": obligation_id, "scheduled_date": "2024-03-10", "scheduled_amount": "500"},
    )
    assert created.status_code == 201
    entry = created.json()
    assert entry["is_overdue"] is True

    moved = client.post(f"/v1/schedule/{entry['id']}/reschedule", json={"new_date": "2024-03-20"})
    assert moved.status_code == 201
    assert moved.json()["reschedule_count"] == 1
    assert moved.json()["original_due_date"] == "2024-03-10"

    again = client.post(f"/v1/schedule/{entry['id']}/reschedule", json={"new_date": "2024-03-25"})
    assert again.status_code == 422

    march = client.get("/v1/schedule/2024/3").json()
    assert [e["scheduled_date"] for e in march] == ["2024-03-20"]

    stats = client.get("/v1/schedule/stats/2024/3").json()
    assert stats["total_amount"] == "500"
    assert stats["daily_stats"]["2024-03-20"] == {"amount": "500", "count": 1}
    assert stats["overdue_count"] == 0

    trail = client.get(f"/v1/obligations/{obligation_id}/schedule").json()
    assert [e["status"] for e in trail] == ["pending", "superseded"]
    assert client.get("/v1/schedule/overdue").json() == []


def test_integrated_view(client: TestClient, obligation_id: int):
    client.post(
        "/v1/schedule",
        json={"obligation_id": obligation_id, "scheduled_date": "2024-03-20", "scheduled_amount": "600"},
    )
    client.post(f"/v1/obligations/{obligation_id}/payments", json={"amount": "400", "payment_date": "2024-03-12"})

    view = client.get(f"/v1/obligations/{obligation_id}/integrated").json()

    assert view["actual_paid"] == "400"
    assert view["scheduled_total"] == "600"
    assert view["pending_amount"] == "600"
    assert view["record_count"] == 1
    assert view["has_overdue_schedule"] is False


def test_budget_conversion_flow(client: TestClient):
    plan = client.post(
        "/v1/budget/plans",
        json={"plan_name": "FY24", "start_date": "2024-01-01", "end_date": "2024-12-31"},
    ).json()
    item = client.post(
        f"/v1/budget/plans/{plan['id']}/items",
        json={
            "name": "Rent",
            "planned_amount": "15000",
            "payment_type": "monthly",
            "monthly_amount": "5000",
            "month_count": 3,
            "start_date": "2024-03-01",
        },
    ).json()
    assert item["is_converted"] is False

    converted = client.post(f"/v1/budget/items/{item['id']}/convert")
    assert converted.status_code == 201
    assert len(converted.json()["obligations"]) == 3

    again = client.post(f"/v1/budget/items/{item['id']}/convert")
    assert again.status_code == 409
    assert again.json()["error"] == "conversion_error"

    assert client.get("/v1/budget/items", params={"converted": True}).json()[0]["id"] == item["id"]


def test_cashflow_forecast(client: TestClient):
    plan = client.post(
        "/v1/budget/plans",
        json={"plan_name": "FY24", "start_date": "2024-01-01", "end_date": "2024-12-31"},
    ).json()
    client.post(
        f"/v1/budget/plans/{plan['id']}/items",
        json={
            "name": "Rent",
            "planned_amount": "15000",
            "payment_type": "monthly",
            "monthly_amount": "5000",
            "month_count": 3,
            "start_date": "2024-03-01",
        },
    )

    response = client.get("/v1/cashflow/forecast", params={"months": 4})

    assert response.status_code == 200
    data = response.json()
    assert [m["month"] for m in data["months"]] == ["2024-03", "2024-04", "2024-05", "2024-06"]
    assert [m["budget"] for m in data["months"]] == ["5000", "5000", "5000", "0"]
    assert data["summary"]["total"] == "15000"
    assert data["summary"]["peak_month"] == "2024-03"


def test_cashflow_forecast_bad_input(client: TestClient):
    assert client.get("/v1/cashflow/forecast", params={"months": 0}).status_code == 422
    assert client.get("/v1/cashflow/forecast", params={"include": "taxes"}).status_code == 422
