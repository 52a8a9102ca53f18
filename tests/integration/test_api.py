"""Integration tests for API endpoints"""

from unittest.mock import AsyncMock
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError
from cambio_gateway.domain.exceptions import BackofficeAPIError
from cambio_gateway.infrastructure.storage import DurableStorage


def open_window(client: TestClient, payload: dict) -> dict:
    response = client.post("/v1/window/open", json=payload)
    assert response.status_code == 200, response.text
    return response.json()


def test_health_endpoint(client: TestClient):
    """Test health check endpoint"""
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"
    assert response.json()["window"] == "CERRADA"


def test_metrics_endpoint(client: TestClient):
    """Test Prometheus metrics endpoint"""
    client.get("/v1/window")
    response = client.get("/metrics")
    assert response.status_code == 200
    assert "http_request_duration_seconds" in response.text


def test_request_id_header(client: TestClient):
    response = client.get("/v1/window")
    assert response.headers["X-Request-ID"]


def test_incoming_request_id_is_echoed(client: TestClient):
    response = client.get("/v1/window", headers={"X-Request-ID": "teller-7.req-42"})
    assert response.headers["X-Request-ID"] == "teller-7.req-42"


def test_unsafe_request_id_is_replaced(client: TestClient):
    response = client.get("/v1/window", headers={"X-Request-ID": "x" * 300})
    assert response.headers["X-Request-ID"] != "x" * 300
    assert len(response.headers["X-Request-ID"]) == 36


def test_metrics_are_labelled_by_route_template(client: TestClient):
    client.get("/v1/window")
    client.get("/v1/no-such-route-8731")

    text = client.get("/metrics").text

    assert 'endpoint="/v1/window"' in text
    assert 'endpoint="unmatched"' in text
    assert "no-such-route-8731" not in text


def test_responses_carry_window_status(client: TestClient, open_window_payload: dict):
    assert client.get("/v1/currencies").headers["X-Window-Status"] == "CERRADA"

    open_window(client, open_window_payload)
    client.post("/v1/window/pause")

    response = client.post("/v1/conversion/amount", json={"amount": "1"})
    assert response.status_code == 423
    assert response.headers["X-Window-Status"] == "PAUSA"


def test_window_starts_closed(client: TestClient):
    body = client.get("/v1/window").json()

    assert body["status"] == "CERRADA"
    assert body["session"] is None
    assert body["locked"] is False


def test_open_window(client: TestClient, open_window_payload: dict):
    """Test POST /v1/window/open starts an OPEN session"""
    body = open_window(client, open_window_payload)

    assert body["status"] == "ABIERTA"
    assert body["session"]["window_id"] == 7
    assert body["session"]["operator_name"] == "Ana Torres"
    assert body["session"]["exchange_house_name"] == "Casa Central"


def test_open_without_positive_balance_is_422(client: TestClient, open_window_payload: dict):
    payload = {**open_window_payload, "opening_balances": [{"currency_id": 1, "amount": "0"}]}

    response = client.post("/v1/window/open", json=payload)

    assert response.status_code == 422
    assert client.get("/v1/window").json()["status"] == "CERRADA"


def test_open_twice_is_409(client: TestClient, open_window_payload: dict):
    open_window(client, open_window_payload)

    response = client.post("/v1/window/open", json=open_window_payload)

    assert response.status_code == 409


def test_pause_counter_and_resume(client: TestClient, open_window_payload: dict, scheduler):
    open_window(client, open_window_payload)

    body = client.post("/v1/window/pause").json()
    assert body["status"] == "PAUSA"
    assert body["locked"] is True

    scheduler.advance(65_000)
    body = client.get("/v1/window").json()
    assert body["paused_seconds"] == 65
    assert body["paused_elapsed"] == "1m 5s"

    body = client.post("/v1/window/resume").json()
    assert body["status"] == "ABIERTA"
    assert body["paused_seconds"] == 0


def test_resume_when_open_is_409(client: TestClient, open_window_payload: dict):
    open_window(client, open_window_payload)

    assert client.post("/v1/window/resume").status_code == 409


def test_rates_require_open_window(client: TestClient):
    response = client.get("/v1/rates")

    assert response.status_code == 423
    assert response.json()["detail"] == "No open teller window. Open a window first."


def test_rates_are_served_for_session_house(client: TestClient, open_window_payload: dict):
    open_window(client, open_window_payload)

    rates = client.get("/v1/rates").json()

    assert len(rates) == 1
    assert rates[0]["pair_label"] == "USD/PEN"
    assert rates[0]["buy_rate"] == "3.7000"


def test_rates_refresh_is_throttled(client: TestClient, open_window_payload: dict, scheduler):
    open_window(client, open_window_payload)
    client.get("/v1/rates")

    first = client.post("/v1/rates/refresh").json()
    second = client.post("/v1/rates/refresh").json()
    scheduler.advance(2000)
    third = client.post("/v1/rates/refresh").json()

    assert first == {"refreshed": True, "invalidated": 1}
    assert second == {"refreshed": False, "invalidated": 0}
    assert third["refreshed"] is True


def test_currencies_do_not_require_session(client: TestClient):
    currencies = client.get("/v1/currencies").json()

    assert [c["code"] for c in currencies] == ["USD", "PEN"]


def test_conversion_flow(client: TestClient, open_window_payload: dict):
    """Test select, amount and preferential rate drive the live result"""
    open_window(client, open_window_payload)

    body = client.post("/v1/conversion/select", json={"rate_id": 1, "operation": "COMPRA"}).json()
    assert body["rate_id"] == 1
    assert body["result"]["is_valid"] is False

    body = client.post("/v1/conversion/amount", json={"amount": "100"}).json()
    assert body["result"]["destination_amount"] == "370.0000"
    assert body["result"]["profit"] == "5.0000"
    assert body["can_submit"] is True

    body = client.post("/v1/conversion/override", json={"rate": "3.72"}).json()
    assert body["override_active"] is True
    assert body["result"]["destination_amount"] == "372.0000"
    assert body["result"]["profit"] == "3.0000"

    body = client.delete("/v1/conversion/override").json()
    assert body["override_active"] is False
    assert body["result"]["applied_rate"] == "3.7000"

    body = client.delete("/v1/conversion").json()
    assert body["rate_id"] == 1
    assert body["source_amount"] == ""


def test_select_unknown_rate_is_404(client: TestClient, open_window_payload: dict):
    open_window(client, open_window_payload)

    response = client.post("/v1/conversion/select", json={"rate_id": 99, "operation": "VENTA"})

    assert response.status_code == 404


def test_paused_window_locks_conversion(client: TestClient, open_window_payload: dict):
    open_window(client, open_window_payload)
    client.post("/v1/window/pause")

    response = client.post("/v1/conversion/amount", json={"amount": "100"})

    assert response.status_code == 423
    assert "paused" in response.json()["detail"]


def test_stateless_calculate(client: TestClient):
    response = client.post(
        "/v1/conversion/calculate",
        json={"buy_rate": "3.70", "sell_rate": "3.75", "operation": "VENTA", "amount": "375"},
    )

    assert response.status_code == 200
    assert response.json()["destination_amount"] == "100.0000"
    assert response.json()["profit"] == "5.0000"


def test_stateless_calculate_with_invalid_override(client: TestClient):
    body = client.post(
        "/v1/conversion/calculate",
        json={"buy_rate": "3.70", "sell_rate": "3.75", "operation": "COMPRA", "amount": "1", "override_rate": "x"},
    ).json()

    assert body["is_valid"] is False
    assert body["error_reason"] == "Invalid preferential exchange rate"


def test_stateless_calculate_with_huge_amount(client: TestClient):
    response = client.post(
        "/v1/conversion/calculate",
        json={"buy_rate": "3.70", "sell_rate": "3.75", "operation": "COMPRA", "amount": "1e30"},
    )

    assert response.status_code == 200
    assert response.json()["is_valid"] is False
    assert response.json()["error_reason"] == "Error in the calculation"


def test_huge_amount_keeps_conversion_readable(client: TestClient, open_window_payload: dict):
    open_window(client, open_window_payload)
    client.post("/v1/conversion/select", json={"rate_id": 1, "operation": "COMPRA"})

    response = client.post("/v1/conversion/amount", json={"amount": "1000000000000000000000000"})
    assert response.status_code == 200
    assert response.json()["can_submit"] is False

    response = client.get("/v1/conversion")
    assert response.status_code == 200
    assert response.json()["result"]["error_reason"] == "Error in the calculation"

    response = client.post("/v1/transactions", json={})
    assert response.status_code == 422


def test_submit_transaction(client: TestClient, open_window_payload: dict):
    open_window(client, open_window_payload)
    client.post("/v1/conversion/select", json={"rate_id": 1, "operation": "COMPRA"})
    client.post("/v1/conversion/amount", json={"amount": "100"})

    response = client.post("/v1/transactions", json={"walk_in_client": {"first_names": "Luis"}})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["transaction"]["number"] == "TXN-000001"
    assert body["transaction"]["destination_amount"] == "370.0000"
    assert client.get("/v1/conversion").json()["source_amount"] == ""


def test_submit_incomplete_is_422(client: TestClient, open_window_payload: dict):
    open_window(client, open_window_payload)

    response = client.post("/v1/transactions", json={})

    assert response.status_code == 422
    assert response.json()["detail"] == "Complete all required fields"


def test_submit_on_paused_window_is_423(client: TestClient, open_window_payload: dict):
    open_window(client, open_window_payload)
    client.post("/v1/conversion/select", json={"rate_id": 1, "operation": "COMPRA"})
    client.post("/v1/conversion/amount", json={"amount": "100"})
    client.post("/v1/window/pause")

    response = client.post("/v1/transactions", json={})

    assert response.status_code == 423


def test_submit_rejected_by_backoffice_is_502(client: TestClient, open_window_payload: dict, mock_backoffice):
    open_window(client, open_window_payload)
    client.post("/v1/conversion/select", json={"rate_id": 1, "operation": "COMPRA"})
    client.post("/v1/conversion/amount", json={"amount": "100"})
    mock_backoffice.state.backoffice["openings"].clear()

    response = client.post("/v1/transactions", json={})

    assert response.status_code == 502
    assert response.json()["detail"] == "La ventanilla no tiene una apertura activa"
    assert client.get("/v1/conversion").json()["source_amount"] == "100"


def test_submit_backoffice_timeout_is_503(client: TestClient, open_window_payload: dict, backoffice_client, monkeypatch):
    open_window(client, open_window_payload)
    client.post("/v1/conversion/select", json={"rate_id": 1, "operation": "COMPRA"})
    client.post("/v1/conversion/amount", json={"amount": "100"})
    monkeypatch.setattr(
        backoffice_client,
        "submit_conversion",
        AsyncMock(side_effect=BackofficeAPIError("Back-office API timeout after 10s", timeout=True)),
    )

    response = client.post("/v1/transactions", json={})

    assert response.status_code == 503


def test_close_requires_confirmation(client: TestClient, open_window_payload: dict):
    open_window(client, open_window_payload)

    response = client.post(
        "/v1/window/close",
        json={"counts": [{"currency_id": 1, "physical_amount": "1000", "confirmed": True}]},
    )

    assert response.status_code == 422
    assert client.get("/v1/window").json()["status"] == "ABIERTA"


def test_close_with_unknown_currency_is_422(client: TestClient, open_window_payload: dict):
    open_window(client, open_window_payload)

    response = client.post(
        "/v1/window/close",
        json={"counts": [{"currency_id": 42, "physical_amount": "1", "confirmed": True}]},
    )

    assert response.status_code == 422


def test_discard_window(client: TestClient, open_window_payload: dict):
    open_window(client, open_window_payload)

    body = client.delete("/v1/window").json()

    assert body["status"] == "CERRADA"


def test_discard_with_failing_storage_is_500_but_closes(client: TestClient, open_window_payload: dict, monkeypatch):
    open_window(client, open_window_payload)
    client.post("/v1/conversion/select", json={"rate_id": 1, "operation": "COMPRA"})

    def broken_delete(self, key):
        raise OperationalError("DELETE FROM storage_entry", {}, Exception("disk I/O error"))

    monkeypatch.setattr(DurableStorage, "delete", broken_delete)

    response = client.delete("/v1/window")

    assert response.status_code == 500
    assert response.json()["detail"] == "The stored session could not be cleared"
    assert client.get("/v1/window").json()["status"] == "CERRADA"
    assert client.get("/v1/conversion").json()["rate_id"] is None
