"""End-to-end tests for a full teller shift against the mock back office"""

from decimal import Decimal
from fastapi.testclient import TestClient
from cambio_gateway.api.main import create_app
from cambio_gateway.workstation import build_workstation


def test_full_shift_with_restart_and_closing(
    client: TestClient,
    open_window_payload: dict,
    session_factory,
    scheduler,
    backoffice_client,
):
    """
    Operator opens, converts both ways, pauses, the workstation restarts,
    and the window is closed with a small counted shortfall in PEN.
    """
    assert client.post("/v1/window/open", json=open_window_payload).status_code == 200

    # BUY 100 USD
    client.post("/v1/conversion/select", json={"rate_id": 1, "operation": "COMPRA"})
    client.post("/v1/conversion/amount", json={"amount": "100"})
    buy = client.post("/v1/transactions", json={"client_id": 5}).json()
    assert buy["transaction"]["destination_amount"] == "370.0000"

    # SELL 375 PEN
    client.post("/v1/conversion/select", json={"rate_id": 1, "operation": "VENTA"})
    client.post("/v1/conversion/amount", json={"amount": "375"})
    sell = client.post("/v1/transactions", json={"walk_in_client": {"first_names": "Rosa", "document": "40404040"}})
    assert sell.json()["transaction"]["destination_amount"] == "100.0000"

    # Pause for a break; the session survives a workstation restart as paused
    client.post("/v1/window/pause")
    client.app.state.workstation.shutdown()

    restarted = build_workstation(session_factory, scheduler, client=backoffice_client)
    with TestClient(create_app(restarted)) as second:
        state = second.get("/v1/window").json()
        assert state["status"] == "PAUSA"
        assert state["paused_seconds"] == 0
        assert second.post("/v1/conversion/amount", json={"amount": "1"}).status_code == 423

        second.post("/v1/window/resume")

        summary = second.get("/v1/window/closing-summary").json()
        assert summary["total_transactions"] == 2
        expected = {item["currency_id"]: Decimal(item["expected_amount"]) for item in summary["expected_amounts"]}
        assert expected == {1: Decimal("1000"), 2: Decimal("5005")}

        closing = second.post(
            "/v1/window/close",
            json={
                "counts": [
                    {"currency_id": 1, "physical_amount": "1000", "confirmed": True},
                    {
                        "currency_id": 2,
                        "physical_amount": "4990",
                        "confirmed": True,
                        "discrepancy_notes": "Vuelto mal entregado",
                    },
                ],
                "notes": "Cierre de turno",
            },
        )
        assert closing.status_code == 200, closing.text
        body = closing.json()
        assert body["status"] == "CERRADA"

        discrepancies = {item["currency_id"]: item for item in body["discrepancies"]}
        assert Decimal(discrepancies[1]["amount"]) == Decimal("0")
        assert discrepancies[1]["severity"] == "none"
        assert Decimal(discrepancies[2]["amount"]) == Decimal("-15")
        assert discrepancies[2]["severity"] == "minor"

        assert second.get("/v1/window").json()["session"] is None
        assert second.get("/v1/conversion").json()["rate_id"] is None
        assert second.get("/v1/window/closing-summary").status_code == 409


def test_reopening_after_close_starts_clean(client: TestClient, open_window_payload: dict):
    client.post("/v1/window/open", json=open_window_payload)
    summary = client.get("/v1/window/closing-summary").json()
    counts = [
        {"currency_id": item["currency_id"], "physical_amount": item["expected_amount"], "confirmed": True}
        for item in summary["expected_amounts"]
    ]
    assert client.post("/v1/window/close", json={"counts": counts}).status_code == 200

    reopened = client.post("/v1/window/open", json=open_window_payload)

    assert reopened.status_code == 200
    assert reopened.json()["status"] == "ABIERTA"
