"""In-memory back office: rates, currencies, window openings and conversions"""

from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Dict
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

FOUR_PLACES = Decimal("0.0001")

CURRENCIES = [
    {"id": 1, "codigo": "USD", "simbolo": "$", "nombre": "Dólar estadounidense"},
    {"id": 2, "codigo": "PEN", "simbolo": "S/", "nombre": "Sol peruano"},
]


def ok(data: Any = None, message: str = "OK") -> Dict[str, Any]:
    return {"success": True, "message": message, "data": data}


def fail(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "message": message, "error": message, "errors": None},
    )


def seed_state() -> Dict[str, Any]:
    return {
        "rates": {
            1: [
                {
                    "id": 1,
                    "casa_de_cambio_id": 1,
                    "moneda_origen_id": 1,
                    "moneda_destino_id": 2,
                    "par_monedas": "USD/PEN",
                    "tipo_compra": "3.7000",
                    "tipo_venta": "3.7500",
                    "moneda_origen": CURRENCIES[0],
                    "moneda_destino": CURRENCIES[1],
                }
            ]
        },
        "openings": {},
        "transactions": [],
        "next_opening_id": 1,
        "next_transaction_id": 1,
    }


def create_mock_app() -> FastAPI:
    app = FastAPI(title="Mock Back Office", version="1.0.0")
    app.state.backoffice = seed_state()

    def state() -> Dict[str, Any]:
        return app.state.backoffice

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.get("/api/tipos-cambio/casa-de-cambio/{house_id}")
    def active_rates(house_id: int):
        return ok(state()["rates"].get(house_id, []))

    @app.get("/api/monedas")
    def currencies():
        return ok(CURRENCIES)

    @app.post("/api/ventanillas/{window_id}/aperturar")
    async def open_window(window_id: int, request: Request):
        body = await request.json()
        if window_id in state()["openings"]:
            return fail(400, "La ventanilla ya se encuentra aperturada")
        balances = body.get("montos_apertura") or []
        if not balances:
            return fail(422, "Debe registrar al menos un monto de apertura")

        opening = {
            "id": state()["next_opening_id"],
            "usuario_id": body.get("usuario_id"),
            "balances": {item["moneda_id"]: Decimal(str(item["monto"])) for item in balances},
        }
        state()["next_opening_id"] += 1
        state()["openings"][window_id] = opening
        return ok({"apertura_ventanilla_id": opening["id"]}, "Ventanilla aperturada")

    @app.get("/api/ventanillas/{window_id}/resumen-cierre")
    def closing_summary(window_id: int):
        opening = state()["openings"].get(window_id)
        if opening is None:
            return fail(404, "La ventanilla no tiene una apertura activa")

        expected = dict(opening["balances"])
        profit = Decimal("0")
        count = 0
        for tx in state()["transactions"]:
            if tx["ventanilla_id"] != window_id:
                continue
            count += 1
            profit += Decimal(tx["ganancia"])
            received, paid = tx["moneda_recibida_id"], tx["moneda_entregada_id"]
            expected[received] = expected.get(received, Decimal("0")) + Decimal(tx["monto_origen"])
            expected[paid] = expected.get(paid, Decimal("0")) - Decimal(tx["monto_destino"])

        currencies_by_id = {c["id"]: c for c in CURRENCIES}
        return ok(
            {
                "apertura_ventanilla_id": opening["id"],
                "montos_esperados": [
                    {
                        "moneda_id": currency_id,
                        "monto_esperado": str(amount),
                        "moneda": currencies_by_id.get(currency_id),
                    }
                    for currency_id, amount in sorted(expected.items())
                ],
                "total_transacciones": count,
                "ganancia_total_calculada": str(profit),
            }
        )

    @app.post("/api/ventanillas/{window_id}/procesar-cierre")
    async def process_closing(window_id: int, request: Request):
        body = await request.json()
        opening = state()["openings"].get(window_id)
        if opening is None:
            return fail(404, "La ventanilla no tiene una apertura activa")
        if body.get("apertura_ventanilla_id") != opening["id"]:
            return fail(400, "La apertura indicada no corresponde a la ventanilla")
        if not all(item.get("confirmado_fisicamente") for item in body.get("montos_cierre", [])):
            return fail(422, "Todos los montos deben estar confirmados físicamente")

        del state()["openings"][window_id]
        return ok(None, "Cierre procesado")

    @app.post("/api/transacciones/procesar-cambio")
    async def process_conversion(request: Request):
        body = await request.json()
        window_id = body.get("ventanillaId")
        if window_id not in state()["openings"]:
            return fail(400, "La ventanilla no tiene una apertura activa")

        rate = next(
            (
                row
                for rows in state()["rates"].values()
                for row in rows
                if row["id"] == body.get("tipoCambioId")
            ),
            None,
        )
        if rate is None:
            return fail(404, "Tipo de cambio no encontrado")

        amount = Decimal(str(body["montoOrigen"]))
        buy, sell = Decimal(rate["tipo_compra"]), Decimal(rate["tipo_venta"])
        if body["tipoOperacion"] == "COMPRA":
            applied = buy
            destination = amount * applied
            profit = amount * (sell - applied)
            received, paid = rate["moneda_origen_id"], rate["moneda_destino_id"]
        else:
            applied = sell
            destination = amount / applied
            profit = destination * (applied - buy)
            received, paid = rate["moneda_destino_id"], rate["moneda_origen_id"]

        tx = {
            "id": state()["next_transaction_id"],
            "numero_transaccion": f"TXN-{state()['next_transaction_id']:06d}",
            "ventanilla_id": window_id,
            "monto_origen": str(amount.quantize(FOUR_PLACES, rounding=ROUND_HALF_UP)),
            "monto_destino": str(destination.quantize(FOUR_PLACES, rounding=ROUND_HALF_UP)),
            "tipo_cambio_aplicado": str(applied),
            "ganancia": str(profit.quantize(FOUR_PLACES, rounding=ROUND_HALF_UP)),
            "tipo_operacion": body["tipoOperacion"],
            "estado": "COMPLETADA",
            "moneda_recibida_id": received,
            "moneda_entregada_id": paid,
            "observaciones": body.get("observaciones"),
            "cliente_id": body.get("clienteId"),
        }
        state()["next_transaction_id"] += 1
        state()["transactions"].append(tx)
        return ok(tx, "Transacción procesada")

    return app


app = create_mock_app()
