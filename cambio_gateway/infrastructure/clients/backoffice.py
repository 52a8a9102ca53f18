"""Back-office API HTTP client for rates, window sessions and transactions"""

import time
import httpx
from decimal import Decimal
from typing import Any, Dict, List, Optional
from cambio_gateway.config import settings
from cambio_gateway.domain.exceptions import BackofficeAPIError
from cambio_gateway.domain.models import (
    ClosingCount,
    ClosingSummary,
    ConversionRequest,
    Currency,
    ExchangeRate,
    ExpectedClosingAmount,
    OpeningBalance,
    OperationKind,
    TransactionRecord,
)
from cambio_gateway.infrastructure.observability.metrics import (
    backoffice_failure_counter,
    backoffice_latency_histogram,
)


def _decimal(value: Any) -> Decimal:
    return Decimal(str(value))


def parse_currency(data: Dict[str, Any]) -> Currency:
    return Currency(
        code=data["codigo"],
        symbol=data.get("simbolo", ""),
        id=data.get("id"),
        name=data.get("nombre"),
    )


def parse_exchange_rate(data: Dict[str, Any]) -> ExchangeRate:
    return ExchangeRate(
        id=int(data["id"]),
        buy_rate=_decimal(data["tipo_compra"]),
        sell_rate=_decimal(data["tipo_venta"]),
        origin_currency=parse_currency(data["moneda_origen"]),
        destination_currency=parse_currency(data["moneda_destino"]),
        origin_currency_id=data.get("moneda_origen_id"),
        destination_currency_id=data.get("moneda_destino_id"),
        pair_label=data.get("par_monedas", ""),
    )


def parse_closing_summary(data: Dict[str, Any]) -> ClosingSummary:
    return ClosingSummary(
        opening_id=int(data["apertura_ventanilla_id"]),
        expected_amounts=[
            ExpectedClosingAmount(
                currency_id=int(item["moneda_id"]),
                expected_amount=_decimal(item["monto_esperado"]),
                currency=parse_currency(item["moneda"]) if item.get("moneda") else None,
            )
            for item in data.get("montos_esperados", [])
        ],
        total_transactions=int(data.get("total_transacciones", 0)),
        total_profit=_decimal(data.get("ganancia_total_calculada", 0)),
    )


def parse_transaction(data: Dict[str, Any]) -> TransactionRecord:
    return TransactionRecord(
        id=int(data["id"]),
        number=str(data.get("numero_transaccion", "")),
        source_amount=_decimal(data["monto_origen"]),
        destination_amount=_decimal(data["monto_destino"]),
        applied_rate=_decimal(data["tipo_cambio_aplicado"]),
        profit=_decimal(data.get("ganancia", 0)),
        operation_kind=OperationKind(data["tipo_operacion"]),
        status=data.get("estado", "COMPLETADA"),
        raw=data,
    )


def conversion_payload(request: ConversionRequest) -> Dict[str, Any]:
    """Wire shape of POST /transacciones/procesar-cambio"""
    payload: Dict[str, Any] = {
        "ventanillaId": request.window_id,
        "tipoCambioId": request.rate_id,
        "monedaOrigenId": request.origin_currency_id,
        "monedaDestinoId": request.destination_currency_id,
        "montoOrigen": float(request.source_amount),
        "tipoOperacion": request.operation_kind.value,
    }
    if request.client_id is not None:
        payload["clienteId"] = request.client_id
    if request.walk_in_client is not None:
        walk_in = request.walk_in_client
        payload["clienteTemp"] = {
            key: value
            for key, value in {
                "nombres": walk_in.first_names,
                "apellidos": walk_in.last_names,
                "documento": walk_in.document,
                "descripcion": walk_in.description,
            }.items()
            if value
        }
    if request.notes:
        payload["observaciones"] = request.notes
    return payload


class BackofficeClient:
    """Client for the external back-office REST API"""

    def __init__(
        self,
        base_url: str | None = None,
        token: str | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = (base_url or settings.backoffice_api_base).rstrip("/")
        self.token = token if token is not None else settings.backoffice_api_token
        self.timeout = timeout or settings.http_timeout_seconds
        self.transport = transport

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    async def _request(self, operation: str, method: str, path: str, **kwargs: Any) -> Any:
        """
        Perform a call and unwrap the {success, message, data} envelope.

        Raises:
            BackofficeAPIError: On timeout, transport failure, HTTP error status
                or an envelope with success == false
        """
        start = time.perf_counter()
        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self.transport, headers=self._headers()
            ) as client:
                response = await client.request(method, f"{self.base_url}{path}", **kwargs)

            try:
                body = response.json()
            except ValueError:
                body = {}
            if not isinstance(body, dict):
                body = {"data": body}

            if response.is_error:
                message = body.get("error") or body.get("message") or f"HTTP error! status: {response.status_code}"
                raise BackofficeAPIError(message, status_code=response.status_code)

            if body.get("success") is False:
                message = body.get("error") or body.get("message") or "Error in server response"
                raise BackofficeAPIError(message, status_code=response.status_code)

            return body.get("data")

        except httpx.TimeoutException as e:
            backoffice_failure_counter.labels(operation=operation).inc()
            raise BackofficeAPIError(f"Back-office API timeout after {self.timeout}s", timeout=True) from e
        except httpx.RequestError as e:
            backoffice_failure_counter.labels(operation=operation).inc()
            raise BackofficeAPIError(f"Back-office API unreachable: {e}") from e
        except BackofficeAPIError:
            backoffice_failure_counter.labels(operation=operation).inc()
            raise
        finally:
            backoffice_latency_histogram.labels(operation=operation).observe(time.perf_counter() - start)

    async def get_active_rates(self, exchange_house_id: int) -> List[ExchangeRate]:
        """Fetch the active rate pairs of an exchange house"""
        data = await self._request("get_active_rates", "GET", f"/tipos-cambio/casa-de-cambio/{exchange_house_id}")
        try:
            return [parse_exchange_rate(item) for item in data or []]
        except (KeyError, ValueError, TypeError, ArithmeticError) as e:
            raise BackofficeAPIError(f"Invalid exchange rate data from back office: {e}") from e

    async def get_currencies(self) -> List[Currency]:
        data = await self._request("get_currencies", "GET", "/monedas")
        try:
            return [parse_currency(item) for item in data or []]
        except (KeyError, TypeError) as e:
            raise BackofficeAPIError(f"Invalid currency data from back office: {e}") from e

    async def open_window(
        self,
        window_id: int,
        operator_id: int,
        opening_balances: List[OpeningBalance],
        notes: Optional[str] = None,
    ) -> None:
        """Commit opening balances and open the window server-side"""
        payload: Dict[str, Any] = {
            "usuario_id": operator_id,
            "montos_apertura": [
                {"moneda_id": balance.currency_id, "monto": float(balance.amount)}
                for balance in opening_balances
            ],
        }
        if notes and notes.strip():
            payload["observaciones_apertura"] = notes.strip()
        await self._request("open_window", "POST", f"/ventanillas/{window_id}/aperturar", json=payload)

    async def get_closing_summary(self, window_id: int) -> ClosingSummary:
        """Expected closing amounts, calculated by the back office"""
        data = await self._request("get_closing_summary", "GET", f"/ventanillas/{window_id}/resumen-cierre")
        try:
            return parse_closing_summary(data)
        except (KeyError, ValueError, TypeError, ArithmeticError) as e:
            raise BackofficeAPIError(f"Invalid closing summary from back office: {e}") from e

    async def process_closing(
        self,
        window_id: int,
        opening_id: int,
        counts: List[ClosingCount],
        notes: Optional[str] = None,
    ) -> None:
        """Close the window with physically confirmed counts"""
        payload: Dict[str, Any] = {
            "apertura_ventanilla_id": opening_id,
            "montos_cierre": [
                {
                    "moneda_id": count.currency_id,
                    "monto_fisico_real": float(count.physical_amount),
                    "confirmado_fisicamente": count.confirmed,
                    **({"observaciones_desfase": count.discrepancy_notes} if count.discrepancy_notes else {}),
                }
                for count in counts
            ],
        }
        if notes:
            payload["observaciones_cierre"] = notes
        await self._request("process_closing", "POST", f"/ventanillas/{window_id}/procesar-cierre", json=payload)

    async def submit_conversion(self, request: ConversionRequest) -> TransactionRecord:
        """Create a currency-exchange transaction"""
        data = await self._request(
            "submit_conversion", "POST", "/transacciones/procesar-cambio", json=conversion_payload(request)
        )
        try:
            return parse_transaction(data)
        except (KeyError, ValueError, TypeError, ArithmeticError) as e:
            raise BackofficeAPIError(f"Invalid transaction data from back office: {e}") from e
