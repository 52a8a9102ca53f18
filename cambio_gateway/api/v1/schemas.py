"""Pydantic schemas for API request/response validation"""

from decimal import Decimal
from pydantic import BaseModel, Field
from typing import List, Optional
from cambio_gateway.domain.models import (
    ConversionResult,
    Currency,
    ExchangeRate,
    OperationKind,
    TellerWindowSession,
    TransactionRecord,
    WindowStatus,
)


class CurrencySchema(BaseModel):
    code: str
    symbol: str
    id: Optional[int] = None
    name: Optional[str] = None

    @classmethod
    def from_domain(cls, currency: Currency) -> "CurrencySchema":
        return cls(code=currency.code, symbol=currency.symbol, id=currency.id, name=currency.name)


class ExchangeRateSchema(BaseModel):
    """Active rate pair of the session's exchange house"""

    id: int
    pair_label: str
    buy_rate: Decimal
    sell_rate: Decimal
    origin_currency: CurrencySchema
    destination_currency: CurrencySchema
    origin_currency_id: Optional[int] = None
    destination_currency_id: Optional[int] = None

    @classmethod
    def from_domain(cls, rate: ExchangeRate) -> "ExchangeRateSchema":
        return cls(
            id=rate.id,
            pair_label=rate.pair_label,
            buy_rate=rate.buy_rate,
            sell_rate=rate.sell_rate,
            origin_currency=CurrencySchema.from_domain(rate.origin_currency),
            destination_currency=CurrencySchema.from_domain(rate.destination_currency),
            origin_currency_id=rate.origin_currency_id,
            destination_currency_id=rate.destination_currency_id,
        )


class RefreshRatesResponse(BaseModel):
    refreshed: bool
    invalidated: int = 0


# Window session

class OpeningBalanceSchema(BaseModel):
    currency_id: int = Field(..., gt=0)
    amount: Decimal = Field(..., ge=0)


class OpenWindowRequest(BaseModel):
    """Request body for POST /v1/window/open"""

    window_id: int = Field(..., gt=0)
    window_name: str = Field(..., min_length=1)
    exchange_house_id: int = Field(..., gt=0)
    exchange_house_name: str = "Casa de Cambio"
    operator_id: int
    operator_name: str = ""
    opening_balances: List[OpeningBalanceSchema]
    notes: Optional[str] = None


class SessionSchema(BaseModel):
    window_id: int
    exchange_house_id: int
    window_name: str
    operator_name: str
    exchange_house_name: str
    opened_at: str
    status: WindowStatus

    @classmethod
    def from_domain(cls, session: TellerWindowSession) -> "SessionSchema":
        return cls(
            window_id=session.window_id,
            exchange_house_id=session.exchange_house_id,
            window_name=session.window_name,
            operator_name=session.operator_name,
            exchange_house_name=session.exchange_house_name,
            opened_at=session.opened_at,
            status=session.status,
        )


class WindowStateResponse(BaseModel):
    """Response for GET /v1/window and every transition"""

    status: WindowStatus
    locked: bool
    session: Optional[SessionSchema] = None
    paused_seconds: int = 0
    paused_elapsed: str = "0s"


class ExpectedAmountSchema(BaseModel):
    currency_id: int
    expected_amount: Decimal
    currency: Optional[CurrencySchema] = None


class ClosingSummaryResponse(BaseModel):
    opening_id: int
    expected_amounts: List[ExpectedAmountSchema]
    total_transactions: int
    total_profit: Decimal


class ClosingCountSchema(BaseModel):
    currency_id: int
    physical_amount: Decimal = Field(..., ge=0)
    confirmed: bool = False
    discrepancy_notes: Optional[str] = None


class CloseWindowRequest(BaseModel):
    """Request body for POST /v1/window/close"""

    counts: List[ClosingCountSchema]
    notes: Optional[str] = None


class DiscrepancySchema(BaseModel):
    currency_id: int
    amount: Decimal
    percentage: Decimal
    severity: str


class CloseWindowResponse(BaseModel):
    status: WindowStatus
    discrepancies: List[DiscrepancySchema]


# Conversion

class SelectRateRequest(BaseModel):
    rate_id: int = Field(..., gt=0)
    operation: OperationKind


class AmountRequest(BaseModel):
    amount: str


class PreferentialRateRequest(BaseModel):
    rate: str


class ConversionResultSchema(BaseModel):
    source_amount: Decimal
    destination_amount: Decimal
    applied_rate: Decimal
    profit: Decimal
    is_valid: bool
    error_reason: Optional[str] = None

    @classmethod
    def from_domain(cls, result: ConversionResult) -> "ConversionResultSchema":
        return cls(
            source_amount=result.source_amount,
            destination_amount=result.destination_amount,
            applied_rate=result.applied_rate,
            profit=result.profit,
            is_valid=result.is_valid,
            error_reason=result.error_reason,
        )


class ConversionStateResponse(BaseModel):
    """Current working state plus the live calculation"""

    rate_id: Optional[int] = None
    operation: OperationKind
    source_amount: str
    override_rate: str
    override_active: bool
    result: ConversionResultSchema
    can_submit: bool


class CalculateRequest(BaseModel):
    """Stateless calculator input for POST /v1/conversion/calculate"""

    buy_rate: Decimal = Field(..., gt=0)
    sell_rate: Decimal = Field(..., gt=0)
    operation: OperationKind
    amount: str
    override_rate: Optional[str] = None


# Transactions

class WalkInClientSchema(BaseModel):
    first_names: Optional[str] = None
    last_names: Optional[str] = None
    document: Optional[str] = None
    description: Optional[str] = None


class SubmitTransactionRequest(BaseModel):
    client_id: Optional[int] = Field(None, gt=0)
    walk_in_client: Optional[WalkInClientSchema] = None


class TransactionSchema(BaseModel):
    id: int
    number: str
    source_amount: Decimal
    destination_amount: Decimal
    applied_rate: Decimal
    profit: Decimal
    operation: OperationKind
    status: str

    @classmethod
    def from_domain(cls, record: TransactionRecord) -> "TransactionSchema":
        return cls(
            id=record.id,
            number=record.number,
            source_amount=record.source_amount,
            destination_amount=record.destination_amount,
            applied_rate=record.applied_rate,
            profit=record.profit,
            operation=record.operation_kind,
            status=record.status,
        )


class SubmitTransactionResponse(BaseModel):
    success: bool
    message: str
    transaction: Optional[TransactionSchema] = None
