"""Domain models - pure Python dataclasses representing business entities"""

from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Generic, List, Optional, TypeVar

T = TypeVar("T")


class OperationKind(str, Enum):
    """Direction of a conversion, seen from the exchange house"""

    BUY = "COMPRA"  # house buys foreign currency, pays local
    SELL = "VENTA"  # house sells foreign currency, receives local


class WindowStatus(str, Enum):
    """Lifecycle state of a teller window session"""

    CLOSED = "CERRADA"
    OPEN = "ABIERTA"
    PAUSED = "PAUSA"


@dataclass(frozen=True)
class Currency:
    """Currency descriptor as published by the back office"""

    code: str
    symbol: str
    id: Optional[int] = None
    name: Optional[str] = None


@dataclass(frozen=True)
class ExchangeRate:
    """Active buy/sell rate pair for one currency pair of an exchange house"""

    id: int
    buy_rate: Decimal
    sell_rate: Decimal
    origin_currency: Currency
    destination_currency: Currency
    origin_currency_id: Optional[int] = None
    destination_currency_id: Optional[int] = None
    pair_label: str = ""

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe representation used by the durable cache tier"""
        return {
            "id": self.id,
            "buy_rate": str(self.buy_rate),
            "sell_rate": str(self.sell_rate),
            "origin_currency": {"code": self.origin_currency.code, "symbol": self.origin_currency.symbol},
            "destination_currency": {
                "code": self.destination_currency.code,
                "symbol": self.destination_currency.symbol,
            },
            "origin_currency_id": self.origin_currency_id,
            "destination_currency_id": self.destination_currency_id,
            "pair_label": self.pair_label,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExchangeRate":
        return cls(
            id=int(data["id"]),
            buy_rate=Decimal(str(data["buy_rate"])),
            sell_rate=Decimal(str(data["sell_rate"])),
            origin_currency=Currency(**data["origin_currency"]),
            destination_currency=Currency(**data["destination_currency"]),
            origin_currency_id=data.get("origin_currency_id"),
            destination_currency_id=data.get("destination_currency_id"),
            pair_label=data.get("pair_label", ""),
        )


@dataclass
class OperationSelection:
    """User-edited inputs of the conversion calculator"""

    rate: Optional[ExchangeRate] = None
    operation_kind: OperationKind = OperationKind.BUY
    source_amount: str = ""
    override_rate: str = ""
    override_active: bool = False


@dataclass(frozen=True)
class ConversionResult:
    """Derived calculator output, recomputed on every input change"""

    source_amount: Decimal
    destination_amount: Decimal
    applied_rate: Decimal
    profit: Decimal
    is_valid: bool
    error_reason: Optional[str] = None


@dataclass(frozen=True)
class TellerWindowSession:
    """Snapshot of the teller window this workstation operates"""

    window_id: int
    exchange_house_id: int
    window_name: str
    operator_name: str
    exchange_house_name: str
    opened_at: str
    status: WindowStatus = WindowStatus.OPEN

    def with_status(self, status: WindowStatus) -> "TellerWindowSession":
        return replace(self, status=status)


@dataclass
class CacheEntry(Generic[T]):
    """Cached value with its own expiration (epoch milliseconds)"""

    data: T
    created_at: float
    expires_at: float

    def is_valid(self, now_ms: float) -> bool:
        return now_ms < self.expires_at


@dataclass(frozen=True)
class WindowDescriptor:
    """Teller window as listed by the back office"""

    id: int
    name: str
    exchange_house_id: int
    exchange_house_name: str = "Casa de Cambio"


@dataclass(frozen=True)
class Operator:
    """User opening the window"""

    id: int
    display_name: str


@dataclass(frozen=True)
class OpeningBalance:
    """Cash committed to the window at opening, per currency"""

    currency_id: int
    amount: Decimal


@dataclass(frozen=True)
class ExpectedClosingAmount:
    """Server-calculated amount expected in the drawer at closing"""

    currency_id: int
    expected_amount: Decimal
    currency: Optional[Currency] = None


@dataclass(frozen=True)
class ClosingSummary:
    """Closing summary for the active opening of a window"""

    opening_id: int
    expected_amounts: List[ExpectedClosingAmount]
    total_transactions: int = 0
    total_profit: Decimal = Decimal("0")


@dataclass
class ClosingCount:
    """Physical count entered by the operator for one currency"""

    currency_id: int
    physical_amount: Decimal
    confirmed: bool = False
    discrepancy_notes: Optional[str] = None


@dataclass(frozen=True)
class WalkInClient:
    """Occasional client without a full registration"""

    first_names: Optional[str] = None
    last_names: Optional[str] = None
    document: Optional[str] = None
    description: Optional[str] = None


@dataclass(frozen=True)
class ConversionRequest:
    """Validated conversion handed to the back office"""

    window_id: int
    rate_id: int
    origin_currency_id: int
    destination_currency_id: int
    source_amount: Decimal
    operation_kind: OperationKind
    client_id: Optional[int] = None
    walk_in_client: Optional[WalkInClient] = None
    notes: Optional[str] = None


@dataclass(frozen=True)
class TransactionRecord:
    """Transaction created by the back office"""

    id: int
    number: str
    source_amount: Decimal
    destination_amount: Decimal
    applied_rate: Decimal
    profit: Decimal
    operation_kind: OperationKind
    status: str
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)
