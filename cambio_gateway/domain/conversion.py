"""Conversion calculator - core arithmetic for buy/sell operations

Profit policy: profit is always netted against the *published* opposite-side
rate of the selected pair, even when a preferential (override) rate is
applied. A BUY at an override of 3.72 on a 3.70/3.75 pair earns
amount * (3.75 - 3.72), not amount * (3.75 - 3.70). This is the house's
revenue recognition rule and must not be "fixed" to use the override on
both sides.
"""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Optional
from cambio_gateway.domain.models import ConversionResult, OperationKind, OperationSelection

INCOMPLETE_DATA = "Incomplete data for the calculation"
INVALID_OVERRIDE = "Invalid preferential exchange rate"
CALCULATION_ERROR = "Error in the calculation"

FOUR_PLACES = Decimal("0.0001")
ZERO = Decimal("0")


def parse_positive_decimal(text: Optional[str]) -> Optional[Decimal]:
    """Parse user input as a finite decimal > 0, or return None"""
    if text is None:
        return None
    cleaned = str(text).strip()
    if not cleaned:
        return None
    try:
        value = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value


def round_half_up(value: Decimal) -> Decimal:
    """Round to 4 fractional digits, halves away from zero"""
    return value.quantize(FOUR_PLACES, rounding=ROUND_HALF_UP)


def _invalid(reason: str) -> ConversionResult:
    return ConversionResult(
        source_amount=round_half_up(ZERO),
        destination_amount=round_half_up(ZERO),
        applied_rate=round_half_up(ZERO),
        profit=round_half_up(ZERO),
        is_valid=False,
        error_reason=reason,
    )


def calculate_conversion(selection: OperationSelection) -> ConversionResult:
    """
    Compute destination amount and profit for the current selection.

    Rules:
    - Effective rate: active override, else buy rate (BUY) or sell rate (SELL)
    - BUY:  destination = amount * rate;   profit = amount * (sell - rate)
    - SELL: destination = amount / rate;   profit = (amount / rate) * (rate - buy)
    - All outputs rounded half-up to 4 decimals

    Never raises: invalid input yields is_valid=False with an error_reason,
    and amounts too large to represent yield CALCULATION_ERROR.
    """
    rate = selection.rate
    amount = parse_positive_decimal(selection.source_amount)
    if rate is None or amount is None:
        return _invalid(INCOMPLETE_DATA)

    if selection.override_active:
        effective_rate = parse_positive_decimal(selection.override_rate)
        if effective_rate is None:
            return _invalid(INVALID_OVERRIDE)
    elif selection.operation_kind == OperationKind.BUY:
        effective_rate = rate.buy_rate
    else:
        effective_rate = rate.sell_rate

    if effective_rate <= 0:
        # zero published rate
        return _invalid(INCOMPLETE_DATA)

    try:
        if selection.operation_kind == OperationKind.BUY:
            destination_amount = amount * effective_rate
            profit = amount * (rate.sell_rate - effective_rate)
        else:
            destination_amount = amount / effective_rate
            profit = (amount / effective_rate) * (effective_rate - rate.buy_rate)

        return ConversionResult(
            source_amount=round_half_up(amount),
            destination_amount=round_half_up(destination_amount),
            applied_rate=round_half_up(effective_rate),
            profit=round_half_up(profit),
            is_valid=True,
        )
    except ArithmeticError:
        # overflow, or more digits than the context precision can quantize
        return _invalid(CALCULATION_ERROR)


def can_process(result: ConversionResult) -> bool:
    """A result can be submitted only if valid and it moves a positive amount"""
    return result.is_valid and result.destination_amount > 0
