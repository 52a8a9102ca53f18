"""Unit tests for the conversion calculator"""

import pytest
from decimal import Decimal
from cambio_gateway.domain.conversion import (
    INCOMPLETE_DATA,
    CALCULATION_ERROR,
    INVALID_OVERRIDE,
    calculate_conversion,
    can_process,
    parse_positive_decimal,
    round_half_up,
)
from cambio_gateway.domain.models import Currency, ExchangeRate, OperationKind, OperationSelection


def selection(rate, kind=OperationKind.BUY, amount="", override="", active=False) -> OperationSelection:
    return OperationSelection(
        rate=rate,
        operation_kind=kind,
        source_amount=amount,
        override_rate=override,
        override_active=active,
    )


def test_buy_uses_buy_rate_and_nets_against_sell(usd_pen_rate):
    """Test BUY of 100 USD at 3.70 with sell 3.75"""
    result = calculate_conversion(selection(usd_pen_rate, OperationKind.BUY, "100"))

    assert result.is_valid
    assert result.source_amount == Decimal("100.0000")
    assert result.destination_amount == Decimal("370.0000")
    assert result.applied_rate == Decimal("3.7000")
    assert result.profit == Decimal("5.0000")
    assert result.error_reason is None


def test_sell_divides_by_sell_rate(usd_pen_rate):
    """Test SELL of 375 PEN at 3.75 with buy 3.70"""
    result = calculate_conversion(selection(usd_pen_rate, OperationKind.SELL, "375"))

    assert result.is_valid
    assert result.destination_amount == Decimal("100.0000")
    assert result.applied_rate == Decimal("3.7500")
    assert result.profit == Decimal("5.0000")


def test_override_profit_still_uses_published_opposite_rate(usd_pen_rate):
    """Preferential 3.72 on BUY earns against the published 3.75"""
    result = calculate_conversion(selection(usd_pen_rate, OperationKind.BUY, "100", "3.72", True))

    assert result.destination_amount == Decimal("372.0000")
    assert result.applied_rate == Decimal("3.7200")
    assert result.profit == Decimal("3.0000")


def test_override_on_sell(usd_pen_rate):
    result = calculate_conversion(selection(usd_pen_rate, OperationKind.SELL, "373", "3.73", True))

    assert result.destination_amount == Decimal("100.0000")
    assert result.applied_rate == Decimal("3.7300")
    assert result.profit == Decimal("3.0000")


def test_inactive_override_text_is_ignored(usd_pen_rate):
    result = calculate_conversion(selection(usd_pen_rate, OperationKind.BUY, "100", "9.99", False))

    assert result.applied_rate == Decimal("3.7000")


@pytest.mark.parametrize("amount", ["", "   ", "0", "-5", "abc", "12abc", "NaN", "Infinity"])
def test_invalid_amounts_yield_incomplete_data(usd_pen_rate, amount):
    result = calculate_conversion(selection(usd_pen_rate, OperationKind.BUY, amount))

    assert result.is_valid is False
    assert result.error_reason == INCOMPLETE_DATA
    assert result.destination_amount == Decimal("0")
    assert result.profit == Decimal("0")


def test_no_rate_selected_is_invalid():
    result = calculate_conversion(selection(None, OperationKind.BUY, "100"))

    assert result.is_valid is False
    assert result.error_reason == INCOMPLETE_DATA


@pytest.mark.parametrize("override", ["", "0", "-1", "x", "inf"])
def test_active_invalid_override_is_rejected(usd_pen_rate, override):
    """An active override never silently falls back to the published rate"""
    result = calculate_conversion(selection(usd_pen_rate, OperationKind.BUY, "100", override, True))

    assert result.is_valid is False
    assert result.error_reason == INVALID_OVERRIDE


def test_rounding_is_half_up():
    """10.00005 must round to 10.0001, not to the even 10.0000"""
    rate = ExchangeRate(
        id=9,
        buy_rate=Decimal("1"),
        sell_rate=Decimal("1"),
        origin_currency=Currency(code="AAA", symbol="A"),
        destination_currency=Currency(code="BBB", symbol="B"),
    )
    result = calculate_conversion(selection(rate, OperationKind.BUY, "10.00005"))

    assert result.source_amount == Decimal("10.0001")
    assert result.destination_amount == Decimal("10.0001")


def test_repeated_calculation_is_identical(usd_pen_rate):
    current = selection(usd_pen_rate, OperationKind.SELL, "1234.5678")

    assert calculate_conversion(current) == calculate_conversion(current)


def test_amount_with_surrounding_whitespace_is_accepted(usd_pen_rate):
    result = calculate_conversion(selection(usd_pen_rate, OperationKind.BUY, "  50 "))

    assert result.destination_amount == Decimal("185.0000")


def test_parse_positive_decimal():
    assert parse_positive_decimal("3.72") == Decimal("3.72")
    assert parse_positive_decimal(None) is None
    assert parse_positive_decimal("1e2") == Decimal("100")
    assert parse_positive_decimal("-0.1") is None


def test_can_process(usd_pen_rate):
    assert can_process(calculate_conversion(selection(usd_pen_rate, OperationKind.BUY, "1")))
    assert not can_process(calculate_conversion(selection(usd_pen_rate, OperationKind.BUY, "")))


def _pair(buy, sell) -> ExchangeRate:
    return ExchangeRate(
        id=1,
        buy_rate=Decimal(buy),
        sell_rate=Decimal(sell),
        origin_currency=Currency(code="USD", symbol="$"),
        destination_currency=Currency(code="PEN", symbol="S/"),
    )


@pytest.mark.parametrize("amount", ["0.01", "1", "99.99", "1234.5678", "1000000"])
@pytest.mark.parametrize("buy,sell", [("3.70", "3.75"), ("0.2650", "0.2710"), ("1", "1"), ("3.9", "4.1")])
def test_buy_profit_is_spread_times_amount(amount, buy, sell):
    result = calculate_conversion(selection(_pair(buy, sell), OperationKind.BUY, amount))

    assert result.is_valid
    assert result.destination_amount == round_half_up(Decimal(amount) * Decimal(buy))
    assert result.profit == round_half_up(Decimal(amount) * (Decimal(sell) - Decimal(buy)))
    assert result.destination_amount > 0
    assert result.profit >= 0


@pytest.mark.parametrize("amount", ["0.01", "1", "99.99", "1234.5678", "1000000"])
@pytest.mark.parametrize("buy,sell", [("3.70", "3.75"), ("0.2650", "0.2710"), ("1", "1"), ("3.9", "4.1")])
def test_sell_outputs_are_never_negative(amount, buy, sell):
    result = calculate_conversion(selection(_pair(buy, sell), OperationKind.SELL, amount))

    assert result.is_valid
    assert result.destination_amount == round_half_up(Decimal(amount) / Decimal(sell))
    assert result.destination_amount >= 0
    assert result.profit >= 0
    assert result.applied_rate == round_half_up(Decimal(sell))


@pytest.mark.parametrize("amount", ["1e30", "1000000000000000000000000", "1e999999"])
@pytest.mark.parametrize("kind", [OperationKind.BUY, OperationKind.SELL])
def test_huge_amounts_yield_calculation_error(usd_pen_rate, amount, kind):
    """Amounts beyond the decimal context are reported, never raised"""
    result = calculate_conversion(selection(usd_pen_rate, kind, amount))

    assert result.is_valid is False
    assert result.error_reason == CALCULATION_ERROR
    assert result.destination_amount == Decimal("0")
    assert not can_process(result)


def test_huge_override_yields_calculation_error(usd_pen_rate):
    result = calculate_conversion(selection(usd_pen_rate, OperationKind.SELL, "100", "1e-999999", True))

    assert result.is_valid is False
    assert result.error_reason == CALCULATION_ERROR
