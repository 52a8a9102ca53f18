"""Closing reconciliation - physical cash count against expected amounts"""

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Optional
from cambio_gateway.domain.models import ClosingCount, ClosingSummary

DISCREPANCY_TOLERANCE = Decimal("0.01")
MINOR_DISCREPANCY_PCT = Decimal("5")


class DiscrepancySeverity(str, Enum):
    NONE = "none"
    MINOR = "minor"  # up to 5% of the expected amount
    MAJOR = "major"


@dataclass(frozen=True)
class Discrepancy:
    """Difference between counted and expected cash for one currency"""

    amount: Decimal
    percentage: Decimal
    severity: DiscrepancySeverity

    @property
    def has_discrepancy(self) -> bool:
        return abs(self.amount) > DISCREPANCY_TOLERANCE


def calculate_discrepancy(expected: Decimal, physical: Decimal) -> Discrepancy:
    """
    Signed difference and relative size of a count mismatch.

    percentage = |difference / expected| * 100, or 0 when nothing was expected.
    """
    amount = physical - expected
    percentage = abs(amount / expected) * 100 if expected != 0 else Decimal("0")

    if percentage == 0:
        severity = DiscrepancySeverity.NONE
    elif percentage <= MINOR_DISCREPANCY_PCT:
        severity = DiscrepancySeverity.MINOR
    else:
        severity = DiscrepancySeverity.MAJOR

    return Discrepancy(amount=amount, percentage=percentage, severity=severity)


class ClosingReconciliation:
    """Operator's working copy of the closing counts"""

    def __init__(self, summary: ClosingSummary):
        self.summary = summary
        self._expected: Dict[int, Decimal] = {
            item.currency_id: item.expected_amount for item in summary.expected_amounts
        }
        self._counts: Dict[int, ClosingCount] = {}

    @classmethod
    def from_summary(cls, summary: ClosingSummary) -> "ClosingReconciliation":
        """Seed every count with the expected amount, unconfirmed"""
        reconciliation = cls(summary)
        for item in summary.expected_amounts:
            reconciliation._counts[item.currency_id] = ClosingCount(
                currency_id=item.currency_id,
                physical_amount=item.expected_amount,
            )
        return reconciliation

    @property
    def opening_id(self) -> int:
        return self.summary.opening_id

    @property
    def counts(self) -> List[ClosingCount]:
        return list(self._counts.values())

    def _count(self, currency_id: int) -> ClosingCount:
        try:
            return self._counts[currency_id]
        except KeyError:
            raise KeyError(f"Currency {currency_id} is not part of this closing") from None

    def set_physical_amount(self, currency_id: int, amount: Decimal) -> None:
        """Record a counted amount; a changed count needs confirming again"""
        count = self._count(currency_id)
        count.physical_amount = amount
        count.confirmed = False

    def confirm(self, currency_id: int, confirmed: bool = True) -> None:
        self._count(currency_id).confirmed = confirmed

    def set_notes(self, currency_id: int, notes: Optional[str]) -> None:
        self._count(currency_id).discrepancy_notes = notes or None

    def discrepancy(self, currency_id: int) -> Discrepancy:
        count = self._count(currency_id)
        return calculate_discrepancy(self._expected[currency_id], count.physical_amount)

    @property
    def is_fully_confirmed(self) -> bool:
        return all(count.confirmed for count in self._counts.values())

    @property
    def unconfirmed_currency_ids(self) -> List[int]:
        return [count.currency_id for count in self._counts.values() if not count.confirmed]
