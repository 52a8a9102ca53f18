"""Conversion working state: the inputs behind the live calculator"""

from typing import Optional
from cambio_gateway.domain.conversion import calculate_conversion, can_process
from cambio_gateway.domain.models import (
    ConversionResult,
    ExchangeRate,
    OperationKind,
    OperationSelection,
)
from cambio_gateway.domain.session import SessionGate


class ConversionWorkbench:
    """
    Selected rate, operation, amount and preferential rate.

    Every mutating action requires an OPEN window. The result is recomputed
    from the current selection on each read.
    """

    def __init__(self, gate: SessionGate):
        self._gate = gate
        self._selection = OperationSelection()

    @property
    def selection(self) -> OperationSelection:
        return self._selection

    @property
    def selected_rate(self) -> Optional[ExchangeRate]:
        return self._selection.rate

    @property
    def result(self) -> ConversionResult:
        return calculate_conversion(self._selection)

    @property
    def can_submit(self) -> bool:
        return self._gate.is_open and can_process(self.result)

    @property
    def preferential_note(self) -> Optional[str]:
        if self._selection.override_active:
            return f"Preferential exchange rate: {self._selection.override_rate}"
        return None

    def select_rate(self, rate: ExchangeRate, operation_kind: OperationKind) -> None:
        """Changing the rate row always drops a preferential rate"""
        self._gate.require_open()
        self._selection.rate = rate
        self._selection.operation_kind = operation_kind
        self._selection.override_active = False
        self._selection.override_rate = ""

    def set_amount(self, text: str) -> None:
        self._gate.require_open()
        self._selection.source_amount = text

    def apply_preferential_rate(self, text: str) -> None:
        self._gate.require_open()
        if not text or not text.strip():
            self.reset_preferential_rate()
            return
        self._selection.override_rate = text.strip()
        self._selection.override_active = True

    def reset_preferential_rate(self) -> None:
        self._gate.require_open()
        self._selection.override_active = False
        self._selection.override_rate = ""

    def clear(self) -> None:
        """Clear the form after a submission; the rate row stays selected"""
        self._selection.source_amount = ""
        self._selection.override_active = False
        self._selection.override_rate = ""

    def reset(self) -> None:
        """Drop all working state (window closed or discarded)"""
        self._selection = OperationSelection()
