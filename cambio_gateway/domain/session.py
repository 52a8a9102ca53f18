"""Teller-window session state machine

CLOSED -> OPEN -> {PAUSED <-> OPEN} -> CLOSED

The machine is the single owner of the session. Consumers (workbench,
submission flow, API) receive it as a read-only SessionGate.
"""

from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, List, Optional, Protocol
from cambio_gateway.config import settings
from cambio_gateway.domain.exceptions import (
    InvalidOpeningError,
    InvalidTransitionError,
    ReconciliationIncompleteError,
    WindowNotOpenError,
)
from cambio_gateway.domain.models import (
    ClosingCount,
    ClosingSummary,
    OpeningBalance,
    Operator,
    TellerWindowSession,
    WindowDescriptor,
    WindowStatus,
)
from cambio_gateway.domain.reconciliation import ClosingReconciliation
from cambio_gateway.infrastructure.observability.logging import log_window_transition
from cambio_gateway.infrastructure.observability.metrics import window_transition_counter
from cambio_gateway.utils.scheduler import Scheduler, TaskHandle


class WindowGateway(Protocol):
    """Server-side window operations the machine depends on"""

    async def open_window(
        self, window_id: int, operator_id: int, opening_balances: List[OpeningBalance], notes: Optional[str] = None
    ) -> None: ...

    async def get_closing_summary(self, window_id: int) -> ClosingSummary: ...

    async def process_closing(
        self, window_id: int, opening_id: int, counts: List[ClosingCount], notes: Optional[str] = None
    ) -> None: ...


class SnapshotStore(Protocol):
    def save(self, session: TellerWindowSession) -> None: ...

    def load(self) -> Optional[TellerWindowSession]: ...

    def clear(self) -> None: ...


class SessionGate(Protocol):
    """Read-only view of the session"""

    @property
    def status(self) -> WindowStatus: ...

    @property
    def session(self) -> Optional[TellerWindowSession]: ...

    @property
    def is_open(self) -> bool: ...

    def require_open(self) -> TellerWindowSession: ...


class TellerWindowSessionMachine:
    """Open/pause/resume/close lifecycle with durable snapshot"""

    def __init__(
        self,
        gateway: WindowGateway,
        store: SnapshotStore,
        scheduler: Scheduler,
        tick_ms: int | None = None,
    ):
        self._gateway = gateway
        self._store = store
        self._scheduler = scheduler
        if tick_ms is not None and tick_ms <= 0:
            raise ValueError(f"Pause tick must be positive, got {tick_ms}")
        self._tick_ms = settings.pause_tick_ms if tick_ms is None else tick_ms
        self._session: Optional[TellerWindowSession] = None
        self._pause_ticker: Optional[TaskHandle] = None
        self._close_listeners: List[Callable[[], None]] = []
        self.paused_seconds = 0

    # Read-only view

    @property
    def status(self) -> WindowStatus:
        return self._session.status if self._session is not None else WindowStatus.CLOSED

    @property
    def session(self) -> Optional[TellerWindowSession]:
        return self._session

    @property
    def is_open(self) -> bool:
        return self.status == WindowStatus.OPEN

    @property
    def is_locked(self) -> bool:
        """Paused windows block every conversion action"""
        return self.status == WindowStatus.PAUSED

    def require_open(self) -> TellerWindowSession:
        if self._session is None or self._session.status != WindowStatus.OPEN:
            if self.status == WindowStatus.PAUSED:
                raise WindowNotOpenError("Teller window is paused. All operations are blocked.")
            raise WindowNotOpenError("No open teller window. Open a window first.")
        return self._session

    def add_close_listener(self, listener: Callable[[], None]) -> None:
        """Called after the session ends (close or discard)"""
        self._close_listeners.append(listener)

    # Transitions

    def _persist(self, session: Optional[TellerWindowSession]) -> None:
        if session is None:
            self._store.clear()
        else:
            self._store.save(session)

    def _transition(self, session: Optional[TellerWindowSession], step: str) -> None:
        """Move the in-memory session; persistence is the caller's job"""
        previous = self.status
        current = session or self._session
        window_id = current.window_id if current is not None else 0
        self._session = session
        window_transition_counter.labels(transition=step).inc()
        log_window_transition(window_id, previous.value, self.status.value, step)

    def restore(self) -> WindowStatus:
        """
        Load the persisted session at start-up.

        Anything unreadable counts as CLOSED. A PAUSED snapshot stays paused
        with the counter restarted from zero.
        """
        restored = self._store.load()
        self._session = restored
        if restored is not None and restored.status == WindowStatus.PAUSED:
            self._start_pause_counter()
        return self.status

    async def open(
        self,
        window: WindowDescriptor,
        operator: Operator,
        opening_balances: List[OpeningBalance],
        notes: Optional[str] = None,
    ) -> TellerWindowSession:
        """
        Open the window server-side and start the session.

        Raises:
            InvalidTransitionError: A session is already active
            InvalidOpeningError: No positive opening balance or bad operator id
            BackofficeAPIError: Server rejected or was unreachable (state unchanged)
            SnapshotPersistenceError: Opened server-side and in memory, but not saved
        """
        if self.status != WindowStatus.CLOSED:
            raise InvalidTransitionError("open", self.status)

        valid_balances = [balance for balance in opening_balances if balance.amount > Decimal("0")]
        if not valid_balances:
            raise InvalidOpeningError("At least one opening amount greater than 0 is required")
        if operator.id <= 0:
            raise InvalidOpeningError("Invalid operator id")

        await self._gateway.open_window(window.id, operator.id, valid_balances, notes)

        session = TellerWindowSession(
            window_id=window.id,
            exchange_house_id=window.exchange_house_id,
            window_name=window.name,
            operator_name=operator.display_name.strip(),
            exchange_house_name=window.exchange_house_name,
            opened_at=datetime.now(timezone.utc).isoformat(),
            status=WindowStatus.OPEN,
        )
        # the server has committed, so memory follows it even if the save fails
        try:
            self._persist(session)
        finally:
            self._transition(session, "open")
        return session

    def pause(self) -> None:
        """
        Lock the window locally; the server is not involved.

        Raises:
            InvalidTransitionError: The window is not open
            SnapshotPersistenceError: Could not be saved (state unchanged)
        """
        if self._session is None or self._session.status != WindowStatus.OPEN:
            raise InvalidTransitionError("pause", self.status)
        paused = self._session.with_status(WindowStatus.PAUSED)
        self._persist(paused)
        self._transition(paused, "pause")
        self._start_pause_counter()

    def resume(self) -> None:
        if self._session is None or self._session.status != WindowStatus.PAUSED:
            raise InvalidTransitionError("resume", self.status)
        resumed = self._session.with_status(WindowStatus.OPEN)
        self._persist(resumed)
        self._stop_pause_counter()
        self._transition(resumed, "resume")

    async def fetch_closing_summary(self) -> ClosingSummary:
        if self._session is None:
            raise InvalidTransitionError("close", self.status)
        return await self._gateway.get_closing_summary(self._session.window_id)

    async def close(self, reconciliation: ClosingReconciliation, notes: Optional[str] = None) -> None:
        """
        Close the window with physically confirmed counts.

        Raises:
            InvalidTransitionError: No active session
            ReconciliationIncompleteError: Some count is not confirmed
            BackofficeAPIError: Server rejected or was unreachable (state unchanged)
            SnapshotPersistenceError: Closed server-side and in memory, but the
                stored snapshot could not be cleared
        """
        if self._session is None:
            raise InvalidTransitionError("close", self.status)
        if not reconciliation.is_fully_confirmed:
            raise ReconciliationIncompleteError(
                "All amounts must be physically confirmed before closing"
            )

        await self._gateway.process_closing(
            self._session.window_id,
            reconciliation.opening_id,
            reconciliation.counts,
            notes or None,
        )
        self._end_session("close")

    def discard(self) -> None:
        """Drop the local session without a server call (logout)"""
        if self._session is None:
            self._store.clear()
            return
        self._end_session("discard")

    def _end_session(self, step: str) -> None:
        self._stop_pause_counter()
        try:
            self._persist(None)
        finally:
            self._transition(None, step)
            for listener in self._close_listeners:
                listener()

    # Pause counter

    def _start_pause_counter(self) -> None:
        self._stop_pause_counter()
        self._pause_ticker = self._scheduler.call_every(self._tick_ms, self._tick)

    def _tick(self) -> None:
        self.paused_seconds += 1

    def _stop_pause_counter(self) -> None:
        if self._pause_ticker is not None:
            self._pause_ticker.cancel()
            self._pause_ticker = None
        self.paused_seconds = 0

    def dispose(self) -> None:
        """Cancel timers; the session itself is kept"""
        if self._pause_ticker is not None:
            self._pause_ticker.cancel()
            self._pause_ticker = None
