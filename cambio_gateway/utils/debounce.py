"""Debounce and throttle helpers for keystroke-driven recalculation and lookups"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar
from cambio_gateway.config import settings
from cambio_gateway.utils.scheduler import Scheduler, TaskHandle

T = TypeVar("T")

logger = logging.getLogger(__name__)


class AbortSignal:
    """Cooperative cancellation flag, checked before a result is committed"""

    def __init__(self) -> None:
        self.aborted = False

    def abort(self) -> None:
        self.aborted = True


class ValueDebouncer(Generic[T]):
    """
    Propagate a changing value only after it has been stable for delay_ms.

    Every update() restarts the timer, so the settled value is always the
    last one written, never an intermediate value.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        initial: T,
        delay_ms: float | None = None,
        on_settle: Optional[Callable[[T], Any]] = None,
    ):
        self._scheduler = scheduler
        self._delay_ms = settings.debounce_search_ms if delay_ms is None else delay_ms
        self._on_settle = on_settle
        self._value = initial
        self._handle: Optional[TaskHandle] = None

    @property
    def value(self) -> T:
        return self._value

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def update(self, value: T) -> None:
        if self._handle is not None:
            self._handle.cancel()
        self._handle = self._scheduler.call_later(self._delay_ms, self._settle, value)

    def _settle(self, value: T) -> None:
        self._handle = None
        self._value = value
        if self._on_settle is not None:
            self._on_settle(value)

    def dispose(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class DebouncedCallback:
    """Invoke callback once calls stop arriving; only the last arguments win"""

    def __init__(self, scheduler: Scheduler, callback: Callable[..., Any], delay_ms: float | None = None):
        self._scheduler = scheduler
        self._callback = callback
        self._delay_ms = settings.debounce_search_ms if delay_ms is None else delay_ms
        self._handle: Optional[TaskHandle] = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        self.cancel()
        self._handle = self._scheduler.call_later(self._delay_ms, self._fire, args, kwargs)

    def _fire(self, args: tuple, kwargs: dict) -> None:
        self._handle = None
        self._callback(*args, **kwargs)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    dispose = cancel


class AsyncDebouncer(Generic[T]):
    """
    Debounce an async operation with cancellation of superseded calls.

    Each call returns an awaitable. A newer call aborts the previous one,
    whether still waiting on the timer or already in flight: its signal is
    aborted, its task cancelled and its awaitable cancelled, so a stale
    result is never delivered.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        operation: Callable[..., Awaitable[T]],
        delay_ms: float | None = None,
    ):
        self._scheduler = scheduler
        self._operation = operation
        self._delay_ms = settings.debounce_search_ms if delay_ms is None else delay_ms
        self._handle: Optional[TaskHandle] = None
        self._task: Optional[asyncio.Task] = None
        self._signal: Optional[AbortSignal] = None
        self._future: Optional[asyncio.Future] = None
        self.is_loading = False

    def __call__(self, *args: Any, **kwargs: Any) -> "asyncio.Future[T]":
        self.cancel()
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        signal = AbortSignal()
        self._future = future
        self._signal = signal
        self._handle = self._scheduler.call_later(self._delay_ms, self._start, future, signal, args, kwargs)
        return future

    def _start(self, future: asyncio.Future, signal: AbortSignal, args: tuple, kwargs: dict) -> None:
        self._handle = None
        if signal.aborted:
            return
        self.is_loading = True
        self._task = asyncio.get_running_loop().create_task(self._run(future, signal, args, kwargs))

    async def _run(self, future: asyncio.Future, signal: AbortSignal, args: tuple, kwargs: dict) -> None:
        try:
            result = await self._operation(*args, **kwargs)
        except asyncio.CancelledError:
            if not future.done():
                future.cancel()
            raise
        except Exception as e:
            if not signal.aborted and not future.done():
                future.set_exception(e)
        else:
            if not signal.aborted and not future.done():
                future.set_result(result)
        finally:
            if signal is self._signal:
                self.is_loading = False
                self._task = None

    def cancel(self) -> None:
        """Abort the pending or in-flight call, if any"""
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        if self._signal is not None:
            self._signal.abort()
            self._signal = None
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        if self._future is not None and not self._future.done():
            self._future.cancel()
        self._future = None
        self.is_loading = False


class Throttle:
    """Invoke at most once per delay_ms; calls inside the window are dropped"""

    def __init__(self, scheduler: Scheduler, callback: Callable[..., Any], delay_ms: float | None = None):
        self._scheduler = scheduler
        self._callback = callback
        self._delay_ms = settings.throttle_scroll_ms if delay_ms is None else delay_ms
        self._last_call_ms: Optional[float] = None

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        now = self._scheduler.now_ms()
        if self._last_call_ms is None or now - self._last_call_ms >= self._delay_ms:
            self._last_call_ms = now
            return self._callback(*args, **kwargs)
        return None


@dataclass
class ValidationState:
    is_valid: Optional[bool] = None
    message: Optional[str] = None
    is_validating: bool = False


class DebouncedValidation(Generic[T]):
    """Run an async validator on a value once it settles"""

    def __init__(
        self,
        scheduler: Scheduler,
        validator: Callable[[T], Awaitable[ValidationState]],
        delay_ms: float | None = None,
    ):
        self.state = ValidationState()
        self._validator = validator
        self._signal: Optional[AbortSignal] = None
        self._task: Optional[asyncio.Task] = None
        delay = settings.debounce_validation_ms if delay_ms is None else delay_ms
        self._debouncer: ValueDebouncer[Optional[T]] = ValueDebouncer(
            scheduler, None, delay_ms=delay, on_settle=self._on_settle
        )

    def update(self, value: Optional[T]) -> None:
        self._debouncer.update(value)

    def _on_settle(self, value: Optional[T]) -> None:
        if self._signal is not None:
            self._signal.abort()
        if value is None or (isinstance(value, str) and not value.strip()):
            self._signal = None
            self.state = ValidationState()
            return
        signal = AbortSignal()
        self._signal = signal
        self.state = ValidationState(is_valid=self.state.is_valid, message=self.state.message, is_validating=True)
        self._task = asyncio.get_running_loop().create_task(self._validate(value, signal))

    async def _validate(self, value: T, signal: AbortSignal) -> None:
        try:
            outcome = await self._validator(value)
        except Exception as e:
            logger.warning("Validation failed: %s", e)
            outcome = ValidationState(is_valid=False, message="Validation error")
        if not signal.aborted:
            self.state = ValidationState(is_valid=outcome.is_valid, message=outcome.message, is_validating=False)

    async def wait(self) -> ValidationState:
        """Await the in-flight validation, if any"""
        if self._task is not None:
            await self._task
        return self.state

    def dispose(self) -> None:
        self._debouncer.dispose()
        if self._signal is not None:
            self._signal.abort()
        if self._task is not None and not self._task.done():
            self._task.cancel()
