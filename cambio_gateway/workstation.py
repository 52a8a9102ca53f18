"""Wiring of one teller workstation: session, working state, cache and client"""

from dataclasses import dataclass, field
from typing import Callable, Optional
from sqlalchemy.orm import Session
from cambio_gateway.config import Settings, settings as default_settings
from cambio_gateway.domain.session import TellerWindowSessionMachine
from cambio_gateway.domain.submission import TransactionSubmissionFlow
from cambio_gateway.domain.workbench import ConversionWorkbench
from cambio_gateway.infrastructure.cache.cache_store import CacheDomain, CacheStore
from cambio_gateway.infrastructure.clients.backoffice import BackofficeClient
from cambio_gateway.infrastructure.clients.rates import RateCatalog
from cambio_gateway.infrastructure.storage import DurableStorage, SessionSnapshotStore
from cambio_gateway.utils.debounce import Throttle
from cambio_gateway.utils.scheduler import Scheduler, TaskHandle


@dataclass
class Workstation:
    """Single owner of all client-side state for one teller window"""

    scheduler: Scheduler
    client: BackofficeClient
    storage: DurableStorage
    cache: CacheStore
    catalog: RateCatalog
    session: TellerWindowSessionMachine
    workbench: ConversionWorkbench
    submissions: TransactionSubmissionFlow
    refresh_rates: Throttle
    cache_cleanup_interval_ms: int
    _cleanup: Optional[TaskHandle] = field(default=None, repr=False)

    def start(self) -> None:
        """Restore the persisted session and start periodic cache cleanup"""
        self.session.restore()
        if self._cleanup is None:
            self._cleanup = self.scheduler.call_every(self.cache_cleanup_interval_ms, self.cache.purge_expired)

    def shutdown(self) -> None:
        """Cancel every timer; durable state is left in place"""
        if self._cleanup is not None:
            self._cleanup.cancel()
            self._cleanup = None
        self.session.dispose()


def build_workstation(
    session_factory: Callable[[], Session],
    scheduler: Scheduler,
    client: BackofficeClient | None = None,
    config: Settings | None = None,
) -> Workstation:
    """Compose a workstation from its storage, clock and back-office client"""
    config = config or default_settings
    client = client or BackofficeClient()
    storage = DurableStorage(session_factory)
    cache = CacheStore(
        clock=scheduler.now_ms,
        storage=storage,
        default_ttl_ms=config.cache_rates_ttl_ms,
        key_prefix=config.cache_key_prefix,
    )
    catalog = RateCatalog(
        client,
        cache,
        rates_domain=CacheDomain("rates", config.cache_rates_ttl_ms),
        currencies_domain=CacheDomain("currencies", config.cache_currencies_ttl_ms, persistent=True),
    )

    machine = TellerWindowSessionMachine(
        gateway=client,
        store=SessionSnapshotStore(storage, key=config.session_storage_key),
        scheduler=scheduler,
        tick_ms=config.pause_tick_ms,
    )
    workbench = ConversionWorkbench(machine)
    machine.add_close_listener(workbench.reset)

    return Workstation(
        scheduler=scheduler,
        client=client,
        storage=storage,
        cache=cache,
        catalog=catalog,
        session=machine,
        workbench=workbench,
        submissions=TransactionSubmissionFlow(machine, workbench, client),
        refresh_rates=Throttle(scheduler, catalog.refresh, delay_ms=config.throttle_rates_refresh_ms),
        cache_cleanup_interval_ms=config.cache_cleanup_interval_ms,
    )
