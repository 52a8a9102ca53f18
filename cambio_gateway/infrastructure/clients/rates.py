"""Cached read access to rates and currencies"""

from typing import Any, Dict, List
from cambio_gateway.domain.models import Currency, ExchangeRate
from cambio_gateway.infrastructure.cache.cache_store import (
    CURRENCIES_DOMAIN,
    RATES_DOMAIN,
    CacheDomain,
    CacheStore,
)
from cambio_gateway.infrastructure.clients.backoffice import BackofficeClient


def rates_key(exchange_house_id: int) -> str:
    return f"rates:house:{exchange_house_id}:active"


def _rates_pattern(exchange_house_id: int) -> str:
    # trailing separator keeps house 1 from matching house 12
    return f"rates:house:{exchange_house_id}:"


CURRENCIES_KEY = "currencies:all"


class RateCatalog:
    """Rate and currency lists, memoized per cache domain TTL"""

    def __init__(
        self,
        client: BackofficeClient,
        cache: CacheStore,
        rates_domain: CacheDomain = RATES_DOMAIN,
        currencies_domain: CacheDomain = CURRENCIES_DOMAIN,
    ):
        self.client = client
        self.cache = cache
        self._load_rates = cache.with_cache(
            self._fetch_rates,
            rates_key,
            ttl_ms=rates_domain.ttl_ms,
            persistent=rates_domain.persistent,
        )
        self._load_currencies = cache.with_cache(
            self._fetch_currencies,
            lambda: CURRENCIES_KEY,
            ttl_ms=currencies_domain.ttl_ms,
            persistent=currencies_domain.persistent,
        )

    async def _fetch_rates(self, exchange_house_id: int) -> List[Dict[str, Any]]:
        rates = await self.client.get_active_rates(exchange_house_id)
        return [rate.to_dict() for rate in rates]

    async def _fetch_currencies(self) -> List[Dict[str, Any]]:
        currencies = await self.client.get_currencies()
        return [
            {"code": c.code, "symbol": c.symbol, "id": c.id, "name": c.name}
            for c in currencies
        ]

    async def active_rates(self, exchange_house_id: int) -> List[ExchangeRate]:
        rows = await self._load_rates(exchange_house_id)
        return [ExchangeRate.from_dict(row) for row in rows]

    async def find_rate(self, exchange_house_id: int, rate_id: int) -> ExchangeRate | None:
        for rate in await self.active_rates(exchange_house_id):
            if rate.id == rate_id:
                return rate
        return None

    async def currencies(self) -> List[Currency]:
        rows = await self._load_currencies()
        return [Currency(**row) for row in rows]

    def refresh(self, exchange_house_id: int) -> int:
        """Drop cached rates of one house so the next read hits the back office"""
        return self.cache.invalidate_pattern(_rates_pattern(exchange_house_id))
