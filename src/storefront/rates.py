from __future__ import annotations

import logging
import time
from typing import Callable

import httpx

from inventory.pricing import ExchangeRates

logger = logging.getLogger(__name__)


class ExchangeRateClient:
    """Keeps an ``ExchangeRates`` table fresh from a per-USD rate feed.

    Best effort: any failure keeps the previous (or default) rates.
    """

    def __init__(
        self,
        url: str,
        ttl_seconds: float = 3600.0,
        rates: ExchangeRates | None = None,
        timeout: float = 5.0,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.url = url
        self.ttl_seconds = ttl_seconds
        self.rates = rates or ExchangeRates()
        self.timeout = timeout
        self.transport = transport
        self.clock = clock
        self._updated_at: float | None = None

    def is_fresh(self) -> bool:
        return self._updated_at is not None and (self.clock() - self._updated_at) < self.ttl_seconds

    async def refresh(self, force: bool = False) -> ExchangeRates:
        if not force and self.is_fresh():
            return self.rates
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.get(self.url)
                resp.raise_for_status()
            payload = resp.json()
            fresh = payload.get("rates") if isinstance(payload, dict) else None
            if not isinstance(fresh, dict):
                logger.warning("Exchange rate payload has no rate table, keeping %s", self.rates.snapshot())
                return self.rates
            updated = self.rates.update(fresh)
            self._updated_at = self.clock()
            logger.info("Exchange rates updated: %s", {code: self.rates.rates[code] for code in updated})
        except Exception as exc:
            logger.warning("Exchange rate refresh failed, keeping current rates: %s", exc)
        return self.rates
