from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Callable

from inventory.config import CatalogConfig
from inventory.data_models import VehicleRecord
from inventory.parser import parse_feed
from storefront.feed import FeedClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InventoryBatch:
    records: tuple[VehicleRecord, ...]
    source_url: str | None
    from_cache: bool
    loaded_at: float | None

    @property
    def is_empty(self) -> bool:
        return not self.records

    def get(self, record_id: str) -> VehicleRecord | None:
        for record in self.records:
            if record.id == record_id:
                return record
        return None


class InventoryLoader:
    """Fetches and parses the inventory feed behind a time-boxed cache.

    Only a non-empty batch is cached. Concurrent callers share a single
    in-flight fetch.
    """

    def __init__(
        self,
        feed: FeedClient,
        config: CatalogConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.feed = feed
        self.config = config or CatalogConfig()
        self.clock = clock
        self._records: tuple[VehicleRecord, ...] = ()
        self._source_url: str | None = None
        self._loaded_at: float | None = None
        self._inflight: asyncio.Task[InventoryBatch] | None = None

    @property
    def records(self) -> tuple[VehicleRecord, ...]:
        return self._records

    def is_fresh(self) -> bool:
        if self._loaded_at is None or not self._records:
            return False
        return (self.clock() - self._loaded_at) < self.config.inventory_ttl_seconds

    def invalidate(self) -> None:
        self._loaded_at = None

    async def load(self, force: bool = False) -> InventoryBatch:
        if not force and self.is_fresh():
            logger.debug("Using cached inventory (%d records)", len(self._records))
            return InventoryBatch(
                records=self._records,
                source_url=self._source_url,
                from_cache=True,
                loaded_at=self._loaded_at,
            )

        if self._inflight is None:
            task = asyncio.get_running_loop().create_task(self._refresh())
            task.add_done_callback(self._clear_inflight)
            self._inflight = task
        # a cancelled waiter must not cancel the fetch the others share
        return await asyncio.shield(self._inflight)

    def _clear_inflight(self, task: asyncio.Task[InventoryBatch]) -> None:
        if self._inflight is task:
            self._inflight = None
        if not task.cancelled() and task.exception() is not None:
            logger.debug("Inventory fetch finished with %r", task.exception())

    async def _refresh(self) -> InventoryBatch:
        document = await self.feed.fetch()
        records = tuple(parse_feed(document.text, self.config))
        now = self.clock()
        self._records = records
        self._source_url = document.url
        if records:
            self._loaded_at = now
            logger.info("Loaded %d records from %s", len(records), document.url)
        else:
            self._loaded_at = None
            logger.warning("Feed at %s produced no usable rows", document.url)
        return InventoryBatch(records=records, source_url=document.url, from_cache=False, loaded_at=now)
