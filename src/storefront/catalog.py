from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Literal

from inventory.config import CatalogConfig
from inventory.data_models import FilterCriteria, MarketSegment, VehicleRecord
from inventory.facets import available_filters
from inventory.filters import apply_filters
from inventory.pagination import Paginator
from inventory.pricing import ExchangeRates
from storefront.errors import SourceUnavailable
from storefront.ingestion import InventoryLoader

logger = logging.getLogger(__name__)

CatalogStatus = Literal["idle", "ok", "empty", "error"]


@dataclass(frozen=True)
class CatalogView:
    records: list[VehicleRecord]
    total: int
    has_more: bool
    page: int
    status: CatalogStatus
    error: str | None = None
    error_reason: str | None = None
    retryable: bool = False
    criteria: FilterCriteria = field(default_factory=FilterCriteria)


class CatalogSession:
    """Owns the storefront state of one viewer: inventory, filters and pages.

    At most one load runs at a time; a load requested while another is in
    flight is ignored. Results of a load that finishes after ``clear()`` are
    discarded.
    """

    def __init__(
        self,
        loader: InventoryLoader,
        rates: ExchangeRates | None = None,
        config: CatalogConfig | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.loader = loader
        self.rates = rates or ExchangeRates()
        self.config = config or loader.config
        self.clock = clock
        self.all_records: tuple[VehicleRecord, ...] = ()
        self.criteria = FilterCriteria()
        self.paginator: Paginator[VehicleRecord] = Paginator(page_size=self.config.page_size)
        self.is_loading = False
        self.generation = 0
        self.status: CatalogStatus = "idle"
        self.last_error: SourceUnavailable | None = None
        self._last_scroll_check: float | None = None

    # ── Loading ─────────────────────────────────────────────────────

    async def load(self, reset: bool = True) -> CatalogView | None:
        if self.is_loading:
            logger.debug("Load ignored: another load is in flight")
            return None
        if not reset:
            self.load_more()
            return self.view()

        self.is_loading = True
        generation = self.generation
        try:
            batch = await self.loader.load()
        except SourceUnavailable as exc:
            if generation != self.generation:
                return None
            logger.error("Inventory load failed (%s): %s", exc.reason, exc.message)
            self.last_error = exc
            self.status = "error"
            self._publish(())
            return self.view()
        finally:
            self.is_loading = False

        if generation != self.generation:
            logger.info("Discarding stale inventory load (generation %d, now %d)", generation, self.generation)
            return None

        self.last_error = None
        self.status = "empty" if batch.is_empty else "ok"
        self._publish(batch.records)
        return self.view()

    def load_more(self) -> list[VehicleRecord]:
        if self.is_loading or not self.paginator.has_more:
            return []
        chunk = self.paginator.append()
        logger.debug("Appended %d records (page %d)", len(chunk), self.paginator.page - 1)
        return chunk

    def on_scroll(self, scroll_top: float, viewport_height: float, document_height: float) -> list[VehicleRecord]:
        now = self.clock()
        if self._last_scroll_check is not None and now - self._last_scroll_check < self.config.scroll_throttle_seconds:
            return []
        self._last_scroll_check = now
        remaining = document_height - (scroll_top + viewport_height)
        if remaining < self.config.scroll_threshold_px:
            return self.load_more()
        return []

    def clear(self) -> None:
        self.generation += 1
        self.all_records = ()
        self.paginator = Paginator(page_size=self.config.page_size)
        self.status = "idle"
        self.last_error = None

    # ── Filters ─────────────────────────────────────────────────────

    def set_filters(self, criteria: FilterCriteria) -> CatalogView:
        self.criteria = criteria
        self._repage()
        return self.view()

    def set_category(self, category: MarketSegment | None) -> CatalogView:
        # picking the active category again clears it
        if category == self.criteria.category:
            category = None
        return self.set_filters(replace(self.criteria, category=category))

    def reset_filters(self) -> CatalogView:
        return self.set_filters(FilterCriteria(currency=self.criteria.currency))

    def available_filters(self) -> dict[str, Any]:
        return available_filters(self.all_records)

    # ── Accessors ───────────────────────────────────────────────────

    def find(self, record_id: str) -> VehicleRecord | None:
        for record in self.all_records:
            if record.id == record_id:
                return record
        return None

    def view(self) -> CatalogView:
        pager = self.paginator
        error = self.last_error
        return CatalogView(
            records=list(pager.visible),
            total=pager.total,
            has_more=pager.has_more,
            page=pager.page,
            status=self.status,
            error=error.message if error else None,
            error_reason=error.reason if error else None,
            retryable=error is not None or self.status == "empty",
            criteria=self.criteria,
        )

    def _publish(self, records: tuple[VehicleRecord, ...]) -> None:
        self.all_records = tuple(records)
        self._repage()

    def _repage(self) -> None:
        filtered = apply_filters(self.all_records, self.criteria, self.rates, self.config.reference_currency)
        pager: Paginator[VehicleRecord] = Paginator(page_size=self.config.page_size)
        pager.reset(filtered)
        self.paginator = pager
