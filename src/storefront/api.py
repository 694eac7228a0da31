from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

import httpx
from fastapi import Depends, FastAPI, HTTPException, Query, Request, Response, status
from pydantic import BaseModel

from inventory.categories import classify
from inventory.data_models import FilterCriteria, MarketSegment, VehicleRecord
from inventory.facets import available_filters
from inventory.filters import apply_filters
from inventory.pagination import page_slice
from inventory.pricing import format_price
from storefront.auth import InitDataAuth, RateLimiter, SubmitterIdentity
from storefront.errors import InquiryValidationError, RelaySubmissionFailure, SourceUnavailable
from storefront.feed import FeedClient
from storefront.ingestion import InventoryBatch, InventoryLoader
from storefront.logging_config import CORRELATION_HEADER, bind_correlation_id, configure_logging
from storefront.rates import ExchangeRateClient
from storefront.relay import ContactForm, ContactRelayClient, build_inquiry
from storefront.scheduler import build_refresh_scheduler
from storefront.settings import StorefrontSettings

logger = logging.getLogger(__name__)


# ── Request / Response Models ───────────────────────────────────────

class CarOut(BaseModel):
    id: str
    brand: str
    model: str
    year: int | None = None
    price: int | None = None
    price_formatted: str
    mileage: int | None = None
    transmission: str = ""
    fuel_type: str = ""
    body_type: str = ""
    color_name: str = ""
    engine_displacement: str = ""
    trim_configuration: str = ""
    description: str = ""
    primary_photo_url: str | None = None
    photo_urls: list[str] = []
    listing_url: str | None = None
    category: MarketSegment


class CarsResponse(BaseModel):
    status: str
    total: int
    page: int
    page_size: int
    has_more: bool
    items: list[CarOut]


class ContactRequest(BaseModel):
    question: str
    phone: str = ""
    contact_method: str = "whatsapp"
    currency: str | None = None


class ContactResponse(BaseModel):
    success: bool


class HealthResponse(BaseModel):
    status: str


# ── App Factory ─────────────────────────────────────────────────────

def create_app(
    settings: StorefrontSettings | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> FastAPI:
    settings = settings or StorefrontSettings()
    configure_logging(level=settings.log_level, fmt=settings.log_format)

    config = settings.catalog_config()
    feed = FeedClient(settings.feed_url_list(), timeout=settings.http_timeout_seconds, transport=transport)
    loader = InventoryLoader(feed, config=config)
    rates_client = ExchangeRateClient(
        settings.rates_url,
        ttl_seconds=config.rates_ttl_seconds,
        timeout=settings.http_timeout_seconds,
        transport=transport,
    )
    relay = ContactRelayClient(settings.relay_base_url, timeout=settings.http_timeout_seconds, transport=transport)
    auth = InitDataAuth(bot_token=settings.telegram_bot_token)
    limiter = RateLimiter(requests_per_minute=settings.rate_limit_rpm)
    reference = config.reference_currency

    async def _refresh_inventory() -> None:
        try:
            await loader.load(force=True)
        except SourceUnavailable as exc:
            logger.warning("Scheduled inventory refresh failed (%s): %s", exc.reason, exc.message)

    async def _refresh_rates() -> None:
        await rates_client.refresh()

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        await rates_client.refresh()
        await _refresh_inventory()
        scheduler = None
        if settings.refresh_enabled:
            scheduler = build_refresh_scheduler(
                _refresh_inventory,
                _refresh_rates,
                inventory_seconds=settings.inventory_cache_ttl_seconds,
                rates_seconds=settings.rates_cache_ttl_seconds,
            )
            scheduler.start()
        try:
            yield
        finally:
            if scheduler is not None:
                scheduler.shutdown(wait=False)

    app = FastAPI(title="Car Storefront API", version="1.0.0", lifespan=lifespan)

    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next: Any) -> Response:
        return await limiter.middleware(request, call_next)

    # outermost middleware: 429 responses from the limiter carry the id too
    @app.middleware("http")
    async def correlation_id_middleware(request: Request, call_next: Any) -> Response:
        cid = bind_correlation_id(request.headers.get(CORRELATION_HEADER))
        response = await call_next(request)
        response.headers[CORRELATION_HEADER] = cid
        return response

    # ── Helpers ─────────────────────────────────────────────────────

    def _currency(code: str | None) -> str:
        currency = (code or settings.display_currency).upper()
        if currency not in rates_client.rates.rates:
            raise HTTPException(status_code=400, detail=f"Unsupported currency: {currency}")
        return currency

    async def _inventory() -> InventoryBatch:
        try:
            return await loader.load()
        except SourceUnavailable as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail={"message": exc.message, "reason": exc.reason, "retryable": True},
            ) from exc

    def _car_out(record: VehicleRecord, currency: str) -> CarOut:
        return CarOut(
            id=record.id,
            brand=record.brand,
            model=record.model,
            year=record.year,
            price=record.price,
            price_formatted=format_price(record.price, currency, rates_client.rates, reference),
            mileage=record.mileage,
            transmission=record.transmission,
            fuel_type=record.fuel_type,
            body_type=record.body_type,
            color_name=record.color_name,
            engine_displacement=record.engine_displacement,
            trim_configuration=record.trim_configuration,
            description=record.description,
            primary_photo_url=record.primary_photo_url,
            photo_urls=list(record.photo_urls),
            listing_url=record.listing_url,
            category=classify(record),
        )

    def _criteria(
        category: MarketSegment | None = None,
        brand: str | None = None,
        fuel_type: str | None = None,
        transmission: str | None = None,
        year_from: int | None = None,
        year_to: int | None = None,
        price_from: float | None = Query(None, ge=0),
        price_to: float | None = Query(None, ge=0),
        mileage_from: int | None = Query(None, ge=0),
        mileage_to: int | None = Query(None, ge=0),
        currency: str | None = None,
    ) -> FilterCriteria:
        return FilterCriteria(
            category=category,
            brand=brand or None,
            fuel_type=fuel_type or None,
            transmission=transmission or None,
            year_from=year_from,
            year_to=year_to,
            price_from=price_from,
            price_to=price_to,
            mileage_from=mileage_from,
            mileage_to=mileage_to,
            currency=_currency(currency),
        )

    # ── Health ──────────────────────────────────────────────────────

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    # ── Catalog ─────────────────────────────────────────────────────

    @app.get("/cars", response_model=CarsResponse)
    async def list_cars(
        criteria: FilterCriteria = Depends(_criteria),
        page: int = Query(1, ge=1),
    ) -> CarsResponse:
        batch = await _inventory()
        filtered = apply_filters(batch.records, criteria, rates_client.rates, reference)
        chunk = page_slice(filtered, page, config.page_size)
        return CarsResponse(
            status="empty" if batch.is_empty else "ok",
            total=chunk.total,
            page=chunk.page,
            page_size=chunk.page_size,
            has_more=chunk.has_more,
            items=[_car_out(r, criteria.currency) for r in chunk.items],
        )

    @app.get("/cars/{car_id}", response_model=CarOut)
    async def get_car(car_id: str, currency: str | None = None) -> CarOut:
        batch = await _inventory()
        record = batch.get(car_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Car not found")
        return _car_out(record, _currency(currency))

    @app.get("/filters")
    async def get_filters() -> dict[str, Any]:
        batch = await _inventory()
        return available_filters(batch.records)

    @app.get("/rates")
    async def get_rates() -> dict[str, Any]:
        return {"base": "USD", "reference_currency": reference, "rates": rates_client.rates.snapshot()}

    # ── Contact ─────────────────────────────────────────────────────

    @app.post("/cars/{car_id}/contact", response_model=ContactResponse)
    async def contact(
        car_id: str,
        req: ContactRequest,
        identity: SubmitterIdentity | None = Depends(auth),
    ) -> ContactResponse:
        batch = await _inventory()
        record = batch.get(car_id)
        if record is None:
            raise HTTPException(status_code=404, detail="Car not found")

        form = ContactForm(question=req.question, phone=req.phone, contact_method=req.contact_method)
        try:
            payload = build_inquiry(
                record, form, identity, rates_client.rates,
                currency=_currency(req.currency), reference_currency=reference,
            )
        except InquiryValidationError as exc:
            raise HTTPException(
                status_code=422,
                detail={"message": exc.message, "field": exc.field},
            ) from exc

        try:
            await relay.submit(payload)
        except RelaySubmissionFailure as exc:
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail={"message": exc.message, "details": exc.details, "retryable": True},
            ) from exc
        return ContactResponse(success=True)

    return app


app = create_app()
