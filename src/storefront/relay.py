from __future__ import annotations

import logging
import time
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Literal

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel

from inventory.categories import classify
from inventory.data_models import VehicleRecord
from inventory.pricing import ExchangeRates, format_price
from storefront.auth import SubmitterIdentity
from storefront.errors import InquiryValidationError, RelaySubmissionFailure
from storefront.logging_config import log_event

logger = logging.getLogger(__name__)

CONTACT_PATH = "/api/webapp/contact"

ContactMethod = Literal["whatsapp", "telegram"]
CONTACT_METHODS: tuple[str, ...] = ("whatsapp", "telegram")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CarSummary(_CamelModel):
    id: str
    brand: str
    model: str
    year: int | None = None
    price: int | None = None
    price_formatted: str
    mileage: int | None = None
    transmission: str = ""
    fuel: str = ""
    category: str
    link: str = ""


class SubmitterInfo(_CamelModel):
    user_id: int | None = None
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    user_link: str | None = None


class InquiryPayload(_CamelModel):
    car: CarSummary
    user: SubmitterInfo
    question: str
    phone: str | None = None
    contact_method: str = "whatsapp"
    timestamp: str

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


class RelayResponse(BaseModel):
    success: bool
    error: str | None = None


@dataclass(frozen=True)
class ContactForm:
    question: str
    phone: str = ""
    contact_method: str = "whatsapp"

    def validated(self) -> ContactForm:
        form = replace(
            self,
            question=(self.question or "").strip(),
            phone=(self.phone or "").strip(),
            contact_method=(self.contact_method or "whatsapp").strip().lower(),
        )
        if not form.question:
            raise InquiryValidationError("Please ask a question about the car.", field="question")
        if form.contact_method not in CONTACT_METHODS:
            raise InquiryValidationError(
                f"Unknown contact method: {form.contact_method}", field="contact_method"
            )
        if form.contact_method == "whatsapp" and not form.phone:
            raise InquiryValidationError(
                "A phone number is required to be contacted via WhatsApp.", field="phone"
            )
        return form


def build_inquiry(
    record: VehicleRecord,
    form: ContactForm,
    identity: SubmitterIdentity | None,
    rates: ExchangeRates,
    currency: str = "USD",
    reference_currency: str = "RUB",
    now: datetime | None = None,
) -> InquiryPayload:
    form = form.validated()
    who = identity or SubmitterIdentity()
    return InquiryPayload(
        car=CarSummary(
            id=record.id,
            brand=record.brand,
            model=record.model,
            year=record.year,
            price=record.price,
            price_formatted=format_price(record.price, currency, rates, reference_currency),
            mileage=record.mileage,
            transmission=record.transmission,
            fuel=record.fuel_type,
            category=classify(record),
            link=record.listing_url or "",
        ),
        user=SubmitterInfo(
            user_id=who.user_id,
            username=who.username,
            first_name=who.first_name,
            last_name=who.last_name,
            user_link=who.user_link,
        ),
        question=form.question,
        phone=form.phone or None,
        contact_method=form.contact_method,
        timestamp=(now or datetime.now(timezone.utc)).isoformat(),
    )


class ContactRelayClient:
    """Posts buyer inquiries to the backend relay that forwards them to a manager."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    @property
    def contact_url(self) -> str:
        return f"{self.base_url}{CONTACT_PATH}"

    async def submit(self, payload: InquiryPayload) -> RelayResponse:
        url = self.contact_url
        t0 = time.monotonic()
        log_event(
            logger, logging.INFO, "Submitting inquiry",
            car_id=payload.car.id, user_id=payload.user.user_id, contact_method=payload.contact_method,
        )
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(url, json=payload.to_wire())
        except httpx.HTTPError as exc:
            log_event(logger, logging.ERROR, "Relay unreachable", url=url, error=str(exc))
            raise RelaySubmissionFailure(
                "Cannot reach the server.",
                details=f"Check the internet connection and the availability of {self.base_url}.",
            ) from exc

        elapsed_ms = round((time.monotonic() - t0) * 1000)
        if not resp.is_success:
            log_event(
                logger, logging.ERROR, "Relay returned an error status",
                status=resp.status_code, elapsed_ms=elapsed_ms, body=resp.text[:500],
            )
            raise self._status_failure(resp, url)

        try:
            result = RelayResponse.model_validate(resp.json())
        except (ValueError, ValidationError) as exc:
            log_event(logger, logging.ERROR, "Relay response is not valid JSON", error=str(exc))
            raise RelaySubmissionFailure(
                "The server returned an invalid response.", status_code=resp.status_code
            ) from exc

        if not result.success:
            log_event(logger, logging.ERROR, "Relay rejected the inquiry", error=result.error)
            raise RelaySubmissionFailure(result.error or "Submission failed.", status_code=resp.status_code)

        log_event(logger, logging.INFO, "Inquiry delivered", car_id=payload.car.id, elapsed_ms=elapsed_ms)
        return result

    @staticmethod
    def _status_failure(resp: httpx.Response, url: str) -> RelaySubmissionFailure:
        code = resp.status_code
        if code >= 500:
            return RelaySubmissionFailure(
                "Server error.", details=f"The server returned HTTP {code}. Contact the administrator.", status_code=code
            )
        if code == 404:
            return RelaySubmissionFailure(
                "Endpoint not found.", details=f"{url} was not found. Check the server settings.", status_code=code
            )
        if code == 400:
            return RelaySubmissionFailure(
                "Bad request.", details="The server could not process the inquiry.", status_code=code
            )
        return RelaySubmissionFailure(f"Error {code}.", details=resp.text[:200], status_code=code)
