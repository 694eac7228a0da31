from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal


MarketSegment = Literal["premium", "deal", "business", "family"]

MARKET_SEGMENTS: tuple[str, ...] = ("premium", "deal", "business", "family")


@dataclass(frozen=True)
class VehicleRecord:
    id: str
    brand: str
    model: str
    year: int | None = None
    price: int | None = None
    mileage: int | None = None
    transmission: str = ""
    fuel_type: str = ""
    body_type: str = ""
    color_name: str = ""
    engine_displacement: str = ""
    trim_configuration: str = ""
    description: str = ""
    primary_photo_url: str | None = None
    photo_urls: tuple[str, ...] = field(default_factory=tuple)
    listing_url: str | None = None

    @property
    def title(self) -> str:
        return f"{self.brand} {self.model}".strip()


@dataclass(frozen=True)
class FilterCriteria:
    """Conjunctive listing filter. Price bounds are expressed in ``currency``."""

    category: MarketSegment | None = None
    brand: str | None = None
    fuel_type: str | None = None
    transmission: str | None = None
    year_from: int | None = None
    year_to: int | None = None
    price_from: float | None = None
    price_to: float | None = None
    mileage_from: int | None = None
    mileage_to: int | None = None
    currency: str = "USD"

    @property
    def is_empty(self) -> bool:
        return all(
            v is None
            for v in (
                self.category,
                self.brand,
                self.fuel_type,
                self.transmission,
                self.year_from,
                self.year_to,
                self.price_from,
                self.price_to,
                self.mileage_from,
                self.mileage_to,
            )
        )
