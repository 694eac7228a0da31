from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class CatalogConfig:
    page_size: int = 10
    inventory_ttl_seconds: float = 300.0
    rates_ttl_seconds: float = 3600.0
    min_year: int = 1900
    max_year: int = 2100
    description_limit: int = 500
    # price_won is quoted in KRW, listings are priced in RUB
    minor_currency_multiplier: float = 0.07
    default_configuration: str = "Standard"
    id_prefix: str = "car_"
    reference_currency: str = "RUB"
    scroll_threshold_px: int = 300
    scroll_throttle_seconds: float = 0.2
