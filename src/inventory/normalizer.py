from __future__ import annotations

import json
import math
import re
from typing import Sequence

from inventory.config import CatalogConfig
from inventory.data_models import VehicleRecord
from inventory.schema import ColumnResolver

# Leading numeric prefix, as lenient as a browser's parseFloat / parseInt.
_FLOAT_PREFIX_RE = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_INT_PREFIX_RE = re.compile(r"^[+-]?\d+")
_WHITESPACE_RE = re.compile(r"\s")
_MILEAGE_SEPARATORS_RE = re.compile(r"[\s,.]")
_URL_RE = re.compile(r"https?://[^\s\"\[\]]+")

FIELD_BRAND = "mark"
FIELD_MODEL = "model"
FIELD_PRICE = "price"
FIELD_PRICE_MINOR = "price_won"
FIELD_YEAR = "year"
FIELD_MILEAGE = "km_age"
FIELD_FUEL = "engine_type"
FIELD_TRANSMISSION = "transmission_type"
FIELD_BODY = "body_type"
FIELD_CONFIGURATION = "configuration"
FIELD_COMPLECTATION = "complectation"
FIELD_DESCRIPTION = "description"
FIELD_URL = "url"
FIELD_COLOR = "color"
FIELD_DISPLACEMENT = "displacement"
FIELD_IMAGES = "images"

LOGICAL_FIELDS: tuple[str, ...] = (
    FIELD_BRAND,
    FIELD_MODEL,
    FIELD_PRICE,
    FIELD_PRICE_MINOR,
    FIELD_YEAR,
    FIELD_MILEAGE,
    FIELD_FUEL,
    FIELD_TRANSMISSION,
    FIELD_BODY,
    FIELD_CONFIGURATION,
    FIELD_COMPLECTATION,
    FIELD_DESCRIPTION,
    FIELD_URL,
    FIELD_COLOR,
    FIELD_DISPLACEMENT,
    FIELD_IMAGES,
)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _leading_float(text: str) -> float | None:
    m = _FLOAT_PREFIX_RE.match(text)
    if not m:
        return None
    value = float(m.group(0))
    return value if math.isfinite(value) else None


def _leading_int(text: str) -> int | None:
    m = _INT_PREFIX_RE.match(text.strip())
    return int(m.group(0)) if m else None


def _clean_amount(raw: str) -> float | None:
    if not raw or not raw.strip():
        return None
    cleaned = _WHITESPACE_RE.sub("", raw).replace(",", ".", 1)
    value = _leading_float(cleaned)
    if value is None or value <= 0:
        return None
    return value


def parse_price(primary: str, secondary: str = "", multiplier: float = 0.07) -> int | None:
    amount = _clean_amount(primary)
    if amount is not None:
        price = _round_half_up(amount)
        if price > 0:
            return price
    amount = _clean_amount(secondary)
    if amount is not None:
        price = _round_half_up(amount * multiplier)
        if price > 0:
            return price
    return None


def parse_mileage(raw: str) -> int | None:
    if not raw:
        return None
    value = _leading_int(_MILEAGE_SEPARATORS_RE.sub("", raw))
    if value is None or value <= 0:
        return None
    return value


def parse_year(raw: str, min_year: int = 1900, max_year: int = 2100) -> int | None:
    if not raw:
        return None
    value = _leading_int(raw)
    if value is None or not (min_year <= value <= max_year):
        return None
    return value


def parse_photos(raw: str) -> tuple[str | None, tuple[str, ...]]:
    """Extract photo URLs from a JSON array literal, falling back to the first URL in the text."""
    if not raw or not raw.strip():
        return None, ()
    text = raw.strip()
    if text.startswith('"['):
        text = text[1:-1].replace('\\"', '"')
    try:
        decoded = json.loads(text)
    except (ValueError, TypeError):
        m = _URL_RE.search(raw)
        if m:
            return m.group(0), (m.group(0),)
        return None, ()
    if not isinstance(decoded, list):
        return None, ()
    urls = tuple(u for u in decoded if isinstance(u, str) and u.startswith("http"))
    return (urls[0] if urls else None), urls


def truncate_description(raw: str, limit: int = 500) -> str:
    return (raw or "")[:limit]


def normalize_row(
    values: Sequence[str],
    resolver: ColumnResolver,
    position: int,
    config: CatalogConfig | None = None,
) -> VehicleRecord | None:
    """Build a record from one tokenized data row; ``None`` means skip the row."""
    cfg = config or CatalogConfig()

    def get(name: str) -> str:
        return resolver.value(values, name)

    brand = get(FIELD_BRAND)
    model = get(FIELD_MODEL)
    if not brand and not model:
        return None

    primary_photo, photos = parse_photos(get(FIELD_IMAGES))
    configuration = get(FIELD_CONFIGURATION) or get(FIELD_COMPLECTATION) or cfg.default_configuration

    return VehicleRecord(
        id=f"{cfg.id_prefix}{position}",
        brand=brand,
        model=model,
        year=parse_year(get(FIELD_YEAR), cfg.min_year, cfg.max_year),
        price=parse_price(get(FIELD_PRICE), get(FIELD_PRICE_MINOR), cfg.minor_currency_multiplier),
        mileage=parse_mileage(get(FIELD_MILEAGE)),
        transmission=get(FIELD_TRANSMISSION),
        fuel_type=get(FIELD_FUEL),
        body_type=get(FIELD_BODY),
        color_name=get(FIELD_COLOR),
        engine_displacement=get(FIELD_DISPLACEMENT),
        trim_configuration=configuration,
        description=truncate_description(get(FIELD_DESCRIPTION), cfg.description_limit),
        primary_photo_url=primary_photo,
        photo_urls=photos,
        listing_url=get(FIELD_URL) or None,
    )
