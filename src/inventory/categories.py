from __future__ import annotations

from inventory.data_models import MarketSegment, VehicleRecord

# Thresholds are in the reference currency.
PREMIUM_PRICE_THRESHOLD = 30_000_000
DEAL_PRICE_THRESHOLD = 15_000_000
BUSINESS_PRICE_FLOOR = 15_000_000

PREMIUM_BRANDS = (
    "genesis",
    "mercedes",
    "bmw",
    "audi",
    "lexus",
    "porsche",
    "bentley",
    "rolls-royce",
    "maserati",
    "jaguar",
)
BUDGET_MODELS = ("rio", "picanto", "i10", "i20", "getz", "accent", "solaris", "elantra")
BUSINESS_MODELS = (
    "g90",
    "g80",
    "s-class",
    "7 series",
    "a8",
    "ls",
    "e-class",
    "5 series",
    "sonata",
    "k5",
    "camry",
    "accord",
)
VALUE_BRANDS = ("kia", "hyundai")

MINIVAN_TYPES = ("минивэн", "minivan")
SUV_TYPES = ("внедорожник", "suv")
CROSSOVER_TYPES = ("кроссовер", "crossover")
SEDAN_TYPES = ("седан", "sedan")


def _contains_any(text: str, needles: tuple[str, ...]) -> bool:
    return any(n in text for n in needles)


def classify(record: VehicleRecord) -> MarketSegment:
    """Derive the market segment. Rules are evaluated in priority order."""
    brand = (record.brand or "").lower()
    model = (record.model or "").lower()
    body = (record.body_type or "").lower()
    price = record.price or 0

    if _contains_any(brand, PREMIUM_BRANDS) or price > PREMIUM_PRICE_THRESHOLD:
        return "premium"

    if price < DEAL_PRICE_THRESHOLD or _contains_any(model, BUDGET_MODELS):
        return "deal"

    is_minivan = _contains_any(body, MINIVAN_TYPES)
    is_expensive_suv = _contains_any(body, SUV_TYPES) and price > BUSINESS_PRICE_FLOOR
    is_mid_range = (
        BUSINESS_PRICE_FLOOR <= price <= PREMIUM_PRICE_THRESHOLD
        and _contains_any(body, SEDAN_TYPES + CROSSOVER_TYPES)
    )
    if _contains_any(model, BUSINESS_MODELS) or is_minivan or is_expensive_suv or is_mid_range:
        return "business"

    if _contains_any(body, MINIVAN_TYPES + SUV_TYPES + CROSSOVER_TYPES) or (
        _contains_any(brand, VALUE_BRANDS) and price < PREMIUM_PRICE_THRESHOLD
    ):
        return "family"

    return "business"
