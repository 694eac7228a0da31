from __future__ import annotations

from typing import Iterable

from inventory.categories import classify
from inventory.data_models import FilterCriteria, VehicleRecord
from inventory.pricing import ExchangeRates


def _in_range(value: float | None, low: float | None, high: float | None) -> bool:
    if low is None and high is None:
        return True
    # A missing value never satisfies a bounded range.
    if value is None:
        return False
    if low is not None and value < low:
        return False
    if high is not None and value > high:
        return False
    return True


def _price_bounds(
    criteria: FilterCriteria,
    rates: ExchangeRates,
    reference_currency: str,
) -> tuple[float | None, float | None]:
    def to_reference(amount: float | None) -> float | None:
        if amount is None:
            return None
        return rates.convert(amount, criteria.currency, reference_currency)

    return to_reference(criteria.price_from), to_reference(criteria.price_to)


def matches(
    record: VehicleRecord,
    criteria: FilterCriteria,
    rates: ExchangeRates | None = None,
    reference_currency: str = "RUB",
) -> bool:
    price_low, price_high = _price_bounds(criteria, rates or ExchangeRates(), reference_currency)
    return _matches(record, criteria, price_low, price_high)


def _matches(
    record: VehicleRecord,
    criteria: FilterCriteria,
    price_low: float | None,
    price_high: float | None,
) -> bool:
    if criteria.category and classify(record) != criteria.category:
        return False
    if criteria.brand and record.brand != criteria.brand:
        return False
    if criteria.fuel_type and record.fuel_type != criteria.fuel_type:
        return False
    if criteria.transmission and record.transmission != criteria.transmission:
        return False
    if not _in_range(record.year, criteria.year_from, criteria.year_to):
        return False
    if not _in_range(record.price, price_low, price_high):
        return False
    if not _in_range(record.mileage, criteria.mileage_from, criteria.mileage_to):
        return False
    return True


def apply_filters(
    records: Iterable[VehicleRecord],
    criteria: FilterCriteria | None,
    rates: ExchangeRates | None = None,
    reference_currency: str = "RUB",
) -> list[VehicleRecord]:
    if criteria is None or criteria.is_empty:
        return list(records)
    price_low, price_high = _price_bounds(criteria, rates or ExchangeRates(), reference_currency)
    return [r for r in records if _matches(r, criteria, price_low, price_high)]
