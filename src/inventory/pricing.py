from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

DEFAULT_RATES: dict[str, float] = {"USD": 1.0, "RUB": 95.0, "EUR": 0.92, "KRW": 1320.0}

CURRENCY_SYMBOLS: dict[str, str] = {"USD": "$", "RUB": "₽", "EUR": "€", "KRW": "₩"}

PRICE_NOT_SPECIFIED = "Price not specified"


def _group(value: int, sep: str) -> str:
    return f"{value:,}".replace(",", sep)


# Integer grouping per display locale: en-US, ru-RU, de-DE, ko-KR.
CURRENCY_FORMATS: dict[str, Callable[[int], str]] = {
    "USD": lambda v: _group(v, ","),
    "RUB": lambda v: _group(v, "\u00a0"),
    "EUR": lambda v: _group(v, "."),
    "KRW": lambda v: _group(v, ","),
}


@dataclass
class ExchangeRates:
    """Rate table quoted as units of each currency per one USD."""

    rates: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_RATES))

    def rate(self, currency: str) -> float:
        try:
            return self.rates[currency.upper()]
        except KeyError:
            raise ValueError(f"Unsupported currency: {currency}") from None

    def convert(self, amount: float, from_currency: str, to_currency: str) -> float:
        if from_currency.upper() == to_currency.upper():
            return float(amount)
        return amount / self.rate(from_currency) * self.rate(to_currency)

    def update(self, fresh: dict[str, float]) -> list[str]:
        updated = []
        for code in self.rates:
            value = fresh.get(code)
            if value and code != "USD":
                self.rates[code] = float(value)
                updated.append(code)
        return updated

    def snapshot(self) -> dict[str, float]:
        return dict(self.rates)


def format_price(
    amount: float | None,
    currency: str,
    rates: ExchangeRates,
    reference_currency: str = "RUB",
) -> str:
    if not amount or amount <= 0:
        return PRICE_NOT_SPECIFIED
    code = currency.upper()
    converted = rates.convert(amount, reference_currency, code)
    rounded = int(converted + 0.5)
    formatter = CURRENCY_FORMATS.get(code, lambda v: _group(v, ","))
    return f"{CURRENCY_SYMBOLS.get(code, code + ' ')}{formatter(rounded)}"
