import httpx
import pytest

from inventory.pricing import PRICE_NOT_SPECIFIED, ExchangeRates, format_price
from storefront.rates import ExchangeRateClient

RATES_URL = "https://rates.test/latest/USD"


# ── Price Formatting ─────────────────────────────────────────────────


def test_format_price_absent():
    rates = ExchangeRates()
    assert format_price(None, "USD", rates) == PRICE_NOT_SPECIFIED
    assert format_price(0, "RUB", rates) == PRICE_NOT_SPECIFIED


def test_format_price_reference_currency_unchanged():
    assert format_price(8_500_000, "RUB", ExchangeRates()) == "₽8\u00a0500\u00a0000"


def test_format_price_converts_and_groups():
    rates = ExchangeRates()
    assert format_price(9_500_000, "USD", rates) == "$100,000"
    assert format_price(9_500_000, "EUR", rates) == "€92.000"
    assert format_price(9_500_000, "KRW", rates) == "₩132,000,000"


def test_format_price_rounds_half_up():
    rates = ExchangeRates({"USD": 1.0, "RUB": 2.0, "EUR": 1.0, "KRW": 1.0})
    assert format_price(3, "USD", rates) == "$2"


def test_unsupported_currency():
    with pytest.raises(ValueError):
        ExchangeRates().rate("GBP")


def test_update_ignores_usd_and_unknown_codes():
    rates = ExchangeRates()
    updated = rates.update({"USD": 2.0, "RUB": 90.5, "GBP": 0.8, "EUR": 0})
    assert updated == ["RUB"]
    assert rates.rates["USD"] == 1.0
    assert rates.rates["RUB"] == 90.5
    assert rates.rates["EUR"] == 0.92
    assert "GBP" not in rates.snapshot()


# ── Exchange Rate Client ─────────────────────────────────────────────


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self) -> float:
        return self.now


@pytest.mark.asyncio
async def test_rates_refresh_success_and_ttl():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url)
        return httpx.Response(200, json={"base": "USD", "rates": {"RUB": 91.0, "EUR": 0.9, "KRW": 1350.0}})

    clock = FakeClock()
    client = ExchangeRateClient(RATES_URL, ttl_seconds=3600, transport=httpx.MockTransport(handler), clock=clock)
    rates = await client.refresh()
    assert rates.rates == {"USD": 1.0, "RUB": 91.0, "EUR": 0.9, "KRW": 1350.0}
    assert client.is_fresh()

    clock.now += 100
    await client.refresh()
    assert len(calls) == 1
    await client.refresh(force=True)
    assert len(calls) == 2


@pytest.mark.asyncio
async def test_rates_refresh_failure_keeps_defaults():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503, text="down")

    client = ExchangeRateClient(RATES_URL, transport=httpx.MockTransport(handler))
    rates = await client.refresh()
    assert rates.rates["RUB"] == 95.0
    assert not client.is_fresh()


@pytest.mark.asyncio
async def test_rates_refresh_network_failure():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused")

    client = ExchangeRateClient(RATES_URL, transport=httpx.MockTransport(handler))
    assert (await client.refresh()).rates["EUR"] == 0.92


@pytest.mark.asyncio
async def test_rates_payload_without_table():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"result": "error"})

    client = ExchangeRateClient(RATES_URL, transport=httpx.MockTransport(handler))
    assert (await client.refresh()).rates["KRW"] == 1320.0
