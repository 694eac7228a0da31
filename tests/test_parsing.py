import pytest

from inventory.config import CatalogConfig
from inventory.normalizer import (
    normalize_row,
    parse_mileage,
    parse_photos,
    parse_price,
    parse_year,
    truncate_description,
)
from inventory.parser import parse_feed
from inventory.schema import ColumnResolver
from inventory.tokenizer import split_line


# ── Tokenizer ────────────────────────────────────────────────────────


def test_split_line_quoted_fields():
    assert split_line('A,"B,C","D""E"') == ["A", "B,C", 'D"E']


def test_split_line_trims_whitespace():
    assert split_line("  Kia , Rio ,  2019 ") == ["Kia", "Rio", "2019"]


def test_split_line_empty_line_yields_single_empty_field():
    assert split_line("") == [""]


def test_split_line_unterminated_quote_runs_to_end():
    assert split_line('A,"B,C') == ["A", "B,C"]


def test_split_line_keeps_trailing_empty_fields():
    assert split_line(",,") == ["", "", ""]


def test_split_line_json_array_cell():
    line = 'Kia,"[""https://img/1.jpg"",""https://img/2.jpg""]"'
    assert split_line(line) == ["Kia", '["https://img/1.jpg","https://img/2.jpg"]']


# ── Schema Resolver ──────────────────────────────────────────────────


def test_resolver_exact_match():
    resolver = ColumnResolver(["mark", "model", "price"])
    assert resolver.resolve("price") == 2
    assert resolver.resolve("MARK") == 0


def test_resolver_substring_fallback():
    resolver = ColumnResolver(["Mark", "Model", "Price (RUB)"])
    assert resolver.resolve("price") == 2
    assert resolver.resolve("brand_mark") == 0


def test_resolver_exact_beats_substring():
    resolver = ColumnResolver(["price_won", "price"])
    assert resolver.resolve("price") == 1
    assert resolver.resolve("price_won") == 0


def test_resolver_not_found():
    resolver = ColumnResolver(["mark", "model", "price"])
    assert resolver.resolve("km_age") is None
    assert resolver.value(["Kia", "Rio", "1"], "km_age") == ""


def test_resolver_short_row_yields_empty_value():
    resolver = ColumnResolver(["mark", "model", "price"])
    assert resolver.value(["Kia"], "price") == ""


def test_resolver_strips_quoted_headers():
    resolver = ColumnResolver(['"mark"', ' "model" '])
    assert resolver.resolve("model") == 1


# ── Field Parsers ────────────────────────────────────────────────────


def test_parse_price_decimal_comma_rounds_half_up():
    assert parse_price("15 000,50") == 15001


def test_parse_price_falls_back_to_minor_currency():
    assert parse_price("", "10000000", multiplier=0.07) == 700000


def test_parse_price_zero_primary_uses_fallback():
    assert parse_price("0", "1000", multiplier=0.5) == 500


def test_parse_price_absent_never_zero():
    assert parse_price("", "") is None
    assert parse_price("abc", "-5") is None
    assert parse_price("0.2", "") is None


def test_parse_price_lenient_prefix():
    assert parse_price("8500000 RUB") == 8500000


def test_parse_mileage_strips_separators():
    assert parse_mileage("120 000") == 120000
    assert parse_mileage("45,000") == 45000
    assert parse_mileage("45.000 km") == 45000
    assert parse_mileage("0") is None
    assert parse_mileage("") is None


@pytest.mark.parametrize(
    "raw, expected",
    [("2019", 2019), ("1900", 1900), ("2100", 2100), ("1850", None), ("2101", None), ("n/a", None), ("2019.0", 2019)],
)
def test_parse_year_bounds(raw, expected):
    assert parse_year(raw) == expected


def test_parse_photos_json_array_filters_non_urls():
    primary, photos = parse_photos('["https://a/1.jpg", "", 42, "ftp://x", "http://a/2.jpg"]')
    assert primary == "https://a/1.jpg"
    assert photos == ("https://a/1.jpg", "http://a/2.jpg")


def test_parse_photos_unwraps_escaped_array():
    primary, photos = parse_photos('"[\\"https://a/1.jpg\\"]"')
    assert primary == "https://a/1.jpg"
    assert photos == ("https://a/1.jpg",)


def test_parse_photos_regex_fallback():
    primary, photos = parse_photos("[https://a/1.jpg https://a/2.jpg")
    assert primary == "https://a/1.jpg"
    assert photos == ("https://a/1.jpg",)


def test_parse_photos_garbage_yields_nothing():
    assert parse_photos("no pictures") == (None, ())
    assert parse_photos("") == (None, ())
    assert parse_photos('{"a": 1}') == (None, ())


def test_truncate_description():
    assert len(truncate_description("x" * 800)) == 500
    assert truncate_description("") == ""


# ── Record Normalizer ────────────────────────────────────────────────

HEADERS = [
    "mark", "model", "price", "price_won", "year", "km_age", "engine_type",
    "transmission_type", "body_type", "complectation", "description", "url",
    "color", "displacement", "images",
]


def _row(**overrides):
    values = {h: "" for h in HEADERS}
    values.update(overrides)
    return [values[h] for h in HEADERS]


def test_normalize_row_full_record():
    resolver = ColumnResolver(HEADERS)
    record = normalize_row(
        _row(
            mark="Kia", model="K5", price="21 500 000", year="2021", km_age="35 000",
            engine_type="Бензин", transmission_type="Автомат", body_type="Седан",
            complectation="Prestige", description="Clean car", url="https://example.com/car/1",
            color="White", displacement="2.0", images='["https://img/1.jpg"]',
        ),
        resolver,
        position=3,
    )
    assert record is not None
    assert record.id == "car_3"
    assert record.price == 21500000
    assert record.year == 2021
    assert record.mileage == 35000
    assert record.fuel_type == "Бензин"
    assert record.trim_configuration == "Prestige"
    assert record.primary_photo_url == "https://img/1.jpg"
    assert record.listing_url == "https://example.com/car/1"


def test_normalize_row_defaults():
    resolver = ColumnResolver(HEADERS)
    record = normalize_row(_row(mark="Hyundai", year="1850"), resolver, position=1)
    assert record is not None
    assert record.model == ""
    assert record.year is None
    assert record.price is None
    assert record.mileage is None
    assert record.trim_configuration == "Standard"
    assert record.photo_urls == ()
    assert record.primary_photo_url is None
    assert record.listing_url is None


def test_normalize_row_skips_blank_brand_and_model():
    resolver = ColumnResolver(HEADERS)
    assert normalize_row(_row(price="100"), resolver, position=1) is None


def test_normalize_row_uses_configured_multiplier():
    resolver = ColumnResolver(HEADERS)
    cfg = CatalogConfig(minor_currency_multiplier=0.001)
    record = normalize_row(_row(mark="Kia", price_won="20000000"), resolver, position=1, config=cfg)
    assert record.price == 20000


# ── Feed Parser ──────────────────────────────────────────────────────


def test_parse_feed_end_to_end_scenario():
    records = parse_feed("mark,model,price\nKia,Rio,8500000\n,,\nHyundai,Sonata,25000000\n")
    assert [r.brand for r in records] == ["Kia", "Hyundai"]
    assert [r.id for r in records] == ["car_1", "car_3"]
    assert records[0].price == 8500000
    assert records[1].price == 25000000


def test_parse_feed_blank_row_drops_exactly_one():
    body = "mark,model\nKia,Rio\n,\nKia,Ceed\n"
    assert len(parse_feed(body)) == 2


def test_parse_feed_ids_unique():
    body = "mark,model\n" + "\n".join(f"Kia,Model{i}" for i in range(30))
    ids = [r.id for r in parse_feed(body)]
    assert len(ids) == len(set(ids)) == 30


def test_parse_feed_header_only_is_empty():
    assert parse_feed("mark,model,price\n") == []
    assert parse_feed("") == []
    assert parse_feed("\n  \n") == []


def test_parse_feed_handles_crlf():
    records = parse_feed("mark,model,year\r\nKia,Rio,2018\r\n")
    assert records[0].year == 2018
    assert records[0].model == "Rio"


def test_parse_feed_row_failure_is_isolated(monkeypatch):
    import inventory.parser as parser_module

    calls = {"n": 0}
    real = parser_module.normalize_row

    def flaky(values, resolver, position, config=None):
        calls["n"] += 1
        if position == 2:
            raise RuntimeError("boom")
        return real(values, resolver, position, config)

    monkeypatch.setattr(parser_module, "normalize_row", flaky)
    records = parse_feed("mark,model\nKia,Rio\nKia,Ceed\nKia,Sorento\n")
    assert calls["n"] == 3
    assert [r.model for r in records] == ["Rio", "Sorento"]
