from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from inventory.config import CatalogConfig

_SHEET_EXPORT_URL = "https://docs.google.com/spreadsheets/d/{sheet_id}/export?format=csv"


class StorefrontSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Inventory feed: explicit URLs win over the spreadsheet-derived ones
    feed_urls: str = Field(default="", alias="FEED_URLS")
    sheet_id: str = Field(default="", alias="SHEET_ID")
    sheet_gids: str = Field(default="0", alias="SHEET_GIDS")
    inventory_cache_ttl_seconds: int = Field(default=300, alias="INVENTORY_CACHE_TTL_SECONDS")
    page_size: int = Field(default=10, alias="PAGE_SIZE")
    minor_currency_multiplier: float = Field(default=0.07, alias="MINOR_CURRENCY_MULTIPLIER")

    # Currencies
    reference_currency: str = Field(default="RUB", alias="REFERENCE_CURRENCY")
    display_currency: str = Field(default="USD", alias="DISPLAY_CURRENCY")
    rates_url: str = Field(default="https://api.exchangerate-api.com/v4/latest/USD", alias="RATES_URL")
    rates_cache_ttl_seconds: int = Field(default=3_600, alias="RATES_CACHE_TTL_SECONDS")
    refresh_enabled: bool = Field(default=True, alias="REFRESH_ENABLED")

    # Contact relay
    relay_base_url: str = Field(default="http://127.0.0.1:8080", alias="RELAY_BASE_URL")
    http_timeout_seconds: float = Field(default=10.0, alias="HTTP_TIMEOUT_SECONDS")

    # Security
    telegram_bot_token: str = Field(default="", alias="TELEGRAM_BOT_TOKEN")
    rate_limit_rpm: int = Field(default=120, alias="RATE_LIMIT_RPM")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="json", alias="LOG_FORMAT")

    def feed_url_list(self) -> list[str]:
        explicit = [u.strip() for u in self.feed_urls.split(",") if u.strip()]
        if explicit:
            return explicit
        if not self.sheet_id:
            return []
        base = _SHEET_EXPORT_URL.format(sheet_id=self.sheet_id)
        gids = [g.strip() for g in self.sheet_gids.split(",") if g.strip()]
        # first sheet, then the bare export, then any other sheets
        urls = [f"{base}&gid={gids[0]}"] if gids else []
        urls.append(base)
        urls.extend(f"{base}&gid={gid}" for gid in gids[1:])
        return urls

    def catalog_config(self) -> CatalogConfig:
        return CatalogConfig(
            page_size=self.page_size,
            inventory_ttl_seconds=float(self.inventory_cache_ttl_seconds),
            rates_ttl_seconds=float(self.rates_cache_ttl_seconds),
            minor_currency_multiplier=self.minor_currency_multiplier,
            reference_currency=self.reference_currency.upper(),
        )
