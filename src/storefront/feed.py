from __future__ import annotations

import logging
from dataclasses import dataclass

import httpx

from storefront.errors import SourceUnavailable

logger = logging.getLogger(__name__)

UNPUBLISHED_MESSAGE = (
    "The inventory sheet is not published for export. "
    "Open the sheet, choose File > Share > Publish to web, select CSV and publish it."
)
NETWORK_MESSAGE = "Could not connect to the inventory source. Check the internet connection."


@dataclass(frozen=True)
class FeedDocument:
    url: str
    text: str


class FeedClient:
    """Fetches the delimited inventory export, trying each configured URL in order."""

    def __init__(
        self,
        urls: list[str],
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.urls = list(urls)
        self.timeout = timeout
        self.transport = transport

    async def fetch(self) -> FeedDocument:
        last_status: int | None = None
        for attempt, url in enumerate(self.urls, start=1):
            try:
                async with httpx.AsyncClient(
                    timeout=self.timeout, transport=self.transport, follow_redirects=True
                ) as client:
                    resp = await client.get(url)
            except (httpx.HTTPError, httpx.InvalidURL) as exc:
                logger.warning("Feed attempt %d failed for %s: %s", attempt, url, exc)
                continue

            last_status = resp.status_code
            if not resp.is_success:
                logger.warning("Feed attempt %d got HTTP %d from %s: %.200s", attempt, resp.status_code, url, resp.text)
                continue
            if not resp.text.strip():
                logger.warning("Feed attempt %d got an empty body from %s", attempt, url)
                continue

            logger.info("Feed loaded from %s (attempt %d, %d chars)", url, attempt, len(resp.text))
            return FeedDocument(url=url, text=resp.text)

        raise self._failure(last_status)

    @staticmethod
    def _failure(last_status: int | None) -> SourceUnavailable:
        if last_status is None:
            return SourceUnavailable(NETWORK_MESSAGE, reason="network")
        if last_status == 403 or last_status >= 500:
            return SourceUnavailable(UNPUBLISHED_MESSAGE, reason="unpublished", status_code=last_status)
        if 200 <= last_status < 300:
            return SourceUnavailable(
                "The inventory source returned an empty document.", reason="empty", status_code=last_status
            )
        return SourceUnavailable(
            f"Inventory download failed (HTTP {last_status}). Make sure the sheet is published for export.",
            reason="http_error",
            status_code=last_status,
        )
