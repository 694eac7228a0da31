from __future__ import annotations

import hashlib
import hmac
import json
import logging
import math
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, Callable
from urllib.parse import parse_qsl

from fastapi import HTTPException, Request, Security, status
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader

logger = logging.getLogger(__name__)

INIT_DATA_HEADER = "X-Telegram-Init-Data"

_init_data_header = APIKeyHeader(name=INIT_DATA_HEADER, auto_error=False)


@dataclass(frozen=True)
class SubmitterIdentity:
    user_id: int | None = None
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None

    @property
    def user_link(self) -> str | None:
        if self.username:
            return f"https://t.me/{self.username}"
        if self.user_id is not None:
            return f"tg://user?id={self.user_id}"
        return None

    @property
    def display_name(self) -> str:
        return " ".join(p for p in (self.first_name, self.last_name) if p)


def parse_init_data(raw: str | None) -> SubmitterIdentity | None:
    """Read the submitter from mini-app init data (a URL-encoded query string)."""
    if not raw:
        return None
    fields = dict(parse_qsl(raw, keep_blank_values=True))
    user_json = fields.get("user")
    if not user_json:
        return None
    try:
        user = json.loads(user_json)
    except ValueError:
        logger.warning("Init data carries a malformed user field")
        return None
    if not isinstance(user, dict):
        return None
    user_id = user.get("id")
    return SubmitterIdentity(
        user_id=int(user_id) if isinstance(user_id, (int, str)) and str(user_id).isdigit() else None,
        username=user.get("username") or None,
        first_name=user.get("first_name") or None,
        last_name=user.get("last_name") or None,
    )


class InitDataAuth:
    """Verify mini-app init data signed by the platform with the bot token.

    Disabled when no bot token is configured (development mode); the
    identity is then read from the unsigned init data as-is.
    """

    def __init__(self, bot_token: str = "", max_age_seconds: int = 86_400) -> None:
        self._enabled = bool(bot_token)
        self.max_age_seconds = max_age_seconds
        self._secret = hmac.new(b"WebAppData", bot_token.encode(), hashlib.sha256).digest() if bot_token else b""

    def sign(self, fields: dict[str, str]) -> str:
        check_string = "\n".join(f"{k}={v}" for k, v in sorted(fields.items()))
        return hmac.new(self._secret, check_string.encode(), hashlib.sha256).hexdigest()

    def validate(self, raw: str | None, now: float | None = None) -> bool:
        if not self._enabled:
            return True
        if not raw:
            return False
        fields = dict(parse_qsl(raw, keep_blank_values=True))
        received = fields.pop("hash", "")
        if not received or not hmac.compare_digest(self.sign(fields), received):
            return False
        if self.max_age_seconds > 0 and "auth_date" in fields:
            try:
                auth_date = int(fields["auth_date"])
            except ValueError:
                return False
            if (now if now is not None else time.time()) - auth_date > self.max_age_seconds:
                return False
        return True

    async def __call__(self, init_data: str | None = Security(_init_data_header)) -> SubmitterIdentity | None:
        if not self.validate(init_data):
            logger.warning("Rejected request with invalid init data")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid or missing init data",
            )
        return parse_init_data(init_data)


class RateLimiter:
    """Per-client sliding window over the last ``window_seconds``.

    Paths in ``exempt_paths`` (health probes) are never counted.
    """

    def __init__(
        self,
        requests_per_minute: int = 60,
        window_seconds: float = 60.0,
        exempt_paths: tuple[str, ...] = ("/health",),
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.limit = requests_per_minute
        self.window_seconds = window_seconds
        self.exempt_paths = exempt_paths
        self.clock = clock
        self._hits: dict[str, deque[float]] = {}
        self._last_sweep = clock()

    @property
    def enabled(self) -> bool:
        return self.limit > 0

    def retry_after(self, client: str) -> int:
        hits = self._hits.get(client)
        if not hits:
            return 0
        return max(1, math.ceil(hits[0] + self.window_seconds - self.clock()))

    @property
    def tracked_clients(self) -> int:
        return len(self._hits)

    def _expire(self, client: str, now: float) -> deque[float] | None:
        hits = self._hits.get(client)
        if hits is None:
            return None
        cutoff = now - self.window_seconds
        while hits and hits[0] <= cutoff:
            hits.popleft()
        if not hits:
            del self._hits[client]
            return None
        return hits

    def _sweep(self, now: float) -> None:
        # idle clients are only forgotten here, at most once per window
        if now - self._last_sweep < self.window_seconds:
            return
        self._last_sweep = now
        for client in list(self._hits):
            self._expire(client, now)

    def check(self, client: str) -> bool:
        if not self.enabled:
            return True
        now = self.clock()
        self._sweep(now)
        hits = self._expire(client, now)
        if hits is None:
            self._hits[client] = deque([now])
            return True
        if len(hits) >= self.limit:
            return False
        hits.append(now)
        return True

    async def middleware(self, request: Request, call_next: Any) -> Any:
        if not self.enabled or request.url.path in self.exempt_paths:
            return await call_next(request)
        client = request.client.host if request.client else "unknown"
        if self.check(client):
            return await call_next(request)
        wait = self.retry_after(client)
        logger.warning("Rate limit exceeded for %s on %s, retry in %ds", client, request.url.path, wait)
        return JSONResponse(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            content={"detail": "Too many requests, slow down."},
            headers={"Retry-After": str(wait)},
        )
