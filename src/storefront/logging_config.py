from __future__ import annotations

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from typing import Any, Iterable

correlation_id: ContextVar[str] = ContextVar("correlation_id", default="")

CORRELATION_HEADER = "X-Correlation-ID"
TEXT_FORMAT = "%(asctime)s %(levelname)-8s [%(name)s] [%(correlation_id)s] %(message)s"
NOISY_LOGGERS = ("httpx", "httpcore", "apscheduler")


def bind_correlation_id(incoming: str | None = None) -> str:
    """Adopt the caller's request id, or mint a short one, for the current context."""
    cid = (incoming or "").strip()[:64] or uuid.uuid4().hex[:12]
    correlation_id.set(cid)
    return cid


class CorrelationIdFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:
        record.correlation_id = correlation_id.get() or "-"
        return True


class JSONFormatter(logging.Formatter):
    def __init__(self, service: str = "storefront") -> None:
        super().__init__()
        self.service = service

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": self.formatTime(record, self.datefmt),
            "service": self.service,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        cid = correlation_id.get()
        if cid:
            entry["correlation_id"] = cid
        data = getattr(record, "extra_data", None)
        if data:
            entry["data"] = data
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        # Cyrillic listing fields stay readable in the log stream
        return json.dumps(entry, default=str, ensure_ascii=False)


def log_event(logger: logging.Logger, level: int, message: str, **data: Any) -> None:
    """Log ``message`` with structured key/value context attached as ``extra_data``."""
    logger.log(level, message, extra={"extra_data": data} if data else None)


def configure_logging(
    level: str = "INFO",
    fmt: str = "json",
    service: str = "storefront",
    quiet: Iterable[str] = NOISY_LOGGERS,
) -> None:
    root = logging.getLogger()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    for existing in list(root.handlers):
        root.removeHandler(existing)

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(CorrelationIdFilter())
    handler.setFormatter(JSONFormatter(service) if fmt == "json" else logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)

    # per-request chatter from the HTTP client and the job runner
    for name in quiet:
        logging.getLogger(name).setLevel(max(root.level, logging.WARNING))
