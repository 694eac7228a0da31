from __future__ import annotations

import logging

from inventory.config import CatalogConfig
from inventory.data_models import VehicleRecord
from inventory.normalizer import LOGICAL_FIELDS, normalize_row
from inventory.schema import ColumnResolver
from inventory.tokenizer import split_line

logger = logging.getLogger(__name__)


def split_lines(text: str) -> list[str]:
    return [line for line in text.split("\n") if line.strip()]


def parse_feed(text: str, config: CatalogConfig | None = None) -> list[VehicleRecord]:
    """Parse a whole feed body into records, in source order.

    The first non-blank line is the header. Rows that cannot be normalized
    are logged and skipped; a single bad row never aborts the batch.
    """
    cfg = config or CatalogConfig()
    lines = split_lines(text or "")
    if not lines:
        logger.warning("Feed body is empty")
        return []

    resolver = ColumnResolver(split_line(lines[0]))
    logger.debug("Feed header: %s", resolver.headers)
    logger.debug("Column mapping: %s", resolver.mapping(LOGICAL_FIELDS))

    records: list[VehicleRecord] = []
    skipped = 0
    for position, line in enumerate(lines[1:], start=1):
        try:
            record = normalize_row(split_line(line), resolver, position, cfg)
        except Exception as exc:
            logger.warning("Skipping row %d: %s (%.100s)", position + 1, exc, line)
            skipped += 1
            continue
        if record is None:
            skipped += 1
            continue
        records.append(record)

    logger.info("Parsed %d records from %d data rows (%d skipped)", len(records), len(lines) - 1, skipped)
    return records
