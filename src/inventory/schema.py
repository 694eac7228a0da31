from __future__ import annotations

import logging
from typing import Sequence

from inventory.tokenizer import strip_wrapping_quotes

logger = logging.getLogger(__name__)


class ColumnResolver:
    """Maps logical field names onto positions in a header row.

    Exact (case-insensitive) matches win; otherwise the first header that
    contains the name, or is contained by it, is used.
    """

    def __init__(self, headers: Sequence[str]) -> None:
        self.headers = [strip_wrapping_quotes(h.strip()) for h in headers]
        self._lowered = [h.lower() for h in self.headers]
        self._cache: dict[str, int | None] = {}

    def resolve(self, name: str) -> int | None:
        if name in self._cache:
            return self._cache[name]
        wanted = name.lower()
        index: int | None = None
        for i, header in enumerate(self._lowered):
            if header and header == wanted:
                index = i
                break
        if index is None and wanted:
            for i, header in enumerate(self._lowered):
                if header and (wanted in header or header in wanted):
                    logger.debug("Column %r resolved by similarity to %r (index %d)", name, self.headers[i], i)
                    index = i
                    break
        self._cache[name] = index
        return index

    def value(self, values: Sequence[str], name: str) -> str:
        idx = self.resolve(name)
        if idx is None or idx >= len(values):
            return ""
        return strip_wrapping_quotes((values[idx] or "").strip())

    def mapping(self, names: Sequence[str]) -> dict[str, int | None]:
        return {name: self.resolve(name) for name in names}
