from __future__ import annotations

from dataclasses import dataclass, field
from typing import Generic, Sequence, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class PageSlice(Generic[T]):
    items: list[T]
    page: int
    page_size: int
    total: int
    has_more: bool


def page_slice(items: Sequence[T], page: int, page_size: int = 10) -> PageSlice[T]:
    if page < 1:
        raise ValueError("page must be >= 1")
    if page_size < 1:
        raise ValueError("page_size must be >= 1")
    start = (page - 1) * page_size
    end = start + page_size
    return PageSlice(
        items=list(items[start:end]),
        page=page,
        page_size=page_size,
        total=len(items),
        has_more=end < len(items),
    )


@dataclass
class Paginator(Generic[T]):
    """Incremental pagination over a filtered collection.

    ``page`` is the next page to be served, so it reads 2 after a reset.
    """

    page_size: int = 10
    page: int = 1
    has_more: bool = True
    visible: list[T] = field(default_factory=list)
    filtered: list[T] = field(default_factory=list)

    def reset(self, filtered: Sequence[T]) -> list[T]:
        self.filtered = list(filtered)
        self.page = 1
        chunk = self.filtered[: self.page_size]
        self.visible = list(chunk)
        self.has_more = len(self.filtered) > self.page_size
        self.page += 1
        return list(chunk)

    def append(self) -> list[T]:
        if not self.has_more:
            return []
        start = len(self.visible)
        end = start + self.page_size
        chunk = self.filtered[start:end]
        if not chunk:
            self.has_more = False
            return []
        self.visible = self.visible + chunk
        self.has_more = end < len(self.filtered)
        self.page += 1
        return list(chunk)

    @property
    def total(self) -> int:
        return len(self.filtered)
