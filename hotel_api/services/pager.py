"""Client-side pager over a fully loaded, already sorted hotel list."""

import math

from hotel_api.config import COMPACT_SCREEN_MAX_WIDTH, PAGE_SIZE_COMPACT, PAGE_SIZE_DEFAULT
from hotel_api.models.hotels import Page


def page_size_for_width(width: int | None) -> int:
    if width is not None and width < COMPACT_SCREEN_MAX_WIDTH:
        return PAGE_SIZE_COMPACT
    return PAGE_SIZE_DEFAULT


class Pager:
    """Slices an immutable sequence into fixed-size pages.

    `page(k)` is pure. The "load more" button and the scroll sentinel both
    go through `fetch_next_page`, so they always land on the same state.
    """

    def __init__(self, items, page_size: int = PAGE_SIZE_DEFAULT):
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self._items = tuple(items)
        self.page_size = page_size
        self._loaded = 1

    def __len__(self):
        return len(self._items)

    @property
    def page_count(self) -> int:
        return math.ceil(len(self._items) / self.page_size)

    def page(self, k: int) -> Page:
        if k < 0:
            raise ValueError("page index must be >= 0")
        start = k * self.page_size
        end = min(start + self.page_size, len(self._items))
        has_next = end < len(self._items)
        return Page(
            hotels=list(self._items[start:end]),
            page=k,
            next_page=k + 1 if has_next else None,
            has_next_page=has_next,
            total=len(self._items),
        )

    @property
    def loaded_pages(self) -> int:
        return self._loaded

    @property
    def has_next_page(self) -> bool:
        return self._loaded * self.page_size < len(self._items)

    @property
    def displayed(self) -> list:
        return list(self._items[:min(self._loaded * self.page_size, len(self._items))])

    def fetch_next_page(self) -> Page | None:
        """Load one more page; None when everything is already displayed."""
        if not self.has_next_page:
            return None
        page = self.page(self._loaded)
        self._loaded += 1
        return page

    def on_sentinel(self, is_intersecting: bool) -> Page | None:
        """Viewport trigger: the sentinel below the list became visible."""
        if not is_intersecting:
            return None
        return self.fetch_next_page()

    def reset(self):
        self._loaded = 1
