"""
Result grid: lazy image loading, neighbor prefetch and pagination.

The first `eager_count` thumbnails load immediately so the first paint has
no layout jank; the rest load when the viewport observer reports them in
range. Hover prefetch is best-effort and never blocks rendering.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from functools import partial
from typing import Awaitable, Callable, List, Optional, Sequence, Set
from urllib.parse import urlencode

import httpx

from wallsearch.common.config import settings
from wallsearch.search.models import WallpaperSummary
from wallsearch.ui.platform import KeyValueStore, ViewportObserver

logger = logging.getLogger(__name__)

VIEW_MODE_KEY = "wallsearch.viewMode"

Prefetch = Callable[[str], Awaitable[None]]


class ViewMode(str, Enum):
    GRID = "grid"
    LIST = "list"


def image_url(
    src: str,
    width: Optional[int] = None,
    height: Optional[int] = None,
    quality: int = 85,
    fmt: str = "auto",
    resize: str = "cover",
) -> str:
    """CDN transformation URL; parameters at their default are left out."""
    params = []
    if width:
        params.append(("width", str(width)))
    if height:
        params.append(("height", str(height)))
    if quality != 85:
        params.append(("quality", str(quality)))
    if fmt != "auto":
        params.append(("format", fmt))
    if resize != "cover":
        params.append(("resize", resize))
    if not params:
        return src
    separator = "&" if "?" in src else "?"
    return f"{src}{separator}{urlencode(params)}"


def thumbnail_source(summary: WallpaperSummary) -> str:
    return summary.thumbnail_url or f"/functions/v1/api-img/{summary.id}"


@dataclass
class GridItem:
    summary: WallpaperSummary
    index: int
    eager: bool
    src: str
    loaded: bool = False

    @property
    def key(self) -> str:
        return f"wallpaper-{self.index}-{self.summary.id}"

    @property
    def loading(self) -> str:
        """Value for the img `loading` attribute."""
        return "eager" if self.eager else "lazy"


@dataclass(frozen=True)
class GridView:
    items: List[GridItem]
    view_mode: ViewMode = ViewMode.GRID

    @property
    def loaded_count(self) -> int:
        return sum(1 for item in self.items if item.loaded)

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class Pagination:
    current_page: int
    total_pages: int
    pages: List[int] = field(default_factory=list)

    @classmethod
    def from_page(cls, current_page: int, total_pages: int, window: int = 5) -> "Pagination":
        """Page buttons start two before the current page, at most `window` of them."""
        start = max(1, current_page - 2)
        pages = [p for p in range(start, start + min(window, total_pages)) if p <= total_pages]
        return cls(current_page=current_page, total_pages=total_pages, pages=pages)

    @property
    def visible(self) -> bool:
        return self.total_pages > 1

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages


@dataclass(frozen=True)
class EmptyState:
    suggestions: List[str]
    title: str = "No results found"
    message: str = "Try these popular searches:"


class HttpPrefetcher:
    """Warms the HTTP cache by fetching image URLs."""

    def __init__(self, client: Optional[httpx.AsyncClient] = None, timeout: float = 10.0):
        self._client = client or httpx.AsyncClient(timeout=timeout, follow_redirects=True)

    async def __call__(self, url: str) -> None:
        resp = await self._client.get(url)
        resp.raise_for_status()

    async def aclose(self) -> None:
        await self._client.aclose()


class GridRenderer:
    """Lays out result items and drives their lazy loading."""

    def __init__(
        self,
        observer: ViewportObserver,
        prefetch: Optional[Prefetch] = None,
        preferences: Optional[KeyValueStore] = None,
        eager_count: Optional[int] = None,
        neighbors: Optional[int] = None,
        thumbnail_width: int = 400,
        full_width: int = 1920,
        quality: Optional[int] = None,
    ):
        self.observer = observer
        self.prefetch = prefetch
        self.preferences = preferences
        self.eager_count = settings.eager_image_count if eager_count is None else eager_count
        self.neighbors = settings.prefetch_neighbors if neighbors is None else neighbors
        self.thumbnail_width = thumbnail_width
        self.full_width = full_width
        self.quality = settings.image_quality if quality is None else quality
        self._items: List[GridItem] = []
        self._prefetched: Set[str] = set()
        self._tasks: Set[asyncio.Task] = set()

    @property
    def items(self) -> List[GridItem]:
        return list(self._items)

    @property
    def view_mode(self) -> ViewMode:
        if self.preferences is None:
            return ViewMode.GRID
        raw = self.preferences.get(VIEW_MODE_KEY, ViewMode.GRID.value)
        try:
            return ViewMode(raw)
        except ValueError:
            return ViewMode.GRID

    @view_mode.setter
    def view_mode(self, mode: ViewMode) -> None:
        if self.preferences is not None:
            self.preferences.set(VIEW_MODE_KEY, ViewMode(mode).value)

    def render(self, wallpapers: Sequence[WallpaperSummary]) -> GridView:
        for old in self._items:
            self.observer.unobserve(old.key)

        items: List[GridItem] = []
        for index, summary in enumerate(wallpapers):
            eager = index < self.eager_count
            item = GridItem(
                summary=summary,
                index=index,
                eager=eager,
                src=image_url(thumbnail_source(summary), width=self.thumbnail_width, quality=self.quality),
                loaded=eager,
            )
            if not eager:
                self.observer.observe(item.key, partial(self._mark_loaded, item))
            items.append(item)

        self._items = items
        logger.debug(f"[grid] rendered {len(items)} items ({min(len(items), self.eager_count)} eager)")
        return GridView(items=list(items), view_mode=self.view_mode)

    @staticmethod
    def _mark_loaded(item: GridItem) -> None:
        item.loaded = True

    def hover(self, index: int) -> List[str]:
        """
        Prefetch the hovered item's full image and its neighbors' thumbnails.

        Returns the URLs newly scheduled; already prefetched URLs are skipped.
        """
        if not 0 <= index < len(self._items):
            return []

        item = self._items[index]
        urls: List[str] = []
        if item.summary.full_url:
            urls.append(image_url(item.summary.full_url, width=self.full_width, quality=self.quality))
        for offset in range(1, self.neighbors + 1):
            for neighbor in (index - offset, index + offset):
                if 0 <= neighbor < len(self._items):
                    urls.append(self._items[neighbor].src)

        scheduled: List[str] = []
        for url in urls:
            if url in self._prefetched:
                continue
            self._prefetched.add(url)
            scheduled.append(url)
            self._schedule(url)
        return scheduled

    def _schedule(self, url: str) -> None:
        if self.prefetch is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug(f"[grid] no event loop, skipping prefetch of {url}")
            return
        task = loop.create_task(self._prefetch_one(url))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _prefetch_one(self, url: str) -> None:
        try:
            await self.prefetch(url)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.debug(f"[grid] prefetch failed for {url}: {e}")

    async def drain(self) -> None:
        """Wait for scheduled prefetches to settle."""
        if self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    def close(self) -> None:
        for item in self._items:
            self.observer.unobserve(item.key)
        for task in list(self._tasks):
            task.cancel()
        self._items = []
