import asyncio

import httpx
import pytest

from wallsearch.search.models import WallpaperSummary
from wallsearch.ui.grid import (
    VIEW_MODE_KEY,
    GridRenderer,
    HttpPrefetcher,
    Pagination,
    ViewMode,
    image_url,
    thumbnail_source,
)
from wallsearch.ui.platform import JsonFileStore, ManualViewportObserver, MemoryStore


class RecordingPrefetch:
    def __init__(self, fail_on=()):
        self.urls = []
        self.fail_on = set(fail_on)

    async def __call__(self, url):
        self.urls.append(url)
        if url in self.fail_on:
            raise httpx.ConnectError("offline")


def test_first_items_load_eagerly_rest_wait_for_viewport(make_page):
    observer = ManualViewportObserver()
    renderer = GridRenderer(observer, eager_count=12)
    view = renderer.render(make_page(count=20).items)

    assert len(view) == 20
    assert [item.loading for item in view.items[:12]] == ["eager"] * 12
    assert all(item.loading == "lazy" for item in view.items[12:])
    assert view.loaded_count == 12
    assert observer.observed() == [item.key for item in view.items[12:]]

    assert observer.enter(view.items[15].key) is True
    assert view.items[15].loaded
    assert view.loaded_count == 13
    assert observer.enter(view.items[15].key) is False


def test_rerender_stops_observing_old_items(make_page):
    observer = ManualViewportObserver()
    renderer = GridRenderer(observer, eager_count=1)
    renderer.render(make_page(prefix="a", count=3).items)
    renderer.render(make_page(prefix="b", count=2).items)
    assert observer.observed() == ["wallpaper-1-b-1"]


def test_item_keys_include_position_and_id(make_page):
    renderer = GridRenderer(ManualViewportObserver())
    view = renderer.render(make_page(prefix="n", count=2).items)
    assert [item.key for item in view.items] == ["wallpaper-0-n-0", "wallpaper-1-n-1"]


def test_thumbnail_falls_back_to_image_endpoint():
    summary = WallpaperSummary(id=7, title="no thumb")
    assert thumbnail_source(summary) == "/functions/v1/api-img/7"


@pytest.mark.parametrize(
    "kwargs,expected",
    [
        ({}, "https://cdn.example.com/a.jpg"),
        ({"width": 400}, "https://cdn.example.com/a.jpg?width=400"),
        ({"width": 400, "quality": 70}, "https://cdn.example.com/a.jpg?width=400&quality=70"),
        ({"fmt": "webp", "resize": "contain"}, "https://cdn.example.com/a.jpg?format=webp&resize=contain"),
    ],
)
def test_image_url_leaves_defaults_out(kwargs, expected):
    assert image_url("https://cdn.example.com/a.jpg", **kwargs) == expected


def test_image_url_appends_to_existing_query():
    assert image_url("/img?id=1", width=10) == "/img?id=1&width=10"


@pytest.mark.asyncio
async def test_hover_prefetches_full_image_and_neighbors_once(make_page):
    prefetch = RecordingPrefetch()
    renderer = GridRenderer(ManualViewportObserver(), prefetch=prefetch, neighbors=1)
    view = renderer.render(make_page(prefix="h", count=4).items)

    scheduled = renderer.hover(1)
    assert scheduled == [
        "https://cdn.example.com/h/1-full.jpg?width=1920",
        view.items[0].src,
        view.items[2].src,
    ]
    assert renderer.hover(1) == []
    assert renderer.hover(99) == []

    await renderer.drain()
    assert sorted(prefetch.urls) == sorted(scheduled)


@pytest.mark.asyncio
async def test_prefetch_failures_are_ignored(make_page):
    page = make_page(prefix="f", count=2)
    renderer = GridRenderer(ManualViewportObserver())
    view = renderer.render(page.items)
    prefetch = RecordingPrefetch(fail_on={view.items[1].src})
    renderer.prefetch = prefetch

    renderer.hover(0)
    await renderer.drain()
    assert view.items[1].src in prefetch.urls


def test_hover_without_event_loop_still_reports_urls(make_page):
    renderer = GridRenderer(ManualViewportObserver(), prefetch=RecordingPrefetch())
    renderer.render(make_page(count=1).items)
    assert len(renderer.hover(0)) == 1


def test_pagination_window_for_first_page():
    pagination = Pagination.from_page(1, 29)
    assert pagination.pages == [1, 2, 3, 4, 5]
    assert pagination.visible
    assert not pagination.has_previous
    assert pagination.has_next


@pytest.mark.parametrize(
    "current,total,expected",
    [
        (7, 29, [5, 6, 7, 8, 9]),
        (2, 29, [1, 2, 3, 4, 5]),
        (3, 3, [1, 2, 3]),
        (29, 29, [27, 28, 29]),
    ],
)
def test_pagination_window_positions(current, total, expected):
    assert Pagination.from_page(current, total).pages == expected


def test_single_page_hides_pagination():
    assert not Pagination.from_page(1, 1).visible
    assert not Pagination.from_page(1, 0).visible


def test_view_mode_is_persisted(tmp_path):
    path = tmp_path / "prefs.json"
    renderer = GridRenderer(ManualViewportObserver(), preferences=JsonFileStore(path))
    assert renderer.view_mode == ViewMode.GRID

    renderer.view_mode = ViewMode.LIST
    again = GridRenderer(ManualViewportObserver(), preferences=JsonFileStore(path))
    assert again.view_mode == ViewMode.LIST
    assert again.render([]).view_mode == ViewMode.LIST


def test_unknown_stored_view_mode_falls_back_to_grid():
    prefs = MemoryStore({VIEW_MODE_KEY: "carousel"})
    assert GridRenderer(ManualViewportObserver(), preferences=prefs).view_mode == ViewMode.GRID


@pytest.mark.asyncio
async def test_http_prefetcher_raises_on_error_status():
    def handler(request):
        if request.url.path == "/missing.jpg":
            return httpx.Response(404)
        return httpx.Response(200, content=b"img")

    prefetcher = HttpPrefetcher(httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    await prefetcher("https://cdn.example.com/ok.jpg")
    with pytest.raises(httpx.HTTPStatusError):
        await prefetcher("https://cdn.example.com/missing.jpg")
    await prefetcher.aclose()
