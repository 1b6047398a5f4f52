"""
Search page: wires the query store, debounced input, orchestrator and grid.

Control flow: input/filter change -> QueryParamStore -> refresh() ->
SearchOrchestrator (cache, then network) -> GridRenderer. Each store change
schedules a refresh; superseded refreshes come back cancelled and leave the
page untouched.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, Set, Union

from wallsearch.common.cancellation import RequestStatus
from wallsearch.common.config import Settings, settings as default_settings
from wallsearch.common.errors import WallsearchError
from wallsearch.search.cache import ResultCache
from wallsearch.search.client import SearchClient
from wallsearch.search.models import Category, ResultPage
from wallsearch.search.orchestrator import SearchOrchestrator, SearchOutcome
from wallsearch.search.query import QueryParamStore, SearchQuery
from wallsearch.ui.boundary import ErrorBoundary, Fallback
from wallsearch.ui.debounce import DebouncedInput
from wallsearch.ui.grid import EmptyState, GridRenderer, GridView, Pagination, Prefetch
from wallsearch.ui.platform import KeyValueStore, ManualViewportObserver, ViewportObserver
from wallsearch.ui.shortcuts import FocusState, KeyEvent, ShortcutAction, handle_key

logger = logging.getLogger(__name__)

CategoryLoader = Callable[[], Awaitable[List[Category]]]


@dataclass(frozen=True)
class PageView:
    """Everything the page shows for the current state."""
    title: str
    summary: str
    loading: bool
    query: SearchQuery
    grid: Optional[GridView] = None
    empty_state: Optional[EmptyState] = None
    pagination: Optional[Pagination] = None
    error: Optional[str] = None

    @property
    def has_active_filters(self) -> bool:
        return self.query.has_active_filters


class SearchPage:
    """One search page instance; owns its cache and in-flight request."""

    def __init__(
        self,
        store: QueryParamStore,
        orchestrator: SearchOrchestrator,
        renderer: GridRenderer,
        observer: Optional[ViewportObserver] = None,
        config: Optional[Settings] = None,
        categories_loader: Optional[CategoryLoader] = None,
    ):
        self.config = config or default_settings
        self.store = store
        self.orchestrator = orchestrator
        self.renderer = renderer
        self.observer = observer or renderer.observer
        self.categories_loader = categories_loader
        self.input = DebouncedInput(store, delay=self.config.debounce_seconds)
        self.focus = FocusState()
        self.boundary: ErrorBoundary[PageView] = ErrorBoundary(self.view)

        self.loading = False
        self.results = ResultPage.empty()
        self.error: Optional[str] = None
        self.grid: Optional[GridView] = None
        self.categories: List[Category] = []
        self.render_count = 0
        self.last_outcome: Optional[SearchOutcome] = None

        self._tasks: Set[asyncio.Task] = set()
        self._unsubscribe = store.subscribe(self._on_query_change)

    @classmethod
    def create(
        cls,
        initial: str = "",
        config: Optional[Settings] = None,
        client: Optional[SearchClient] = None,
        observer: Optional[ViewportObserver] = None,
        preferences: Optional[KeyValueStore] = None,
        prefetch: Optional[Prefetch] = None,
    ) -> "SearchPage":
        """Build a page with every collaborator configured from settings."""
        config = config or default_settings
        client = client or SearchClient(
            config.supabase_url,
            config.supabase_anon_key,
            timeout=config.search_timeout,
            page_size=config.search_page_size,
            search_function=config.search_function,
            action=config.search_action,
        )
        cache: ResultCache[ResultPage] = ResultCache(
            max_size=config.cache_max_size, ttl_seconds=config.cache_ttl_seconds
        )
        observer = observer or ManualViewportObserver()
        renderer = GridRenderer(
            observer,
            prefetch=prefetch,
            preferences=preferences,
            eager_count=config.eager_image_count,
            neighbors=config.prefetch_neighbors,
            quality=config.image_quality,
        )
        return cls(
            QueryParamStore(initial),
            SearchOrchestrator(client, cache=cache),
            renderer,
            observer=observer,
            config=config,
            categories_loader=client.list_categories,
        )

    def _on_query_change(self, query: SearchQuery) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("[page] query changed outside an event loop; refresh deferred")
            return
        task = loop.create_task(self.refresh())
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def refresh(self) -> SearchOutcome:
        """Search for the store's current query and update page state."""
        query = self.store.query
        self.loading = True
        outcome = await self.orchestrator.search(query)
        self.last_outcome = outcome
        if outcome.status == RequestStatus.CANCELLED:
            # The request that superseded this one owns the loading flag
            return outcome

        self.results = outcome.page or ResultPage.empty(query.page)
        self.error = outcome.error
        self.grid = self.renderer.render(self.results.items)
        self.render_count += 1
        self.loading = False
        return outcome

    async def wait_idle(self) -> None:
        """Wait until scheduled refreshes have settled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def load_categories(self) -> List[Category]:
        if self.categories_loader is None:
            return []
        try:
            self.categories = await self.categories_loader()
        except WallsearchError as e:
            logger.error(f"[page] error loading categories: {e}")
            self.categories = []
        return self.categories

    def change_page(self, page: int) -> bool:
        changed = self.store.set_page(page)
        self.observer.scroll_to_top()
        return changed

    def apply_suggestion(self, term: str) -> bool:
        return self.store.apply_suggestion(term)

    def clear_all(self) -> bool:
        return self.store.clear_all()

    def press(self, event: KeyEvent) -> ShortcutAction:
        return handle_key(event, self.input, self.focus)

    def view(self) -> PageView:
        query = self.store.query
        title = f'Search Results for "{query.text}"' if query.text else "All Wallpapers"
        if self.loading:
            return PageView(title=title, summary="Loading...", loading=True, query=query)

        summary = f"{self.results.total_count:,} wallpapers found"
        if self.results.is_empty or self.grid is None or not len(self.grid):
            return PageView(
                title=title,
                summary=summary,
                loading=False,
                query=query,
                empty_state=EmptyState(suggestions=self.config.suggested_terms_list),
                error=self.error,
            )

        pagination = Pagination.from_page(
            query.page, self.results.total_pages, window=self.config.pagination_window
        )
        return PageView(
            title=title,
            summary=summary,
            loading=False,
            query=query,
            grid=self.grid,
            pagination=pagination if pagination.visible else None,
            error=self.error,
        )

    def render(self) -> Union[PageView, Fallback]:
        """`view()` behind the error boundary."""
        return self.boundary.render()

    async def close(self) -> None:
        self._unsubscribe()
        self.input.close()
        self.orchestrator.cancel("page closed")
        for task in list(self._tasks):
            task.cancel()
        await asyncio.gather(*list(self._tasks), return_exceptions=True)
        self.renderer.close()
