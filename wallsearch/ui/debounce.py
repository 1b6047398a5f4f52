"""
Debounced search input.

Holds the text box value locally and pushes it into the query store after a
quiet period, so typing does not trigger one search per keystroke. The
local value is a cache of the store's `q`: external changes (back/forward,
suggestion clicks) overwrite it unless a commit is still pending.
"""

import asyncio
import logging
from typing import Optional

from wallsearch.common.config import settings
from wallsearch.search.query import QueryParamStore, SearchQuery

logger = logging.getLogger(__name__)


class DebouncedInput:
    """Text input bound to the `q` parameter of a QueryParamStore."""

    def __init__(self, store: QueryParamStore, delay: Optional[float] = None):
        self.store = store
        self.delay = settings.debounce_seconds if delay is None else delay
        self.value = store.query.text
        self.commits = 0
        self._task: Optional[asyncio.Task] = None
        self._unsubscribe = store.subscribe(self._on_store_change)

    @property
    def pending(self) -> bool:
        return self._task is not None and not self._task.done()

    def type(self, text: str) -> None:
        """Record a keystroke and restart the quiet timer."""
        self.value = text
        self._cancel_timer()
        self._task = asyncio.get_running_loop().create_task(self._commit_after_delay())

    def submit(self) -> bool:
        """Commit now (Enter)."""
        self._cancel_timer()
        return self._commit()

    def escape(self) -> bool:
        """Clear and commit now (Escape)."""
        self._cancel_timer()
        self.value = ""
        return self._commit()

    async def _commit_after_delay(self) -> None:
        await asyncio.sleep(self.delay)
        self._task = None
        self._commit()

    def _commit(self) -> bool:
        if self.value == self.store.query.text:
            return False
        self.commits += 1
        logger.debug(f"[debounce] commit q={self.value!r}")
        return self.store.set_param("q", self.value)

    def _cancel_timer(self) -> None:
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

    def _on_store_change(self, query: SearchQuery) -> None:
        if not self.pending:
            self.value = query.text

    def close(self) -> None:
        self._cancel_timer()
        self._unsubscribe()
