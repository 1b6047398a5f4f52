"""
Fetch orchestrator: cache lookup, request cancellation and error mapping.

Ordering strategy: stale requests are cancelled when a newer query starts,
and a request whose token was cancelled never writes to the cache or
reports a result. Only the most recent query can resolve.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from wallsearch.common.cancellation import (
    CancellationCheckpoint,
    CancellationToken,
    RequestCanceller,
    RequestStatus,
)
from wallsearch.common.config import settings
from wallsearch.common.errors import (
    RequestCancelledError,
    WallsearchError,
    sanitize_error_message,
)
from wallsearch.common.logger import LogContext
from wallsearch.search.cache import ResultCache
from wallsearch.search.models import ResultPage
from wallsearch.search.query import SearchQuery

logger = logging.getLogger(__name__)


class SearchBackend(Protocol):
    async def search(
        self, query: SearchQuery, token: Optional[CancellationToken] = None
    ) -> ResultPage: ...


@dataclass(frozen=True)
class SearchOutcome:
    """Result of one `search()` call."""
    query: SearchQuery
    status: RequestStatus
    page: Optional[ResultPage] = None
    error: Optional[str] = None
    from_cache: bool = False

    @property
    def cancelled(self) -> bool:
        return self.status == RequestStatus.CANCELLED

    @property
    def failed(self) -> bool:
        return self.status == RequestStatus.FAILED


class SearchOrchestrator:
    """
    Runs searches for one page instance.

    `search()` never raises for network or server problems: failures come
    back as a FAILED outcome carrying an empty page, cancellations as a
    CANCELLED outcome without a page.
    """

    def __init__(
        self,
        client: SearchBackend,
        cache: Optional[ResultCache[ResultPage]] = None,
        canceller: Optional[RequestCanceller] = None,
    ):
        self.client = client
        self.cache: ResultCache[ResultPage] = cache if cache is not None else ResultCache(
            max_size=settings.cache_max_size,
            ttl_seconds=settings.cache_ttl_seconds,
        )
        self.canceller = canceller or RequestCanceller()
        self.network_calls = 0
        self._state = RequestStatus.IDLE

    @property
    def state(self) -> RequestStatus:
        """Status of the latest request."""
        if self.canceller.in_flight:
            return RequestStatus.IN_FLIGHT
        return self._state

    def cancel(self, reason: str = "cancelled") -> bool:
        """Cancel the in-flight request, if any."""
        return self.canceller.cancel_current(reason)

    async def search(self, query: SearchQuery) -> SearchOutcome:
        key = query.cache_key

        cached = self.cache.get(key)
        if cached is not None:
            # A cache hit still supersedes whatever was in flight
            self.canceller.cancel_current("superseded by a cached query")
            self._state = RequestStatus.RESOLVED
            return SearchOutcome(query=query, status=RequestStatus.RESOLVED, page=cached, from_cache=True)

        token = self.canceller.begin(metadata={"query_key": key})
        self.network_calls += 1
        with LogContext(request_id=token.request_id, query_key=key):
            return await self._fetch(query, key, token)

    async def _fetch(self, query: SearchQuery, key: str, token: CancellationToken) -> SearchOutcome:
        try:
            page = await self.client.search(query, token=token)
            token.check(CancellationCheckpoint.BEFORE_CACHE_WRITE)
        except RequestCancelledError:
            logger.debug(f"[search] {token.request_id} cancelled")
            return self._cancelled(query, token)
        except asyncio.CancelledError:
            # The calling task itself was cancelled
            token.cancel("task cancelled")
            self.canceller.finish(token)
            raise
        except WallsearchError as e:
            return self._failed(query, token, sanitize_error_message(e))
        except Exception as e:
            logger.exception(f"[search] unexpected error for {token.request_id}")
            return self._failed(query, token, sanitize_error_message(e))

        if not self.canceller.is_current(token):
            return self._cancelled(query, token)

        self.cache.put(key, page)
        token.mark_resolved()
        self.canceller.finish(token)
        self._state = RequestStatus.RESOLVED
        logger.debug(
            f"[search] {token.request_id} resolved: {len(page.items)} items, total={page.total_count}"
        )
        return SearchOutcome(query=query, status=RequestStatus.RESOLVED, page=page)

    def _cancelled(self, query: SearchQuery, token: CancellationToken) -> SearchOutcome:
        self.canceller.finish(token)
        return SearchOutcome(query=query, status=RequestStatus.CANCELLED)

    def _failed(self, query: SearchQuery, token: CancellationToken, message: str) -> SearchOutcome:
        if token.is_cancelled:
            return self._cancelled(query, token)
        logger.warning(f"[search] {token.request_id} failed: {message}")
        token.mark_failed(message)
        self.canceller.finish(token)
        self._state = RequestStatus.FAILED
        return SearchOutcome(
            query=query,
            status=RequestStatus.FAILED,
            page=ResultPage.empty(query.page),
            error=message,
        )
