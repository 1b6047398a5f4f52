"""
Async client for the wallpaper search edge function.

Talks to the Supabase project over plain HTTPS with `httpx`:
- POST /functions/v1/<search_function>  (search)
- GET  /rest/v1/categories              (filter options)

Requests authenticate with the anon key as bearer token. Every network call
is bounded by `search_timeout` and can be aborted through a
CancellationToken.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from wallsearch.common.cancellation import (
    CancellationCheckpoint,
    CancellationToken,
    race_cancellation,
)
from wallsearch.common.config import settings
from wallsearch.common.errors import (
    SearchAPIError,
    SearchTimeoutError,
    sanitize_error_message,
)
from wallsearch.search.models import Category, ResultPage
from wallsearch.search.query import SearchQuery

logger = logging.getLogger(__name__)


def _safe_json(resp: httpx.Response) -> Any:
    try:
        return resp.json()
    except ValueError:
        return None


class SearchClient:
    """
    Thin async wrapper around the search endpoint.

    Raises SearchAPIError / SearchTimeoutError / RequestCancelledError;
    turning those into UI state is the orchestrator's job.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        anon_key: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        page_size: Optional[int] = None,
        search_function: Optional[str] = None,
        action: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = (base_url if base_url is not None else settings.supabase_url).strip().rstrip("/")
        self.anon_key = (anon_key if anon_key is not None else settings.supabase_anon_key).strip()
        self.timeout = float(timeout if timeout is not None else settings.search_timeout)
        self.page_size = int(page_size or settings.search_page_size)
        self.search_function = (search_function or settings.search_function).strip("/")
        self.action = action or settings.search_action
        self._client = http_client
        self._owns_client = http_client is None

    @property
    def search_endpoint(self) -> str:
        return f"{self.base_url}/functions/v1/{self.search_function}"

    @property
    def categories_endpoint(self) -> str:
        return f"{self.base_url}/rest/v1/categories"

    def _headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.anon_key:
            headers["Authorization"] = f"Bearer {self.anon_key}"
            headers["apikey"] = self.anon_key
        return headers

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self.timeout))
        return self._client

    def _require_backend(self) -> None:
        if not self.base_url:
            raise SearchAPIError("Search backend is not configured (SUPABASE_URL is empty)")

    async def _send(
        self,
        method: str,
        url: str,
        token: Optional[CancellationToken],
        **kwargs: Any,
    ) -> httpx.Response:
        if token is not None:
            token.check(CancellationCheckpoint.BEFORE_SEARCH)
        client = self._get_client()
        call = asyncio.wait_for(
            client.request(method, url, headers=self._headers(), **kwargs),
            timeout=self.timeout,
        )
        try:
            return await race_cancellation(call, token, CancellationCheckpoint.BEFORE_SEARCH)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise SearchTimeoutError(f"Search timed out after {self.timeout:g}s") from e
        except httpx.HTTPError as e:
            raise SearchAPIError(sanitize_error_message(e)) from e

    async def search(
        self, query: SearchQuery, token: Optional[CancellationToken] = None
    ) -> ResultPage:
        """
        Fetch one page of results for `query`.

        Returns an empty page (for the requested page number) when the
        response carries no `data`.
        """
        self._require_backend()
        payload = query.to_request_payload(limit=self.page_size, action=self.action)
        logger.debug(f"[search] POST {self.search_function} page={query.page} q={query.text!r}")

        resp = await self._send("POST", self.search_endpoint, token, json=payload)
        if token is not None:
            token.check(CancellationCheckpoint.AFTER_SEARCH)

        if not resp.is_success:
            raise SearchAPIError(sanitize_error_message(resp.text), status_code=resp.status_code)

        body = _safe_json(resp)
        if not isinstance(body, dict):
            raise SearchAPIError("Search response is not a JSON object", status_code=resp.status_code)

        data = body.get("data")
        if not data:
            return ResultPage.empty(query.page)

        try:
            page = ResultPage.model_validate(data)
        except ValidationError as e:
            raise SearchAPIError(
                f"Malformed search response ({e.error_count()} validation errors)",
                status_code=resp.status_code,
            ) from e

        if len(page.items) > self.page_size:
            logger.warning(
                f"[search] server returned {len(page.items)} items for limit={self.page_size}, truncating"
            )
            page = page.model_copy(update={"items": page.items[: self.page_size]})
        return page

    async def list_categories(self) -> List[Category]:
        """Active categories in display order."""
        self._require_backend()
        resp = await self._send(
            "GET",
            self.categories_endpoint,
            None,
            params={"is_active": "eq.true", "order": "sort_order"},
        )
        if not resp.is_success:
            raise SearchAPIError(sanitize_error_message(resp.text), status_code=resp.status_code)

        rows = _safe_json(resp)
        if not isinstance(rows, list):
            return []

        categories: List[Category] = []
        for row in rows:
            try:
                categories.append(Category.model_validate(row))
            except ValidationError as e:
                logger.debug(f"[search] skipping malformed category row: {e.error_count()} errors")
        return categories

    async def aclose(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> "SearchClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
