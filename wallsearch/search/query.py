"""
Search query state backed by the URL query string.

The query string is the single source of truth for search intent. It is
shareable and back/forward navigable, so its schema is public:

    q, category, device, res, video, premium, sort, page

Every key is omitted when its value equals the default. Parsing never
raises; malformed values fall back to defaults.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import parse_qsl, urlencode

logger = logging.getLogger(__name__)


class SortBy(str, Enum):
    """Sort orders understood by the search endpoint."""
    NEWEST = "newest"
    POPULAR = "popular"
    DOWNLOADS = "downloads"
    OLDEST = "oldest"
    TITLE_ASC = "title_asc"
    TITLE_DESC = "title_desc"
    RANDOM = "random"

    @classmethod
    def parse(cls, value: Any) -> "SortBy":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value or "").strip().lower())
        except ValueError:
            return cls.NEWEST


# URL key -> SearchQuery field
URL_KEYS: Dict[str, str] = {
    "q": "text",
    "category": "category",
    "device": "device_type",
    "res": "resolution",
    "video": "video_only",
    "premium": "include_premium",
    "sort": "sort_by",
    "page": "page",
}

_STRING_FILTER_KEYS = ("category", "device", "res")
_BOOL_KEYS = ("video", "premium")

# Select boxes use "all" for "no filter"
_ANY_VALUE = "all"


def _parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def _parse_page(value: Any) -> int:
    try:
        page = int(str(value).strip())
    except (TypeError, ValueError):
        return 1
    return page if page >= 1 else 1


def _parse_filter(value: Any) -> str:
    text = "" if value is None else str(value)
    return "" if text == _ANY_VALUE else text


@dataclass(frozen=True)
class SearchQuery:
    """Everything that identifies one page of search results."""
    text: str = ""
    category: str = ""
    device_type: str = ""
    resolution: str = ""
    video_only: bool = False
    include_premium: bool = False
    sort_by: SortBy = SortBy.NEWEST
    page: int = 1

    def __post_init__(self):
        if self.page < 1:
            raise ValueError(f"page must be >= 1, got {self.page}")
        if not isinstance(self.sort_by, SortBy):
            object.__setattr__(self, "sort_by", SortBy.parse(self.sort_by))

    def to_params(self) -> Dict[str, str]:
        """URL parameters with defaults left out."""
        params: Dict[str, str] = {}
        if self.text:
            params["q"] = self.text
        if self.category:
            params["category"] = self.category
        if self.device_type:
            params["device"] = self.device_type
        if self.resolution:
            params["res"] = self.resolution
        if self.video_only:
            params["video"] = "true"
        if self.include_premium:
            params["premium"] = "true"
        if self.sort_by != SortBy.NEWEST:
            params["sort"] = self.sort_by.value
        if self.page > 1:
            params["page"] = str(self.page)
        return params

    def to_query_string(self) -> str:
        """Canonical serialization: sorted keys, defaults omitted."""
        return urlencode(sorted(self.to_params().items()))

    @property
    def cache_key(self) -> str:
        return self.to_query_string()

    @property
    def has_active_filters(self) -> bool:
        return replace(self, page=1) != SearchQuery()

    def with_page(self, page: int) -> "SearchQuery":
        return replace(self, page=page)

    def to_request_payload(self, limit: int, action: str = "search_wallpapers") -> Dict[str, Any]:
        """Body for the search edge function."""
        filters: Dict[str, Any] = {}
        if self.category:
            filters["category"] = self.category
        if self.device_type:
            filters["deviceType"] = self.device_type
        if self.resolution:
            filters["resolution"] = self.resolution
        filters["showPremium"] = self.include_premium
        filters["videoOnly"] = self.video_only
        return {
            "action": action,
            "query": self.text,
            "filters": filters,
            "page": self.page,
            "limit": limit,
            "sortBy": self.sort_by.value,
        }


def parse_query_string(query_string: Optional[str]) -> SearchQuery:
    """
    Parse a query string (or full URL) into a SearchQuery.

    Unknown keys are ignored; the first occurrence of a repeated key wins.
    """
    raw = query_string or ""
    if "#" in raw:
        raw = raw.split("#", 1)[0]
    if "?" in raw:
        raw = raw.split("?", 1)[1]

    values: Dict[str, str] = {}
    for key, value in parse_qsl(raw, keep_blank_values=True):
        if key in URL_KEYS and key not in values:
            values[key] = value

    return SearchQuery(
        text=values.get("q", ""),
        category=_parse_filter(values.get("category")),
        device_type=_parse_filter(values.get("device")),
        resolution=_parse_filter(values.get("res")),
        video_only=_parse_bool(values.get("video", "")),
        include_premium=_parse_bool(values.get("premium", "")),
        sort_by=SortBy.parse(values.get("sort")),
        page=_parse_page(values.get("page", 1)),
    )


class NavigationHistory:
    """Browser-style history of query strings."""

    def __init__(self, initial: str = ""):
        self._entries: List[str] = [initial]
        self._index = 0

    @property
    def current(self) -> str:
        return self._entries[self._index]

    @property
    def can_go_back(self) -> bool:
        return self._index > 0

    @property
    def can_go_forward(self) -> bool:
        return self._index < len(self._entries) - 1

    def replace(self, entry: str) -> None:
        self._entries[self._index] = entry

    def push(self, entry: str) -> None:
        # A push drops any forward entries
        del self._entries[self._index + 1:]
        self._entries.append(entry)
        self._index += 1

    def back(self) -> Optional[str]:
        if not self.can_go_back:
            return None
        self._index -= 1
        return self.current

    def forward(self) -> Optional[str]:
        if not self.can_go_forward:
            return None
        self._index += 1
        return self.current

    def __len__(self) -> int:
        return len(self._entries)


QueryListener = Callable[[SearchQuery], None]


class QueryParamStore:
    """
    Current SearchQuery plus the mutators that rewrite the query string.

    Pure state and navigation: no network or cache side effects. Listeners
    are notified only when the canonical query string actually changes.
    """

    def __init__(
        self,
        initial: str = "",
        path: str = "/search",
        history: Optional[NavigationHistory] = None,
    ):
        self.path = path
        self.history = history or NavigationHistory(
            parse_query_string(initial).to_query_string()
        )
        self._listeners: List[QueryListener] = []

    @property
    def query(self) -> SearchQuery:
        return parse_query_string(self.history.current)

    @property
    def query_string(self) -> str:
        return self.history.current

    @property
    def url(self) -> str:
        qs = self.query_string
        return f"{self.path}?{qs}" if qs else self.path

    def subscribe(self, listener: QueryListener) -> Callable[[], None]:
        """Register a change listener; returns the unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, query: SearchQuery) -> None:
        for listener in list(self._listeners):
            try:
                listener(query)
            except Exception as e:
                logger.warning(f"[query_store] listener failed: {e}")

    def navigate(self, query: SearchQuery, push: bool = False) -> bool:
        """Make `query` current. Returns False when nothing changed."""
        qs = query.to_query_string()
        if qs == self.history.current:
            return False
        if push:
            self.history.push(qs)
        else:
            self.history.replace(qs)
        logger.debug(f"[query_store] navigate -> {self.path}?{qs}")
        self._notify(query)
        return True

    def set_param(self, key: str, value: Any, push: bool = False) -> bool:
        """
        Set one URL parameter.

        Any key other than `page` resets the page to 1. Values equal to the
        default drop the key from the URL.

        Raises:
            KeyError: `key` is not part of the URL schema
        """
        if key not in URL_KEYS:
            raise KeyError(f"Unknown search parameter: {key!r}")

        current = self.query
        if key == "page":
            updated = replace(current, page=_parse_page(value))
        else:
            if key == "q":
                coerced: Any = "" if value is None else str(value)
            elif key in _STRING_FILTER_KEYS:
                coerced = _parse_filter(value)
            elif key in _BOOL_KEYS:
                coerced = _parse_bool(value)
            else:
                coerced = SortBy.parse(value)
            updated = replace(current, **{URL_KEYS[key]: coerced, "page": 1})

        return self.navigate(updated, push=push)

    def set_page(self, page: int, push: bool = False) -> bool:
        return self.set_param("page", page, push=push)

    def clear_all(self, push: bool = False) -> bool:
        return self.navigate(SearchQuery(), push=push)

    def apply_suggestion(self, term: str, push: bool = False) -> bool:
        """Replace the whole state with a plain text search for `term`."""
        return self.navigate(SearchQuery(text=term), push=push)

    def back(self) -> bool:
        if self.history.back() is None:
            return False
        self._notify(self.query)
        return True

    def forward(self) -> bool:
        if self.history.forward() is None:
            return False
        self._notify(self.query)
        return True
