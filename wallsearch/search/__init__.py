from .cache import CacheEntry, ResultCache
from .client import SearchClient
from .models import Category, ResultPage, WallpaperSummary
from .orchestrator import SearchOrchestrator, SearchOutcome
from .query import (
    NavigationHistory,
    QueryParamStore,
    SearchQuery,
    SortBy,
    parse_query_string,
)

__all__ = [
    "CacheEntry",
    "ResultCache",
    "SearchClient",
    "Category",
    "ResultPage",
    "WallpaperSummary",
    "SearchOrchestrator",
    "SearchOutcome",
    "NavigationHistory",
    "QueryParamStore",
    "SearchQuery",
    "SortBy",
    "parse_query_string",
]
