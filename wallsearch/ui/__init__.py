from .boundary import ErrorBoundary, Fallback
from .debounce import DebouncedInput
from .grid import (
    EmptyState,
    GridItem,
    GridRenderer,
    GridView,
    HttpPrefetcher,
    Pagination,
    ViewMode,
    image_url,
)
from .page import PageView, SearchPage
from .platform import JsonFileStore, ManualViewportObserver, MemoryStore
from .shortcuts import FocusState, KeyEvent, ShortcutAction, handle_key

__all__ = [
    "ErrorBoundary",
    "Fallback",
    "DebouncedInput",
    "EmptyState",
    "GridItem",
    "GridRenderer",
    "GridView",
    "HttpPrefetcher",
    "Pagination",
    "ViewMode",
    "image_url",
    "PageView",
    "SearchPage",
    "JsonFileStore",
    "ManualViewportObserver",
    "MemoryStore",
    "FocusState",
    "KeyEvent",
    "ShortcutAction",
    "handle_key",
]
