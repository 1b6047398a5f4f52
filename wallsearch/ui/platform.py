"""
Platform capabilities the UI layer needs from its host.

A browser provides these through IntersectionObserver, localStorage and
window.scrollTo; the in-memory versions here let the pipeline run headless.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol

logger = logging.getLogger(__name__)


class ViewportObserver(Protocol):
    """Reports when an observed element comes near the viewport."""

    def observe(self, key: str, callback: Callable[[], None]) -> None: ...

    def unobserve(self, key: str) -> None: ...

    def scroll_to_top(self) -> None: ...


class KeyValueStore(Protocol):
    """Small persistent string store (view mode and similar preferences)."""

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]: ...

    def set(self, key: str, value: str) -> None: ...


class ManualViewportObserver:
    """
    Viewport observer driven by the caller.

    `enter(key)` simulates an element scrolling into range; the callback
    fires once and the element is no longer observed.
    """

    def __init__(self):
        self._callbacks: Dict[str, Callable[[], None]] = {}
        self.scroll_resets = 0

    def observe(self, key: str, callback: Callable[[], None]) -> None:
        self._callbacks[key] = callback

    def unobserve(self, key: str) -> None:
        self._callbacks.pop(key, None)

    def enter(self, key: str) -> bool:
        callback = self._callbacks.pop(key, None)
        if callback is None:
            return False
        callback()
        return True

    def observed(self) -> list:
        return list(self._callbacks)

    def scroll_to_top(self) -> None:
        self.scroll_resets += 1


class MemoryStore:
    """Process-lifetime key/value store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._data.get(key, default)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class JsonFileStore:
    """Key/value store persisted to a JSON file."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"[store] unreadable preferences file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self._load().get(key)
        return str(value) if value is not None else default

    def set(self, key: str, value: str) -> None:
        data = self._load()
        data[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8")
