"""Keyboard shortcuts for the search page."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Protocol

from wallsearch.ui.debounce import DebouncedInput

SEARCH_INPUT_ID = "search-input"

# Elements where "/" is ordinary typing
TEXT_ENTRY_TAGS = frozenset({"INPUT", "TEXTAREA"})


class ShortcutAction(str, Enum):
    NONE = "none"
    FOCUS_SEARCH = "focus_search"
    CLEAR_SEARCH = "clear_search"
    SUBMIT_SEARCH = "submit_search"


@dataclass(frozen=True)
class KeyEvent:
    key: str
    target_tag: str = "BODY"
    target_id: str = ""


class FocusTarget(Protocol):
    active_element_id: Optional[str]

    def focus(self, element_id: str) -> None: ...


class FocusState:
    """Tracks which element has keyboard focus."""

    def __init__(self, active_element_id: Optional[str] = None):
        self.active_element_id = active_element_id

    def focus(self, element_id: str) -> None:
        self.active_element_id = element_id

    def blur(self) -> None:
        self.active_element_id = None


def handle_key(
    event: KeyEvent,
    search_input: DebouncedInput,
    focus: FocusTarget,
    input_id: str = SEARCH_INPUT_ID,
) -> ShortcutAction:
    """
    Apply the page shortcuts to one key press.

    - "/" focuses the search box unless a text field is the target
    - Escape clears the search box when it has focus
    - Enter commits the search box immediately when it has focus
    """
    if event.key == "/" and event.target_tag.upper() not in TEXT_ENTRY_TAGS:
        focus.focus(input_id)
        return ShortcutAction.FOCUS_SEARCH

    if focus.active_element_id != input_id:
        return ShortcutAction.NONE

    if event.key == "Escape":
        search_input.escape()
        return ShortcutAction.CLEAR_SEARCH
    if event.key == "Enter":
        search_input.submit()
        return ShortcutAction.SUBMIT_SEARCH
    return ShortcutAction.NONE
