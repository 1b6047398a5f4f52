"""
Error types raised by the search client.

Network and server failures are raised by `SearchClient` and converted into
a failed outcome by `SearchOrchestrator`; they never reach the renderer.
"""

import asyncio
import re
from typing import Optional


class WallsearchError(Exception):
    """Base class for wallsearch errors."""


class SearchAPIError(WallsearchError):
    """The search endpoint answered with a non-success status or an unreadable body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is None:
            return base
        return f"Search API error ({self.status_code}): {base}"


class SearchTimeoutError(WallsearchError):
    """The search call did not complete within the configured timeout."""


class RequestCancelledError(asyncio.CancelledError):
    """A superseded request reached a cancellation checkpoint."""


def sanitize_error_message(error: object) -> str:
    sanitized = str(error)
    sanitized = re.sub(r"\b[A-Za-z0-9_\-]{32,}\b", "[KEY_REDACTED]", sanitized)
    sanitized = re.sub(
        r"api[_\-]?key[\s=:]+[\w\-]+",
        "apikey=[REDACTED]",
        sanitized,
        flags=re.IGNORECASE,
    )
    sanitized = re.sub(r"bearer\s+[\w\-\.]+", "Bearer [REDACTED]", sanitized, flags=re.IGNORECASE)
    if len(sanitized) > 300:
        sanitized = sanitized[:300] + "..."
    return sanitized
