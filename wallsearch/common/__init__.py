from .config import Settings, settings
from .cancellation import (
    CancellationCheckpoint,
    CancellationToken,
    RequestCanceller,
    RequestStatus,
)
from .errors import (
    RequestCancelledError,
    SearchAPIError,
    SearchTimeoutError,
    WallsearchError,
)

__all__ = [
    "Settings",
    "settings",
    # Cancellation
    "CancellationCheckpoint",
    "CancellationToken",
    "RequestCanceller",
    "RequestStatus",
    # Errors
    "RequestCancelledError",
    "SearchAPIError",
    "SearchTimeoutError",
    "WallsearchError",
]
