"""
Request cancellation for the search session.

Cooperative cancellation built from message passing:
- one token per request, passed into the network call
- `check()` at each continuation point
- at most one in-flight request per canceller; starting a new one
  cancels the previous token
- cleanup callbacks for resources tied to a request
"""

import asyncio
import contextlib
import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, TypeVar, Union

from wallsearch.common.errors import RequestCancelledError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RequestStatus(Enum):
    """Request lifecycle: idle -> in_flight -> resolved | cancelled | failed."""

    IDLE = "idle"
    IN_FLIGHT = "in_flight"
    RESOLVED = "resolved"
    CANCELLED = "cancelled"
    FAILED = "failed"


class CancellationCheckpoint(Enum):
    """Points in a request where cancellation is checked."""

    BEFORE_SEARCH = "before_search"
    AFTER_SEARCH = "after_search"
    BEFORE_CACHE_WRITE = "before_cache_write"


@dataclass
class CancellationToken:
    """
    Cancellation token for a single request.

    The issuer owns the token; the network layer only reads it.
    """

    request_id: str
    _cancelled: bool = field(default=False, repr=False)
    _event: asyncio.Event = field(default_factory=asyncio.Event, repr=False)
    created_at: datetime = field(default_factory=datetime.now)
    cancelled_at: Optional[datetime] = field(default=None)
    status: RequestStatus = field(default=RequestStatus.IDLE)
    metadata: Dict[str, Any] = field(default_factory=dict)
    _cleanup_callbacks: List[Callable[[], Awaitable[None]]] = field(
        default_factory=list, repr=False
    )
    current_checkpoint: str = field(default="")

    @property
    def is_cancelled(self) -> bool:
        return self._cancelled

    def cancel(self, reason: str = "superseded"):
        """
        Signal cancellation.

        Only requests that have not settled change status; cancelling a
        resolved or failed token just sets the flag.
        """
        if self._cancelled:
            return
        self._cancelled = True
        self.cancelled_at = datetime.now()
        self.metadata["cancel_reason"] = reason
        if self.status in (RequestStatus.IDLE, RequestStatus.IN_FLIGHT):
            self.status = RequestStatus.CANCELLED
        self._event.set()
        logger.debug(f"[cancel] request {self.request_id} cancelled: {reason}")

    def check(self, checkpoint: Union[str, CancellationCheckpoint] = ""):
        """
        Raise RequestCancelledError if the token has been cancelled.

        Args:
            checkpoint: optional checkpoint name, recorded on the token
        """
        checkpoint_name = (
            checkpoint.value if isinstance(checkpoint, CancellationCheckpoint) else checkpoint
        )
        if checkpoint_name:
            self.current_checkpoint = checkpoint_name

        if self._cancelled:
            raise RequestCancelledError(
                f"Request {self.request_id} was cancelled at checkpoint "
                f"'{checkpoint_name}': {self.metadata.get('cancel_reason', 'unknown')}"
            )

    def register_cleanup(self, callback: Callable[[], Awaitable[None]]):
        self._cleanup_callbacks.append(callback)

    async def run_cleanup(self):
        """Run cleanup callbacks in reverse registration order."""
        for callback in reversed(self._cleanup_callbacks):
            try:
                await callback()
            except Exception as e:
                logger.warning(f"Cleanup callback failed: {e}")
        self._cleanup_callbacks.clear()

    def mark_in_flight(self):
        if not self._cancelled:
            self.status = RequestStatus.IN_FLIGHT

    def mark_resolved(self):
        if not self._cancelled:
            self.status = RequestStatus.RESOLVED

    def mark_failed(self, error: str):
        if not self._cancelled:
            self.status = RequestStatus.FAILED
            self.metadata["error"] = error

    async def wait_for_cancel(self, timeout: Optional[float] = None) -> bool:
        """
        Wait for the cancellation signal.

        Returns:
            True if the token was cancelled before the timeout
        """
        try:
            await asyncio.wait_for(self._event.wait(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "request_id": self.request_id,
            "is_cancelled": self._cancelled,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "cancelled_at": self.cancelled_at.isoformat() if self.cancelled_at else None,
            "current_checkpoint": self.current_checkpoint,
            "metadata": self.metadata,
        }


class RequestCanceller:
    """
    Keeps at most one request in flight.

    `begin()` cancels whatever request is still running and hands out a
    fresh token. Owned by a single page/session; not shared.
    """

    def __init__(self, prefix: str = "search"):
        self.prefix = prefix
        self._counter = itertools.count(1)
        self._current: Optional[CancellationToken] = None

    @property
    def current(self) -> Optional[CancellationToken]:
        return self._current

    @property
    def in_flight(self) -> bool:
        token = self._current
        return token is not None and token.status == RequestStatus.IN_FLIGHT

    def begin(self, metadata: Optional[Dict[str, Any]] = None) -> CancellationToken:
        """Cancel the previous in-flight request and start a new one."""
        previous = self._current
        if previous is not None and previous.status == RequestStatus.IN_FLIGHT:
            previous.cancel("superseded by a newer query")

        token = CancellationToken(
            request_id=f"{self.prefix}-{next(self._counter)}",
            metadata=dict(metadata or {}),
        )
        token.mark_in_flight()
        self._current = token
        return token

    def is_current(self, token: CancellationToken) -> bool:
        return self._current is token and not token.is_cancelled

    def finish(self, token: CancellationToken):
        """Drop the token if it is still the current one."""
        if self._current is token:
            self._current = None

    def cancel_current(self, reason: str = "cancelled") -> bool:
        token = self._current
        if token is None or token.status != RequestStatus.IN_FLIGHT:
            return False
        token.cancel(reason)
        return True

    def status(self) -> RequestStatus:
        token = self._current
        return token.status if token is not None else RequestStatus.IDLE


async def race_cancellation(
    awaitable: Awaitable[T],
    token: Optional[CancellationToken],
    checkpoint: Union[str, CancellationCheckpoint] = "",
) -> T:
    """
    Await `awaitable` unless `token` is cancelled first.

    On cancellation the underlying task is aborted and RequestCancelledError
    is raised; the result of an aborted call is never returned.
    """
    if token is None:
        return await awaitable

    if token.is_cancelled and asyncio.iscoroutine(awaitable):
        awaitable.close()
    token.check(checkpoint)
    work = asyncio.ensure_future(awaitable)
    waiter = asyncio.ensure_future(token.wait_for_cancel())
    try:
        done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        for task in (work, waiter):
            if not task.done():
                task.cancel()

    if work in done and not token.is_cancelled:
        return work.result()

    # The outcome of an aborted call is discarded
    with contextlib.suppress(asyncio.CancelledError, Exception):
        await work
    token.check(checkpoint)
    raise RequestCancelledError(f"Request {token.request_id} was aborted")
