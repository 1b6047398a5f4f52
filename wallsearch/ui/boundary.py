"""
Error boundary for render-time exceptions.

Wraps a render callable; an exception turns into a Fallback the caller can
show instead of crashing. The fallback offers a manual retry until the
retry budget is spent, then asks for a full reload.
"""

import logging
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar, Union

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class Fallback:
    message: str
    error_type: str
    retries_left: int
    title: str = "Something went wrong"

    @property
    def can_retry(self) -> bool:
        return self.retries_left > 0

    @property
    def reload_required(self) -> bool:
        return not self.can_retry


class ErrorBoundary(Generic[T]):
    def __init__(
        self,
        render: Callable[[], T],
        max_retries: int = 3,
        on_error: Optional[Callable[[Exception], None]] = None,
    ):
        self._render = render
        self.max_retries = max_retries
        self.on_error = on_error
        self.retry_count = 0
        self.error: Optional[Exception] = None

    @property
    def fallback(self) -> Optional[Fallback]:
        if self.error is None:
            return None
        return Fallback(
            message=str(self.error) or self.error.__class__.__name__,
            error_type=self.error.__class__.__name__,
            retries_left=max(0, self.max_retries - self.retry_count),
        )

    def render(self) -> Union[T, Fallback]:
        try:
            result = self._render()
        except Exception as e:
            self.error = e
            logger.error(f"[boundary] render failed: {e}", exc_info=True)
            if self.on_error is not None:
                self.on_error(e)
            return self.fallback
        self.error = None
        return result

    def retry(self) -> Union[T, Fallback]:
        """Re-render after a failure, within the retry budget."""
        if self.error is not None and self.retry_count >= self.max_retries:
            return self.fallback
        self.retry_count += 1
        return self.render()

    def reset(self) -> None:
        self.error = None
        self.retry_count = 0
