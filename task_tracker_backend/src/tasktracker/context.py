from __future__ import annotations

import time
from dataclasses import dataclass, field
from threading import Event
from typing import Optional


class RequestAborted(TimeoutError):
    """Raised when a request's deadline passed or it was cancelled."""


# PUBLIC_INTERFACE
@dataclass
class RequestContext:
    """
    Request-scoped deadline and cancellation signal handed to repositories.

    The deadline is a time.monotonic() value; None means no deadline.
    """

    deadline: Optional[float] = None
    _cancelled: Event = field(default_factory=Event, repr=False)

    @classmethod
    def with_timeout(cls, seconds: Optional[float]) -> "RequestContext":
        """Return a context expiring `seconds` from now; no deadline if seconds is None or <= 0."""
        if seconds is None or seconds <= 0:
            return cls()
        return cls(deadline=time.monotonic() + seconds)

    def cancel(self) -> None:
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    def expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def done(self) -> bool:
        return self.cancelled or self.expired()

    def raise_if_done(self) -> None:
        if self.cancelled:
            raise RequestAborted("request cancelled")
        if self.expired():
            raise RequestAborted("request deadline exceeded")
