"""Cooperative cancellation for loads, main() runs and test runs.

A CancellationToken is created by the caller and passed explicitly to every
call that may block: Resolver.resolve, ContentStore.read_file, and the
engine's exec_module/call. Script code sees it as ``ctx.token``.

Nothing is interrupted preemptively. The token is checked at I/O
boundaries and at builtin call sites that choose to observe it.

Examples:
    >>> token = CancellationToken.with_timeout(5.0)
    >>> token.remaining() > 0
    True
    >>> token.cancel()
    >>> token.check("load")
    Traceback (most recent call last):
    ...
    cfgscript.core.errors.CancelledError: load cancelled

Tags:
    cancellation, deadline, execution, cfgscript

Doc-Types:
    api-reference
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass, field

from cfgscript.core.errors import CancelledError


@dataclass
class CancellationToken:
    """Cancellation flag with an optional monotonic deadline.

    Attributes:
        deadline: Absolute deadline (time.monotonic clock), None for no limit
        timeout_seconds: Original timeout value, for error messages
    """

    deadline: float | None = None
    timeout_seconds: float | None = None
    start_time: float = field(default_factory=time.monotonic)
    _event: threading.Event = field(default_factory=threading.Event, repr=False)

    @classmethod
    def with_timeout(cls, seconds: float | None) -> CancellationToken:
        """Token that expires ``seconds`` from now (never, for None)."""
        if seconds is None:
            return cls()
        if seconds < 0:
            raise ValueError(f"Timeout must be non-negative, got {seconds}")
        now = time.monotonic()
        return cls(deadline=now + seconds, timeout_seconds=seconds, start_time=now)

    def cancel(self) -> None:
        """Request cancellation. Safe to call from another thread."""
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """True once cancel() was called or the deadline passed."""
        return self._event.is_set() or self.is_expired()

    def is_expired(self) -> bool:
        return self.deadline is not None and time.monotonic() >= self.deadline

    def remaining(self) -> float | None:
        """Seconds until the deadline (negative once expired), None if unbounded."""
        if self.deadline is None:
            return None
        return self.deadline - time.monotonic()

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.start_time

    def check(self, operation: str = "operation") -> None:
        """Raise CancelledError if the token has fired.

        Raises:
            CancelledError: If cancelled or past the deadline
        """
        if self._event.is_set():
            raise CancelledError(f"{operation} cancelled")
        if self.is_expired():
            raise CancelledError(
                f"{operation} exceeded deadline of {self.timeout_seconds}s "
                f"(ran for {self.elapsed:.2f}s)"
            )


def background() -> CancellationToken:
    """A fresh token that never fires unless cancelled explicitly."""
    return CancellationToken()


__all__ = ["CancellationToken", "background"]
