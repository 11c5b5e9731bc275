"""Cancellation and deadline propagation for storage calls.

A ``Context`` is handed to every storage operation. Callers cancel it from
any thread, or give it a deadline; the storage layer polls ``check()`` at
each network call and on every stream read so in-flight transfers stop
promptly instead of completing with results nobody wants.
"""

from __future__ import annotations

import threading
import time

from objstore.common.errors import CancellationError


class Context:
    """Cancellation token with an optional deadline."""

    def __init__(
        self,
        *,
        timeout: float | None = None,
        parent: "Context | None" = None,
    ) -> None:
        if timeout is not None and timeout < 0:
            raise ValueError(f"timeout must be non-negative, got {timeout}")
        self._event = threading.Event()
        self._parent = parent
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        if parent is not None and parent.deadline is not None:
            if self._deadline is None or parent.deadline < self._deadline:
                self._deadline = parent.deadline
        self._reason: str | None = None

    @classmethod
    def with_timeout(cls, seconds: float) -> "Context":
        return cls(timeout=seconds)

    def child(self, *, timeout: float | None = None) -> "Context":
        """Derive a context cancelled together with this one."""
        return Context(timeout=timeout, parent=self)

    @property
    def deadline(self) -> float | None:
        return self._deadline

    def cancel(self, reason: str = "context canceled") -> None:
        if self._reason is None:
            self._reason = reason
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self.error() is not None

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def error(self) -> str | None:
        """Return why the context is done, or None while it is still live."""
        if self._event.is_set():
            return self._reason or "context canceled"
        if self._parent is not None:
            parent_error = self._parent.error()
            if parent_error is not None:
                return parent_error
        if self._deadline is not None and time.monotonic() >= self._deadline:
            return "context deadline exceeded"
        return None

    def check(self) -> None:
        reason = self.error()
        if reason is not None:
            raise CancellationError(reason)


def check(ctx: Context | None) -> None:
    if ctx is not None:
        ctx.check()
