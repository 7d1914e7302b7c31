"""
Cancellation for a compiler run.

One RunContext is shared by the pipeline and every generator call of a
run. Cancelling it, or letting its deadline pass, makes in-flight plugin
subprocesses terminate and the run fail with CancelledError.
"""

from __future__ import annotations

import threading
import time

from .errors import CancelledError


class RunContext:
    """A cancellation flag with an optional deadline."""

    def __init__(self, timeout: float | None = None):
        """
        Args:
            timeout: Seconds from now after which the context counts as
                cancelled. None means no deadline.
        """
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._reason = "run was cancelled"

    def cancel(self, reason: str = "run was cancelled") -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def deadline_exceeded(self) -> bool:
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def done(self) -> bool:
        """Whether the context is cancelled or past its deadline."""
        return self._event.is_set() or self.deadline_exceeded

    def remaining(self) -> float | None:
        """Seconds until the deadline, or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_done(self) -> None:
        if self._event.is_set():
            raise CancelledError(self._reason)
        if self.deadline_exceeded:
            raise CancelledError("run deadline exceeded")
