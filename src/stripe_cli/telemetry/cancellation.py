"""Cancellation tokens for bounding telemetry sends.

A token plays the role of a cancellation/deadline context: the caller keeps a
reference, and may cancel it from another thread or give it a deadline up
front. The sender waits on the token during its pre-send delay, and the
transport refuses to dispatch a request whose token is already cancelled.

Example:

    token = CancellationToken(timeout=2.0)
    result = sender.send_event("purchase", "42", cancel=token)
"""

from __future__ import annotations

import threading
import time

from stripe_cli.telemetry.errors import EventCancelledError


class CancellationToken:
    """Thread-safe cancel flag with an optional deadline."""

    def __init__(self, timeout: float | None = None):
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        """True once cancel() was called or the deadline has passed."""
        if self._event.is_set():
            return True
        return self._deadline is not None and time.monotonic() >= self._deadline

    def remaining(self) -> float | None:
        """Seconds left before the deadline, or None without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def wait(self, seconds: float) -> bool:
        """Sleep up to `seconds`, waking early on cancel or deadline.

        Returns:
            True if the token is cancelled when the wait ends
        """
        remaining = self.remaining()
        if remaining is not None:
            seconds = min(seconds, remaining)
        self._event.wait(max(0.0, seconds))
        return self.cancelled

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            reason = "deadline exceeded" if not self._event.is_set() else "cancelled"
            raise EventCancelledError(f"Telemetry send {reason}")
