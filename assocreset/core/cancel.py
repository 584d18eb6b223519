# path: assocreset/core/cancel.py
"""Cooperative cancellation shared by the enumerator, sampler and worker pool."""

from __future__ import annotations

import threading
from typing import Optional


class CancelToken:
    def __init__(self) -> None:
        self._event = threading.Event()
        self._timer: Optional[threading.Timer] = None
        self.reason = ""

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._event.is_set():
            self.reason = reason
        self._event.set()

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        return self._event.wait(timeout)

    def cancel_after(self, seconds: float) -> None:
        """Caller-imposed deadline for a whole run."""
        if self._timer is not None:
            self._timer.cancel()
        self._timer = threading.Timer(max(0.0, float(seconds)), self.cancel, args=("deadline",))
        self._timer.daemon = True
        self._timer.start()

    def dispose(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None


__all__ = ["CancelToken"]
