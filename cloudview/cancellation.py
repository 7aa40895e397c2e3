"""Cooperative cancellation for inventory operations."""
import threading
import time
from typing import Optional

from .errors import OperationCancelledError


class CancellationToken:
    """
    Cancellation signal shared by a caller and every task it dispatches.

    A token is cancelled explicitly with cancel() or implicitly once its
    optional deadline passes. Workers poll raise_if_cancelled() between
    network calls.
    """

    def __init__(self, timeout: Optional[float] = None):
        """
        Initialize token.

        Args:
            timeout: Seconds until the token cancels itself (None for no deadline)
        """
        self._event = threading.Event()
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._reason: Optional[str] = None

    def cancel(self, reason: str = 'operation cancelled') -> None:
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    @property
    def cancelled(self) -> bool:
        if self._event.is_set():
            return True
        if self._deadline is not None and time.monotonic() >= self._deadline:
            self.cancel('deadline exceeded')
            return True
        return False

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def remaining(self) -> Optional[float]:
        """Seconds left before the deadline, or None without one."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def raise_if_cancelled(self) -> None:
        if self.cancelled:
            raise OperationCancelledError(self._reason or 'operation cancelled')
