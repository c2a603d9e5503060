"""
Cancellation support for blocking broker calls.

A CancellationToken is handed to the long-running client calls (retry
backoff, operation polling, task log streaming). Those calls check the
token at every suspension point, so a caller running the client on a
worker thread can abort it cleanly from another thread.
"""

import threading
from typing import Optional

from boss.client.errors import CancelledError
from boss.logging import get_logger

logger = get_logger(__name__)


class CancellationToken:
    """Thread-safe cancellation flag with an interruptible wait."""

    def __init__(self) -> None:
        self._event = threading.Event()
        self._reason: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def reason(self) -> Optional[str]:
        with self._lock:
            return self._reason

    def cancel(self, reason: str = "Operation cancelled") -> None:
        """Request cancellation. Only the first reason is kept."""
        with self._lock:
            if self._event.is_set():
                return
            self._reason = reason
            self._event.set()
        logger.debug(f"Cancellation requested: {reason}")

    def is_cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, seconds: float) -> bool:
        """
        Block for up to ``seconds``, returning early if cancelled.

        Returns:
            True if the token was cancelled before the wait elapsed
        """
        return self._event.wait(timeout=seconds)

    def check_cancellation(self, context: str = "") -> None:
        """
        Raise CancelledError if cancellation has been requested.

        Args:
            context: Where the check happened, for the error message
        """
        if not self.is_cancelled():
            return
        message = "operation cancelled"
        if context:
            message += f" during {context}"
        if self.reason:
            message += f": {self.reason}"
        raise CancelledError(message, details={"reason": self.reason})
