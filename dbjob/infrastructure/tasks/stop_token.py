"""Broadcast cancellation token used to stop task loops."""

import threading


class StopToken:
    """One-shot cancellation token.

    Cancelling never blocks, is observed by every waiter, and stays
    observable afterwards. Only the first ``cancel()`` has an effect.
    """

    def __init__(self):
        self._event = threading.Event()
        self._lock = threading.Lock()

    def cancel(self) -> bool:
        """Cancel the token.

        Returns:
            True if this call cancelled it, False if it was already cancelled
        """
        with self._lock:
            if self._event.is_set():
                return False
            self._event.set()
            return True

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or until ``timeout`` seconds elapse.

        Returns:
            True if the token is cancelled
        """
        return self._event.wait(timeout)

    def __repr__(self) -> str:
        return f"StopToken(cancelled={self.cancelled})"
