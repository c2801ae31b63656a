import threading
import time


class CancellationToken:
    """Deadline plus explicit cancel, threaded through every blocking call.

    Callbacks registered with :meth:`register` run once, on :meth:`cancel`
    (or immediately if the token is already cancelled). Deadline expiry is
    observed by polling ``cancelled``/``remaining()``; it does not fire
    callbacks on its own.
    """

    def __init__(self, timeout=None):
        self._deadline = time.monotonic() + timeout if timeout is not None else None
        self._event = threading.Event()
        self._lock = threading.Lock()
        self._callbacks = []
        self.reason = None

    @property
    def expired(self):
        return self._deadline is not None and time.monotonic() >= self._deadline

    @property
    def cancelled(self):
        return self._event.is_set() or self.expired

    def remaining(self):
        """Seconds left before the deadline, or None without a deadline."""
        if self._deadline is None:
            return None
        return max(0.0, self._deadline - time.monotonic())

    def cancel(self, reason="cancelled"):
        with self._lock:
            if self._event.is_set():
                return
            self.reason = reason
            self._event.set()
            callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            callback()

    def register(self, callback):
        with self._lock:
            if not self._event.is_set():
                self._callbacks.append(callback)
                return
        callback()

    def unregister(self, callback):
        with self._lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def describe(self):
        if self._event.is_set():
            return self.reason
        if self.expired:
            return "deadline exceeded"
        return None
