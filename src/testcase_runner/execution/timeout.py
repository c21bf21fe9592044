from __future__ import annotations

import threading
from typing import Callable


class TimeoutGuard:
    """One-shot deadline timer whose cancellation is idempotent.

    Whichever of `disarm()` and the timer expiry takes the lock first wins;
    the loser becomes a no-op.

    Example:
        ```python
        guard = TimeoutGuard(3000, on_expire=process.kill)
        ```
    """

    def __init__(self, deadline_ms: int, on_expire: Callable[[], None]) -> None:
        """Create a disarmed guard for the given deadline.

        Example:
            ```python
            guard = TimeoutGuard(500, on_expire=lambda: None)
            ```
        """
        self._deadline_ms = deadline_ms
        self._on_expire = on_expire
        self._lock = threading.Lock()
        self._timer: threading.Timer | None = None
        self._pending = False
        self._fired = False

    @property
    def fired(self) -> bool:
        """Whether the deadline expired before the guard was disarmed.

        Example:
            ```python
            if guard.fired: ...
            ```
        """
        with self._lock:
            return self._fired

    def arm(self) -> None:
        """Start the deadline timer.

        Example:
            ```python
            guard.arm()
            ```
        """
        with self._lock:
            if self._timer is not None:
                raise RuntimeError("TimeoutGuard can only be armed once")
            self._timer = threading.Timer(self._deadline_ms / 1000, self._expire)
            self._timer.daemon = True
            self._pending = True
            self._timer.start()

    def disarm(self) -> bool:
        """Cancel the timer; returns True only if it was still pending.

        Example:
            ```python
            cancelled = guard.disarm()
            ```
        """
        with self._lock:
            was_pending = self._pending
            self._pending = False
            if self._timer is not None:
                self._timer.cancel()
            return was_pending

    def _expire(self) -> None:
        """Timer callback: mark fired and run the expiry action once.

        Example:
            ```python
            guard._expire()
            ```
        """
        with self._lock:
            if not self._pending:
                return
            self._pending = False
            self._fired = True
        self._on_expire()
