"""In-memory throttle for repeated failed logins."""

from __future__ import annotations

import threading
import time
from collections import deque
from typing import Optional


class LoginThrottle:
    """Fixed-window counter of failed attempts per key.

    `check` refuses a key once `max_failures` failures fall inside the
    window; `reset` clears the key after a successful login. Keys only
    stay in memory while they have failures inside the window.
    """

    def __init__(self):
        self._failures: dict[str, deque] = {}
        self._lock = threading.Lock()

    def _prune(self, key: str, window_seconds: int, now: float) -> Optional[deque]:
        failures = self._failures.get(key)
        if failures is None:
            return None
        cutoff = now - window_seconds
        while failures and failures[0] < cutoff:
            failures.popleft()
        if not failures:
            del self._failures[key]
            return None
        return failures

    def check(self, key: str, max_failures: int, window_seconds: int) -> tuple[bool, int]:
        """Return `(allowed, retry_after_seconds)` for `key`."""
        now = time.monotonic()
        with self._lock:
            failures = self._prune(key, window_seconds, now)
            if failures is not None and len(failures) >= max_failures:
                return False, max(1, int(window_seconds - (now - failures[0])))
        return True, 0

    def record_failure(self, key: str) -> None:
        with self._lock:
            self._failures.setdefault(key, deque()).append(time.monotonic())

    def reset(self, key: str) -> None:
        with self._lock:
            self._failures.pop(key, None)

    def tracked_keys(self) -> int:
        """Number of keys currently holding failures."""
        with self._lock:
            return len(self._failures)
