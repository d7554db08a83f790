from __future__ import annotations

import threading


class CommitGuard:
    """Decides, once, whether a bounded spawn may commit.

    The worker calls ``begin_commit`` right before committing; the waiting
    side calls ``expire`` when its timeout runs out. Whichever comes first
    wins: an expired spawn must roll back, and a spawn already committing
    cannot be expired.
    """

    def __init__(self, timeout: float) -> None:
        self.timeout = timeout
        self._lock = threading.Lock()
        self._state = "running"

    def begin_commit(self) -> bool:
        with self._lock:
            if self._state == "expired":
                return False
            self._state = "committing"
            return True

    def expire(self) -> bool:
        with self._lock:
            if self._state == "committing":
                return False
            self._state = "expired"
            return True
