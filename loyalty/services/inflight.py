# loyalty/services/inflight.py
import threading
from contextlib import asynccontextmanager
from typing import AsyncIterator, List, Set


class InFlightGuard:
    """
    Order numbers currently awaiting an accrual answer.

    try_acquire is an atomic check-and-insert, so two overlapping passes (or a
    pass and a manual trigger) never query the same order at once. The set is
    guarded by a threading.Lock so it also holds across threads.
    """

    def __init__(self) -> None:
        self._numbers: Set[str] = set()
        self._lock = threading.Lock()

    def try_acquire(self, number: str) -> bool:
        with self._lock:
            if number in self._numbers:
                return False
            self._numbers.add(number)
            return True

    def release(self, number: str) -> None:
        with self._lock:
            self._numbers.discard(number)

    @asynccontextmanager
    async def acquired(self, number: str) -> AsyncIterator[bool]:
        """Yield whether the number was acquired; release on exit, cancellation included."""
        ok = self.try_acquire(number)
        try:
            yield ok
        finally:
            if ok:
                self.release(number)

    def snapshot(self) -> List[str]:
        with self._lock:
            return sorted(self._numbers)

    def __contains__(self, number: object) -> bool:
        with self._lock:
            return number in self._numbers

    def __len__(self) -> int:
        with self._lock:
            return len(self._numbers)
