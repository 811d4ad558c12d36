import threading
import time
from collections import OrderedDict
from typing import Callable, Dict

from ...application.ports.rate_limiter import RateLimiter


class InMemoryRateLimiter(RateLimiter):
    """Fixed-window counters held in process memory.

    A key's window opens on its first request and lasts ``window_seconds``.
    A request arriving at exactly ``window_start + window_seconds`` opens a new
    window. The store keeps at most ``max_keys`` windows and evicts the least
    recently touched key when full.
    """

    def __init__(self, max_keys: int = 10000, clock: Callable[[], float] = time.monotonic) -> None:
        self._store: "OrderedDict[str, Dict[str, float]]" = OrderedDict()
        self._max_keys = max_keys
        self._clock = clock
        # No await happens while held, so a thread lock also serializes tasks
        self._lock = threading.Lock()

    async def allow(self, key: str, max_requests: int, window_seconds: int) -> bool:
        with self._lock:
            now = self._clock()
            rec = self._store.get(key)
            if rec is None or now - rec["start"] >= window_seconds:
                rec = {"start": now, "count": 0}
                self._store[key] = rec
            self._store.move_to_end(key)
            while len(self._store) > self._max_keys:
                self._store.popitem(last=False)
            if rec["count"] >= max_requests:
                return False
            rec["count"] += 1
            return True

    def __len__(self) -> int:
        return len(self._store)
