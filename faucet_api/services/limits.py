import threading
import time
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Tuple

from faucet_api.utils.errors import DailyLimitExceeded


def seconds_until_next_utc_day(now: float) -> int:
    current = datetime.fromtimestamp(now, tz=timezone.utc)
    midnight = datetime(current.year, current.month, current.day, tzinfo=timezone.utc) + timedelta(days=1)
    return max(1, int((midnight - current).total_seconds()))


class DailyClaimLimiter:
    """
    Per-address claim counter for the current UTC day.

    This is a local limit layered on top of the contract cooldown. A limit of
    0 disables it. Counts live in process memory.
    """

    def __init__(self, limit: int, clock: Callable[[], float] = time.time):
        self.limit = limit
        self.clock = clock
        self._counts: Dict[Tuple[str, str], int] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.limit > 0

    def _key(self, address: str, now: float) -> Tuple[str, str]:
        day = datetime.fromtimestamp(now, tz=timezone.utc).strftime("%Y-%m-%d")
        return address.lower(), day

    def count(self, address: str) -> int:
        with self._lock:
            return self._counts.get(self._key(address, self.clock()), 0)

    def check(self, address: str) -> None:
        if not self.enabled:
            return
        now = self.clock()
        with self._lock:
            used = self._counts.get(self._key(address, now), 0)
        if used >= self.limit:
            raise DailyLimitExceeded(seconds_until_next_utc_day(now))

    def record(self, address: str) -> None:
        if not self.enabled:
            return
        now = self.clock()
        key = self._key(address, now)
        with self._lock:
            # drop counters from previous days
            for stale in [k for k in self._counts if k[1] != key[1]]:
                del self._counts[stale]
            self._counts[key] = self._counts.get(key, 0) + 1
