"""
Token bucket used to pace calls to the geocoding provider.
"""
from typing import Callable
import time


class TokenBucket:
    """
    Allows ``rate`` acquisitions per second with bursts of up to ``capacity``.

    ``acquire()`` blocks (through the injected ``sleep``) until a token is
    available and returns the number of seconds it waited. Clock and sleep
    are injectable so pacing can be tested without real delays.
    """

    def __init__(
        self,
        rate: float,
        capacity: float = 1,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if rate <= 0:
            raise ValueError("rate must be positive")
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.rate = rate
        self.capacity = capacity
        self._clock = clock
        self._sleep = sleep
        self._tokens = float(capacity)
        self._last = clock()

    def acquire(self) -> float:
        now = self._clock()
        self._tokens = min(self.capacity, self._tokens + (now - self._last) * self.rate)
        self._last = now

        if self._tokens >= 1:
            self._tokens -= 1
            return 0.0

        wait = (1 - self._tokens) / self.rate
        self._sleep(wait)
        # the token that accrued while sleeping is spent right away
        self._last = now + wait
        self._tokens = 0.0
        return wait
