"""Rate limiting implementation for GitHub API calls."""

import threading
import time
from typing import Callable


class RateLimiter:
    """Token bucket rate limiter for API requests."""

    def __init__(
        self,
        requests_per_second: float = 10.0,
        clock: Callable[[], float] = time.monotonic,
        sleeper: Callable[[float], None] = time.sleep,
    ):
        """Initialize rate limiter.

        Args:
            requests_per_second: Maximum requests per second allowed
            clock: Monotonic time source
            sleeper: Sleep function
        """
        self.requests_per_second = requests_per_second
        self.tokens = requests_per_second
        self._clock = clock
        self._sleeper = sleeper
        self.last_update = clock()
        self._lock = threading.Lock()

    def _refill(self) -> None:
        now = self._clock()
        elapsed = now - self.last_update
        self.tokens = min(
            self.requests_per_second, self.tokens + elapsed * self.requests_per_second
        )
        self.last_update = now

    def acquire(self) -> None:
        """Acquire a token for making a request.

        Blocks until a token is available.
        """
        with self._lock:
            self._refill()

            if self.tokens >= 1:
                self.tokens -= 1
                return

            sleep_time = (1 - self.tokens) / self.requests_per_second
            self._sleeper(sleep_time)
            self.tokens = 0
            self.last_update = self._clock()

    def time_until_next_request(self) -> float:
        """Get time until next request can be made.

        Returns:
            Seconds until next request is allowed
        """
        with self._lock:
            self._refill()
            if self.tokens >= 1:
                return 0.0
            return (1 - self.tokens) / self.requests_per_second
