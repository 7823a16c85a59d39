"""Request pacing for the remote transport.

The Notion API allows an average of three requests per second per
integration.  Rather than sleeping ad hoc between calls, the client asks a
``RateLimiter`` for permission before every request; the limiter decides how
long to wait.  Clock and sleep are injectable so pacing can be tested
without real delays.
"""

import logging
import time
from typing import Callable, Protocol

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 0.35


class RateLimiter(Protocol):
    """Anything that can block until the next request may be sent."""

    def acquire(self) -> None: ...  # pragma: no cover


class FixedIntervalRateLimiter:
    """Enforce a minimum interval between consecutive requests.

    The first call never waits.  Each later call waits until *interval*
    seconds have passed since the previous call was granted.

    Args:
        interval: Minimum seconds between requests (0 disables pacing).
        clock: Monotonic clock returning seconds.
        sleep: Function used to wait.
    """

    def __init__(
        self,
        interval: float = DEFAULT_INTERVAL,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if interval < 0:
            raise ValueError("interval must be >= 0")
        self.interval = interval
        self._clock = clock
        self._sleep = sleep
        self._last: float | None = None

    def acquire(self) -> None:
        now = self._clock()
        if self._last is not None:
            wait = self._last + self.interval - now
            if wait > 0:
                logger.debug("Rate limiter waiting %.3fs", wait)
                self._sleep(wait)
                now = self._clock()
        self._last = now
