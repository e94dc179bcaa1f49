import logging
import threading
import time
from collections import deque
from typing import Callable, TypeVar

from .metrics import inc, observe


logger = logging.getLogger("leaderboard.rate_limit")

T = TypeVar("T")


class QuotaLimiter:
    """FIFO request queue with a fixed-window call quota.

    Tasks run one at a time in submission order. Once ``limit - headroom`` calls
    were made in the current window, the next task waits for the window to
    reset. Exceptions raised by a task propagate to its caller.
    """

    def __init__(
        self,
        limit: int = 100,
        window_sec: float = 15 * 60,
        headroom: int = 5,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if limit - headroom <= 0:
            raise ValueError("limit must exceed headroom")
        self.limit = limit
        self.window_sec = window_sec
        self.headroom = headroom
        self._clock = clock
        self._sleep = sleep
        self._cond = threading.Condition()
        self._queue: deque = deque()
        self._busy = False
        self.request_count = 0
        self.reset_at = clock() + window_sec

    @property
    def pending(self) -> int:
        with self._cond:
            return len(self._queue)

    def _wait_for_quota(self) -> None:
        now = self._clock()
        if now >= self.reset_at:
            self.request_count = 0
            self.reset_at = now + self.window_sec
        if self.request_count >= self.limit - self.headroom:
            wait = self.reset_at - now
            if wait > 0:
                logger.info("quota nearly exhausted (%s calls); waiting %.1fs", self.request_count, wait)
                inc("strava_quota_waits_total")
                observe("strava_quota_wait_seconds", wait)
                self._sleep(wait)
                self.request_count = 0
                self.reset_at = self._clock() + self.window_sec

    def execute(self, fn: Callable[..., T], *args, **kwargs) -> T:
        ticket = object()
        with self._cond:
            self._queue.append(ticket)
            while self._busy or self._queue[0] is not ticket:
                self._cond.wait()
            self._queue.popleft()
            self._busy = True
        try:
            self._wait_for_quota()
            self.request_count += 1
            inc("strava_requests_total")
            return fn(*args, **kwargs)
        finally:
            with self._cond:
                self._busy = False
                self._cond.notify_all()
