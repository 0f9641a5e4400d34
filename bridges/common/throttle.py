"""
Throttle

Fixed-interval gate for rate-limited API loops (Notion uploads,
Discord message deletion). Consecutive calls are spaced at least
``interval`` seconds apart; the first call is never delayed.
"""

import time
from typing import Any, Callable, Optional


class Throttle:
    """Space out calls to a rate-limited API"""

    def __init__(
        self,
        interval: float,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Any] = time.sleep,
    ):
        if interval < 0:
            raise ValueError(f"interval must be >= 0, got {interval}")
        self._interval = interval
        self._clock = clock
        self._sleep = sleep
        self._last_call: Optional[float] = None

    @property
    def interval(self) -> float:
        return self._interval

    def wait(self) -> float:
        """
        Block until the next call is allowed.

        Returns:
            Seconds slept
        """
        slept = 0.0
        if self._last_call is not None:
            remaining = self._interval - (self._clock() - self._last_call)
            if remaining > 0:
                self._sleep(remaining)
                slept = remaining
        self._last_call = self._clock()
        return slept

    def __call__(self, fn: Callable[..., Any], *args, **kwargs) -> Any:
        self.wait()
        return fn(*args, **kwargs)
