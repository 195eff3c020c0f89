"""Time-window suppression of repeated UI triggers."""

import time
from collections.abc import Callable
from dataclasses import dataclass


@dataclass
class TriggerCooldown:
    """Suppress re-activation of the same control within a fixed window."""

    window_seconds: float
    _clock: Callable[[], float]
    _last_fired: dict[str, float]

    def __init__(
        self,
        window_seconds: float = 0.5,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.window_seconds = window_seconds
        self._clock = clock
        self._last_fired = {}

    def allow(self, control: str) -> bool:
        """Record an activation and return false when it falls inside the window."""
        now = self._clock()
        last = self._last_fired.get(control)
        if last is not None and now - last < self.window_seconds:
            return False
        self._last_fired[control] = now
        return True

    def forget(self, prefix: str) -> None:
        """Drop timestamps for controls whose key starts with the prefix."""
        for key in [key for key in self._last_fired if key.startswith(prefix)]:
            self._last_fired.pop(key, None)
