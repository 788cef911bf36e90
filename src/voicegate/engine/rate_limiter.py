"""
Fixed window rate limiter for voice command intake.
"""
from typing import Optional

SECOND_MS = 1000.0
MINUTE_MS = 60000.0


class FixedWindowRateLimiter:
    """
    Fixed window rate limiter with a per-second and a per-minute window.

    Each window keeps a counter that is reset to zero (not decremented) once
    the window length has elapsed. Every call counts against both windows,
    including calls that end up rejected, so a flood keeps consuming quota.
    """

    def __init__(
        self,
        max_per_second: int,
        max_per_minute: int,
        enabled: bool = True,
    ):
        """
        Initialize the rate limiter.

        Args:
            max_per_second: Commands allowed per one-second window
            max_per_minute: Commands allowed per one-minute window
            enabled: Whether rate limiting is enabled
        """
        self.max_per_second = max_per_second
        self.max_per_minute = max_per_minute
        self.enabled = enabled
        self.reset()

    def reset(self) -> None:
        """Clear both windows."""
        self._second_count = 0
        self._minute_count = 0
        self._second_start: Optional[float] = None
        self._minute_start: Optional[float] = None

    def _roll_windows(self, now: float) -> None:
        if self._second_start is None or now - self._second_start >= SECOND_MS:
            self._second_count = 0
            self._second_start = now

        if self._minute_start is None or now - self._minute_start >= MINUTE_MS:
            self._minute_count = 0
            self._minute_start = now

    def accept(self, now: float) -> bool:
        """
        Count a command and decide whether it fits the budget.

        Args:
            now: Current time in milliseconds

        Returns:
            True if the command is within both limits, False otherwise
        """
        if not self.enabled:
            return True

        self._roll_windows(now)
        self._second_count += 1
        self._minute_count += 1

        return not (
            self._second_count > self.max_per_second
            or self._minute_count > self.max_per_minute
        )

    @property
    def per_second_count(self) -> int:
        """Commands counted in the current one-second window."""
        return self._second_count

    @property
    def per_minute_count(self) -> int:
        """Commands counted in the current one-minute window."""
        return self._minute_count
