"""
Adaptive debounce controller.

Watches recognition quality over the last few executed commands and
lengthens the debounce delay while recognition looks unreliable.
"""
import logging
from typing import Any, Callable, Optional

from .history import BoundedHistory
from .models import AdaptiveSnapshot, DebugEvent

logger = logging.getLogger(__name__)

DEFAULT_HISTORY_SIZE = 10
DEFAULT_CONFIDENCE = 0.5
MAX_DELAY_FACTOR = 3.0
FORCED_DELAY_FACTOR = 1.5

Notifier = Callable[[DebugEvent, dict[str, Any]], None]


class AdaptiveController:
    """
    Closed-loop controller for the debounce delay.

    Adaptive mode turns on when the rolling average confidence is low, the
    rolling error rate is high or commands arrive faster than a human would
    normally speak them. While on, the delay is scaled by a multiplier capped
    at three times the base delay.
    """

    def __init__(
        self,
        base_delay_ms: float,
        low_accuracy_threshold: float = 0.6,
        high_error_threshold: float = 0.3,
        fast_speech_threshold_ms: float = 200.0,
        history_size: int = DEFAULT_HISTORY_SIZE,
        notify: Optional[Notifier] = None,
    ):
        """
        Initialize the controller.

        Args:
            base_delay_ms: Debounce delay used outside adaptive mode
            low_accuracy_threshold: Average confidence below which adaptive mode turns on
            high_error_threshold: Error rate above which adaptive mode turns on
            fast_speech_threshold_ms: Average gap below which adaptive mode turns on
            history_size: Number of observations kept per history
            notify: Callback for mode transition events
        """
        self.base_delay_ms = base_delay_ms
        self.low_accuracy_threshold = low_accuracy_threshold
        self.high_error_threshold = high_error_threshold
        self.fast_speech_threshold_ms = fast_speech_threshold_ms
        self._notify = notify

        self._accuracy: BoundedHistory[float] = BoundedHistory(history_size)
        self._errors: BoundedHistory[int] = BoundedHistory(history_size)
        self._gaps: BoundedHistory[float] = BoundedHistory(history_size)

        self.adaptive_mode = False
        self.current_delay_ms = base_delay_ms

    @property
    def average_accuracy(self) -> float:
        return self._accuracy.mean() or 0.0

    @property
    def error_rate(self) -> float:
        return self._errors.mean() or 0.0

    @property
    def average_gap_ms(self) -> Optional[float]:
        return self._gaps.mean()

    def observe(
        self,
        confidence: Optional[float],
        success: bool,
        gap_ms: Optional[float],
    ) -> bool:
        """
        Record the outcome of an executed command and re-evaluate the mode.

        Args:
            confidence: Recognizer confidence (None counts as 0.5)
            success: Whether any handler accepted the command
            gap_ms: Time since the previous execution, None for the first one

        Returns:
            Whether adaptive mode is on after this observation
        """
        self._accuracy.push(DEFAULT_CONFIDENCE if confidence is None else confidence)
        self._errors.push(0 if success else 1)
        if gap_ms is not None:
            self._gaps.push(gap_ms)

        avg_accuracy = self.average_accuracy
        error_rate = self.error_rate
        avg_gap = self.average_gap_ms
        fast_speech = avg_gap is not None and avg_gap < self.fast_speech_threshold_ms

        should_enable = (
            avg_accuracy < self.low_accuracy_threshold
            or error_rate > self.high_error_threshold
            or fast_speech
        )

        if should_enable:
            multiplier = 1.0
            if avg_accuracy < 0.5:
                multiplier += 0.5
            if error_rate > 0.4:
                multiplier += 0.3
            if avg_gap is not None and avg_gap < 150:
                multiplier += 0.2
            self.current_delay_ms = min(
                self.base_delay_ms * multiplier,
                self.base_delay_ms * MAX_DELAY_FACTOR,
            )
            if not self.adaptive_mode:
                self.adaptive_mode = True
                self._transition(
                    DebugEvent.ADAPTIVE_MODE_ENABLED,
                    avg_accuracy=avg_accuracy,
                    error_rate=error_rate,
                    avg_gap=avg_gap,
                )
        elif self.adaptive_mode:
            self.adaptive_mode = False
            self.current_delay_ms = self.base_delay_ms
            self._transition(
                DebugEvent.ADAPTIVE_MODE_DISABLED,
                avg_accuracy=avg_accuracy,
                error_rate=error_rate,
                avg_gap=avg_gap,
            )

        return self.adaptive_mode

    def force_enable(self) -> None:
        """Turn adaptive mode on regardless of the observed history."""
        if self.adaptive_mode:
            return
        self.adaptive_mode = True
        self.current_delay_ms = self.base_delay_ms * FORCED_DELAY_FACTOR
        self._transition(DebugEvent.ADAPTIVE_MODE_ENABLED, forced=True)

    def set_base_delay(self, base_delay_ms: float) -> None:
        """Change the base delay; outside adaptive mode it takes effect at once."""
        self.base_delay_ms = base_delay_ms
        if not self.adaptive_mode:
            self.current_delay_ms = base_delay_ms

    def _transition(self, event: DebugEvent, **data: Any) -> None:
        logger.info(
            f"Adaptive voice debouncing {'enabled' if self.adaptive_mode else 'disabled'}",
            extra={"current_delay_ms": self.current_delay_ms},
        )
        if self._notify is not None:
            self._notify(event, {"current_delay_ms": self.current_delay_ms, **data})

    def reset(self) -> None:
        """Drop all history and return to the base delay."""
        self._accuracy.clear()
        self._errors.clear()
        self._gaps.clear()
        self.adaptive_mode = False
        self.current_delay_ms = self.base_delay_ms

    def snapshot(self) -> AdaptiveSnapshot:
        return AdaptiveSnapshot(
            mode=self.adaptive_mode,
            current_delay_ms=self.current_delay_ms,
            average_accuracy=self.average_accuracy,
            error_rate=self.error_rate,
            average_gap_ms=self.average_gap_ms,
            samples=len(self._accuracy),
        )
