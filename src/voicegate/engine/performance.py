"""
Performance mode switch driven by an externally supplied frame rate.
"""
import logging
from typing import Any, Callable, Optional

from .models import DebugEvent

logger = logging.getLogger(__name__)

DEFAULT_FPS = 60.0

FrameRateProvider = Callable[[], Optional[float]]
Notifier = Callable[[DebugEvent, dict[str, Any]], None]


class ReportedFrameRate:
    """
    Frame rate provider backed by the last value a client reported.

    Instances are callable so they can be passed wherever a
    ``FrameRateProvider`` is expected.
    """

    def __init__(self, fps: Optional[float] = None):
        self.fps = fps

    def report(self, fps: float) -> None:
        self.fps = fps

    def __call__(self) -> Optional[float]:
        return self.fps


class PerformanceModeSwitch:
    """
    Forces heavier debouncing while the host is struggling.

    Performance mode is on while the frame rate is below the threshold.
    Turning it on manually pins it: readings are ignored until it is turned
    off manually or the switch is reset.
    """

    def __init__(
        self,
        threshold_fps: float = 30.0,
        fps_provider: Optional[FrameRateProvider] = None,
        enabled: bool = True,
        notify: Optional[Notifier] = None,
    ):
        """
        Initialize the switch.

        Args:
            threshold_fps: Frame rate below which performance mode turns on
            fps_provider: Callable returning the current frame rate
            enabled: Whether automatic switching is enabled
            notify: Callback for mode transition events
        """
        self.threshold_fps = threshold_fps
        self.fps_provider = fps_provider
        self.enabled = enabled
        self._notify = notify
        self.active = False
        self.manual_override = False

    def refresh(self, current_fps: Optional[float]) -> bool:
        """
        Compare a frame rate reading against the threshold.

        Args:
            current_fps: Current frame rate (None counts as 60)

        Returns:
            Whether performance mode is on
        """
        if not self.enabled or self.manual_override:
            return self.active

        fps = DEFAULT_FPS if current_fps is None else current_fps
        self.force(fps < self.threshold_fps, fps=fps)
        return self.active

    def poll(self) -> bool:
        """Read the provider (if any) and refresh."""
        if self.fps_provider is None:
            return self.active
        try:
            fps = self.fps_provider()
        except Exception as e:
            logger.error(f"Frame rate provider failed: {e}", exc_info=True)
            return self.active
        return self.refresh(fps)

    def force(self, active: bool, **data: Any) -> None:
        """
        Set the mode, notifying only when it actually changes.

        A ``reason="manual"`` call pins the mode while turning it on and
        hands control back to the frame rate while turning it off.
        """
        if data.get("reason") == "manual":
            self.manual_override = active

        if active == self.active:
            return
        self.active = active

        if active:
            logger.info("Voice command performance mode enabled")
            event = DebugEvent.PERFORMANCE_MODE_ENABLED
            reason = "low_fps"
        else:
            logger.info("Voice command performance mode disabled")
            event = DebugEvent.PERFORMANCE_MODE_DISABLED
            reason = "fps_improved"

        if self._notify is not None:
            self._notify(event, {"reason": data.pop("reason", reason), **data})

    def reset(self) -> None:
        self.active = False
        self.manual_override = False
