"""FastAPI dependency injection for engine access."""

from typing import Optional

from ..engine import ReportedFrameRate, VoiceCommandDebouncer

# Global debouncer instance (set during app startup)
_debouncer_instance: Optional[VoiceCommandDebouncer] = None

# Global frame rate provider (set during app startup)
_frame_rate_instance: Optional[ReportedFrameRate] = None


def set_debouncer_instance(debouncer: Optional[VoiceCommandDebouncer]) -> None:
    """
    Set the global debouncer instance.

    This is called during application startup to make the engine
    available to all API routes.

    Args:
        debouncer: The VoiceCommandDebouncer instance
    """
    global _debouncer_instance
    _debouncer_instance = debouncer


def get_debouncer() -> VoiceCommandDebouncer:
    """
    Dependency to get the debouncer instance.

    Returns:
        VoiceCommandDebouncer instance

    Raises:
        RuntimeError: If the debouncer has not been set

    Example:
        ```python
        @router.get("/statistics")
        def statistics(debouncer: VoiceCommandDebouncer = Depends(get_debouncer)):
            return debouncer.get_statistics().to_dict()
        ```
    """
    if _debouncer_instance is None:
        raise RuntimeError("Debouncer instance not initialized")
    return _debouncer_instance


def set_frame_rate_instance(frame_rate: Optional[ReportedFrameRate]) -> None:
    """
    Set the global frame rate provider.

    Args:
        frame_rate: Provider the engine polls for the host frame rate
    """
    global _frame_rate_instance
    _frame_rate_instance = frame_rate


def get_frame_rate() -> ReportedFrameRate:
    """
    Dependency to get the frame rate provider.

    Raises:
        RuntimeError: If the provider has not been set
    """
    if _frame_rate_instance is None:
        raise RuntimeError("Frame rate provider not initialized")
    return _frame_rate_instance
