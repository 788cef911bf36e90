"""
Voice command engine.

Provides rate limiting, duplicate filtering, debouncing and adaptive delay
control for recognized voice commands.
"""

from .adaptive import AdaptiveController
from .debouncer import DebouncerOptions, VoiceCommandDebouncer
from .duplicate_filter import DuplicateFilter, calculate_similarity, levenshtein_distance
from .history import BoundedHistory
from .models import (
    CoalescePolicy,
    DebugEvent,
    ExecutionRecord,
    HandlerOutcome,
    PerformanceStats,
    RejectReason,
    Statistics,
    Status,
    VoiceCommand,
)
from .performance import PerformanceModeSwitch, ReportedFrameRate
from .rate_limiter import FixedWindowRateLimiter
from .scheduler import DebounceScheduler

__all__ = [
    "AdaptiveController",
    "BoundedHistory",
    "CoalescePolicy",
    "DebounceScheduler",
    "DebouncerOptions",
    "DebugEvent",
    "DuplicateFilter",
    "ExecutionRecord",
    "FixedWindowRateLimiter",
    "HandlerOutcome",
    "PerformanceModeSwitch",
    "PerformanceStats",
    "RejectReason",
    "ReportedFrameRate",
    "Statistics",
    "Status",
    "VoiceCommand",
    "VoiceCommandDebouncer",
    "calculate_similarity",
    "levenshtein_distance",
]
