"""
Data models for the voice command engine.
"""
import asyncio
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional


class DebugEvent(str, Enum):
    """Events emitted on the debug channel."""
    COMMAND_RATE_LIMITED = "command_rate_limited"
    COMMAND_DEBOUNCED = "command_debounced"
    COMMAND_FILTERED = "command_filtered"
    COMMAND_COALESCED = "command_coalesced"
    COMMAND_EXECUTED = "command_executed"
    COMMAND_HANDLER_FAILED = "command_handler_failed"
    ADAPTIVE_MODE_ENABLED = "adaptive_mode_enabled"
    ADAPTIVE_MODE_DISABLED = "adaptive_mode_disabled"
    PERFORMANCE_MODE_ENABLED = "performance_mode_enabled"
    PERFORMANCE_MODE_DISABLED = "performance_mode_disabled"


class CoalescePolicy(str, Enum):
    """What happens to a caller whose pending command gets replaced."""
    SHARE_RESULT = "share_result"  # Resolve with the final command's outcome
    RESOLVE_FALSE = "resolve_false"  # Resolve with False at replacement time


class RejectReason(str, Enum):
    """Reasons a command is not executed."""
    RATE_LIMIT = "rate_limit"
    MIN_INTERVAL = "min_interval"
    DUPLICATE = "duplicate"
    DEBOUNCE_TIMER = "debounce_timer"


@dataclass(frozen=True)
class VoiceCommand:
    """A recognized voice command."""

    text: str
    confidence: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {"text": self.text, "confidence": self.confidence}


@dataclass
class PendingSlot:
    """The single command waiting on the debounce timer."""

    command: VoiceCommand
    context: Any
    scheduled_at: float
    waiters: list[asyncio.Future] = field(default_factory=list)


@dataclass
class RecentCommandEntry:
    """A command text remembered for duplicate detection."""

    normalized_text: str
    timestamp: float
    confidence: Optional[float] = None


@dataclass
class HandlerOutcome:
    """Result of invoking one registered handler."""

    handler: str
    result: bool
    error: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def to_dict(self) -> dict[str, Any]:
        result = {"handler": self.handler, "result": self.result}
        if self.error:
            result["error"] = self.error
        return result


@dataclass
class ExecutionRecord:
    """An entry in the executed-command history."""

    command: VoiceCommand
    context: Any
    timestamp: float
    result: Optional[bool] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.command.text,
            "confidence": self.command.confidence,
            "timestamp": self.timestamp,
            "result": self.result,
        }


@dataclass
class PerformanceStats:
    """Counters describing what the engine did with incoming commands."""

    commands_received: int = 0
    commands_processed: int = 0
    commands_debounced: int = 0
    commands_coalesced: int = 0
    commands_filtered: int = 0
    commands_rate_limited: int = 0
    handler_errors: int = 0
    total_processing_time_ms: float = 0.0
    average_processing_time_ms: float = 0.0

    def record_processing_time(self, elapsed_ms: float) -> None:
        """Accumulate processing time for one executed command."""
        self.total_processing_time_ms += elapsed_ms
        if self.commands_processed > 0:
            self.average_processing_time_ms = (
                self.total_processing_time_ms / self.commands_processed
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "commands_received": self.commands_received,
            "commands_processed": self.commands_processed,
            "commands_debounced": self.commands_debounced,
            "commands_coalesced": self.commands_coalesced,
            "commands_filtered": self.commands_filtered,
            "commands_rate_limited": self.commands_rate_limited,
            "handler_errors": self.handler_errors,
            "total_processing_time_ms": round(self.total_processing_time_ms, 3),
            "average_processing_time_ms": round(self.average_processing_time_ms, 3),
        }


@dataclass
class AdaptiveSnapshot:
    """Point-in-time view of the adaptive controller."""

    mode: bool
    current_delay_ms: float
    average_accuracy: float
    error_rate: float
    average_gap_ms: Optional[float]
    samples: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode,
            "current_delay_ms": self.current_delay_ms,
            "average_accuracy": round(self.average_accuracy, 4),
            "error_rate": round(self.error_rate, 4),
            "average_gap_ms": (
                round(self.average_gap_ms, 2) if self.average_gap_ms is not None else None
            ),
            "samples": self.samples,
        }


@dataclass
class Statistics:
    """Snapshot returned by ``VoiceCommandDebouncer.get_statistics``."""

    performance: PerformanceStats
    adaptive: AdaptiveSnapshot
    commands_per_second: int
    commands_per_minute: int
    recent_commands_count: int
    performance_mode: bool

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "performance": self.performance.to_dict(),
            "adaptive": self.adaptive.to_dict(),
            "rate_limiting": {
                "commands_per_second": self.commands_per_second,
                "commands_per_minute": self.commands_per_minute,
            },
            "filtering": {
                "recent_commands_count": self.recent_commands_count,
            },
            "performance_mode": self.performance_mode,
        }


@dataclass
class Status:
    """Snapshot returned by ``VoiceCommandDebouncer.get_status``."""

    is_debouncing: bool
    pending_text: Optional[str]
    last_command_time: Optional[float]
    current_delay_ms: float
    adaptive_mode: bool
    performance_mode: bool
    statistics: Statistics

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            "is_debouncing": self.is_debouncing,
            "pending_text": self.pending_text,
            "last_command_time": self.last_command_time,
            "current_delay_ms": self.current_delay_ms,
            "adaptive_mode": self.adaptive_mode,
            "performance_mode": self.performance_mode,
            "statistics": self.statistics.to_dict(),
        }
