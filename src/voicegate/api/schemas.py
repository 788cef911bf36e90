"""Pydantic schemas for API request and response validation."""

from typing import Any, Optional

from pydantic import BaseModel, Field


# ============================================================================
# Common/Shared Schemas
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")


# ============================================================================
# Statistics Schemas
# ============================================================================

class PerformanceStatsSchema(BaseModel):
    """Engine counters."""

    commands_received: int
    commands_processed: int
    commands_debounced: int
    commands_coalesced: int
    commands_filtered: int
    commands_rate_limited: int
    handler_errors: int
    total_processing_time_ms: float
    average_processing_time_ms: float


class AdaptiveStatsSchema(BaseModel):
    """Adaptive controller state."""

    mode: bool
    current_delay_ms: float
    average_accuracy: float
    error_rate: float
    average_gap_ms: Optional[float] = None
    samples: int


class RateLimitingSchema(BaseModel):
    """Counts in the current rate limiting windows."""

    commands_per_second: int
    commands_per_minute: int


class FilteringSchema(BaseModel):
    """Duplicate filter state."""

    recent_commands_count: int


class StatisticsResponse(BaseModel):
    """Response model for engine statistics."""

    performance: PerformanceStatsSchema
    adaptive: AdaptiveStatsSchema
    rate_limiting: RateLimitingSchema
    filtering: FilteringSchema
    performance_mode: bool


class StatusResponse(BaseModel):
    """Response model for engine status."""

    is_debouncing: bool = Field(..., description="Whether a command is waiting on the debounce timer")
    pending_text: Optional[str] = Field(None, description="Text of the pending command")
    last_command_time: Optional[float] = Field(
        None, description="Engine clock reading (ms) of the last execution"
    )
    current_delay_ms: float
    adaptive_mode: bool
    performance_mode: bool
    statistics: StatisticsResponse


# ============================================================================
# Command Schemas
# ============================================================================

class ProcessCommandRequest(BaseModel):
    """Request model for submitting a recognized voice command."""

    text: str = Field(..., max_length=1000, description="Recognized command text")
    confidence: Optional[float] = Field(
        None, ge=0.0, le=1.0, description="Recognizer confidence (0-1)"
    )
    context: Optional[Any] = Field(None, description="Opaque context passed to handlers")


class ProcessCommandResponse(BaseModel):
    """Response model for a submitted voice command."""

    accepted: bool = Field(..., description="Whether a handler accepted the command")
    status: StatusResponse


class ExecutionRecordSchema(BaseModel):
    """An executed command."""

    text: str
    confidence: Optional[float] = None
    timestamp: float = Field(..., description="Engine clock reading (ms) at execution")
    result: Optional[bool] = None


class HistoryResponse(BaseModel):
    """Response model for the executed-command history."""

    commands: list[ExecutionRecordSchema]
    count: int


# ============================================================================
# Control Schemas
# ============================================================================

class FrameRateRequest(BaseModel):
    """Request model for reporting the host frame rate."""

    fps: float = Field(..., ge=0, description="Current frames per second")


class FrameRateResponse(BaseModel):
    """Response model after a frame rate report."""

    fps: float
    performance_mode: bool


class ResetResponse(BaseModel):
    """Response model for an engine reset."""

    success: bool
    message: str


# ============================================================================
# Health Check Schemas
# ============================================================================

class HealthCheckResponse(BaseModel):
    """Response model for overall health check."""

    status: str = Field(..., description="Overall status (healthy/unhealthy)")
    uptime_seconds: float
    commands_received: int
    is_debouncing: bool
