"""Health check endpoints."""

import time

from fastapi import APIRouter, Depends

from ...engine import VoiceCommandDebouncer
from ..dependencies import get_debouncer
from ..schemas import HealthCheckResponse

router = APIRouter()

# Track application start time
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthCheckResponse,
    summary="Overall health check",
    description="Check that the engine is running",
)
async def health_check(
    debouncer: VoiceCommandDebouncer = Depends(get_debouncer),
) -> HealthCheckResponse:
    """
    Get overall application health status.

    Returns:
        Health check response with uptime and intake counters
    """
    status = debouncer.get_status()
    return HealthCheckResponse(
        status="healthy",
        uptime_seconds=time.time() - _start_time,
        commands_received=status.statistics.performance.commands_received,
        is_debouncing=status.is_debouncing,
    )
