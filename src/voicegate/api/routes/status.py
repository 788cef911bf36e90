"""Status, statistics and control endpoints."""

import logging

from fastapi import APIRouter, Depends

from ...engine import ReportedFrameRate, VoiceCommandDebouncer
from ..dependencies import get_debouncer, get_frame_rate
from ..schemas import (
    FrameRateRequest,
    FrameRateResponse,
    ResetResponse,
    StatisticsResponse,
    StatusResponse,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get(
    "/statistics",
    response_model=StatisticsResponse,
    summary="Engine statistics",
    description="Counters, adaptive controller state and rate limiting windows",
)
async def get_statistics(
    debouncer: VoiceCommandDebouncer = Depends(get_debouncer),
) -> StatisticsResponse:
    return StatisticsResponse(**debouncer.get_statistics().to_dict())


@router.get(
    "/status",
    response_model=StatusResponse,
    summary="Engine status",
    description="Pending command, current delay and active modes",
)
async def get_status(
    debouncer: VoiceCommandDebouncer = Depends(get_debouncer),
) -> StatusResponse:
    return StatusResponse(**debouncer.get_status().to_dict())


@router.post(
    "/frame_rate",
    response_model=FrameRateResponse,
    summary="Report host frame rate",
    description="Update the frame rate the engine uses to switch performance mode",
)
async def report_frame_rate(
    request: FrameRateRequest,
    debouncer: VoiceCommandDebouncer = Depends(get_debouncer),
    frame_rate: ReportedFrameRate = Depends(get_frame_rate),
) -> FrameRateResponse:
    """
    Report the host frame rate.

    Args:
        request: Current frames per second
        debouncer: Engine instance
        frame_rate: Provider polled by the engine

    Returns:
        The reported frame rate and resulting performance mode
    """
    frame_rate.report(request.fps)
    performance_mode = debouncer.check_performance_mode()
    return FrameRateResponse(fps=request.fps, performance_mode=performance_mode)


@router.post(
    "/reset",
    response_model=ResetResponse,
    summary="Reset the engine",
    description="Clear counters, history and any pending command",
)
async def reset_engine(
    debouncer: VoiceCommandDebouncer = Depends(get_debouncer),
) -> ResetResponse:
    debouncer.reset()
    logger.info("Engine reset via API")
    return ResetResponse(success=True, message="Engine reset")
