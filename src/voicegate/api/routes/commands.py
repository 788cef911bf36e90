"""Command endpoints for submitting voice commands and reading the history."""

import logging

from fastapi import APIRouter, Depends, Query

from ...engine import VoiceCommand, VoiceCommandDebouncer
from ..dependencies import get_debouncer
from ..schemas import (
    ExecutionRecordSchema,
    HistoryResponse,
    ProcessCommandRequest,
    ProcessCommandResponse,
    StatusResponse,
)

router = APIRouter()
logger = logging.getLogger(__name__)


@router.post(
    "/commands",
    response_model=ProcessCommandResponse,
    summary="Submit a voice command",
    description=(
        "Run a recognized voice command through rate limiting, duplicate filtering "
        "and debouncing. Waits for a debounced command to fire."
    ),
)
async def process_command(
    request: ProcessCommandRequest,
    debouncer: VoiceCommandDebouncer = Depends(get_debouncer),
) -> ProcessCommandResponse:
    """
    Submit a recognized voice command.

    Args:
        request: Command text, confidence and context
        debouncer: Engine instance

    Returns:
        Whether a handler accepted the command, plus the engine status
    """
    command = VoiceCommand(text=request.text, confidence=request.confidence)
    accepted = await debouncer.process_command(command, request.context)

    logger.info(
        f"Voice command '{command.text}' processed (accepted={accepted})",
        extra={"accepted": accepted},
    )

    return ProcessCommandResponse(
        accepted=accepted,
        status=StatusResponse(**debouncer.get_status().to_dict()),
    )


@router.get(
    "/history",
    response_model=HistoryResponse,
    summary="Executed command history",
    description="List executed commands, oldest first",
)
async def command_history(
    limit: int = Query(100, ge=1, le=100, description="Number of most recent commands to return"),
    debouncer: VoiceCommandDebouncer = Depends(get_debouncer),
) -> HistoryResponse:
    records = debouncer.get_command_history(limit)
    return HistoryResponse(
        commands=[ExecutionRecordSchema(**record.to_dict()) for record in records],
        count=len(records),
    )
