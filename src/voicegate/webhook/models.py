"""Pydantic models for webhook payload structures."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field


class VoiceCommandData(BaseModel):
    """Executed voice command as delivered to the webhook."""

    text: str
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    context: Any = None


class WebhookPayload(BaseModel):
    """Webhook payload structure sent to external URLs."""

    event_type: str
    timestamp: datetime
    data: VoiceCommandData
