"""Webhook module for forwarding executed voice commands over HTTP."""

from .handler import WebhookForwarder
from .models import VoiceCommandData, WebhookPayload

__all__ = [
    "WebhookForwarder",
    "WebhookPayload",
    "VoiceCommandData",
]
