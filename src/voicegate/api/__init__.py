"""HTTP API for submitting voice commands and inspecting the engine."""

from .app import create_app

__all__ = ["create_app"]
