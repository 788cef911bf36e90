"""Voice command debouncing and rate-limiting service."""

__version__ = "0.1.0"
