"""Configuration module for Voicegate.

Usage:
    from voicegate.config import Config
    from voicegate.config.base import EnvVars, get_config_value

Environment variables use the VOICEGATE_ prefix.
"""

from .base import (
    ENV_PREFIX,
    EnvVars,
    get_bool_config_value,
    get_config_value,
    get_env_value,
)
from .settings import Config

__all__ = [
    "Config",
    "EnvVars",
    "get_config_value",
    "get_env_value",
    "get_bool_config_value",
    "ENV_PREFIX",
]
