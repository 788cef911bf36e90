"""Shared configuration utilities and constants.

This module provides the foundation for consistent configuration handling
across all commands (server, replay).
"""

import os
from typing import Any, Optional, TypeVar

# Type variable for config values
T = TypeVar("T")

# === Environment Variable Prefix ===

ENV_PREFIX = "VOICEGATE_"


class EnvVars:
    """Centralized environment variable names for consistent access."""

    # === Debouncing ===
    DEBOUNCE_DELAY_MS = f"{ENV_PREFIX}DEBOUNCE_DELAY_MS"
    MIN_COMMAND_INTERVAL_MS = f"{ENV_PREFIX}MIN_COMMAND_INTERVAL_MS"
    COALESCE_POLICY = f"{ENV_PREFIX}COALESCE_POLICY"

    # === Rate Limiting ===
    RATE_LIMIT_ENABLED = f"{ENV_PREFIX}RATE_LIMIT_ENABLED"
    MAX_COMMANDS_PER_SECOND = f"{ENV_PREFIX}MAX_COMMANDS_PER_SECOND"
    MAX_COMMANDS_PER_MINUTE = f"{ENV_PREFIX}MAX_COMMANDS_PER_MINUTE"

    # === Filtering ===
    COMMAND_FILTERING_ENABLED = f"{ENV_PREFIX}COMMAND_FILTERING_ENABLED"
    DUPLICATE_COMMAND_WINDOW_MS = f"{ENV_PREFIX}DUPLICATE_COMMAND_WINDOW_MS"
    SIMILARITY_THRESHOLD = f"{ENV_PREFIX}SIMILARITY_THRESHOLD"

    # === Adaptive Debouncing ===
    ADAPTIVE_DEBOUNCING_ENABLED = f"{ENV_PREFIX}ADAPTIVE_DEBOUNCING_ENABLED"
    LOW_ACCURACY_THRESHOLD = f"{ENV_PREFIX}LOW_ACCURACY_THRESHOLD"
    HIGH_ERROR_THRESHOLD = f"{ENV_PREFIX}HIGH_ERROR_THRESHOLD"
    FAST_SPEECH_THRESHOLD_MS = f"{ENV_PREFIX}FAST_SPEECH_THRESHOLD_MS"

    # === Performance Mode ===
    PERFORMANCE_MODE_ENABLED = f"{ENV_PREFIX}PERFORMANCE_MODE_ENABLED"
    PERFORMANCE_MODE_THRESHOLD = f"{ENV_PREFIX}PERFORMANCE_MODE_THRESHOLD"

    # === API ===
    API_HOST = f"{ENV_PREFIX}API_HOST"
    API_PORT = f"{ENV_PREFIX}API_PORT"
    API_TITLE = f"{ENV_PREFIX}API_TITLE"
    API_VERSION = f"{ENV_PREFIX}API_VERSION"
    API_BEARER_TOKEN = f"{ENV_PREFIX}API_BEARER_TOKEN"

    # === Metrics ===
    METRICS_ENABLED = f"{ENV_PREFIX}METRICS_ENABLED"

    # === Logging ===
    LOG_LEVEL = f"{ENV_PREFIX}LOG_LEVEL"
    LOG_FORMAT = f"{ENV_PREFIX}LOG_FORMAT"

    # === Webhook ===
    WEBHOOK_URL = f"{ENV_PREFIX}WEBHOOK_URL"
    WEBHOOK_TIMEOUT = f"{ENV_PREFIX}WEBHOOK_TIMEOUT"
    WEBHOOK_RETRY_COUNT = f"{ENV_PREFIX}WEBHOOK_RETRY_COUNT"
    WEBHOOK_JSONPATH = f"{ENV_PREFIX}WEBHOOK_JSONPATH"


def get_env_value(
    env_var: str,
    default: T,
    type_converter: type = str,
) -> T:
    """
    Get a value from an environment variable with type conversion.

    Args:
        env_var: Environment variable name
        default: Default value if not found
        type_converter: Type to convert to (str, int, float, bool)

    Returns:
        The environment value converted to the specified type, or the default
    """
    env_value = os.getenv(env_var)

    if env_value is not None:
        if type_converter == bool:
            return env_value.lower() in ("true", "1", "yes", "on")  # type: ignore
        return type_converter(env_value)

    return default


def get_config_value(
    cli_arg: Optional[Any],
    env_var: str,
    default: T,
    type_converter: type = str,
) -> T:
    """
    Get a configuration value with priority: CLI > Environment > Default.

    Args:
        cli_arg: CLI argument value (highest priority)
        env_var: Environment variable name
        default: Default value (lowest priority)
        type_converter: Type to convert to (str, int, float, bool)

    Returns:
        The resolved configuration value
    """
    if cli_arg is not None:
        return cli_arg

    return get_env_value(env_var, default, type_converter)


def get_bool_config_value(
    cli_flag: Optional[bool],
    env_var: str,
    default: bool,
) -> bool:
    """
    Get a boolean configuration value.

    Handles click's ``--feature/--no-feature`` switches, which yield None
    when neither flag was given.

    Args:
        cli_flag: CLI switch value (None when not given)
        env_var: Environment variable name
        default: Default value

    Returns:
        The resolved boolean value
    """
    if cli_flag is not None:
        return bool(cli_flag)

    return get_env_value(env_var, default, bool)
