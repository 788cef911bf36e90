"""Configuration management with CLI args, environment variables, and defaults."""

from dataclasses import dataclass
from typing import Optional

from ..engine.debouncer import DebouncerOptions
from ..engine.models import CoalescePolicy
from .base import EnvVars, get_bool_config_value, get_config_value


@dataclass
class Config:
    """Application configuration."""

    # === Debouncing ===
    debounce_delay_ms: float = 1000.0
    min_command_interval_ms: float = 500.0
    coalesce_policy: str = "share_result"  # share_result|resolve_false

    # === Rate Limiting ===
    rate_limit_enabled: bool = True
    max_commands_per_second: int = 3
    max_commands_per_minute: int = 30

    # === Filtering ===
    command_filtering_enabled: bool = True
    duplicate_command_window_ms: float = 2000.0
    similarity_threshold: float = 0.8

    # === Adaptive Debouncing ===
    adaptive_debouncing_enabled: bool = True
    low_accuracy_threshold: float = 0.6
    high_error_threshold: float = 0.3
    fast_speech_threshold_ms: float = 200.0

    # === Performance Mode ===
    performance_mode_enabled: bool = True
    performance_mode_threshold: float = 30.0

    # === API ===
    api_host: str = "0.0.0.0"
    api_port: int = 8000
    api_title: str = "Voicegate API"
    api_version: str = "1.0.0"
    api_bearer_token: Optional[str] = None

    # === Prometheus ===
    metrics_enabled: bool = True

    # === Logging ===
    log_level: str = "INFO"
    log_format: str = "json"  # json|text

    # === Webhook ===
    webhook_url: Optional[str] = None
    webhook_timeout: int = 5
    webhook_retry_count: int = 3
    webhook_jsonpath: str = "$"

    def __post_init__(self):
        # Raises ValueError on an unknown policy
        CoalescePolicy(self.coalesce_policy)

    @classmethod
    def from_cli_and_env(cls, cli_args: Optional[dict] = None) -> "Config":
        """
        Load configuration from CLI arguments, environment variables, and defaults.

        Priority: CLI args > Environment variables > Defaults

        Args:
            cli_args: Dictionary of CLI option values (None values are ignored)

        Returns:
            Config instance
        """
        args = cli_args or {}
        defaults = cls()

        return cls(
            debounce_delay_ms=get_config_value(
                args.get("debounce_delay_ms"), EnvVars.DEBOUNCE_DELAY_MS,
                defaults.debounce_delay_ms, float,
            ),
            min_command_interval_ms=get_config_value(
                args.get("min_command_interval_ms"), EnvVars.MIN_COMMAND_INTERVAL_MS,
                defaults.min_command_interval_ms, float,
            ),
            coalesce_policy=get_config_value(
                args.get("coalesce_policy"), EnvVars.COALESCE_POLICY,
                defaults.coalesce_policy,
            ),
            rate_limit_enabled=get_bool_config_value(
                args.get("rate_limit"), EnvVars.RATE_LIMIT_ENABLED,
                defaults.rate_limit_enabled,
            ),
            max_commands_per_second=get_config_value(
                args.get("max_commands_per_second"), EnvVars.MAX_COMMANDS_PER_SECOND,
                defaults.max_commands_per_second, int,
            ),
            max_commands_per_minute=get_config_value(
                args.get("max_commands_per_minute"), EnvVars.MAX_COMMANDS_PER_MINUTE,
                defaults.max_commands_per_minute, int,
            ),
            command_filtering_enabled=get_bool_config_value(
                args.get("command_filtering"), EnvVars.COMMAND_FILTERING_ENABLED,
                defaults.command_filtering_enabled,
            ),
            duplicate_command_window_ms=get_config_value(
                args.get("duplicate_command_window_ms"), EnvVars.DUPLICATE_COMMAND_WINDOW_MS,
                defaults.duplicate_command_window_ms, float,
            ),
            similarity_threshold=get_config_value(
                args.get("similarity_threshold"), EnvVars.SIMILARITY_THRESHOLD,
                defaults.similarity_threshold, float,
            ),
            adaptive_debouncing_enabled=get_bool_config_value(
                args.get("adaptive"), EnvVars.ADAPTIVE_DEBOUNCING_ENABLED,
                defaults.adaptive_debouncing_enabled,
            ),
            low_accuracy_threshold=get_config_value(
                args.get("low_accuracy_threshold"), EnvVars.LOW_ACCURACY_THRESHOLD,
                defaults.low_accuracy_threshold, float,
            ),
            high_error_threshold=get_config_value(
                args.get("high_error_threshold"), EnvVars.HIGH_ERROR_THRESHOLD,
                defaults.high_error_threshold, float,
            ),
            fast_speech_threshold_ms=get_config_value(
                args.get("fast_speech_threshold_ms"), EnvVars.FAST_SPEECH_THRESHOLD_MS,
                defaults.fast_speech_threshold_ms, float,
            ),
            performance_mode_enabled=get_bool_config_value(
                args.get("performance_mode"), EnvVars.PERFORMANCE_MODE_ENABLED,
                defaults.performance_mode_enabled,
            ),
            performance_mode_threshold=get_config_value(
                args.get("performance_mode_threshold"), EnvVars.PERFORMANCE_MODE_THRESHOLD,
                defaults.performance_mode_threshold, float,
            ),
            api_host=get_config_value(
                args.get("api_host"), EnvVars.API_HOST, defaults.api_host,
            ),
            api_port=get_config_value(
                args.get("api_port"), EnvVars.API_PORT, defaults.api_port, int,
            ),
            api_title=get_config_value(
                args.get("api_title"), EnvVars.API_TITLE, defaults.api_title,
            ),
            api_version=get_config_value(
                args.get("api_version"), EnvVars.API_VERSION, defaults.api_version,
            ),
            api_bearer_token=get_config_value(
                args.get("api_bearer_token"), EnvVars.API_BEARER_TOKEN,
                defaults.api_bearer_token,
            ),
            metrics_enabled=get_bool_config_value(
                args.get("metrics"), EnvVars.METRICS_ENABLED, defaults.metrics_enabled,
            ),
            log_level=get_config_value(
                args.get("log_level"), EnvVars.LOG_LEVEL, defaults.log_level,
            ),
            log_format=get_config_value(
                args.get("log_format"), EnvVars.LOG_FORMAT, defaults.log_format,
            ),
            webhook_url=get_config_value(
                args.get("webhook_url"), EnvVars.WEBHOOK_URL, defaults.webhook_url,
            ),
            webhook_timeout=get_config_value(
                args.get("webhook_timeout"), EnvVars.WEBHOOK_TIMEOUT,
                defaults.webhook_timeout, int,
            ),
            webhook_retry_count=get_config_value(
                args.get("webhook_retry_count"), EnvVars.WEBHOOK_RETRY_COUNT,
                defaults.webhook_retry_count, int,
            ),
            webhook_jsonpath=get_config_value(
                args.get("webhook_jsonpath"), EnvVars.WEBHOOK_JSONPATH,
                defaults.webhook_jsonpath,
            ),
        )

    def engine_options(self) -> DebouncerOptions:
        """Build the engine options described by this configuration."""
        return DebouncerOptions(
            debounce_delay_ms=self.debounce_delay_ms,
            min_command_interval_ms=self.min_command_interval_ms,
            max_commands_per_second=self.max_commands_per_second,
            max_commands_per_minute=self.max_commands_per_minute,
            duplicate_command_window_ms=self.duplicate_command_window_ms,
            similarity_threshold=self.similarity_threshold,
            performance_mode_threshold=self.performance_mode_threshold,
            low_accuracy_threshold=self.low_accuracy_threshold,
            high_error_threshold=self.high_error_threshold,
            fast_speech_threshold_ms=self.fast_speech_threshold_ms,
            adaptive_debouncing_enabled=self.adaptive_debouncing_enabled,
            command_filtering_enabled=self.command_filtering_enabled,
            performance_mode_enabled=self.performance_mode_enabled,
            rate_limit_enabled=self.rate_limit_enabled,
            coalesce_policy=CoalescePolicy(self.coalesce_policy),
        )

    def display(self) -> str:
        """
        Display configuration in human-readable format.

        Returns:
            Formatted configuration string
        """
        lines = [
            "Configuration:",
            "  Debouncing:",
            f"    Delay: {self.debounce_delay_ms}ms",
            f"    Min Command Interval: {self.min_command_interval_ms}ms",
            f"    Coalesce Policy: {self.coalesce_policy}",
            f"    Adaptive: {'Enabled' if self.adaptive_debouncing_enabled else 'Disabled'}",
        ]

        if self.adaptive_debouncing_enabled:
            lines.extend([
                f"      Low Accuracy Threshold: {self.low_accuracy_threshold}",
                f"      High Error Threshold: {self.high_error_threshold}",
                f"      Fast Speech Threshold: {self.fast_speech_threshold_ms}ms",
            ])

        lines.append(f"  Rate Limiting: {'Enabled' if self.rate_limit_enabled else 'Disabled'}")
        if self.rate_limit_enabled:
            lines.extend([
                f"    Per Second: {self.max_commands_per_second}",
                f"    Per Minute: {self.max_commands_per_minute}",
            ])

        lines.append(
            f"  Duplicate Filtering: {'Enabled' if self.command_filtering_enabled else 'Disabled'}"
        )
        if self.command_filtering_enabled:
            lines.extend([
                f"    Window: {self.duplicate_command_window_ms}ms",
                f"    Similarity Threshold: {self.similarity_threshold}",
            ])

        lines.append(
            f"  Performance Mode: {'Enabled' if self.performance_mode_enabled else 'Disabled'}"
        )
        if self.performance_mode_enabled:
            lines.append(f"    Threshold: {self.performance_mode_threshold} fps")

        lines.extend([
            "  API:",
            f"    Host: {self.api_host}",
            f"    Port: {self.api_port}",
            f"    Authentication: {'Enabled (Bearer token required)' if self.api_bearer_token else 'Disabled (Public API)'}",
            f"    Metrics: {'Enabled' if self.metrics_enabled else 'Disabled'}",
            "  Logging:",
            f"    Level: {self.log_level}",
            f"    Format: {self.log_format}",
        ])

        if self.webhook_url:
            lines.extend([
                "  Webhook:",
                f"    URL: {self.webhook_url}",
                f"      JSONPath: {self.webhook_jsonpath}",
                f"    Timeout: {self.webhook_timeout}s",
                f"    Retry Count: {self.webhook_retry_count}",
            ])

        return "\n".join(lines)
