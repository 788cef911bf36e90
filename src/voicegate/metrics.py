"""Prometheus metrics collector."""

import logging
from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Gauge, Histogram

logger = logging.getLogger(__name__)


class MetricsCollector:
    """Collects and exposes Prometheus metrics for the voice command engine."""

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        """
        Initialize metrics.

        Args:
            registry: Registry to register metrics on (default: the global registry)
        """
        self.registry = registry if registry is not None else REGISTRY

        # Intake counters
        self.commands_received_total = Counter(
            "voicegate_commands_received_total",
            "Total voice commands received",
            registry=self.registry,
        )

        self.commands_executed_total = Counter(
            "voicegate_commands_executed_total",
            "Total voice commands executed",
            ["result"],
            registry=self.registry,
        )

        self.commands_rejected_total = Counter(
            "voicegate_commands_rejected_total",
            "Total voice commands not executed",
            ["reason"],
            registry=self.registry,
        )

        self.commands_deferred_total = Counter(
            "voicegate_commands_deferred_total",
            "Voice commands held back by the debounce timer",
            registry=self.registry,
        )

        self.commands_coalesced_total = Counter(
            "voicegate_commands_coalesced_total",
            "Pending commands replaced by a newer command",
            registry=self.registry,
        )

        # Latency
        self.processing_seconds = Histogram(
            "voicegate_command_processing_seconds",
            "Time spent running command handlers",
            buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0],
            registry=self.registry,
        )

        # Controller state
        self.adaptive_mode = Gauge(
            "voicegate_adaptive_mode",
            "Adaptive debouncing state (1=on, 0=off)",
            registry=self.registry,
        )

        self.performance_mode = Gauge(
            "voicegate_performance_mode",
            "Performance mode state (1=on, 0=off)",
            registry=self.registry,
        )

        self.debounce_delay_ms = Gauge(
            "voicegate_debounce_delay_ms",
            "Debounce delay currently applied in milliseconds",
            registry=self.registry,
        )

        # Errors
        self.handler_errors_total = Counter(
            "voicegate_handler_errors_total",
            "Command handler invocations that raised",
            registry=self.registry,
        )

        self.errors_total = Counter(
            "voicegate_errors_total",
            "Total errors encountered",
            ["component", "error_type"],
            registry=self.registry,
        )

    def record_received(self) -> None:
        """Record an incoming command."""
        self.commands_received_total.inc()

    def record_executed(self, result: bool) -> None:
        """Record an executed command."""
        self.commands_executed_total.labels(result="handled" if result else "unhandled").inc()

    def record_rejected(self, reason: str) -> None:
        """Record a command that was not executed."""
        self.commands_rejected_total.labels(reason=reason).inc()

    def record_deferred(self) -> None:
        """Record a command scheduled behind the debounce timer."""
        self.commands_deferred_total.inc()

    def record_coalesced(self) -> None:
        self.commands_coalesced_total.inc()

    def record_processing_time(self, milliseconds: float) -> None:
        """Record handler processing time."""
        self.processing_seconds.observe(milliseconds / 1000.0)

    def record_handler_error(self) -> None:
        self.handler_errors_total.inc()

    def set_modes(self, adaptive: bool, performance: bool, delay_ms: float) -> None:
        """Update controller state gauges."""
        self.adaptive_mode.set(1 if adaptive else 0)
        self.performance_mode.set(1 if performance else 0)
        self.debounce_delay_ms.set(delay_ms)

    def record_error(self, component: str, error_type: str) -> None:
        """Record an error."""
        self.errors_total.labels(component=component, error_type=error_type).inc()
