"""
Voice command debouncer: the single entry point for recognized commands.
"""
import asyncio
import inspect
import logging
import time
from collections import deque
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Optional, Union

from ..metrics import MetricsCollector
from .adaptive import AdaptiveController
from .duplicate_filter import DuplicateFilter, calculate_similarity
from .models import (
    CoalescePolicy,
    DebugEvent,
    ExecutionRecord,
    HandlerOutcome,
    PerformanceStats,
    RejectReason,
    Statistics,
    Status,
    VoiceCommand,
)
from .performance import FrameRateProvider, PerformanceModeSwitch
from .rate_limiter import FixedWindowRateLimiter
from .scheduler import DebounceScheduler

logger = logging.getLogger(__name__)

MIN_DEBOUNCE_DELAY_MS = 100.0
PERFORMANCE_DELAY_FACTOR = 1.5

CommandHandler = Callable[[VoiceCommand, Any], Union[bool, Awaitable[bool]]]
DebugCallback = Callable[[str, dict[str, Any]], None]

_MODE_EVENTS = {
    DebugEvent.ADAPTIVE_MODE_ENABLED,
    DebugEvent.ADAPTIVE_MODE_DISABLED,
    DebugEvent.PERFORMANCE_MODE_ENABLED,
    DebugEvent.PERFORMANCE_MODE_DISABLED,
}


def monotonic_ms() -> float:
    """Monotonic clock in milliseconds."""
    return time.monotonic() * 1000.0


@dataclass
class DebouncerOptions:
    """Tuning options for ``VoiceCommandDebouncer``. All times in milliseconds."""

    debounce_delay_ms: float = 1000.0
    min_command_interval_ms: float = 500.0
    max_commands_per_second: int = 3
    max_commands_per_minute: int = 30
    duplicate_command_window_ms: float = 2000.0
    similarity_threshold: float = 0.8
    performance_mode_threshold: float = 30.0
    low_accuracy_threshold: float = 0.6
    high_error_threshold: float = 0.3
    fast_speech_threshold_ms: float = 200.0
    adaptive_debouncing_enabled: bool = True
    command_filtering_enabled: bool = True
    performance_mode_enabled: bool = True
    rate_limit_enabled: bool = True
    coalesce_policy: CoalescePolicy = CoalescePolicy.SHARE_RESULT
    history_size: int = 100

    def __post_init__(self):
        self.coalesce_policy = CoalescePolicy(self.coalesce_policy)


class VoiceCommandDebouncer:
    """
    Turns a noisy stream of recognized commands into a rate-bounded sequence.

    Every command passes, in order, a fixed-window rate limiter, a minimum
    interval gate and a duplicate filter. Survivors are either executed at
    once or parked on a debounce timer, where newer arrivals replace them.
    Executed commands are fanned out to the registered handlers and their
    outcome feeds an adaptive controller that lengthens the debounce delay
    while recognition looks unreliable.
    """

    def __init__(
        self,
        options: Optional[DebouncerOptions] = None,
        fps_provider: Optional[FrameRateProvider] = None,
        metrics: Optional[MetricsCollector] = None,
        clock: Callable[[], float] = monotonic_ms,
    ):
        """
        Initialize the debouncer.

        Args:
            options: Tuning options (defaults apply when omitted)
            fps_provider: Callable returning the host frame rate, polled on each command
            metrics: Optional Prometheus metrics collector
            clock: Millisecond clock used for every timing decision
        """
        self.options = options or DebouncerOptions()
        self._clock = clock
        self._metrics = metrics

        self._rate_limiter = FixedWindowRateLimiter(
            max_per_second=self.options.max_commands_per_second,
            max_per_minute=self.options.max_commands_per_minute,
            enabled=self.options.rate_limit_enabled,
        )
        self._duplicate_filter = DuplicateFilter(
            window_ms=self.options.duplicate_command_window_ms,
            similarity_threshold=self.options.similarity_threshold,
            enabled=self.options.command_filtering_enabled,
        )
        self._adaptive = AdaptiveController(
            base_delay_ms=self.options.debounce_delay_ms,
            low_accuracy_threshold=self.options.low_accuracy_threshold,
            high_error_threshold=self.options.high_error_threshold,
            fast_speech_threshold_ms=self.options.fast_speech_threshold_ms,
            notify=self._notify_debug,
        )
        self._performance = PerformanceModeSwitch(
            threshold_fps=self.options.performance_mode_threshold,
            fps_provider=fps_provider,
            enabled=self.options.performance_mode_enabled,
            notify=self._notify_debug,
        )
        self._scheduler = DebounceScheduler(
            execute=self._execute_command,
            coalesce_policy=self.options.coalesce_policy,
        )

        # Guards admission and the pending slot
        self._lock = asyncio.Lock()

        self._command_handlers: list[CommandHandler] = []
        self._debug_callbacks: list[DebugCallback] = []

        # Bumped by reset(); executions started before it do no bookkeeping
        self._generation = 0

        self._init_state()

    def _init_state(self) -> None:
        self._last_executed_at: Optional[float] = None
        self._last_command: Optional[VoiceCommand] = None
        self._history: deque[ExecutionRecord] = deque(maxlen=self.options.history_size)
        self._stats = PerformanceStats()

    # =========================================================================
    # Intake
    # =========================================================================

    async def process_command(self, command: VoiceCommand, context: Any = None) -> bool:
        """
        Process a recognized voice command.

        Args:
            command: Recognized command
            context: Opaque value forwarded to the handlers

        Returns:
            True if at least one handler accepted the command, False if it was
            rejected, filtered, coalesced away (see ``CoalescePolicy``) or
            unhandled
        """
        try:
            async with self._lock:
                admission = self._admit(command, context)
        except Exception as e:
            logger.error(f"Error processing voice command: {e}", exc_info=True)
            self._record_error("intake", type(e).__name__)
            return False

        if admission is None:
            return False

        if isinstance(admission, asyncio.Future):
            return await admission

        record, gap_ms = admission
        return await self._dispatch(record, gap_ms)

    def _admit(
        self,
        command: VoiceCommand,
        context: Any,
    ) -> Optional[Union[asyncio.Future, tuple[ExecutionRecord, Optional[float]]]]:
        """
        Run the admission checks.

        Returns:
            None if the command was rejected, a future if it was scheduled,
            or the started execution record and gap if it runs immediately
        """
        now = self._clock()
        self._stats.commands_received += 1
        if self._metrics:
            self._metrics.record_received()

        if self.options.performance_mode_enabled:
            self._performance.poll()

        if not self._rate_limiter.accept(now):
            self._stats.commands_rate_limited += 1
            self._reject(command, RejectReason.RATE_LIMIT, DebugEvent.COMMAND_RATE_LIMITED)
            return None

        if self._last_executed_at is not None:
            since_last = now - self._last_executed_at
            if since_last < self.options.min_command_interval_ms:
                self._stats.commands_debounced += 1
                self._reject(
                    command,
                    RejectReason.MIN_INTERVAL,
                    DebugEvent.COMMAND_DEBOUNCED,
                    time_since_last_command_ms=since_last,
                )
                return None

        if self._duplicate_filter.is_duplicate(command, now):
            self._stats.commands_filtered += 1
            self._reject(command, RejectReason.DUPLICATE, DebugEvent.COMMAND_FILTERED)
            return None

        if self._scheduler.should_debounce(
            command,
            performance_mode=self._performance.active,
            adaptive_mode=self._adaptive_active,
        ):
            delay_ms = self.get_current_delay()
            waiter, replaced = self._scheduler.schedule(command, context, delay_ms, now)
            self._stats.commands_debounced += 1

            if replaced is not None:
                self._stats.commands_coalesced += 1
                if self._metrics:
                    self._metrics.record_coalesced()
                self._notify_debug(
                    DebugEvent.COMMAND_COALESCED,
                    {
                        "command": command.to_dict(),
                        "replaced": replaced.to_dict(),
                        "policy": self._scheduler.coalesce_policy.value,
                    },
                )

            if self._metrics:
                self._metrics.record_deferred()
            self._notify_debug(
                DebugEvent.COMMAND_DEBOUNCED,
                {
                    "command": command.to_dict(),
                    "delay_ms": delay_ms,
                    "reason": RejectReason.DEBOUNCE_TIMER.value,
                },
            )
            return waiter

        return self._begin_execution(command, context)

    def _reject(
        self,
        command: VoiceCommand,
        reason: RejectReason,
        event: DebugEvent,
        **data: Any,
    ) -> None:
        logger.debug(
            f"Voice command '{command.text}' rejected: {reason.value}",
            extra={"reason": reason.value},
        )
        if self._metrics:
            self._metrics.record_rejected(reason.value)
        self._notify_debug(event, {"command": command.to_dict(), "reason": reason.value, **data})

    # =========================================================================
    # Execution
    # =========================================================================

    def _begin_execution(
        self,
        command: VoiceCommand,
        context: Any,
    ) -> tuple[ExecutionRecord, Optional[float]]:
        now = self._clock()
        gap_ms = now - self._last_executed_at if self._last_executed_at is not None else None

        self._last_executed_at = now
        self._last_command = command

        record = ExecutionRecord(command=command, context=context, timestamp=now)
        self._history.append(record)
        return record, gap_ms

    async def _execute_command(self, command: VoiceCommand, context: Any) -> bool:
        """Execute a command whose debounce timer fired."""
        record, gap_ms = self._begin_execution(command, context)
        return await self._dispatch(record, gap_ms)

    async def _dispatch(self, record: ExecutionRecord, gap_ms: Optional[float]) -> bool:
        started = time.perf_counter()
        generation = self._generation
        command = record.command

        try:
            outcomes = await self._run_handlers(command, record.context)
            result = any(outcome.result for outcome in outcomes)
            record.result = result

            if generation != self._generation:
                logger.debug(
                    f"Voice command '{command.text}' finished after a reset, "
                    f"statistics not updated"
                )
                return result

            failures = [outcome for outcome in outcomes if outcome.failed]
            self._stats.commands_processed += 1
            self._stats.handler_errors += len(failures)

            if self.options.adaptive_debouncing_enabled:
                self._adaptive.observe(command.confidence, result, gap_ms)

            elapsed_ms = (time.perf_counter() - started) * 1000.0
            self._stats.record_processing_time(elapsed_ms)
            if self._metrics:
                self._metrics.record_executed(result)
                self._metrics.record_processing_time(elapsed_ms)
                for _ in failures:
                    self._metrics.record_handler_error()

            if failures:
                self._notify_debug(
                    DebugEvent.COMMAND_HANDLER_FAILED,
                    {
                        "command": command.to_dict(),
                        "failures": [outcome.to_dict() for outcome in failures],
                    },
                )
            self._notify_debug(
                DebugEvent.COMMAND_EXECUTED,
                {
                    "command": command.to_dict(),
                    "result": result,
                    "outcomes": [outcome.to_dict() for outcome in outcomes],
                    "processing_time_ms": elapsed_ms,
                },
            )
            return result

        except Exception as e:
            logger.error(f"Error executing voice command: {e}", exc_info=True)
            self._record_error("execution", type(e).__name__)
            return False

    async def _run_handlers(self, command: VoiceCommand, context: Any) -> list[HandlerOutcome]:
        """Invoke every registered handler in order, isolating failures."""
        outcomes = []
        for handler in list(self._command_handlers):
            name = getattr(handler, "__qualname__", repr(handler))
            try:
                value = handler(command, context)
                if inspect.isawaitable(value):
                    value = await value
                outcomes.append(HandlerOutcome(handler=name, result=bool(value)))
            except Exception as e:
                logger.error(f"Error in command handler {name}: {e}", exc_info=True)
                outcomes.append(
                    HandlerOutcome(handler=name, result=False, error=f"{type(e).__name__}: {e}")
                )
        return outcomes

    # =========================================================================
    # Modes and delay
    # =========================================================================

    def get_current_delay(self) -> float:
        """Debounce delay that would be applied to a command right now."""
        if self._adaptive_active:
            return self._adaptive.current_delay_ms

        if self._performance.active:
            return self.options.debounce_delay_ms * PERFORMANCE_DELAY_FACTOR

        return self.options.debounce_delay_ms

    def set_debounce_delay(self, delay_ms: float) -> None:
        """Change the base debounce delay (never below 100 ms)."""
        delay_ms = max(MIN_DEBOUNCE_DELAY_MS, delay_ms)
        self.options.debounce_delay_ms = delay_ms
        self._adaptive.set_base_delay(delay_ms)
        self._update_mode_gauges()

    def check_performance_mode(self) -> bool:
        """Poll the frame rate provider and update performance mode."""
        if not self.options.performance_mode_enabled:
            return self._performance.active
        return self._performance.poll()

    def enable_performance_mode(self) -> None:
        self._performance.force(True, reason="manual")

    def disable_performance_mode(self) -> None:
        self._performance.force(False, reason="manual")

    def enable_adaptive_mode(self) -> None:
        self._adaptive.force_enable()

    @property
    def performance_mode(self) -> bool:
        return self._performance.active

    @property
    def adaptive_mode(self) -> bool:
        return self._adaptive_active

    @property
    def _adaptive_active(self) -> bool:
        """Adaptive mode only takes effect while adaptive debouncing is enabled."""
        return self.options.adaptive_debouncing_enabled and self._adaptive.adaptive_mode

    @staticmethod
    def calculate_similarity(first: str, second: str) -> float:
        """Normalized edit-distance similarity of two command texts."""
        return calculate_similarity(first, second)

    # =========================================================================
    # Callbacks
    # =========================================================================

    def on_command(self, handler: CommandHandler) -> Callable[[], None]:
        """
        Register a command handler.

        Args:
            handler: Called with (command, context); returns bool or an awaitable bool

        Returns:
            Function that unregisters the handler
        """
        if handler not in self._command_handlers:
            self._command_handlers.append(handler)

        def unregister() -> None:
            if handler in self._command_handlers:
                self._command_handlers.remove(handler)

        return unregister

    def on_debug(self, callback: DebugCallback) -> Callable[[], None]:
        """
        Register a debug callback.

        Args:
            callback: Called with (event_name, data)

        Returns:
            Function that unregisters the callback
        """
        if callback not in self._debug_callbacks:
            self._debug_callbacks.append(callback)

        def unregister() -> None:
            if callback in self._debug_callbacks:
                self._debug_callbacks.remove(callback)

        return unregister

    def _notify_debug(self, event: DebugEvent, data: dict[str, Any]) -> None:
        if event in _MODE_EVENTS:
            self._update_mode_gauges()

        for callback in list(self._debug_callbacks):
            try:
                callback(event.value, data)
            except Exception as e:
                logger.error(f"Error in debug callback: {e}", exc_info=True)

    def _update_mode_gauges(self) -> None:
        if self._metrics:
            self._metrics.set_modes(
                adaptive=self._adaptive_active,
                performance=self._performance.active,
                delay_ms=self.get_current_delay(),
            )

    def _record_error(self, component: str, error_type: str) -> None:
        if self._metrics:
            self._metrics.record_error(component, error_type)

    # =========================================================================
    # Introspection
    # =========================================================================

    def get_statistics(self) -> Statistics:
        """Snapshot of counters and controller state."""
        return Statistics(
            performance=replace(self._stats),
            adaptive=self._adaptive.snapshot(),
            commands_per_second=self._rate_limiter.per_second_count,
            commands_per_minute=self._rate_limiter.per_minute_count,
            recent_commands_count=self._duplicate_filter.recent_count,
            performance_mode=self._performance.active,
        )

    def get_status(self) -> Status:
        """Snapshot of the debouncer's current state."""
        pending = self._scheduler.pending_command
        return Status(
            is_debouncing=self._scheduler.is_pending,
            pending_text=pending.text if pending else None,
            last_command_time=self._last_executed_at,
            current_delay_ms=self.get_current_delay(),
            adaptive_mode=self._adaptive_active,
            performance_mode=self._performance.active,
            statistics=self.get_statistics(),
        )

    def get_command_history(self, limit: Optional[int] = None) -> list[ExecutionRecord]:
        """Executed commands, oldest first, optionally only the last ``limit``."""
        records = list(self._history)
        if limit is not None:
            records = records[-limit:] if limit > 0 else []
        return records

    @property
    def last_command(self) -> Optional[VoiceCommand]:
        return self._last_command

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def reset(self) -> None:
        """Return every counter, history and pending state to construction defaults."""
        self._generation += 1
        self._scheduler.cancel()
        self._rate_limiter.reset()
        self._duplicate_filter.reset()
        self._adaptive.reset()
        self._performance.reset()
        self._init_state()
        self._update_mode_gauges()
        logger.info("Voice command debouncer reset")

    def destroy(self) -> None:
        """Reset and release every registered callback."""
        self.reset()
        self._command_handlers.clear()
        self._debug_callbacks.clear()
        logger.info("Voice command debouncer destroyed")
