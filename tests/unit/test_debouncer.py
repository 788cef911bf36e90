"""Unit tests for the voice command debouncer."""

import asyncio
from unittest.mock import MagicMock

import pytest
from prometheus_client import CollectorRegistry

from voicegate.engine import (
    CoalescePolicy,
    DebouncerOptions,
    DebugEvent,
    VoiceCommand,
    VoiceCommandDebouncer,
)
from voicegate.metrics import MetricsCollector


def debug_events(callback: MagicMock) -> list[str]:
    return [call.args[0] for call in callback.call_args_list]


class TestDebouncerOptions:
    """Test DebouncerOptions defaults and validation."""

    def test_defaults(self):
        """Test documented defaults."""
        options = DebouncerOptions()
        assert options.debounce_delay_ms == 1000
        assert options.min_command_interval_ms == 500
        assert options.max_commands_per_second == 3
        assert options.max_commands_per_minute == 30
        assert options.duplicate_command_window_ms == 2000
        assert options.similarity_threshold == 0.8
        assert options.performance_mode_threshold == 30
        assert options.adaptive_debouncing_enabled is True
        assert options.command_filtering_enabled is True
        assert options.performance_mode_enabled is True
        assert options.rate_limit_enabled is True
        assert options.coalesce_policy == CoalescePolicy.SHARE_RESULT

    def test_policy_from_string(self):
        """Test the coalesce policy accepts its string value."""
        options = DebouncerOptions(coalesce_policy="resolve_false")
        assert options.coalesce_policy is CoalescePolicy.RESOLVE_FALSE

    def test_invalid_policy(self):
        """Test an unknown coalesce policy is rejected."""
        with pytest.raises(ValueError):
            DebouncerOptions(coalesce_policy="queue_everything")


@pytest.mark.asyncio
class TestImmediateExecution:
    """Test commands that execute without debouncing."""

    async def test_confident_command_executes(self, make_debouncer, recording_handler):
        """Test a confident simple command reaches the handlers at once."""
        debouncer = make_debouncer()
        debouncer.on_command(recording_handler)

        result = await debouncer.process_command(VoiceCommand("hide", 0.9), {"player": 1})

        assert result is True
        assert recording_handler.calls == [(VoiceCommand("hide", 0.9), {"player": 1})]
        stats = debouncer.get_statistics()
        assert stats.performance.commands_received == 1
        assert stats.performance.commands_processed == 1
        assert debouncer.last_command == VoiceCommand("hide", 0.9)

    async def test_no_handlers_resolves_false(self, make_debouncer):
        """Test a command nobody handles resolves False."""
        debouncer = make_debouncer()
        assert await debouncer.process_command(VoiceCommand("hide", 0.9)) is False
        assert debouncer.get_statistics().performance.commands_processed == 1

    async def test_any_handler_success(self, make_debouncer):
        """Test the result is True if any handler accepts."""
        debouncer = make_debouncer()
        debouncer.on_command(lambda command, context: False)
        debouncer.on_command(lambda command, context: True)

        assert await debouncer.process_command(VoiceCommand("hide", 0.9)) is True

    async def test_async_handler(self, make_debouncer):
        """Test awaitable handler results are awaited."""
        debouncer = make_debouncer()

        async def handler(command, context):
            await asyncio.sleep(0)
            return True

        debouncer.on_command(handler)
        assert await debouncer.process_command(VoiceCommand("hide", 0.9)) is True

    async def test_handlers_run_in_registration_order(self, make_debouncer):
        """Test handlers are invoked in the order they were registered."""
        debouncer = make_debouncer()
        order = []
        debouncer.on_command(lambda command, context: order.append("first"))
        debouncer.on_command(lambda command, context: order.append("second"))

        await debouncer.process_command(VoiceCommand("hide", 0.9))

        assert order == ["first", "second"]

    async def test_history_records_executions(self, make_debouncer, recording_handler, clock):
        """Test executed commands are recorded with their result."""
        debouncer = make_debouncer()
        debouncer.on_command(recording_handler)

        clock.set(100)
        await debouncer.process_command(VoiceCommand("hide", 0.9), "ctx")

        history = debouncer.get_command_history()
        assert len(history) == 1
        assert history[0].command.text == "hide"
        assert history[0].context == "ctx"
        assert history[0].timestamp == 100
        assert history[0].result is True

    async def test_history_capped_at_hundred(self, make_debouncer, recording_handler, clock):
        """Test the history keeps the last 100 executions."""
        debouncer = make_debouncer(
            min_command_interval_ms=0,
            rate_limit_enabled=False,
            command_filtering_enabled=False,
            adaptive_debouncing_enabled=False,
        )
        debouncer.on_command(recording_handler)

        for index in range(105):
            clock.advance(1000)
            await debouncer.process_command(VoiceCommand(f"go {index}", 0.9))

        history = debouncer.get_command_history()
        assert len(history) == 100
        assert history[0].command.text == "go 5"
        assert [record.command.text for record in debouncer.get_command_history(2)] == [
            "go 103",
            "go 104",
        ]


@pytest.mark.asyncio
class TestMinimumInterval:
    """Test the minimum interval between executions."""

    async def test_command_inside_interval_rejected(self, make_debouncer, recording_handler, clock):
        """Test a command arriving inside the interval resolves False."""
        debouncer = make_debouncer()
        debouncer.on_command(recording_handler)
        callback = MagicMock()
        debouncer.on_debug(callback)

        assert await debouncer.process_command(VoiceCommand("hide", 0.9)) is True
        clock.advance(100)
        assert await debouncer.process_command(VoiceCommand("run", 0.99)) is False

        assert recording_handler.texts == ["hide"]
        assert debouncer.get_statistics().performance.commands_debounced == 1
        event, data = callback.call_args_list[-1].args
        assert event == "command_debounced"
        assert data["reason"] == "min_interval"
        assert data["time_since_last_command_ms"] == 100

    async def test_command_after_interval_accepted(self, make_debouncer, recording_handler, clock):
        """Test a command at exactly the interval is accepted."""
        debouncer = make_debouncer()
        debouncer.on_command(recording_handler)

        await debouncer.process_command(VoiceCommand("hide", 0.9))
        clock.advance(500)
        assert await debouncer.process_command(VoiceCommand("run", 0.9)) is True

    async def test_zero_interval(self, make_debouncer, recording_handler):
        """Test a zero interval never rejects."""
        debouncer = make_debouncer(min_command_interval_ms=0)
        debouncer.on_command(recording_handler)

        await debouncer.process_command(VoiceCommand("hide", 0.9))
        assert await debouncer.process_command(VoiceCommand("run", 0.9)) is True


@pytest.mark.asyncio
class TestRateLimiting:
    """Test rate limiting through the engine."""

    async def test_fourth_command_in_a_second_rejected(
        self, make_debouncer, recording_handler, clock
    ):
        """Test the fourth distinct command within one second is rate limited."""
        debouncer = make_debouncer(min_command_interval_ms=200)
        debouncer.on_command(recording_handler)
        callback = MagicMock()
        debouncer.on_debug(callback)

        results = []
        for now, text in zip((0, 250, 500, 750), ("hide", "run", "open door", "jump")):
            clock.set(now)
            results.append(await debouncer.process_command(VoiceCommand(text, 0.95)))

        assert results == [True, True, True, False]
        assert debouncer.get_statistics().performance.commands_rate_limited == 1
        assert "command_rate_limited" in debug_events(callback)
        assert recording_handler.texts == ["hide", "run", "open door"]

    async def test_rate_limit_disabled(self, make_debouncer, recording_handler, clock):
        """Test disabling rate limiting lets bursts through."""
        debouncer = make_debouncer(min_command_interval_ms=0, rate_limit_enabled=False)
        debouncer.on_command(recording_handler)

        for now, text in zip((0, 250, 500, 750), ("hide", "run", "open door", "jump")):
            clock.set(now)
            assert await debouncer.process_command(VoiceCommand(text, 0.95)) is True


@pytest.mark.asyncio
class TestDuplicateFiltering:
    """Test duplicate filtering through the engine."""

    async def test_exact_duplicate(self, make_debouncer, recording_handler):
        """Test an immediate repeat is filtered without invoking handlers."""
        debouncer = make_debouncer(min_command_interval_ms=0)
        debouncer.on_command(recording_handler)

        assert await debouncer.process_command(VoiceCommand("hide")) is True
        assert await debouncer.process_command(VoiceCommand("hide")) is False

        assert len(recording_handler.calls) == 1
        assert debouncer.get_statistics().performance.commands_filtered == 1

    async def test_similarity_at_threshold(self, make_debouncer, recording_handler):
        """Test a 0.75-similar command is a duplicate at threshold 0.75."""
        debouncer = make_debouncer(min_command_interval_ms=0, similarity_threshold=0.75)
        debouncer.on_command(recording_handler)

        await debouncer.process_command(VoiceCommand("hide", 0.9))
        assert await debouncer.process_command(VoiceCommand("hid", 0.9)) is False

    async def test_similarity_below_threshold(self, make_debouncer, recording_handler):
        """Test a 0.75-similar command passes at threshold 0.8."""
        debouncer = make_debouncer(min_command_interval_ms=0, similarity_threshold=0.8)
        debouncer.on_command(recording_handler)

        await debouncer.process_command(VoiceCommand("hide", 0.9))
        assert await debouncer.process_command(VoiceCommand("hid", 0.9)) is True

    async def test_repeat_after_window(self, make_debouncer, recording_handler, clock):
        """Test the same command is accepted again once the window has passed."""
        debouncer = make_debouncer()
        debouncer.on_command(recording_handler)

        await debouncer.process_command(VoiceCommand("hide", 0.9))
        clock.advance(2000)
        assert await debouncer.process_command(VoiceCommand("hide", 0.9)) is True


@pytest.mark.asyncio
class TestDebouncing:
    """Test debounced and coalesced commands."""

    async def test_low_confidence_debounced(self, make_debouncer, recording_handler):
        """Test a low-confidence command executes after the delay."""
        debouncer = make_debouncer(debounce_delay_ms=20)
        debouncer.on_command(recording_handler)
        callback = MagicMock()
        debouncer.on_debug(callback)

        task = asyncio.create_task(debouncer.process_command(VoiceCommand("hide", 0.5)))
        await asyncio.sleep(0)

        status = debouncer.get_status()
        assert status.is_debouncing is True
        assert status.pending_text == "hide"
        assert recording_handler.calls == []

        assert await task is True
        assert recording_handler.texts == ["hide"]
        assert debouncer.get_status().is_debouncing is False
        assert debouncer.get_statistics().performance.commands_debounced == 1

        event, data = callback.call_args_list[0].args
        assert event == "command_debounced"
        assert data["reason"] == "debounce_timer"
        assert data["delay_ms"] == 20

    async def test_coalesces_to_latest(self, make_debouncer, recording_handler, clock):
        """Test two low-confidence commands 50ms apart execute only the second."""
        debouncer = make_debouncer(debounce_delay_ms=200)
        debouncer.on_command(recording_handler)
        callback = MagicMock()
        debouncer.on_debug(callback)

        first = asyncio.create_task(debouncer.process_command(VoiceCommand("hide", 0.5)))
        await asyncio.sleep(0)
        clock.advance(50)
        second = asyncio.create_task(debouncer.process_command(VoiceCommand("run", 0.5)))

        assert await asyncio.gather(first, second) == [True, True]
        assert recording_handler.texts == ["run"]

        stats = debouncer.get_statistics().performance
        assert stats.commands_debounced == 2
        assert stats.commands_coalesced == 1
        coalesced = [
            call.args[1] for call in callback.call_args_list
            if call.args[0] == "command_coalesced"
        ]
        assert coalesced[0]["replaced"]["text"] == "hide"
        assert coalesced[0]["command"]["text"] == "run"
        assert coalesced[0]["policy"] == "share_result"

    async def test_coalesce_resolve_false(self, make_debouncer, recording_handler, clock):
        """Test replaced callers resolve False under the resolve_false policy."""
        debouncer = make_debouncer(debounce_delay_ms=50, coalesce_policy="resolve_false")
        debouncer.on_command(recording_handler)

        first = asyncio.create_task(debouncer.process_command(VoiceCommand("hide", 0.5)))
        await asyncio.sleep(0)
        clock.advance(50)
        second = asyncio.create_task(debouncer.process_command(VoiceCommand("run", 0.5)))

        assert await asyncio.gather(first, second) == [False, True]
        assert recording_handler.texts == ["run"]

    async def test_complex_command_debounced(self, make_debouncer, recording_handler):
        """Test chained commands go through the timer."""
        debouncer = make_debouncer(debounce_delay_ms=10)
        debouncer.on_command(recording_handler)

        task = asyncio.create_task(
            debouncer.process_command(VoiceCommand("open the door then run", 0.95))
        )
        await asyncio.sleep(0)
        assert debouncer.get_status().is_debouncing is True
        assert await task is True


@pytest.mark.asyncio
class TestAdaptiveIntegration:
    """Test the adaptive controller wired into the engine."""

    async def test_low_confidence_activates_adaptive_mode(
        self, make_debouncer, recording_handler, clock
    ):
        """Test ten 0.4-confidence commands turn adaptive mode on."""
        debouncer = make_debouncer(debounce_delay_ms=10)
        debouncer.on_command(recording_handler)
        callback = MagicMock()
        debouncer.on_debug(callback)

        for index in range(10):
            clock.advance(3000)
            await debouncer.process_command(VoiceCommand(f"command {index}", 0.4))

        status = debouncer.get_status()
        assert status.adaptive_mode is True
        assert status.current_delay_ms > 10
        assert len(recording_handler.calls) == 10
        assert debug_events(callback).count("adaptive_mode_enabled") == 1

    async def test_adaptive_disabled_does_not_observe(self, make_debouncer, clock):
        """Test the controller is not fed when adaptive debouncing is off."""
        debouncer = make_debouncer(adaptive_debouncing_enabled=False)

        await debouncer.process_command(VoiceCommand("hide", 0.9))

        assert debouncer.adaptive_mode is False
        assert debouncer.get_statistics().adaptive.samples == 0

    async def test_first_execution_has_no_gap(self, make_debouncer, recording_handler):
        """Test the first execution does not count as fast speech."""
        debouncer = make_debouncer()
        debouncer.on_command(recording_handler)

        await debouncer.process_command(VoiceCommand("hide", 0.9))

        assert debouncer.get_statistics().adaptive.average_gap_ms is None
        assert debouncer.adaptive_mode is False

    async def test_enable_adaptive_mode(self, make_debouncer):
        """Test manual activation uses 1.5 times the base delay."""
        debouncer = make_debouncer()
        debouncer.enable_adaptive_mode()
        assert debouncer.adaptive_mode is True
        assert debouncer.get_current_delay() == 1500

    async def test_forced_adaptive_mode_ignored_when_disabled(self, make_debouncer, recording_handler):
        """Test forcing adaptive mode has no effect while adaptive debouncing is off."""
        debouncer = make_debouncer(adaptive_debouncing_enabled=False)
        debouncer.on_command(recording_handler)

        debouncer.enable_adaptive_mode()
        task = asyncio.create_task(debouncer.process_command(VoiceCommand("hide", 0.9)))
        await asyncio.sleep(0)

        assert debouncer.get_status().is_debouncing is False
        assert await task is True
        assert recording_handler.texts == ["hide"]
        assert debouncer.adaptive_mode is False
        assert debouncer.get_current_delay() == 1000


@pytest.mark.asyncio
class TestPerformanceIntegration:
    """Test performance mode wired into the engine."""

    async def test_low_fps_debounces_everything(self, make_debouncer, recording_handler, frame_rate):
        """Test commands are debounced while the frame rate is low."""
        frame_rate.report(20)
        debouncer = make_debouncer(debounce_delay_ms=10, fps_provider=frame_rate)
        debouncer.on_command(recording_handler)
        callback = MagicMock()
        debouncer.on_debug(callback)

        task = asyncio.create_task(debouncer.process_command(VoiceCommand("hide", 0.99)))
        await asyncio.sleep(0)

        assert debouncer.performance_mode is True
        assert debouncer.get_status().is_debouncing is True
        assert debouncer.get_current_delay() == 15
        assert await task is True
        assert debug_events(callback)[0] == "performance_mode_enabled"

    async def test_check_performance_mode(self, make_debouncer, frame_rate):
        """Test an explicit check follows the provider."""
        debouncer = make_debouncer(fps_provider=frame_rate)
        frame_rate.report(10)
        assert debouncer.check_performance_mode() is True
        frame_rate.report(59)
        assert debouncer.check_performance_mode() is False

    async def test_manual_performance_mode(self, make_debouncer):
        """Test manual enable and disable."""
        debouncer = make_debouncer()
        debouncer.enable_performance_mode()
        assert debouncer.performance_mode is True
        assert debouncer.get_current_delay() == 1500
        debouncer.disable_performance_mode()
        assert debouncer.performance_mode is False
        assert debouncer.get_current_delay() == 1000

    async def test_manual_performance_mode_survives_polling(
        self, make_debouncer, recording_handler, frame_rate
    ):
        """Test a manually enabled mode stays on while the frame rate is healthy."""
        frame_rate.report(60)
        debouncer = make_debouncer(debounce_delay_ms=10, fps_provider=frame_rate)
        debouncer.on_command(recording_handler)

        debouncer.enable_performance_mode()
        task = asyncio.create_task(debouncer.process_command(VoiceCommand("hide", 0.9)))
        await asyncio.sleep(0)

        assert debouncer.performance_mode is True
        assert debouncer.get_status().is_debouncing is True
        assert await task is True
        assert debouncer.check_performance_mode() is True

        debouncer.disable_performance_mode()
        frame_rate.report(10)
        assert debouncer.check_performance_mode() is True
        frame_rate.report(60)
        assert debouncer.check_performance_mode() is False

    async def test_adaptive_delay_wins(self, make_debouncer):
        """Test the adaptive delay takes precedence over performance mode."""
        debouncer = make_debouncer()
        debouncer.enable_performance_mode()
        debouncer.enable_adaptive_mode()
        debouncer.set_debounce_delay(2000)
        # Adaptive delay was fixed when the mode turned on
        assert debouncer.get_current_delay() == 1500


@pytest.mark.asyncio
class TestHandlerFaults:
    """Test handler fault isolation."""

    async def test_failing_handler_isolated(self, make_debouncer, recording_handler):
        """Test a raising handler does not stop the others."""
        debouncer = make_debouncer()

        def broken(command, context):
            raise RuntimeError("game state locked")

        debouncer.on_command(broken)
        debouncer.on_command(recording_handler)
        callback = MagicMock()
        debouncer.on_debug(callback)

        assert await debouncer.process_command(VoiceCommand("hide", 0.9)) is True
        assert len(recording_handler.calls) == 1
        assert debouncer.get_statistics().performance.handler_errors == 1

        events = dict(call.args for call in callback.call_args_list)
        failures = events["command_handler_failed"]["failures"]
        assert failures[0]["error"] == "RuntimeError: game state locked"
        outcomes = events["command_executed"]["outcomes"]
        assert [outcome["result"] for outcome in outcomes] == [False, True]

    async def test_debug_callback_fault_isolated(self, make_debouncer, recording_handler):
        """Test a raising debug callback does not affect processing."""
        debouncer = make_debouncer()
        debouncer.on_command(recording_handler)
        debouncer.on_debug(MagicMock(side_effect=RuntimeError("overlay crashed")))

        assert await debouncer.process_command(VoiceCommand("hide", 0.9)) is True

    async def test_internal_fault_resolves_false(self, make_debouncer):
        """Test an unexpected admission failure is logged and resolves False."""
        def broken_clock():
            raise RuntimeError("clock failure")

        debouncer = VoiceCommandDebouncer(clock=broken_clock)
        assert await debouncer.process_command(VoiceCommand("hide", 0.9)) is False


@pytest.mark.asyncio
class TestRegistration:
    """Test handler and callback registration."""

    async def test_unregister_handler(self, make_debouncer, recording_handler, clock):
        """Test an unregistered handler is no longer called."""
        debouncer = make_debouncer()
        unregister = debouncer.on_command(recording_handler)

        await debouncer.process_command(VoiceCommand("hide", 0.9))
        unregister()
        clock.advance(1000)
        await debouncer.process_command(VoiceCommand("run", 0.9))

        assert recording_handler.texts == ["hide"]

    async def test_register_twice(self, make_debouncer, recording_handler):
        """Test registering the same handler twice calls it once."""
        debouncer = make_debouncer()
        debouncer.on_command(recording_handler)
        debouncer.on_command(recording_handler)

        await debouncer.process_command(VoiceCommand("hide", 0.9))

        assert len(recording_handler.calls) == 1

    async def test_unregister_debug_callback(self, make_debouncer):
        """Test an unregistered debug callback is no longer called."""
        debouncer = make_debouncer()
        callback = MagicMock()
        unregister = debouncer.on_debug(callback)
        unregister()
        unregister()

        await debouncer.process_command(VoiceCommand("hide", 0.9))

        callback.assert_not_called()

    async def test_unregister_during_dispatch(self, make_debouncer, recording_handler, clock):
        """Test a handler removed mid-dispatch still runs for that command only."""
        debouncer = make_debouncer()
        first_texts = []

        def first(command, context):
            first_texts.append(command.text)
            unregister_second()
            return True

        debouncer.on_command(first)
        unregister_second = debouncer.on_command(recording_handler)

        assert await debouncer.process_command(VoiceCommand("hide", 0.9)) is True
        clock.advance(1000)
        assert await debouncer.process_command(VoiceCommand("run", 0.9)) is True

        assert first_texts == ["hide", "run"]
        assert recording_handler.texts == ["hide"]


@pytest.mark.asyncio
class TestControlAndLifecycle:
    """Test delay control, reset and destroy."""

    async def test_set_debounce_delay_floor(self, make_debouncer):
        """Test the base delay never drops below 100ms."""
        debouncer = make_debouncer()
        debouncer.set_debounce_delay(20)
        assert debouncer.get_current_delay() == 100
        debouncer.set_debounce_delay(750)
        assert debouncer.get_current_delay() == 750

    async def test_calculate_similarity(self):
        """Test similarity edge cases through the engine."""
        assert VoiceCommandDebouncer.calculate_similarity("hide", "hid") == 0.75
        assert VoiceCommandDebouncer.calculate_similarity("", "") == 1.0
        assert VoiceCommandDebouncer.calculate_similarity("hide", "") == 0.0

    async def test_reset_matches_fresh_instance(self, make_debouncer, recording_handler, clock):
        """Test reset returns statistics, history and adaptive state to defaults."""
        debouncer = make_debouncer(debounce_delay_ms=10)
        fresh = make_debouncer(debounce_delay_ms=10)
        debouncer.on_command(recording_handler)

        await debouncer.process_command(VoiceCommand("hide", 0.9))
        await debouncer.process_command(VoiceCommand("hide", 0.9))
        clock.advance(1000)
        await debouncer.process_command(VoiceCommand("run", 0.3))
        debouncer.enable_performance_mode()

        debouncer.reset()

        assert debouncer.get_statistics().to_dict() == fresh.get_statistics().to_dict()
        assert debouncer.get_status().to_dict() == fresh.get_status().to_dict()
        assert debouncer.get_command_history() == fresh.get_command_history() == []

    async def test_reset_resolves_pending(self, make_debouncer, recording_handler):
        """Test reset drops the pending command and resolves its caller False."""
        debouncer = make_debouncer(debounce_delay_ms=1000)
        debouncer.on_command(recording_handler)

        task = asyncio.create_task(debouncer.process_command(VoiceCommand("hide", 0.5)))
        await asyncio.sleep(0)
        debouncer.reset()

        assert await task is False
        assert recording_handler.calls == []
        assert debouncer.get_status().is_debouncing is False

    async def test_reset_during_execution(self, make_debouncer):
        """Test an execution in flight across a reset leaves the fresh state untouched."""
        debouncer = make_debouncer(debounce_delay_ms=10)
        fresh = make_debouncer(debounce_delay_ms=10)
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow(command, context):
            started.set()
            await release.wait()
            return True

        debouncer.on_command(slow)
        callback = MagicMock()
        debouncer.on_debug(callback)

        task = asyncio.create_task(debouncer.process_command(VoiceCommand("hide", 0.9)))
        await started.wait()
        debouncer.reset()
        release.set()

        assert await task is True
        assert debouncer.get_statistics().to_dict() == fresh.get_statistics().to_dict()
        assert debouncer.get_status().to_dict() == fresh.get_status().to_dict()
        assert debouncer.get_command_history() == []
        assert "command_executed" not in debug_events(callback)

    async def test_reset_during_debounced_execution(self, make_debouncer):
        """Test a fired debounce timer finishing after a reset is not counted."""
        debouncer = make_debouncer(debounce_delay_ms=10)
        fresh = make_debouncer(debounce_delay_ms=10)
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow(command, context):
            started.set()
            await release.wait()
            return True

        debouncer.on_command(slow)

        task = asyncio.create_task(debouncer.process_command(VoiceCommand("hide", 0.5)))
        await started.wait()
        debouncer.reset()
        release.set()

        assert await task is True
        assert debouncer.get_statistics().to_dict() == fresh.get_statistics().to_dict()
        assert debouncer.get_status().to_dict() == fresh.get_status().to_dict()

    async def test_reset_twice(self, make_debouncer):
        """Test reset is idempotent."""
        debouncer = make_debouncer()
        debouncer.reset()
        first = debouncer.get_status().to_dict()
        debouncer.reset()
        assert debouncer.get_status().to_dict() == first

    async def test_destroy_clears_handlers(self, make_debouncer, recording_handler):
        """Test destroy removes every handler and callback."""
        debouncer = make_debouncer()
        debouncer.on_command(recording_handler)
        callback = MagicMock()
        debouncer.on_debug(callback)

        debouncer.destroy()

        assert await debouncer.process_command(VoiceCommand("hide", 0.9)) is False
        assert recording_handler.calls == []
        callback.assert_not_called()


@pytest.mark.asyncio
class TestMetricsIntegration:
    """Test metrics reported by the engine."""

    async def test_metrics_recorded(self, make_debouncer, recording_handler, clock):
        """Test counters follow the engine's decisions."""
        registry = CollectorRegistry()
        debouncer = make_debouncer(min_command_interval_ms=0, metrics=MetricsCollector(registry))
        debouncer.on_command(recording_handler)

        await debouncer.process_command(VoiceCommand("hide", 0.9))
        await debouncer.process_command(VoiceCommand("hide", 0.9))

        assert registry.get_sample_value("voicegate_commands_received_total") == 2
        assert registry.get_sample_value(
            "voicegate_commands_executed_total", {"result": "handled"}
        ) == 1
        assert registry.get_sample_value(
            "voicegate_commands_rejected_total", {"reason": "duplicate"}
        ) == 1
        assert registry.get_sample_value("voicegate_command_processing_seconds_count") == 1

    async def test_mode_gauges(self, make_debouncer):
        """Test mode gauges follow transitions."""
        registry = CollectorRegistry()
        debouncer = make_debouncer(metrics=MetricsCollector(registry))

        debouncer.enable_performance_mode()

        assert registry.get_sample_value("voicegate_performance_mode") == 1
        assert registry.get_sample_value("voicegate_debounce_delay_ms") == 1500

    async def test_debounced_command_counted_as_deferred(self, make_debouncer, recording_handler):
        """Test a debounced command is deferred, then executed, never rejected."""
        registry = CollectorRegistry()
        debouncer = make_debouncer(debounce_delay_ms=10, metrics=MetricsCollector(registry))
        debouncer.on_command(recording_handler)

        assert await debouncer.process_command(VoiceCommand("hide", 0.5)) is True

        assert registry.get_sample_value("voicegate_commands_deferred_total") == 1
        assert registry.get_sample_value(
            "voicegate_commands_executed_total", {"result": "handled"}
        ) == 1
        assert registry.get_sample_value(
            "voicegate_commands_rejected_total", {"reason": "debounce_timer"}
        ) is None
