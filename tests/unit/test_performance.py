"""Unit tests for the performance mode switch."""

from voicegate.engine.models import DebugEvent
from voicegate.engine.performance import PerformanceModeSwitch, ReportedFrameRate


def make_switch(**kwargs):
    events = []
    switch = PerformanceModeSwitch(
        notify=lambda event, data: events.append((event, data)),
        **kwargs,
    )
    return switch, events


class TestReportedFrameRate:
    """Test the reported frame rate provider."""

    def test_reports_last_value(self):
        """Test the provider returns the last reported value."""
        provider = ReportedFrameRate()
        assert provider() is None
        provider.report(45.0)
        assert provider() == 45.0


class TestPerformanceModeSwitch:
    """Test PerformanceModeSwitch transitions."""

    def test_low_fps_enables(self):
        """Test a frame rate below the threshold turns the mode on."""
        switch, events = make_switch()
        assert switch.refresh(25) is True
        assert events == [(DebugEvent.PERFORMANCE_MODE_ENABLED, {"reason": "low_fps", "fps": 25})]

    def test_threshold_is_exclusive(self):
        """Test exactly the threshold does not turn the mode on."""
        switch, events = make_switch()
        assert switch.refresh(30) is False
        assert events == []

    def test_missing_reading_counts_as_sixty(self):
        """Test None is treated as 60 fps."""
        switch, events = make_switch()
        switch.refresh(10)
        assert switch.refresh(None) is False
        assert events[-1] == (
            DebugEvent.PERFORMANCE_MODE_DISABLED,
            {"reason": "fps_improved", "fps": 60.0},
        )

    def test_notifies_only_on_transition(self):
        """Test repeated low readings notify once."""
        switch, events = make_switch()
        switch.refresh(20)
        switch.refresh(15)
        switch.refresh(10)
        assert len(events) == 1

    def test_disabled(self):
        """Test a disabled switch ignores readings."""
        switch, events = make_switch(enabled=False)
        assert switch.refresh(5) is False
        assert events == []

    def test_poll_reads_provider(self):
        """Test poll uses the injected provider."""
        provider = ReportedFrameRate(12.0)
        switch, _ = make_switch(fps_provider=provider)
        assert switch.poll() is True
        provider.report(60.0)
        assert switch.poll() is False

    def test_poll_without_provider(self):
        """Test poll keeps the current state when no provider is set."""
        switch, events = make_switch()
        assert switch.poll() is False
        assert events == []

    def test_poll_provider_failure(self):
        """Test a failing provider leaves the mode unchanged."""
        def broken():
            raise RuntimeError("renderer gone")

        switch, events = make_switch(fps_provider=broken)
        assert switch.poll() is False
        assert events == []

    def test_force_with_reason(self):
        """Test manual control overrides the reason."""
        switch, events = make_switch()
        switch.force(True, reason="manual")
        assert switch.active is True
        assert events == [(DebugEvent.PERFORMANCE_MODE_ENABLED, {"reason": "manual"})]

    def test_manual_enable_pins_mode(self):
        """Test healthy readings do not undo a manual enable."""
        switch, events = make_switch()
        switch.force(True, reason="manual")
        assert switch.refresh(60) is True
        assert switch.refresh(None) is True
        assert len(events) == 1

    def test_manual_disable_releases_mode(self):
        """Test a manual disable hands control back to the readings."""
        switch, _ = make_switch()
        switch.force(True, reason="manual")
        switch.force(False, reason="manual")
        assert switch.manual_override is False
        assert switch.refresh(10) is True
        assert switch.refresh(60) is False

    def test_reset_clears_manual_override(self):
        """Test reset releases a manually enabled mode."""
        switch, _ = make_switch()
        switch.force(True, reason="manual")
        switch.reset()
        assert switch.manual_override is False
        assert switch.refresh(10) is True

    def test_reset(self):
        """Test reset turns the mode off without notifying."""
        switch, events = make_switch()
        switch.refresh(10)
        switch.reset()
        assert switch.active is False
        assert len(events) == 1
