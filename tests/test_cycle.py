"""Unit tests for cycle.py."""

import pytest

from focus_flow.focus.cycle import Phase, calculate_cycle, format_clock, simple_progress
from focus_flow.focus.errors import InvalidCommandError


class TestFocusPhase:
    """Focus phase position and boundary."""

    def test_start_of_cycle(self):
        """At zero elapsed, focus has just begun."""
        result = calculate_cycle(0, 25, 5, is_on_break=False)
        assert result.current_phase == Phase.FOCUS
        assert result.phase_elapsed == 0
        assert result.phase_length == 1500
        assert result.progress_percent == 0.0
        assert result.phase_just_ended is False

    def test_focus_does_not_end_early(self):
        """Every second before the boundary stays in focus."""
        for elapsed in range(0, 1500):
            assert calculate_cycle(elapsed, 25, 5, False).phase_just_ended is False

    def test_focus_ends_at_boundary(self):
        """Focus ends exactly at focus_minutes * 60."""
        result = calculate_cycle(1500, 25, 5, is_on_break=False)
        assert result.phase_just_ended is True
        assert result.progress_percent == 100.0

    def test_halfway(self):
        """Progress is 50% halfway through focus."""
        result = calculate_cycle(750, 25, 5, False)
        assert result.progress_percent == 50.0
        assert result.phase_remaining == 750

    def test_later_cycle_position(self):
        """Position wraps per cycle."""
        result = calculate_cycle(1800 * 3 + 60, 25, 5, False)
        assert result.phase_elapsed == 60
        assert result.phase_just_ended is False


class TestBreakPhase:
    """Break phase position and boundary."""

    def test_break_start(self):
        """Right after the flip, break progress is zero."""
        result = calculate_cycle(1500, 25, 5, is_on_break=True)
        assert result.current_phase == Phase.BREAK
        assert result.phase_elapsed == 0
        assert result.phase_length == 300
        assert result.phase_just_ended is False

    def test_break_does_not_end_early(self):
        """Every second of the break stays in break."""
        for elapsed in range(1500, 1800):
            assert calculate_cycle(elapsed, 25, 5, True).phase_just_ended is False

    def test_break_ends_on_wrap(self):
        """Break ends when the cycle wraps."""
        result = calculate_cycle(1800, 25, 5, is_on_break=True)
        assert result.phase_just_ended is True

    def test_break_progress(self):
        """Break progress measures from the break start."""
        result = calculate_cycle(1650, 25, 5, True)
        assert result.phase_elapsed == 150
        assert result.progress_percent == 50.0

    def test_zero_elapsed_with_break_flag(self):
        """A break flag at zero elapsed is not a wrap."""
        assert calculate_cycle(0, 25, 5, True).phase_just_ended is False


class TestClamping:
    """Progress stays within [0, 100]."""

    @pytest.mark.parametrize("elapsed", [0, 1, 1499, 1500, 1799, 1800, 10**6, 10**9 + 7])
    @pytest.mark.parametrize("on_break", [False, True])
    def test_progress_clamped(self, elapsed, on_break):
        """Large and boundary elapsed values keep progress in range."""
        result = calculate_cycle(elapsed, 25, 5, on_break)
        assert 0.0 <= result.progress_percent <= 100.0
        assert 0 <= result.phase_elapsed <= result.phase_length

    def test_out_of_phase_flag(self):
        """A focus flag inside the break window reports a full, ended focus."""
        result = calculate_cycle(1600, 25, 5, False)
        assert result.progress_percent == 100.0
        assert result.phase_just_ended is True


class TestValidation:
    """Invalid configurations are rejected."""

    @pytest.mark.parametrize("focus,brk", [(0, 5), (25, 0), (-1, 5), (25, -5)])
    def test_non_positive_minutes(self, focus, brk):
        with pytest.raises(InvalidCommandError):
            calculate_cycle(10, focus, brk, False)

    def test_negative_elapsed(self):
        with pytest.raises(InvalidCommandError):
            calculate_cycle(-1, 25, 5, False)


class TestHelpers:
    """Simple-mode progress and clock formatting."""

    def test_simple_progress(self):
        assert simple_progress(0, 10) == 0.0
        assert simple_progress(300, 10) == 50.0
        assert simple_progress(6000, 10) == 100.0

    def test_simple_progress_rejects_zero_duration(self):
        with pytest.raises(InvalidCommandError):
            simple_progress(10, 0)

    def test_format_clock(self):
        assert format_clock(0) == "00:00:00"
        assert format_clock(1500) == "00:25:00"
        assert format_clock(3725) == "01:02:05"
