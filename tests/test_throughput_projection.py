from __future__ import annotations

import pytest

from linewatch.core.calendar import ShiftCalendar
from linewatch.core.projection import (
    projected_end_minutes,
    projected_end_time,
    remaining_quantity,
    required_hours,
    required_minutes,
)
from linewatch.core.rounding import round_half_up, round_int
from linewatch.core.throughput import current_rate, design_rate, estimated_rate


def test_round_half_up_is_not_bankers_rounding():
    assert round_int(2.5) == 3
    assert round_int(0.5) == 1
    assert round_int(558.333) == 558
    assert round_half_up(8.95, 1) == 9.0
    assert round_half_up(8.9816, 1) == 9.0
    assert round_half_up(7.38, 1) == 7.4


def test_rates_for_first_morning_check():
    assert current_rate(40200, "09:42") == 558
    assert design_rate(460000) == 1000
    assert estimated_rate(558, 1000) == 779


def test_estimated_rate_blends_half_up():
    assert estimated_rate(2, 3) == 3
    assert estimated_rate(0, 0) == 0


def test_current_rate_uses_operating_minutes_net_of_breaks():
    # 13:00 is inside lunch: 230 operating minutes.
    assert current_rate(23000, "13:00") == 100


def test_design_rate_follows_injected_calendar():
    calendar = ShiftCalendar(shift_start="08:00", shift_end="16:00", breaks=())
    assert design_rate(48000, calendar) == 100


def test_remaining_quantity_never_negative():
    assert remaining_quantity(460000, 40200) == 419800
    assert remaining_quantity(1000, 1000) == 0
    assert remaining_quantity(1000, 5000) == 0


def test_required_minutes_not_computable_without_positive_rate():
    assert required_minutes(100, 0) is None
    assert required_minutes(100, -5) is None
    assert required_minutes(100, 4) == 25.0
    assert required_hours(None) is None


def test_required_hours_rounds_to_one_decimal():
    minutes = required_minutes(419800, 779)
    assert minutes == pytest.approx(538.896, abs=1e-3)
    assert required_hours(minutes) == 9.0


def test_projection_adds_future_breaks_and_uses_unrounded_minutes():
    minutes = required_minutes(419800, 779)
    assert projected_end_minutes("09:42", minutes) == pytest.approx(582 + 538.896 + 80, abs=1e-3)
    # With the rounded 9.0 h the projection would be 20:02.
    assert projected_end_time("09:42", minutes) == "20:01"


def test_projection_after_last_break_adds_nothing():
    assert projected_end_time("16:00", 90) == "17:30"


def test_projection_inside_lunch_adds_only_later_breaks():
    # Lunch already started: only the 15:30 break (10 min) is added.
    assert projected_end_time("13:00", 60) == "14:10"
