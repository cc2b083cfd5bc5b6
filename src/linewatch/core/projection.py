"""Completion projection for the remaining quantity of a plan.

Known simplification: breaks that start after the check are added in full,
even when the projected end would come before them, and a projection that
lands inside a break is not pushed past it.
"""

from __future__ import annotations

from linewatch.core.calendar import DEFAULT_CALENDAR, ShiftCalendar, to_clock_time, to_minutes
from linewatch.core.rounding import round_half_up


def remaining_quantity(planned_quantity: int, produced_quantity: int) -> int:
    return max(planned_quantity - produced_quantity, 0)


def required_minutes(remaining: int, rate: int) -> float | None:
    """Minutes needed to produce ``remaining`` at ``rate``; None when the rate is not positive."""
    if rate <= 0:
        return None
    return remaining / rate


def required_hours(minutes: float | None) -> float | None:
    """Reporting form of :func:`required_minutes`: hours with one decimal."""
    if minutes is None:
        return None
    return round_half_up(minutes / 60, 1)


def projected_end_minutes(
    check_time: str,
    minutes_needed: float,
    calendar: ShiftCalendar = DEFAULT_CALENDAR,
) -> float:
    """Absolute minute of day (may exceed 1440) at which production should finish."""
    return to_minutes(check_time) + minutes_needed + calendar.remaining_break_minutes_after(check_time)


def projected_end_time(
    check_time: str,
    minutes_needed: float,
    calendar: ShiftCalendar = DEFAULT_CALENDAR,
) -> str:
    return to_clock_time(projected_end_minutes(check_time, minutes_needed, calendar))
