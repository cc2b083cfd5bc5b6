"""Throughput rates in units per minute ("BPM" on the shop floor)."""

from __future__ import annotations

from linewatch.core.calendar import DEFAULT_CALENDAR, ShiftCalendar
from linewatch.core.rounding import round_int


def current_rate(produced_quantity: int, check_time: str, calendar: ShiftCalendar = DEFAULT_CALENDAR) -> int:
    """Observed rate: produced quantity over operating minutes elapsed at the check."""
    return round_int(produced_quantity / calendar.operating_minutes_elapsed(check_time))


def design_rate(planned_quantity: int, calendar: ShiftCalendar = DEFAULT_CALENDAR) -> int:
    """Nominal rate needed to finish the plan inside the scheduled operating minutes."""
    return round_int(planned_quantity / calendar.effective_minutes)


def estimated_rate(current: int, design: int) -> int:
    # equal weights
    return round_int((current + design) / 2)
