"""Shift calendar: clock-time arithmetic over the daily break schedule.

Production counters keep running during breaks, so the operating time used as
the rate denominator must leave break time out, while forward projections must
add back the breaks that have not happened yet.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from linewatch.core.rounding import round_int


MINUTES_PER_DAY = 24 * 60

_CLOCK_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


def to_minutes(clock_time: str) -> int:
    """Convert ``H:MM``/``HH:MM`` (24 h) to minutes since midnight.

    Raises ValueError for anything else; callers are expected to pass clean times.
    """
    s = str(clock_time or "").strip()
    m = _CLOCK_RE.match(s)
    if not m:
        raise ValueError(f"hora inválida (se espera HH:MM): {clock_time!r}")
    hours, minutes = int(m.group(1)), int(m.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"hora fuera de rango: {clock_time!r}")
    return hours * 60 + minutes


def to_clock_time(minutes: float) -> str:
    """Inverse of :func:`to_minutes`; rounds to the minute and wraps past midnight."""
    total = round_int(minutes) % MINUTES_PER_DAY
    hours, mins = divmod(total, 60)
    return f"{hours:02d}:{mins:02d}"


@dataclass(frozen=True)
class BreakWindow:
    start: str
    end: str
    label: str = ""

    def __post_init__(self):
        if to_minutes(self.end) <= to_minutes(self.start):
            raise ValueError(f"descanso inválido: {self.start}-{self.end} (fin antes del inicio)")

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.start)

    @property
    def end_minutes(self) -> int:
        return to_minutes(self.end)

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    def elapsed_by(self, minute: int) -> int:
        """Minutes of this break already consumed at ``minute`` (0 to full duration)."""
        return max(0, min(minute - self.start_minutes, self.duration_minutes))


@dataclass(frozen=True)
class ShiftCalendar:
    """Fixed daily shift with its break windows."""

    shift_start: str = "08:30"
    shift_end: str = "17:30"
    breaks: tuple[BreakWindow, ...] = field(default_factory=tuple)

    def __post_init__(self):
        start, end = to_minutes(self.shift_start), to_minutes(self.shift_end)
        if end <= start:
            raise ValueError(f"turno inválido: {self.shift_start}-{self.shift_end}")

        # Keep breaks sorted by start time
        ordered = tuple(sorted(self.breaks, key=lambda b: b.start_minutes))
        object.__setattr__(self, "breaks", ordered)

        for b in ordered:
            if b.start_minutes < start or b.end_minutes > end:
                raise ValueError(f"descanso {b.start}-{b.end} fuera del turno {self.shift_start}-{self.shift_end}")
        for prev, cur in zip(ordered, ordered[1:]):
            if cur.start_minutes < prev.end_minutes:
                raise ValueError(f"descansos superpuestos: {prev.start}-{prev.end} y {cur.start}-{cur.end}")

    @property
    def start_minutes(self) -> int:
        return to_minutes(self.shift_start)

    @property
    def end_minutes(self) -> int:
        return to_minutes(self.shift_end)

    @property
    def total_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    @property
    def total_break_minutes(self) -> int:
        return sum(b.duration_minutes for b in self.breaks)

    @property
    def effective_minutes(self) -> int:
        """Scheduled operating minutes per shift (total minus breaks)."""
        return self.total_minutes - self.total_break_minutes

    def operating_minutes_elapsed(self, check_time: str) -> int:
        """Minutes since shift start up to ``check_time``, net of break time.

        A break in progress only counts its elapsed part. Never below 1.
        """
        check = to_minutes(check_time)
        elapsed = check - self.start_minutes
        for b in self.breaks:
            elapsed -= b.elapsed_by(check)
        return max(elapsed, 1)

    def remaining_break_minutes_after(self, check_time: str) -> int:
        """Full duration of every break that starts strictly after ``check_time``."""
        check = to_minutes(check_time)
        return sum(b.duration_minutes for b in self.breaks if b.start_minutes > check)


DEFAULT_CALENDAR = ShiftCalendar(
    shift_start="08:30",
    shift_end="17:30",
    breaks=(
        BreakWindow("10:30", "10:40", "Descanso mañana"),
        BreakWindow("12:30", "13:30", "Almuerzo"),
        BreakWindow("15:30", "15:40", "Descanso tarde"),
    ),
)


def operating_minutes_elapsed(check_time: str, calendar: ShiftCalendar = DEFAULT_CALENDAR) -> int:
    return calendar.operating_minutes_elapsed(check_time)


def remaining_break_minutes_after(check_time: str, calendar: ShiftCalendar = DEFAULT_CALENDAR) -> int:
    return calendar.remaining_break_minutes_after(check_time)
