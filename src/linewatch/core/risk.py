from __future__ import annotations

from dataclasses import dataclass

from linewatch.core.calendar import DEFAULT_CALENDAR, ShiftCalendar, to_clock_time
from linewatch.core.models import RiskBand


@dataclass(frozen=True)
class RiskThresholds:
    """Overrun cut points, in minutes after the nominal shift end."""

    minor_overrun_minutes: int = 30
    moderate_overrun_minutes: int = 120

    def __post_init__(self):
        if self.minor_overrun_minutes < 0:
            raise ValueError("minor_overrun_minutes no puede ser negativo")
        if self.moderate_overrun_minutes < self.minor_overrun_minutes:
            raise ValueError("moderate_overrun_minutes debe ser >= minor_overrun_minutes")


DEFAULT_THRESHOLDS = RiskThresholds()

_LABELS: dict[RiskBand, str] = {
    RiskBand.ON_TIME: "A tiempo",
    RiskBand.MINOR_OVERRUN: "Extensión leve",
    RiskBand.MODERATE_OVERRUN: "Extensión moderada",
    RiskBand.SEVERE_OVERRUN: "Extensión severa",
}


def classify_risk(
    projected_end_minutes: float,
    calendar: ShiftCalendar = DEFAULT_CALENDAR,
    thresholds: RiskThresholds = DEFAULT_THRESHOLDS,
) -> RiskBand:
    """Band for an absolute projected end minute. Upper bounds are inclusive."""
    shift_end = calendar.end_minutes
    if projected_end_minutes <= shift_end:
        return RiskBand.ON_TIME
    if projected_end_minutes <= shift_end + thresholds.minor_overrun_minutes:
        return RiskBand.MINOR_OVERRUN
    if projected_end_minutes <= shift_end + thresholds.moderate_overrun_minutes:
        return RiskBand.MODERATE_OVERRUN
    return RiskBand.SEVERE_OVERRUN


def risk_symbol(band: RiskBand) -> str:
    return band.symbol


def risk_label(band: RiskBand) -> str:
    return _LABELS[band]


def band_windows(
    calendar: ShiftCalendar = DEFAULT_CALENDAR,
    thresholds: RiskThresholds = DEFAULT_THRESHOLDS,
) -> list[tuple[RiskBand, str]]:
    """Legend rows: (band, human readable time range)."""
    end = calendar.end_minutes
    minor = to_clock_time(end + thresholds.minor_overrun_minutes)
    moderate = to_clock_time(end + thresholds.moderate_overrun_minutes)
    return [
        (RiskBand.ON_TIME, f"hasta {calendar.shift_end}"),
        (RiskBand.MINOR_OVERRUN, f"{calendar.shift_end}~{minor}"),
        (RiskBand.MODERATE_OVERRUN, f"{minor}~{moderate}"),
        (RiskBand.SEVERE_OVERRUN, f"después de {moderate}"),
    ]
