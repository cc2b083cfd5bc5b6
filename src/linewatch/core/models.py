from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import IntEnum


LINE_CODES: tuple[str, ...] = ("A", "B", "C")

NO_PROJECTION = "--:--"


class RiskBand(IntEnum):
    """Projected lateness against the nominal shift end, ordered by severity."""

    ON_TIME = 0
    MINOR_OVERRUN = 1
    MODERATE_OVERRUN = 2
    SEVERE_OVERRUN = 3

    @property
    def symbol(self) -> str:
        return _RISK_SYMBOLS[self]


_RISK_SYMBOLS: dict[RiskBand, str] = {
    RiskBand.ON_TIME: "O",
    RiskBand.MINOR_OVERRUN: "△",
    RiskBand.MODERATE_OVERRUN: "▲",
    RiskBand.SEVERE_OVERRUN: "X",
}


@dataclass(frozen=True)
class ProductionPlan:
    plan_id: str
    line: str
    product_name: str
    specification: str
    product_code: str
    lot_number: str
    planned_quantity: int
    week_start: date


@dataclass(frozen=True)
class ProductionCheck:
    check_id: str
    plan_id: str
    check_time: str  # HH:MM
    produced_quantity: int  # cumulative since shift start
    created_at: str  # ISO-8601
    created_by: str


@dataclass(frozen=True)
class RecognitionResult:
    line: str
    batch_count: int
    check_time: str
    confidence: float


@dataclass(frozen=True)
class ProductionStatus:
    plan: ProductionPlan
    check: ProductionCheck | None
    remaining_quantity: int
    current_rate: int
    estimated_rate: int
    required_hours: float | None
    projected_end: str | None
    risk: RiskBand

    @property
    def has_check(self) -> bool:
        return self.check is not None

    @property
    def projected_end_label(self) -> str:
        return self.projected_end or NO_PROJECTION

    @property
    def required_hours_label(self) -> str:
        if self.required_hours is None:
            return "-"
        return f"{self.required_hours:.1f}"

    @property
    def risk_symbol(self) -> str:
        return self.risk.symbol


@dataclass(frozen=True)
class StatusSummary:
    active_lines: int
    total_lines: int
    latest_check_time: str | None
    average_rate: int | None
    band_counts: dict[RiskBand, int]

    @property
    def overrun_count(self) -> int:
        return sum(n for band, n in self.band_counts.items() if band > RiskBand.ON_TIME)
