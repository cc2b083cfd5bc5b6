"""Status calculation core.

Pure functions from (plan, latest check, shift calendar) to a per-line status:
operating time, throughput rates, projected completion and overrun band.
"""

from linewatch.core.calendar import DEFAULT_CALENDAR, BreakWindow, ShiftCalendar, to_clock_time, to_minutes
from linewatch.core.models import (
    LINE_CODES,
    ProductionCheck,
    ProductionPlan,
    ProductionStatus,
    RecognitionResult,
    RiskBand,
    StatusSummary,
)
from linewatch.core.risk import DEFAULT_THRESHOLDS, RiskThresholds, classify_risk, risk_symbol
from linewatch.core.status import calculate_status, calculate_statuses, select_latest_check, summarize_statuses
from linewatch.core.units import produced_quantity, unit_multiplier

__all__ = [
    "BreakWindow",
    "DEFAULT_CALENDAR",
    "DEFAULT_THRESHOLDS",
    "LINE_CODES",
    "ProductionCheck",
    "ProductionPlan",
    "ProductionStatus",
    "RecognitionResult",
    "RiskBand",
    "RiskThresholds",
    "ShiftCalendar",
    "StatusSummary",
    "calculate_status",
    "calculate_statuses",
    "classify_risk",
    "produced_quantity",
    "risk_symbol",
    "select_latest_check",
    "summarize_statuses",
    "to_clock_time",
    "to_minutes",
    "unit_multiplier",
]
