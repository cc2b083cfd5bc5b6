"""Per-line production status: the full calendar -> rate -> projection -> risk pipeline."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from linewatch.core.calendar import DEFAULT_CALENDAR, ShiftCalendar, to_clock_time
from linewatch.core.models import (
    NO_PROJECTION,
    ProductionCheck,
    ProductionPlan,
    ProductionStatus,
    RiskBand,
    StatusSummary,
)
from linewatch.core.projection import projected_end_minutes, remaining_quantity, required_hours, required_minutes
from linewatch.core.risk import DEFAULT_THRESHOLDS, RiskThresholds, classify_risk
from linewatch.core.rounding import round_int
from linewatch.core.throughput import current_rate, design_rate, estimated_rate

logger = logging.getLogger(__name__)


def select_latest_check(checks: Iterable[ProductionCheck], plan_id: str | None = None) -> ProductionCheck | None:
    """Most recently recorded check (greatest ``created_at``); later input wins ties."""
    latest: ProductionCheck | None = None
    for c in checks:
        if plan_id is not None and c.plan_id != plan_id:
            continue
        if latest is None or c.created_at >= latest.created_at:
            latest = c
    return latest


def pending_status(plan: ProductionPlan) -> ProductionStatus:
    return ProductionStatus(
        plan=plan,
        check=None,
        remaining_quantity=plan.planned_quantity,
        current_rate=0,
        estimated_rate=0,
        required_hours=0.0,
        projected_end=None,
        risk=RiskBand.ON_TIME,
    )


def calculate_status(
    plan: ProductionPlan,
    check: ProductionCheck | None,
    calendar: ShiftCalendar = DEFAULT_CALENDAR,
    thresholds: RiskThresholds = DEFAULT_THRESHOLDS,
) -> ProductionStatus:
    """Status of one plan given its latest check (or None when nothing was recorded yet)."""
    if check is None:
        return pending_status(plan)

    remaining = remaining_quantity(plan.planned_quantity, check.produced_quantity)
    current = current_rate(check.produced_quantity, check.check_time, calendar)
    design = design_rate(plan.planned_quantity, calendar)
    estimated = estimated_rate(current, design)

    minutes = required_minutes(remaining, estimated)
    if minutes is None:
        # Rate unknown: nothing to project, so there is no evidence of lateness either.
        return ProductionStatus(
            plan=plan,
            check=check,
            remaining_quantity=remaining,
            current_rate=current,
            estimated_rate=estimated,
            required_hours=None,
            projected_end=None,
            risk=RiskBand.ON_TIME,
        )

    end_minutes = projected_end_minutes(check.check_time, minutes, calendar)
    return ProductionStatus(
        plan=plan,
        check=check,
        remaining_quantity=remaining,
        current_rate=current,
        estimated_rate=estimated,
        required_hours=required_hours(minutes),
        projected_end=to_clock_time(end_minutes),
        risk=classify_risk(end_minutes, calendar, thresholds),
    )


def calculate_statuses(
    plans: Sequence[ProductionPlan],
    checks: Sequence[ProductionCheck],
    calendar: ShiftCalendar = DEFAULT_CALENDAR,
    thresholds: RiskThresholds = DEFAULT_THRESHOLDS,
) -> list[ProductionStatus]:
    """One status per plan, each from that plan's latest check.

    A plan whose data cannot be computed is logged and left out; the rest are
    still returned.
    """
    by_plan: dict[str, list[ProductionCheck]] = {}
    for c in checks:
        by_plan.setdefault(c.plan_id, []).append(c)

    out: list[ProductionStatus] = []
    for plan in plans:
        try:
            latest = select_latest_check(by_plan.get(plan.plan_id, []))
            out.append(calculate_status(plan, latest, calendar, thresholds))
        except ValueError:
            logger.exception("No se pudo calcular el estado del plan %s (línea %s)", plan.plan_id, plan.line)
    return out


def summarize_statuses(statuses: Sequence[ProductionStatus]) -> StatusSummary:
    """Dashboard header figures over a set of statuses."""
    checked = [s for s in statuses if s.check is not None]
    rates = [s.current_rate for s in statuses if s.current_rate > 0]
    check_times = sorted(s.check.check_time for s in checked)

    counts = {band: 0 for band in RiskBand}
    for s in statuses:
        counts[s.risk] += 1

    return StatusSummary(
        active_lines=len(checked),
        total_lines=len(statuses),
        latest_check_time=check_times[-1] if check_times else None,
        average_rate=round_int(sum(rates) / len(rates)) if rates else None,
        band_counts=counts,
    )


def status_row(status: ProductionStatus) -> dict:
    """Flat display record for tables."""
    plan = status.plan
    check = status.check
    return {
        "_row_id": plan.plan_id,
        "line": plan.line,
        "product_name": plan.product_name,
        "specification": plan.specification or "",
        "product_code": plan.product_code,
        "lot_number": plan.lot_number,
        "planned_quantity": int(plan.planned_quantity),
        "check_time": check.check_time if check else NO_PROJECTION,
        "produced_quantity": int(check.produced_quantity) if check else 0,
        "remaining_quantity": int(status.remaining_quantity),
        "current_rate": int(status.current_rate),
        "estimated_rate": int(status.estimated_rate),
        "required_hours": status.required_hours_label,
        "projected_end": status.projected_end_label,
        "risk": status.risk.name.lower(),
        "risk_symbol": status.risk_symbol,
    }
