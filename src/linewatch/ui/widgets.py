from __future__ import annotations

from contextlib import contextmanager

from nicegui import ui

from linewatch.core.calendar import DEFAULT_CALENDAR, ShiftCalendar
from linewatch.core.models import ProductionStatus, RiskBand, StatusSummary
from linewatch.core.risk import DEFAULT_THRESHOLDS, RiskThresholds, band_windows, risk_label
from linewatch.core.status import status_row


_THEME_APPLIED = False

# Quasar color per band, same order as RiskBand.
BAND_COLORS: dict[RiskBand, str] = {
    RiskBand.ON_TIME: "positive",
    RiskBand.MINOR_OVERRUN: "amber-6",
    RiskBand.MODERATE_OVERRUN: "orange-8",
    RiskBand.SEVERE_OVERRUN: "negative",
}


def apply_theme() -> None:
    """Apply a lightweight global theme."""
    try:
        ui.colors(
            primary="#2563eb",  # blue-600
            secondary="#0ea5e9",  # sky-500
            positive="#16a34a",  # green-600
            negative="#dc2626",  # red-600
            warning="#f59e0b",  # amber-500
        )
    except Exception:
        # Keep running even if NiceGUI changes the API.
        pass

    ui.add_css(
        """
        body { background: #f8fafc; }
        .lw-container { max-width: 1280px; margin: 0 auto; padding: 16px; }
        .lw-header { border-bottom: 1px solid rgba(15, 23, 42, 0.08); }
        .lw-kpi .q-card { border: 1px solid rgba(15, 23, 42, 0.08); }
        .lw-status-table .q-table th, .lw-status-table .q-table td { padding: 6px 8px; }
        .lw-mono { font-family: ui-monospace, SFMono-Regular, Menlo, monospace; }
        """
    )


def ensure_theme() -> None:
    """Apply theme once, but only when called from within a page context."""
    global _THEME_APPLIED
    if _THEME_APPLIED:
        return
    apply_theme()
    _THEME_APPLIED = True


@contextmanager
def page_container():
    with ui.element("div").classes("lw-container"):
        yield


def render_nav(title: str, active: str | None = None) -> None:
    ensure_theme()
    active_key = active or "dashboard"
    sections: list[tuple[str, str, str]] = [
        ("dashboard", "Dashboard", "/"),
        ("checks", "Controles", "/checks"),
        ("plans", "Plan semanal", "/plans"),
        ("config", "Config", "/config"),
    ]

    with ui.header().classes("lw-header bg-white text-slate-900"):
        with ui.row().classes("w-full items-center justify-between gap-4 px-4 py-2"):
            ui.label(title).classes("text-xl md:text-2xl font-semibold leading-none")
            with ui.row().classes("items-center gap-1"):
                for key, label, path in sections:
                    props = "dense no-caps color=primary" + (" unelevated" if key == active_key else " flat")
                    ui.button(label, on_click=lambda p=path: ui.navigate.to(p)).props(props)


def render_summary(summary: StatusSummary) -> None:
    with ui.element("div").classes("w-full grid gap-4 grid-cols-2 lg:grid-cols-4 lw-kpi"):
        with ui.card().classes("p-4"):
            ui.label("Líneas activas").classes("text-sm text-slate-600")
            ui.label(f"{summary.active_lines}/{summary.total_lines}").classes("text-2xl font-bold")
        with ui.card().classes("p-4"):
            ui.label("Último control").classes("text-sm text-slate-600")
            ui.label(summary.latest_check_time or "--:--").classes("text-2xl font-bold lw-mono")
        with ui.card().classes("p-4"):
            ui.label("BPM promedio").classes("text-sm text-slate-600")
            avg = f"{summary.average_rate:,}" if summary.average_rate else "-"
            ui.label(avg).classes("text-2xl font-bold lw-mono")
        with ui.card().classes("p-4"):
            ui.label("Extensión prevista").classes("text-sm text-slate-600")
            with ui.row().classes("items-center gap-2"):
                if summary.overrun_count == 0:
                    ui.badge("Normal", color=BAND_COLORS[RiskBand.ON_TIME])
                for band in sorted(summary.band_counts, reverse=True):
                    n = summary.band_counts[band]
                    if band > RiskBand.ON_TIME and n > 0:
                        ui.badge(str(n), color=BAND_COLORS[band]).tooltip(risk_label(band))


def render_legend(
    calendar: ShiftCalendar = DEFAULT_CALENDAR,
    thresholds: RiskThresholds = DEFAULT_THRESHOLDS,
) -> None:
    with ui.row().classes("items-center gap-4 text-sm"):
        ui.label("Extensión prevista:").classes("text-slate-600 font-medium")
        for band, window in band_windows(calendar, thresholds):
            with ui.row().classes("items-center gap-1"):
                ui.badge(band.symbol, color=BAND_COLORS[band])
                ui.label(window).classes("text-slate-600")


def render_status_table(statuses: list[ProductionStatus]) -> None:
    if not statuses:
        ui.label("(sin planes para la semana)").classes("text-gray-500")
        return

    rows = [status_row(s) for s in statuses]
    for r in rows:
        for key in ("planned_quantity", "produced_quantity", "remaining_quantity", "current_rate", "estimated_rate"):
            r[f"{key}_fmt"] = f"{int(r[key]):,}"
        r["risk_color"] = BAND_COLORS[RiskBand[r["risk"].upper()]]

    tbl = ui.table(
        columns=[
            {"name": "line", "label": "Línea", "field": "line"},
            {"name": "product_name", "label": "Producto", "field": "product_name", "align": "left"},
            {"name": "specification", "label": "Espec.", "field": "specification"},
            {"name": "lot_number", "label": "Lote", "field": "lot_number"},
            {"name": "planned_quantity", "label": "Plan", "field": "planned_quantity_fmt"},
            {"name": "check_time", "label": "Control", "field": "check_time"},
            {"name": "produced_quantity", "label": "Producido", "field": "produced_quantity_fmt"},
            {"name": "remaining_quantity", "label": "Restante", "field": "remaining_quantity_fmt"},
            {"name": "current_rate", "label": "BPM actual", "field": "current_rate_fmt"},
            {"name": "estimated_rate", "label": "BPM estimado", "field": "estimated_rate_fmt"},
            {"name": "required_hours", "label": "Horas req.", "field": "required_hours"},
            {"name": "projected_end", "label": "Fin previsto", "field": "projected_end"},
            {"name": "risk_symbol", "label": "Ext.", "field": "risk_symbol"},
        ],
        rows=rows,
        row_key="_row_id",
    ).classes("w-full lw-status-table").props("dense flat bordered separator=cell")

    tbl.add_slot(
        "body-cell-risk_symbol",
        r"""
<q-td :props="props">
  <q-badge :color="props.row.risk_color" :label="props.value" />
</q-td>
""",
    )
