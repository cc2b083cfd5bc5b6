from __future__ import annotations

import json
import logging
from datetime import date

from nicegui import ui

from linewatch.core.calendar import BreakWindow, ShiftCalendar
from linewatch.core.models import LINE_CODES
from linewatch.core.risk import RiskThresholds
from linewatch.core.status import summarize_statuses
from linewatch.core.units import produced_quantity
from linewatch.data.repository import Repository
from linewatch.recognition.parser import RecognitionError, parse_recognition
from linewatch.ui.widgets import page_container, render_legend, render_nav, render_status_table, render_summary

logger = logging.getLogger(__name__)


def register_pages(repo: Repository, *, plant_name: str = "Planta") -> None:
    title = f"{plant_name} · Avance de producción"

    def current_week() -> date | None:
        weeks = repo.list_weeks()
        return weeks[0] if weeks else None

    @ui.page("/")
    def dashboard() -> None:
        render_nav(title, "dashboard")
        with page_container():
            weeks = repo.list_weeks()
            week_opts = {w.isoformat(): w.isoformat() for w in weeks}
            state = {"week": weeks[0].isoformat() if weeks else None}

            @ui.refreshable
            def status_view() -> None:
                week = date.fromisoformat(state["week"]) if state["week"] else None
                try:
                    calendar = repo.get_shift_calendar()
                    thresholds = repo.get_risk_thresholds()
                except ValueError as ex:
                    ui.notify(f"Configuración inválida: {ex}", color="negative")
                    return
                statuses = repo.get_statuses(week_start=week)
                render_summary(summarize_statuses(statuses))
                with ui.card().classes("w-full"):
                    with ui.row().classes("w-full items-center justify-between"):
                        ui.label("Estado de producción").classes("text-lg font-semibold")
                        render_legend(calendar, thresholds)
                    render_status_table(statuses)

            with ui.row().classes("w-full items-center justify-between"):
                ui.label("Dashboard").classes("text-2xl font-semibold")
                with ui.row().classes("items-center gap-2"):
                    if week_opts:
                        def _on_week(e) -> None:
                            state["week"] = e.value
                            status_view.refresh()

                        ui.select(week_opts, value=state["week"], label="Semana", on_change=_on_week).classes("w-48")
                    ui.button("Actualizar", icon="refresh", on_click=status_view.refresh).props("flat no-caps")
            ui.separator()
            status_view()

    @ui.page("/checks")
    def checks_page() -> None:
        render_nav(title, "checks")
        with page_container():
            ui.label("Registrar control").classes("text-2xl font-semibold")
            ui.label("Cantidad producida = conteo de lotes × unidades por lote (según especificación).").classes(
                "text-sm text-slate-600"
            )
            ui.separator()

            plans = repo.list_plans(week_start=current_week())
            if not plans:
                ui.label("Sin planes cargados: agrega el plan semanal en /plans.").classes("text-slate-500")
                return

            plan_by_id = {p.plan_id: p for p in plans}
            plan_opts = {
                p.plan_id: f"Línea {p.line} - {p.product_name} ({p.specification or 'sin especificación'})"
                for p in plans
            }
            marker = repo.get_unit_marker()

            with ui.row().classes("w-full gap-4 items-start"):
                with ui.card().classes("p-4 w-full md:w-1/2"):
                    ui.label("Control manual").classes("text-lg font-semibold")
                    plan_sel = ui.select(plan_opts, value=plans[0].plan_id, label="Plan").classes("w-full")
                    time_in = ui.input("Hora de control (HH:MM)", placeholder="09:42").classes("w-48")
                    count_in = ui.number("Conteo de lotes", value=0, min=0, step=1, format="%d").classes("w-48")
                    qty_lbl = ui.label("").classes("text-sm text-slate-600")

                    def _refresh_qty() -> None:
                        plan = plan_by_id.get(plan_sel.value)
                        batches = int(count_in.value or 0)
                        if plan is None:
                            qty_lbl.set_text("")
                            return
                        qty = produced_quantity(batches, plan.specification, marker)
                        qty_lbl.set_text(f"Cantidad producida: {qty:,}")

                    plan_sel.on_value_change(lambda _: _refresh_qty())
                    count_in.on_value_change(lambda _: _refresh_qty())
                    _refresh_qty()

                    def _save() -> None:
                        plan = plan_by_id.get(plan_sel.value)
                        if plan is None:
                            ui.notify("Selecciona un plan", color="warning")
                            return
                        try:
                            qty = produced_quantity(int(count_in.value or 0), plan.specification, marker)
                            repo.add_check(
                                plan_id=plan.plan_id,
                                check_time=str(time_in.value or ""),
                                produced_quantity=qty,
                                created_by="manual",
                            )
                        except ValueError as ex:
                            ui.notify(f"No se pudo registrar: {ex}", color="negative")
                            return
                        ui.notify(f"Control registrado: línea {plan.line}, {qty:,} unidades")

                    ui.button("Guardar", icon="save", on_click=_save).props("unelevated no-caps")

                with ui.card().classes("p-4 w-full md:w-1/2"):
                    ui.label("Resultado de reconocimiento").classes("text-lg font-semibold")
                    ui.label("Pega la respuesta JSON del servicio o el texto leído del display.").classes(
                        "text-sm text-slate-600"
                    )
                    raw_in = ui.textarea(placeholder='{"line": "A", "batchCount": 402, "checkTime": "09:42", "confidence": 0.9}').classes(
                        "w-full"
                    )

                    def _apply_recognition() -> None:
                        raw = str(raw_in.value or "").strip()
                        try:
                            result = parse_recognition(raw)
                        except RecognitionError as ex:
                            ui.notify(str(ex), color="negative")
                            return
                        match = next((p for p in plans if p.line == result.line), None)
                        if match is not None:
                            plan_sel.set_value(match.plan_id)
                        time_in.set_value(result.check_time)
                        count_in.set_value(result.batch_count)
                        ui.notify(
                            f"Línea {result.line}, conteo {result.batch_count}, hora {result.check_time} "
                            f"(confianza {result.confidence:.0%}). Revisa y guarda."
                        )

                    ui.button("Aplicar", icon="auto_fix_high", on_click=_apply_recognition).props("flat no-caps")

    @ui.page("/plans")
    def plans_page() -> None:
        render_nav(title, "plans")
        with page_container():
            ui.label("Plan semanal").classes("text-2xl font-semibold")
            ui.separator()

            @ui.refreshable
            def plans_table() -> None:
                plans = repo.list_plans()
                if not plans:
                    ui.label("(sin planes)").classes("text-gray-500")
                    return
                rows = [
                    {
                        "plan_id": p.plan_id,
                        "week_start": p.week_start.isoformat(),
                        "line": p.line,
                        "product_name": p.product_name,
                        "specification": p.specification,
                        "product_code": p.product_code,
                        "lot_number": p.lot_number,
                        "planned_quantity": f"{p.planned_quantity:,}",
                    }
                    for p in plans
                ]
                tbl = ui.table(
                    columns=[
                        {"name": "week_start", "label": "Semana", "field": "week_start"},
                        {"name": "line", "label": "Línea", "field": "line"},
                        {"name": "product_name", "label": "Producto", "field": "product_name", "align": "left"},
                        {"name": "specification", "label": "Espec.", "field": "specification"},
                        {"name": "product_code", "label": "Código", "field": "product_code"},
                        {"name": "lot_number", "label": "Lote", "field": "lot_number"},
                        {"name": "planned_quantity", "label": "Cantidad", "field": "planned_quantity"},
                        {"name": "actions", "label": "", "field": "plan_id"},
                    ],
                    rows=rows,
                    row_key="plan_id",
                ).classes("w-full").props("dense flat bordered")
                tbl.add_slot(
                    "body-cell-actions",
                    r"""
<q-td :props="props">
  <q-btn flat dense icon="delete" color="negative" @click="$parent.$emit('delete', props.row)" />
</q-td>
""",
                )

                def _delete(e) -> None:
                    plan_id = str((e.args or {}).get("plan_id") or "")
                    try:
                        repo.delete_plan(plan_id)
                    except ValueError as ex:
                        ui.notify(str(ex), color="negative")
                        return
                    ui.notify("Plan eliminado")
                    plans_table.refresh()

                tbl.on("delete", _delete)

            with ui.card().classes("p-4 w-full"):
                ui.label("Agregar plan").classes("text-lg font-semibold")
                with ui.row().classes("items-end gap-3"):
                    line_in = ui.select(list(LINE_CODES), value=LINE_CODES[0], label="Línea").classes("w-24")
                    name_in = ui.input("Producto").classes("w-64")
                    spec_in = ui.input("Especificación", placeholder="20입").classes("w-32")
                    code_in = ui.input("Código").classes("w-32")
                    lot_in = ui.input("Lote").classes("w-32")
                    qty_in = ui.number("Cantidad", value=0, min=0, step=1000, format="%d").classes("w-40")
                    week_in = ui.input("Semana (YYYY-MM-DD)", value=date.today().isoformat()).classes("w-44")

                    def _add() -> None:
                        try:
                            repo.add_plan(
                                line=str(line_in.value),
                                product_name=str(name_in.value or ""),
                                specification=str(spec_in.value or ""),
                                product_code=str(code_in.value or ""),
                                lot_number=str(lot_in.value or ""),
                                planned_quantity=int(qty_in.value or 0),
                                week_start=date.fromisoformat(str(week_in.value or "").strip()),
                            )
                        except ValueError as ex:
                            ui.notify(f"No se pudo agregar: {ex}", color="negative")
                            return
                        ui.notify("Plan agregado")
                        plans_table.refresh()

                    ui.button("Agregar", icon="add", on_click=_add).props("unelevated no-caps")

            with ui.card().classes("p-4 w-full"):
                ui.label("Importar plan semanal (.xlsx)").classes("text-lg font-semibold")
                ui.label("Columnas: 라인/line, 제품명/product_name, 규격/specification, 제품코드, LOT, 계획수량, 주차.").classes(
                    "text-sm text-slate-600"
                )
                replace_sw = ui.switch("Reemplazar semanas del archivo", value=False)

                async def handle_upload(e) -> None:
                    try:
                        content = await e.file.read()
                        n = repo.import_plans_excel_bytes(content=content, mode=("replace" if replace_sw.value else "append"))
                    except ValueError as ex:
                        ui.notify(f"Error importando: {ex}", color="negative")
                        return
                    ui.notify(f"Importado: {n} planes")
                    plans_table.refresh()

                ui.upload(label="Plan semanal", on_upload=handle_upload, auto_upload=True).props("accept=.xlsx max-files=1")

            plans_table()

    @ui.page("/config")
    def config_page() -> None:
        render_nav(title, "config")
        with page_container():
            ui.label("Configuración").classes("text-2xl font-semibold")
            ui.separator()

            try:
                calendar = repo.get_shift_calendar()
                thresholds = repo.get_risk_thresholds()
            except ValueError as ex:
                ui.notify(f"Configuración inválida, se muestran valores por defecto: {ex}", color="warning")
                calendar, thresholds = ShiftCalendar(), RiskThresholds()

            with ui.card().classes("p-4 w-full"):
                ui.label("Turno y descansos").classes("text-lg font-semibold")
                with ui.row().classes("gap-3"):
                    start_in = ui.input("Inicio turno", value=calendar.shift_start).classes("w-32")
                    end_in = ui.input("Fin turno", value=calendar.shift_end).classes("w-32")
                breaks_in = ui.textarea(
                    "Descansos (JSON: [[inicio, fin, nombre], ...])",
                    value=json.dumps([[b.start, b.end, b.label] for b in calendar.breaks], ensure_ascii=False),
                ).classes("w-full")

            with ui.card().classes("p-4 w-full"):
                ui.label("Umbrales de extensión (minutos después del fin de turno)").classes("text-lg font-semibold")
                with ui.row().classes("gap-3"):
                    minor_in = ui.number("Leve hasta", value=thresholds.minor_overrun_minutes, min=0, step=5, format="%d")
                    moderate_in = ui.number(
                        "Moderada hasta", value=thresholds.moderate_overrun_minutes, min=0, step=5, format="%d"
                    )

            def _save() -> None:
                try:
                    items = json.loads(str(breaks_in.value or "[]"))
                    new_calendar = ShiftCalendar(
                        shift_start=str(start_in.value or "").strip(),
                        shift_end=str(end_in.value or "").strip(),
                        breaks=tuple(BreakWindow(str(it[0]), str(it[1]), str(it[2]) if len(it) > 2 else "") for it in items),
                    )
                    new_thresholds = RiskThresholds(
                        minor_overrun_minutes=int(minor_in.value or 0),
                        moderate_overrun_minutes=int(moderate_in.value or 0),
                    )
                except (ValueError, TypeError, IndexError) as ex:
                    ui.notify(f"Configuración inválida: {ex}", color="negative")
                    return
                repo.set_shift_calendar(new_calendar)
                repo.set_risk_thresholds(new_thresholds)
                ui.notify("Configuración guardada")

            ui.button("Guardar", icon="save", on_click=_save).props("unelevated no-caps")
