from __future__ import annotations

import json
import logging
from datetime import date, datetime
from uuid import uuid4

from linewatch.core.calendar import DEFAULT_CALENDAR, BreakWindow, ShiftCalendar, to_clock_time, to_minutes
from linewatch.core.models import LINE_CODES, ProductionCheck, ProductionPlan, ProductionStatus, RecognitionResult
from linewatch.core.risk import DEFAULT_THRESHOLDS, RiskThresholds
from linewatch.core.status import calculate_statuses, select_latest_check
from linewatch.core.units import DEFAULT_UNIT_MARKER, produced_quantity
from linewatch.data.db import Db
from linewatch.data.excel_io import cell_text, coerce_date, normalize_plan_columns, parse_int_strict, read_excel_bytes

logger = logging.getLogger(__name__)

_PLAN_FIELDS = (
    "plan_id",
    "line",
    "product_name",
    "specification",
    "product_code",
    "lot_number",
    "planned_quantity",
    "week_start",
)


class Repository:
    def __init__(self, db: Db):
        self.db = db

    # ---------- Config ----------
    def get_config(self, *, key: str, default: str | None = None) -> str | None:
        key = str(key).strip()
        if not key:
            raise ValueError("config key vacío")
        with self.db.connect() as con:
            row = con.execute("SELECT value FROM app_config WHERE key = ?", (key,)).fetchone()
        if row is None:
            return default
        return str(row[0])

    def set_config(self, *, key: str, value: str) -> None:
        key = str(key).strip()
        if not key:
            raise ValueError("config key vacío")
        with self.db.connect() as con:
            con.execute(
                "INSERT INTO app_config(key, value) VALUES(?, ?) ON CONFLICT(key) DO UPDATE SET value=excluded.value",
                (key, str(value).strip()),
            )

    def get_shift_calendar(self) -> ShiftCalendar:
        """Shift calendar from config; defaults for any key not set."""
        start = self.get_config(key="shift_start")
        end = self.get_config(key="shift_end")
        breaks_raw = self.get_config(key="breaks")
        if start is None and end is None and breaks_raw is None:
            return DEFAULT_CALENDAR

        breaks = DEFAULT_CALENDAR.breaks
        if breaks_raw is not None:
            try:
                items = json.loads(breaks_raw)
            except json.JSONDecodeError as ex:
                raise ValueError(f"config breaks inválido: {ex}") from ex
            if not isinstance(items, list):
                raise ValueError("config breaks debe ser una lista de [inicio, fin, nombre]")
            breaks = tuple(BreakWindow(str(it[0]), str(it[1]), str(it[2]) if len(it) > 2 else "") for it in items)

        return ShiftCalendar(
            shift_start=start or DEFAULT_CALENDAR.shift_start,
            shift_end=end or DEFAULT_CALENDAR.shift_end,
            breaks=breaks,
        )

    def set_shift_calendar(self, calendar: ShiftCalendar) -> None:
        self.set_config(key="shift_start", value=calendar.shift_start)
        self.set_config(key="shift_end", value=calendar.shift_end)
        self.set_config(
            key="breaks",
            value=json.dumps([[b.start, b.end, b.label] for b in calendar.breaks], ensure_ascii=False),
        )
        logger.info("Calendario de turno actualizado: %s-%s, %d descansos", calendar.shift_start, calendar.shift_end, len(calendar.breaks))

    def get_risk_thresholds(self) -> RiskThresholds:
        minor = self.get_config(key="risk_minor_minutes")
        moderate = self.get_config(key="risk_moderate_minutes")
        return RiskThresholds(
            minor_overrun_minutes=(
                parse_int_strict(minor, field="risk_minor_minutes")
                if minor is not None
                else DEFAULT_THRESHOLDS.minor_overrun_minutes
            ),
            moderate_overrun_minutes=(
                parse_int_strict(moderate, field="risk_moderate_minutes")
                if moderate is not None
                else DEFAULT_THRESHOLDS.moderate_overrun_minutes
            ),
        )

    def set_risk_thresholds(self, thresholds: RiskThresholds) -> None:
        self.set_config(key="risk_minor_minutes", value=str(int(thresholds.minor_overrun_minutes)))
        self.set_config(key="risk_moderate_minutes", value=str(int(thresholds.moderate_overrun_minutes)))

    def get_unit_marker(self) -> str:
        return self.get_config(key="unit_marker", default=DEFAULT_UNIT_MARKER) or DEFAULT_UNIT_MARKER

    # ---------- Plans ----------
    @staticmethod
    def _normalize_line(line: str) -> str:
        s = str(line or "").strip().upper()
        if s not in LINE_CODES:
            raise ValueError(f"línea no soportada: {line!r} (válidas: {', '.join(LINE_CODES)})")
        return s

    @staticmethod
    def _plan_from_row(row) -> ProductionPlan:
        return ProductionPlan(
            plan_id=str(row["plan_id"]),
            line=str(row["line"]),
            product_name=str(row["product_name"]),
            specification=str(row["specification"] or ""),
            product_code=str(row["product_code"] or ""),
            lot_number=str(row["lot_number"] or ""),
            planned_quantity=int(row["planned_quantity"]),
            week_start=date.fromisoformat(str(row["week_start"])),
        )

    def _build_plan(
        self,
        *,
        plan_id: str,
        line: str,
        product_name: str,
        planned_quantity: int,
        week_start,
        specification: str = "",
        product_code: str = "",
        lot_number: str = "",
    ) -> ProductionPlan:
        quantity = parse_int_strict(planned_quantity, field="planned_quantity")
        if quantity < 0:
            raise ValueError(f"planned_quantity negativo: {planned_quantity!r}")
        name = str(product_name or "").strip()
        if not name:
            raise ValueError("product_name vacío")
        return ProductionPlan(
            plan_id=str(plan_id),
            line=self._normalize_line(line),
            product_name=name,
            specification=str(specification or "").strip(),
            product_code=str(product_code or "").strip(),
            lot_number=str(lot_number or "").strip(),
            planned_quantity=quantity,
            week_start=coerce_date(week_start),
        )

    @staticmethod
    def _insert_plan(con, plan: ProductionPlan) -> None:
        con.execute(
            f"INSERT INTO production_plan({', '.join(_PLAN_FIELDS)}) VALUES({', '.join('?' for _ in _PLAN_FIELDS)})",
            (
                plan.plan_id,
                plan.line,
                plan.product_name,
                plan.specification,
                plan.product_code,
                plan.lot_number,
                plan.planned_quantity,
                plan.week_start.isoformat(),
            ),
        )

    def add_plan(
        self,
        *,
        line: str,
        product_name: str,
        planned_quantity: int,
        week_start: date,
        specification: str = "",
        product_code: str = "",
        lot_number: str = "",
        plan_id: str | None = None,
    ) -> ProductionPlan:
        plan = self._build_plan(
            plan_id=plan_id or f"plan-{uuid4().hex[:12]}",
            line=line,
            product_name=product_name,
            planned_quantity=planned_quantity,
            week_start=week_start,
            specification=specification,
            product_code=product_code,
            lot_number=lot_number,
        )
        with self.db.connect() as con:
            self._insert_plan(con, plan)
        return plan

    def update_plan(self, plan_id: str, **changes) -> ProductionPlan:
        current = self.get_plan(plan_id)
        unknown = set(changes) - set(_PLAN_FIELDS[1:])
        if unknown:
            raise ValueError(f"campos de plan desconocidos: {sorted(unknown)}")

        data = {f: getattr(current, f) for f in _PLAN_FIELDS}
        data.update(changes)
        plan = self._build_plan(**data)

        with self.db.connect() as con:
            con.execute(
                """
                UPDATE production_plan
                SET line = ?, product_name = ?, specification = ?, product_code = ?,
                    lot_number = ?, planned_quantity = ?, week_start = ?
                WHERE plan_id = ?
                """,
                (
                    plan.line,
                    plan.product_name,
                    plan.specification,
                    plan.product_code,
                    plan.lot_number,
                    plan.planned_quantity,
                    plan.week_start.isoformat(),
                    plan_id,
                ),
            )
        return plan

    def delete_plan(self, plan_id: str) -> None:
        with self.db.connect() as con:
            cur = con.execute("DELETE FROM production_plan WHERE plan_id = ?", (plan_id,))
        if cur.rowcount == 0:
            raise ValueError(f"plan no encontrado: {plan_id!r}")

    def get_plan(self, plan_id: str) -> ProductionPlan:
        with self.db.connect() as con:
            row = con.execute("SELECT * FROM production_plan WHERE plan_id = ?", (plan_id,)).fetchone()
        if row is None:
            raise ValueError(f"plan no encontrado: {plan_id!r}")
        return self._plan_from_row(row)

    def list_plans(self, *, week_start: date | None = None, line: str | None = None) -> list[ProductionPlan]:
        where: list[str] = []
        params: list[str] = []
        if week_start is not None:
            where.append("week_start = ?")
            params.append(week_start.isoformat())
        if line is not None:
            where.append("line = ?")
            params.append(self._normalize_line(line))
        sql = "SELECT * FROM production_plan"
        if where:
            sql += " WHERE " + " AND ".join(where)
        sql += " ORDER BY week_start, line, rowid"
        with self.db.connect() as con:
            rows = con.execute(sql, params).fetchall()
        return [self._plan_from_row(r) for r in rows]

    def list_weeks(self) -> list[date]:
        with self.db.connect() as con:
            rows = con.execute("SELECT DISTINCT week_start FROM production_plan ORDER BY week_start DESC").fetchall()
        return [date.fromisoformat(str(r[0])) for r in rows]

    def find_plan_for_line(self, line: str, *, week_start: date | None = None) -> ProductionPlan | None:
        plans = self.list_plans(week_start=week_start, line=line)
        return plans[0] if plans else None

    # ---------- Checks ----------
    @staticmethod
    def _check_from_row(row) -> ProductionCheck:
        return ProductionCheck(
            check_id=str(row["check_id"]),
            plan_id=str(row["plan_id"]),
            check_time=str(row["check_time"]),
            produced_quantity=int(row["produced_quantity"]),
            created_at=str(row["created_at"]),
            created_by=str(row["created_by"] or ""),
        )

    def add_check(
        self,
        *,
        plan_id: str,
        check_time: str,
        produced_quantity: int,
        created_by: str = "",
        created_at: str | None = None,
    ) -> ProductionCheck:
        # Validates the plan exists and the time parses; stored normalized as HH:MM.
        self.get_plan(plan_id)
        normalized_time = to_clock_time(to_minutes(check_time))
        quantity = int(produced_quantity)
        if quantity < 0:
            raise ValueError(f"produced_quantity negativo: {produced_quantity!r}")

        check = ProductionCheck(
            check_id=f"check-{uuid4().hex[:12]}",
            plan_id=plan_id,
            check_time=normalized_time,
            produced_quantity=quantity,
            created_at=created_at or datetime.now().isoformat(timespec="seconds"),
            created_by=str(created_by or ""),
        )
        with self.db.connect() as con:
            con.execute(
                """
                INSERT INTO production_check(check_id, plan_id, check_time, produced_quantity, created_at, created_by)
                VALUES(?, ?, ?, ?, ?, ?)
                """,
                (
                    check.check_id,
                    check.plan_id,
                    check.check_time,
                    check.produced_quantity,
                    check.created_at,
                    check.created_by,
                ),
            )
        logger.info("Control registrado: plan %s a las %s, cantidad %d", plan_id, check.check_time, quantity)
        return check

    def list_checks(self, *, plan_id: str | None = None) -> list[ProductionCheck]:
        # rowid keeps insertion order for equal timestamps.
        with self.db.connect() as con:
            if plan_id is None:
                rows = con.execute("SELECT * FROM production_check ORDER BY created_at, rowid").fetchall()
            else:
                rows = con.execute(
                    "SELECT * FROM production_check WHERE plan_id = ? ORDER BY created_at, rowid",
                    (plan_id,),
                ).fetchall()
        return [self._check_from_row(r) for r in rows]

    def get_latest_check(self, plan_id: str) -> ProductionCheck | None:
        return select_latest_check(self.list_checks(plan_id=plan_id))

    def record_recognition(
        self,
        result: RecognitionResult,
        *,
        plan_id: str | None = None,
        week_start: date | None = None,
        created_by: str = "recognition",
    ) -> ProductionCheck:
        """Store a recognition result as a check, converting batches to units.

        Without ``plan_id`` the first plan of the recognized line is used.
        """
        if plan_id is None:
            plan = self.find_plan_for_line(result.line, week_start=week_start)
            if plan is None:
                raise ValueError(f"no hay plan para la línea {result.line!r}")
        else:
            plan = self.get_plan(plan_id)

        quantity = produced_quantity(result.batch_count, plan.specification, self.get_unit_marker())
        return self.add_check(
            plan_id=plan.plan_id,
            check_time=result.check_time,
            produced_quantity=quantity,
            created_by=created_by,
        )

    # ---------- Status ----------
    def get_statuses(self, *, week_start: date | None = None) -> list[ProductionStatus]:
        plans = self.list_plans(week_start=week_start)
        plan_ids = {p.plan_id for p in plans}
        checks = [c for c in self.list_checks() if c.plan_id in plan_ids]
        return calculate_statuses(plans, checks, self.get_shift_calendar(), self.get_risk_thresholds())

    # ---------- Excel import ----------
    def import_plans_excel_bytes(self, *, content: bytes, mode: str = "append") -> int:
        """Import weekly plans from an .xlsx export.

        ``replace`` first deletes the plans (and their checks) of every week in the file.
        Returns the number of plans imported.
        """
        mode = str(mode or "append").strip().lower()
        if mode not in {"append", "replace"}:
            raise ValueError(f"modo de importación inválido: {mode!r}")

        df = normalize_plan_columns(read_excel_bytes(content))
        parsed: list[ProductionPlan] = []
        for idx, r in enumerate(df.to_dict(orient="records"), start=2):
            line_raw = cell_text(r.get("line"))
            if not line_raw and not cell_text(r.get("product_name")):
                # blank spacer rows
                continue
            try:
                parsed.append(
                    self._build_plan(
                        plan_id=f"plan-{uuid4().hex[:12]}",
                        line=line_raw,
                        product_name=cell_text(r.get("product_name")),
                        specification=cell_text(r.get("specification")),
                        product_code=cell_text(r.get("product_code")),
                        lot_number=cell_text(r.get("lot_number")),
                        planned_quantity=r.get("planned_quantity"),
                        week_start=r.get("week_start"),
                    )
                )
            except ValueError as ex:
                raise ValueError(f"fila {idx}: {ex}") from ex

        # delete and inserts commit or roll back together
        with self.db.connect() as con:
            if mode == "replace":
                weeks = sorted({p.week_start.isoformat() for p in parsed})
                con.executemany("DELETE FROM production_plan WHERE week_start = ?", [(w,) for w in weeks])
            for plan in parsed:
                self._insert_plan(con, plan)
        logger.info("Plan semanal importado: %d planes (modo %s)", len(parsed), mode)
        return len(parsed)
