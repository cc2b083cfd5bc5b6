import io
from datetime import date
from pathlib import Path

import pandas as pd
import pytest

from linewatch.core.calendar import DEFAULT_CALENDAR, BreakWindow, ShiftCalendar
from linewatch.core.models import RecognitionResult, RiskBand
from linewatch.core.risk import DEFAULT_THRESHOLDS, RiskThresholds
from linewatch.data.db import Db
from linewatch.data.repository import Repository

WEEK = date(2024, 1, 29)


def make_excel_bytes(data: dict) -> bytes:
    """Create a minimal Excel file from a column->values dict."""
    bio = io.BytesIO()
    pd.DataFrame(data).to_excel(bio, index=False)
    bio.seek(0)
    return bio.read()


@pytest.fixture()
def repo(tmp_path) -> Repository:
    db = Db(Path(tmp_path) / "test.db")
    db.ensure_schema()
    return Repository(db)


@pytest.fixture()
def seeded(repo):
    repo.add_plan(
        plan_id="plan-1",
        line="A",
        product_name="비타500ACE(20입)",
        specification="20입",
        product_code="71053",
        lot_number="26006",
        planned_quantity=460000,
        week_start=WEEK,
    )
    repo.add_plan(plan_id="plan-2", line="B", product_name="시험생산(TEST)", planned_quantity=460000, week_start=WEEK)
    repo.add_plan(
        plan_id="plan-3",
        line="C",
        product_name="비타오리지널",
        specification="100입",
        product_code="70741",
        lot_number="26021",
        planned_quantity=460000,
        week_start=WEEK,
    )
    return repo


def test_add_and_get_plan(repo):
    plan = repo.add_plan(line="a", product_name=" Producto ", planned_quantity=1000, week_start=WEEK)
    loaded = repo.get_plan(plan.plan_id)
    assert loaded == plan
    assert loaded.line == "A"
    assert loaded.product_name == "Producto"


def test_add_plan_validates_input(repo):
    with pytest.raises(ValueError):
        repo.add_plan(line="D", product_name="X", planned_quantity=1, week_start=WEEK)
    with pytest.raises(ValueError):
        repo.add_plan(line="A", product_name="X", planned_quantity=-1, week_start=WEEK)
    with pytest.raises(ValueError):
        repo.add_plan(line="A", product_name="  ", planned_quantity=1, week_start=WEEK)


def test_update_and_delete_plan(seeded):
    updated = seeded.update_plan("plan-2", specification="24입", planned_quantity=1000)
    assert updated.specification == "24입"
    assert updated.planned_quantity == 1000

    with pytest.raises(ValueError):
        seeded.update_plan("plan-2", colour="red")

    seeded.add_check(plan_id="plan-2", check_time="09:00", produced_quantity=10)
    seeded.delete_plan("plan-2")
    assert [p.plan_id for p in seeded.list_plans()] == ["plan-1", "plan-3"]
    assert seeded.list_checks(plan_id="plan-2") == []

    with pytest.raises(ValueError):
        seeded.delete_plan("plan-2")


def test_list_plans_filters(seeded):
    seeded.add_plan(line="A", product_name="Otra semana", planned_quantity=1, week_start=date(2024, 2, 5))
    assert len(seeded.list_plans()) == 4
    assert len(seeded.list_plans(week_start=WEEK)) == 3
    assert [p.plan_id for p in seeded.list_plans(week_start=WEEK, line="c")] == ["plan-3"]
    assert seeded.list_weeks() == [date(2024, 2, 5), WEEK]
    assert seeded.find_plan_for_line("A", week_start=WEEK).plan_id == "plan-1"
    assert seeded.find_plan_for_line("B", week_start=date(2024, 2, 5)) is None


def test_add_check_normalizes_and_validates(seeded):
    check = seeded.add_check(plan_id="plan-1", check_time="9:42", produced_quantity=40200, created_by="op")
    assert check.check_time == "09:42"
    assert seeded.list_checks(plan_id="plan-1") == [check]

    with pytest.raises(ValueError):
        seeded.add_check(plan_id="plan-1", check_time="9h42", produced_quantity=1)
    with pytest.raises(ValueError):
        seeded.add_check(plan_id="plan-1", check_time="09:42", produced_quantity=-1)
    with pytest.raises(ValueError):
        seeded.add_check(plan_id="missing", check_time="09:42", produced_quantity=1)


def test_latest_check_uses_created_at(seeded):
    seeded.add_check(plan_id="plan-1", check_time="11:00", produced_quantity=90000, created_at="2024-01-29T11:00:00")
    seeded.add_check(plan_id="plan-1", check_time="09:42", produced_quantity=40200, created_at="2024-01-29T09:42:00")
    assert seeded.get_latest_check("plan-1").check_time == "11:00"
    assert seeded.get_latest_check("plan-2") is None


def test_get_statuses(seeded):
    seeded.add_check(plan_id="plan-1", check_time="09:42", produced_quantity=40200, created_at="2024-01-29T09:42:00")
    seeded.add_check(plan_id="plan-3", check_time="09:46", produced_quantity=60900, created_at="2024-01-29T09:46:00")

    statuses = {s.plan.plan_id: s for s in seeded.get_statuses(week_start=WEEK)}

    assert statuses["plan-1"].projected_end == "20:01"
    assert statuses["plan-1"].risk is RiskBand.SEVERE_OVERRUN
    assert statuses["plan-2"].check is None
    assert statuses["plan-2"].remaining_quantity == 460000
    assert statuses["plan-3"].risk is RiskBand.MODERATE_OVERRUN


def test_get_statuses_uses_configured_thresholds(seeded):
    seeded.add_check(plan_id="plan-3", check_time="09:46", produced_quantity=60900)
    seeded.set_risk_thresholds(RiskThresholds(minor_overrun_minutes=60, moderate_overrun_minutes=180))

    status = next(s for s in seeded.get_statuses() if s.plan.plan_id == "plan-3")
    assert status.projected_end == "18:29"
    assert status.risk is RiskBand.MINOR_OVERRUN


def test_record_recognition_applies_unit_multiplier(seeded):
    result = RecognitionResult(line="A", batch_count=402, check_time="09:42", confidence=0.9)
    check = seeded.record_recognition(result, week_start=WEEK)
    assert check.plan_id == "plan-1"
    assert check.produced_quantity == 8040
    assert check.created_by == "recognition"

    result_b = RecognitionResult(line="B", batch_count=609, check_time="09:46", confidence=0.9)
    assert seeded.record_recognition(result_b).produced_quantity == 609

    explicit = seeded.record_recognition(result_b, plan_id="plan-3")
    assert explicit.plan_id == "plan-3"
    assert explicit.produced_quantity == 60900


def test_record_recognition_without_plan_for_line(repo):
    result = RecognitionResult(line="C", batch_count=1, check_time="09:42", confidence=0.9)
    with pytest.raises(ValueError):
        repo.record_recognition(result)


def test_shift_calendar_config_defaults_and_round_trip(repo):
    assert repo.get_shift_calendar() == DEFAULT_CALENDAR
    assert repo.get_risk_thresholds() == DEFAULT_THRESHOLDS

    calendar = ShiftCalendar(
        shift_start="06:00",
        shift_end="14:00",
        breaks=(BreakWindow("10:00", "10:30", "Almuerzo"),),
    )
    repo.set_shift_calendar(calendar)
    assert repo.get_shift_calendar() == calendar


def test_invalid_breaks_config_raises(repo):
    repo.set_config(key="breaks", value="not json")
    with pytest.raises(ValueError):
        repo.get_shift_calendar()


def test_unit_marker_config(seeded):
    seeded.set_config(key="unit_marker", value="EA")
    seeded.update_plan("plan-2", specification="24EA")
    result = RecognitionResult(line="B", batch_count=10, check_time="09:00", confidence=1.0)
    assert seeded.record_recognition(result).produced_quantity == 240


def test_import_plans_excel(repo):
    content = make_excel_bytes(
        {
            "라인": ["A", "B", None],
            "제품명": ["비타500ACE(20입)", "시험생산(TEST)", None],
            "규격": ["20입", "", None],
            "제품코드": [71053, None, None],
            "LOT": ["26006", "", None],
            "계획수량": [460000, 460000, None],
            "주차": ["2024-01-29", "2024-01-29", None],
        }
    )

    assert repo.import_plans_excel_bytes(content=content) == 2

    plans = repo.list_plans(week_start=WEEK)
    assert [p.line for p in plans] == ["A", "B"]
    assert plans[0].product_code == "71053"
    assert plans[0].specification == "20입"
    assert plans[1].specification == ""
    assert plans[0].planned_quantity == 460000

    # replace drops the week's plans before inserting
    assert repo.import_plans_excel_bytes(content=content, mode="replace") == 2
    assert len(repo.list_plans(week_start=WEEK)) == 2


def test_import_plans_excel_english_headers(repo):
    content = make_excel_bytes(
        {
            "Line": ["C"],
            "Product Name": ["비타오리지널"],
            "Specification": ["100입"],
            "Planned Quantity": ["460,000"],
            "Week Start": ["2024-01-29"],
        }
    )
    assert repo.import_plans_excel_bytes(content=content) == 1
    assert repo.list_plans()[0].planned_quantity == 460000


def test_import_plans_excel_rejects_bad_input(repo):
    with pytest.raises(ValueError, match="Faltan columnas"):
        repo.import_plans_excel_bytes(content=make_excel_bytes({"라인": ["A"]}))

    bad_qty = make_excel_bytes(
        {"라인": ["A", "B"], "제품명": ["X", "Y"], "계획수량": [10, "mucho"], "주차": ["2024-01-29", "2024-01-29"]}
    )
    with pytest.raises(ValueError, match="fila 3"):
        repo.import_plans_excel_bytes(content=bad_qty)
    assert repo.list_plans() == []

    with pytest.raises(ValueError):
        repo.import_plans_excel_bytes(content=bad_qty, mode="merge")


def test_import_replace_is_all_or_nothing(seeded):
    seeded.add_check(plan_id="plan-1", check_time="09:42", produced_quantity=40200)
    content = make_excel_bytes(
        {
            "라인": ["A", "B"],
            "제품명": ["Nuevo", None],
            "계획수량": [100, 200],
            "주차": ["2024-01-29", "2024-01-29"],
        }
    )

    with pytest.raises(ValueError, match="fila 3: product_name vacío"):
        seeded.import_plans_excel_bytes(content=content, mode="replace")

    assert [p.plan_id for p in seeded.list_plans(week_start=WEEK)] == ["plan-1", "plan-2", "plan-3"]
    assert len(seeded.list_checks(plan_id="plan-1")) == 1


def test_import_reports_row_for_negative_quantity(repo):
    content = make_excel_bytes(
        {"라인": ["A"], "제품명": ["X"], "계획수량": [-5], "주차": ["2024-01-29"]}
    )
    with pytest.raises(ValueError, match="fila 2: planned_quantity negativo"):
        repo.import_plans_excel_bytes(content=content)
    assert repo.list_plans() == []


def test_update_plan_runs_add_plan_checks(seeded):
    with pytest.raises(ValueError, match="product_name vacío"):
        seeded.update_plan("plan-1", product_name="  ")
    with pytest.raises(ValueError):
        seeded.update_plan("plan-1", week_start="no es fecha")
    with pytest.raises(ValueError):
        seeded.update_plan("plan-1", line="Z")

    moved = seeded.update_plan("plan-1", week_start="2024-02-05")
    assert moved.week_start == date(2024, 2, 5)
    assert seeded.get_plan("plan-1") == moved
