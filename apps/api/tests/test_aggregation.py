"""Planned/actual math on plain objects, no database."""
import uuid
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.models.enums import RecordStatus, ShiftType
from app.services.aggregation import (
    Rollup,
    as_number,
    effective_planned,
    efficiency,
    record_actual,
    record_planned_capacity,
    worksheet_totals,
)

PRODUCT_A, PRODUCT_B = uuid.uuid4(), uuid.uuid4()
PROCESS_X = uuid.uuid4()


def item(actual, planned=0, product=PRODUCT_A, process=PROCESS_X):
    return SimpleNamespace(product_id=product, process_id=process, planned_output=planned, actual_output=actual)


def record(hour, planned=0, items=(), status=RecordStatus.PENDING):
    return SimpleNamespace(work_hour=hour, planned_output=planned, items=list(items), status=status, actual_output=0)


def worksheet(shift_type, per_hour, records):
    return SimpleNamespace(
        shift_type=shift_type,
        planned_output_per_hour=per_hour,
        product_id=PRODUCT_A,
        process_id=PROCESS_X,
        records=records,
    )


@pytest.mark.parametrize("actual, planned, expected", [
    (0, 0, 0),
    (150, 100, 150),
    (150, 180, 83),
    (1, 8, 13),  # 12.5 rounds half up
    (50, -10, 0),
    (0, 180, 0),
])
def test_efficiency(actual, planned, expected):
    assert efficiency(actual, planned) == expected


def test_effective_planned_falls_back_to_worksheet_target():
    ws = worksheet(ShiftType.NORMAL_8H, 180, [])
    assert effective_planned(record(1, planned=0), ws) == 180
    assert effective_planned(record(1, planned=200), ws) == 200


def test_record_actual_ignores_cached_column():
    rec = record(1, items=[item(100), item(25)])
    rec.actual_output = 999
    assert record_actual(rec) == 125


def test_extended_hour_nine_counts_one_and_a_half_hours():
    ws = worksheet(ShiftType.EXTENDED_9_5H, 180, [])
    assert record_planned_capacity(record(9), ws) == Decimal("270")
    assert record_planned_capacity(record(8), ws) == Decimal("180")


def test_worksheet_totals_for_extended_shift():
    records = [record(hour) for hour in range(1, 10)]
    records[0] = record(1, items=[item(150)], status=RecordStatus.COMPLETED)
    ws = worksheet(ShiftType.EXTENDED_9_5H, 180, records)

    totals = worksheet_totals(ws)
    assert totals.planned == Decimal("1710")  # 180 x 9.5
    assert totals.actual == 150
    assert totals.records == 9
    assert totals.completed_records == 1
    assert totals.efficiency == 9
    assert totals.as_dict()["total_planned"] == 1710


def test_product_planned_split_by_item_share():
    rec = record(1, planned=100, items=[item(50, planned=60), item(30, planned=40, product=PRODUCT_B)])
    rollup = Rollup.of([worksheet(ShiftType.NORMAL_8H, 100, [rec])])

    products = {row["product_id"]: row for row in rollup.product_series()}
    assert products[str(PRODUCT_A)]["total_planned"] == 60
    assert products[str(PRODUCT_B)]["total_planned"] == 40
    assert products[str(PRODUCT_A)]["total_actual"] == 50
    # Highest actual first
    assert rollup.product_series()[0]["product_id"] == str(PRODUCT_A)


def test_product_planned_split_evenly_without_item_targets():
    rec = record(9, planned=100, items=[item(10), item(20, product=PRODUCT_B)])
    rollup = Rollup.of([worksheet(ShiftType.EXTENDED_9_5H, 100, [rec])])

    planned = sorted(row["total_planned"] for row in rollup.product_series())
    assert planned == [75, 75]


def test_itemless_records_plan_against_worksheet_defaults():
    rollup = Rollup.of([worksheet(ShiftType.NORMAL_8H, 180, [record(1), record(2)])])
    [row] = rollup.product_series()
    assert row["product_id"] == str(PRODUCT_A)
    assert row["total_planned"] == 360
    assert row["total_actual"] == 0


def test_rollup_merge_and_hourly_series():
    first = Rollup.of([worksheet(ShiftType.NORMAL_8H, 100, [record(2, items=[item(90)]), record(1, items=[item(100)])])])
    second = Rollup.of([worksheet(ShiftType.EXTENDED_9_5H, 100, [record(1, items=[item(50)]), record(9, items=[item(120)])])])

    merged = Rollup().merge(first).merge(second)
    hourly = merged.hourly_series()

    assert [row["work_hour"] for row in hourly] == [1, 2, 9]
    assert hourly[0]["total_planned"] == 200
    assert hourly[0]["total_actual"] == 150
    assert hourly[0]["active_workers"] == 2
    assert hourly[2]["total_planned"] == 150
    assert hourly[2]["efficiency"] == 80
    assert merged.summary() == {"total_planned": 450, "total_actual": 360, "efficiency": 80}
    assert merged.worksheets == 2


def test_as_number():
    assert as_number(Decimal("270.0")) == 270
    assert isinstance(as_number(Decimal("270.0")), int)
    assert as_number(Decimal("12.5")) == 12.5
    assert as_number(7) == 7
