"""
Planned/actual rollups for worksheets.

Actual output is always the sum of item actuals; the record's own
actual_output column is only a write-path cache. Planned capacity applies the
slot coefficient (1.5 for the 90-minute slot of EXTENDED_9_5H), actual output
never does.

A Rollup walks every record and item of a worksheet once and keys them by
work hour and by (product, process). Rollups merge, so group, team,
department, office and global levels are all built the same way.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from app.models.enums import RecordStatus
from app.scheduling.shift_schedule import coefficient_for

ZERO = Decimal("0")


def efficiency(actual, planned) -> int:
    """round(actual / planned * 100), half up; 0 when nothing was planned."""
    if planned is None or Decimal(planned) <= 0:
        return 0
    ratio = Decimal(actual or 0) / Decimal(planned) * 100
    return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def as_number(value):
    """Decimal -> int when whole, float otherwise (JSON friendly)."""
    if isinstance(value, Decimal):
        return int(value) if value == value.to_integral_value() else float(value)
    return value


def effective_planned(record, worksheet) -> int:
    if record.planned_output and record.planned_output > 0:
        return record.planned_output
    return worksheet.planned_output_per_hour or 0


def record_actual(record) -> int:
    return sum(item.actual_output or 0 for item in record.items)


def record_planned_capacity(record, worksheet) -> Decimal:
    return Decimal(effective_planned(record, worksheet)) * coefficient_for(worksheet.shift_type, record.work_hour)


@dataclass
class Totals:
    planned: Decimal = ZERO
    actual: int = 0
    records: int = 0
    completed_records: int = 0

    @property
    def efficiency(self) -> int:
        return efficiency(self.actual, self.planned)

    @property
    def completion_rate(self) -> int:
        return efficiency(self.completed_records, self.records)

    def as_dict(self) -> dict:
        return {
            "total_records": self.records,
            "completed_records": self.completed_records,
            "total_planned": as_number(self.planned),
            "total_actual": self.actual,
            "efficiency": self.efficiency,
        }


def worksheet_totals(worksheet) -> Totals:
    totals = Totals()
    for record in worksheet.records:
        totals.planned += record_planned_capacity(record, worksheet)
        totals.actual += record_actual(record)
        totals.records += 1
        if record.status == RecordStatus.COMPLETED:
            totals.completed_records += 1
    return totals


def _item_shares(record, capacity: Decimal) -> List[Decimal]:
    """Split a record's planned capacity across its items by planned share."""
    weights = [Decimal(item.planned_output or 0) for item in record.items]
    total = sum(weights, ZERO)
    if total <= 0:
        return [capacity / len(record.items)] * len(record.items)
    return [capacity * weight / total for weight in weights]


@dataclass
class HourBucket:
    work_hour: int
    planned: Decimal = ZERO
    actual: int = 0
    records: int = 0
    completed_records: int = 0

    def as_dict(self) -> dict:
        return {
            "work_hour": self.work_hour,
            "total_planned": as_number(self.planned),
            "total_actual": self.actual,
            "active_workers": self.records,
            "completed_records": self.completed_records,
            "efficiency": efficiency(self.actual, self.planned),
        }


@dataclass
class ProductBucket:
    product_id: UUID
    process_id: UUID
    planned: Decimal = ZERO
    actual: int = 0

    def as_dict(self) -> dict:
        return {
            "product_id": str(self.product_id),
            "process_id": str(self.process_id),
            "total_planned": as_number(self.planned.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP).normalize()),
            "total_actual": self.actual,
            "efficiency": efficiency(self.actual, self.planned),
        }


@dataclass
class Rollup:
    totals: Totals = field(default_factory=Totals)
    worksheets: int = 0
    hours: Dict[int, HourBucket] = field(default_factory=dict)
    products: Dict[Tuple[UUID, UUID], ProductBucket] = field(default_factory=dict)

    @classmethod
    def of(cls, worksheets: Iterable) -> "Rollup":
        rollup = cls()
        for worksheet in worksheets:
            rollup.add_worksheet(worksheet)
        return rollup

    def _hour(self, work_hour: int) -> HourBucket:
        if work_hour not in self.hours:
            self.hours[work_hour] = HourBucket(work_hour)
        return self.hours[work_hour]

    def _product(self, product_id, process_id) -> ProductBucket:
        key = (product_id, process_id)
        if key not in self.products:
            self.products[key] = ProductBucket(product_id, process_id)
        return self.products[key]

    def add_worksheet(self, worksheet) -> "Rollup":
        self.worksheets += 1
        for record in worksheet.records:
            capacity = record_planned_capacity(record, worksheet)
            actual = record_actual(record)
            completed = record.status == RecordStatus.COMPLETED

            self.totals.planned += capacity
            self.totals.actual += actual
            self.totals.records += 1

            bucket = self._hour(record.work_hour)
            bucket.planned += capacity
            bucket.actual += actual
            bucket.records += 1
            if completed:
                self.totals.completed_records += 1
                bucket.completed_records += 1

            if not record.items:
                # Nothing logged yet: the capacity belongs to the worksheet defaults
                self._product(worksheet.product_id, worksheet.process_id).planned += capacity
                continue
            for item, share in zip(record.items, _item_shares(record, capacity)):
                product = self._product(item.product_id, item.process_id)
                product.planned += share
                product.actual += item.actual_output or 0
        return self

    def merge(self, other: "Rollup") -> "Rollup":
        self.worksheets += other.worksheets
        self.totals.planned += other.totals.planned
        self.totals.actual += other.totals.actual
        self.totals.records += other.totals.records
        self.totals.completed_records += other.totals.completed_records
        for work_hour, theirs in other.hours.items():
            mine = self._hour(work_hour)
            mine.planned += theirs.planned
            mine.actual += theirs.actual
            mine.records += theirs.records
            mine.completed_records += theirs.completed_records
        for (product_id, process_id), theirs in other.products.items():
            mine = self._product(product_id, process_id)
            mine.planned += theirs.planned
            mine.actual += theirs.actual
        return self

    def hourly_series(self) -> List[dict]:
        return [self.hours[hour].as_dict() for hour in sorted(self.hours)]

    def product_series(self, names: Optional[dict] = None) -> List[dict]:
        series = []
        for bucket in self.products.values():
            row = bucket.as_dict()
            if names:
                row["product_name"] = names.get(bucket.product_id)
                row["process_name"] = names.get(bucket.process_id)
            series.append(row)
        series.sort(key=lambda row: (-row["total_actual"], row["product_id"], row["process_id"]))
        return series

    def summary(self) -> dict:
        return {
            "total_planned": as_number(self.totals.planned),
            "total_actual": self.totals.actual,
            "efficiency": self.totals.efficiency,
        }
