"""
Organization report: Office -> Department -> Team -> Group -> Worker.

Headcount comes from the active workers in scope, not from worksheets, so a
worker without a worksheet for the day still shows up (has_worksheet False,
zero totals). Workers are placed under their current group.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from app.models.department import Department
from app.models.group import Group
from app.models.process import Process
from app.models.product import Product
from app.models.team import Team
from app.models.worker import Worker
from app.models.worksheet import Worksheet
from app.models.worksheet_record import WorksheetRecord
from app.services.aggregation import Rollup, as_number, efficiency, record_actual, record_planned_capacity
from app.services.permissions import led_group_ids

logger = logging.getLogger(__name__)


@dataclass
class _Level:
    rollup: Rollup = field(default_factory=Rollup)
    total_workers: int = 0
    with_worksheet: int = 0

    def absorb(self, other: "_Level") -> None:
        self.rollup.merge(other.rollup)
        self.total_workers += other.total_workers
        self.with_worksheet += other.with_worksheet

    def summary(self) -> dict:
        return {
            "total_workers": self.total_workers,
            "total_with_worksheet": self.with_worksheet,
            "total_without_worksheet": self.total_workers - self.with_worksheet,
            **self.rollup.summary(),
        }

    def chart_data(self, names: dict) -> dict:
        return {
            "hourly": self.rollup.hourly_series(),
            "products": self.rollup.product_series(names),
        }


def _ref(obj, id_attr: str) -> dict:
    return {"id": str(getattr(obj, id_attr)), "code": obj.code, "name": obj.name}


def _scoped_groups(db: Session, office_id, department_id, team_id, group_id, actor: Worker) -> list[Group]:
    stmt = (
        select(Group)
        .join(Team, Group.team_id == Team.team_id)
        .join(Department, Team.department_id == Department.department_id)
    )
    # Narrowest filter wins
    if group_id is not None:
        stmt = stmt.where(Group.group_id == group_id)
    elif team_id is not None:
        stmt = stmt.where(Team.team_id == team_id)
    elif department_id is not None:
        stmt = stmt.where(Department.department_id == department_id)
    elif office_id is not None:
        stmt = stmt.where(Department.office_id == office_id)

    if not actor.is_admin:
        led = led_group_ids(db, actor)
        if not led:
            return []
        stmt = stmt.where(Group.group_id.in_(led))

    return list(db.execute(stmt).scalars().all())


def _worker_row(worker: Worker, worksheet: Optional[Worksheet], names: dict) -> tuple[dict, _Level]:
    level = _Level(total_workers=1)
    row = {
        "worker": {
            "id": str(worker.worker_id),
            "employee_code": worker.employee_code,
            "full_name": worker.full_name,
        },
        "has_worksheet": worksheet is not None,
        "worksheet_id": None,
        "shift_type": None,
        "status": None,
        "total_hours": 0,
        "planned_output_per_hour": 0,
        "total_planned": 0,
        "total_actual": 0,
        "efficiency": 0,
        "notes": "",
        "hourly_data": [],
        "product_breakdown": [],
    }
    if worksheet is None:
        return row, level

    level.with_worksheet = 1
    level.rollup.add_worksheet(worksheet)

    hourly = []
    notes = []
    for record in worksheet.records:
        planned = record_planned_capacity(record, worksheet)
        actual = record_actual(record)
        notes.extend(item.note for item in record.items if item.note)
        hourly.append({
            "work_hour": record.work_hour,
            "start_time": record.start_time.isoformat() if record.start_time else None,
            "end_time": record.end_time.isoformat() if record.end_time else None,
            "planned_output": as_number(planned),
            "actual_output": actual,
            "efficiency": efficiency(actual, planned),
            "status": record.status.value,
        })

    row.update({
        "worksheet_id": str(worksheet.worksheet_id),
        "shift_type": worksheet.shift_type.value,
        "status": worksheet.status.value,
        "total_hours": len(worksheet.records),
        "planned_output_per_hour": worksheet.planned_output_per_hour,
        **level.rollup.summary(),
        "notes": "; ".join(notes),
        "hourly_data": hourly,
        "product_breakdown": level.rollup.product_series(names),
    })
    return row, level


def _name_lookup(db: Session, worksheets: list[Worksheet]) -> dict:
    product_ids, process_ids = set(), set()
    for worksheet in worksheets:
        product_ids.add(worksheet.product_id)
        process_ids.add(worksheet.process_id)
        for record in worksheet.records:
            for item in record.items:
                product_ids.add(item.product_id)
                process_ids.add(item.process_id)
    names = {}
    if product_ids:
        names.update(db.execute(select(Product.product_id, Product.name).where(Product.product_id.in_(product_ids))).all())
    if process_ids:
        names.update(db.execute(select(Process.process_id, Process.name).where(Process.process_id.in_(process_ids))).all())
    return names


def _comparison(rows: list[dict], key: str) -> list[dict]:
    return [
        {
            f"{key}_id": row[key]["id"],
            f"{key}_code": row[key]["code"],
            f"{key}_name": row[key]["name"],
            **{k: row["summary"][k] for k in ("total_planned", "total_actual", "efficiency")},
        }
        for row in rows
    ]


def build_organization_report(
    db: Session,
    work_date: date,
    actor: Worker,
    office_id: Optional[UUID] = None,
    department_id: Optional[UUID] = None,
    team_id: Optional[UUID] = None,
    group_id: Optional[UUID] = None,
) -> dict:
    groups = _scoped_groups(db, office_id, department_id, team_id, group_id, actor)

    workers = []
    if groups:
        workers = db.execute(
            select(Worker)
            .where(Worker.group_id.in_([g.group_id for g in groups]), Worker.is_active.is_(True))
            .order_by(Worker.employee_code)
        ).scalars().all()

    worksheets = []
    if workers:
        worksheets = db.execute(
            select(Worksheet)
            .where(Worksheet.worker_id.in_([w.worker_id for w in workers]), Worksheet.work_date == work_date)
            .options(selectinload(Worksheet.records).selectinload(WorksheetRecord.items))
        ).scalars().all()
    by_worker = {ws.worker_id: ws for ws in worksheets}
    names = _name_lookup(db, worksheets)

    members: dict[UUID, list[Worker]] = {}
    for worker in workers:
        members.setdefault(worker.group_id, []).append(worker)

    # office -> department -> team -> [group]
    tree: dict = {}
    for group in groups:
        team = group.team
        department = team.department
        tree.setdefault(department.office, {}).setdefault(department, {}).setdefault(team, []).append(group)

    total = _Level()
    offices = []
    for office in sorted(tree, key=lambda o: o.code):
        office_level = _Level()
        departments = []
        for department in sorted(tree[office], key=lambda d: d.code):
            department_level = _Level()
            teams = []
            for team in sorted(tree[office][department], key=lambda t: t.code):
                team_level = _Level()
                group_rows = []
                for group in sorted(tree[office][department][team], key=lambda g: g.code):
                    group_level = _Level()
                    worker_rows = []
                    for worker in members.get(group.group_id, []):
                        row, level = _worker_row(worker, by_worker.get(worker.worker_id), names)
                        worker_rows.append(row)
                        group_level.absorb(level)
                    chart = group_level.chart_data(names)
                    chart["worker_comparison"] = [
                        {
                            "worker_code": row["worker"]["employee_code"],
                            "worker_name": row["worker"]["full_name"],
                            "total_planned": row["total_planned"],
                            "total_actual": row["total_actual"],
                            "efficiency": row["efficiency"],
                        }
                        for row in worker_rows if row["has_worksheet"]
                    ]
                    group_rows.append({
                        "group": _ref(group, "group_id"),
                        "summary": group_level.summary(),
                        "chart_data": chart,
                        "workers": worker_rows,
                    })
                    team_level.absorb(group_level)
                teams.append({
                    "team": _ref(team, "team_id"),
                    "summary": team_level.summary(),
                    "chart_data": team_level.chart_data(names),
                    "groups": group_rows,
                })
                department_level.absorb(team_level)
            departments.append({
                "department": _ref(department, "department_id"),
                "summary": department_level.summary(),
                "chart_data": department_level.chart_data(names),
                "teams": teams,
            })
            office_level.absorb(department_level)
        offices.append({
            "office": _ref(office, "office_id"),
            "summary": office_level.summary(),
            "chart_data": office_level.chart_data(names),
            "departments": departments,
        })
        total.absorb(office_level)

    chart = total.chart_data(names)
    chart["office_comparison"] = _comparison(offices, "office")

    logger.info(
        "Built organization report: %d workers, %d worksheets", total.total_workers, total.with_worksheet,
        extra={"work_date": str(work_date)},
    )
    return {
        "date": work_date.isoformat(),
        "filters": {
            "office_id": str(office_id) if office_id else None,
            "department_id": str(department_id) if department_id else None,
            "team_id": str(team_id) if team_id else None,
            "group_id": str(group_id) if group_id else None,
        },
        "summary": total.summary(),
        "offices": offices,
        "chart_data": chart,
    }
