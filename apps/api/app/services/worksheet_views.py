"""Read-only shapes for the dashboard: grid, detail, analytics, lists, day dashboards."""
from datetime import date, datetime, timezone
from typing import Optional
from uuid import UUID

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session, selectinload

from app.core.errors import NotFoundError, PermissionDenied
from app.models.enums import RecordStatus, WorksheetStatus
from app.models.office import Office
from app.models.worker import Worker
from app.models.worksheet import Worksheet
from app.models.worksheet_record import WorksheetRecord
from app.scheduling.shift_schedule import current_work_hour
from app.services.aggregation import (
    Rollup,
    as_number,
    efficiency,
    record_actual,
    record_planned_capacity,
    worksheet_totals,
)
from app.services.permissions import can_view_worksheet, ensure_admin, ensure_group_manager, led_group_ids
from app.services.worksheet_store import get_group, get_worksheet


def _iso(value):
    return value.isoformat() if value is not None else None


def _named(obj, id_attr: str) -> Optional[dict]:
    if obj is None:
        return None
    return {"id": str(getattr(obj, id_attr)), "code": obj.code, "name": obj.name}


def _worker_ref(worker: Optional[Worker]) -> Optional[dict]:
    if worker is None:
        return None
    return {"id": str(worker.worker_id), "employee_code": worker.employee_code, "full_name": worker.full_name}


def _item_out(item) -> dict:
    return {
        "entry_index": item.entry_index,
        "product": _named(item.product, "product_id"),
        "process": _named(item.process, "process_id"),
        "planned_output": item.planned_output,
        "actual_output": item.actual_output,
        "note": item.note,
    }


def record_out(record: WorksheetRecord) -> dict:
    return {
        "record_id": str(record.record_id),
        "work_hour": record.work_hour,
        "start_time": _iso(record.start_time),
        "end_time": _iso(record.end_time),
        "planned_output": record.planned_output,
        "actual_output": record_actual(record),
        "status": record.status.value,
        "version": record.version,
        "items": [_item_out(item) for item in record.items],
    }


def worksheet_out(worksheet: Worksheet) -> dict:
    return {
        "worksheet_id": str(worksheet.worksheet_id),
        "date": worksheet.work_date.isoformat(),
        "worker": _worker_ref(worksheet.worker),
        "group": _named(worksheet.group, "group_id"),
        "office_id": str(worksheet.office_id),
        "product": _named(worksheet.product, "product_id"),
        "process": _named(worksheet.process, "process_id"),
        "shift_type": worksheet.shift_type.value,
        "planned_output_per_hour": worksheet.planned_output_per_hour,
        "status": worksheet.status.value,
        "created_by_id": str(worksheet.created_by_id) if worksheet.created_by_id else None,
        "created_at": _iso(worksheet.created_at),
        "updated_at": _iso(worksheet.updated_at),
    }


def get_group_grid(db: Session, group_id: UUID, work_date: date, actor: Worker) -> dict:
    """Workers x hours for one group and day, ordered by employee code."""
    group = get_group(db, group_id)
    ensure_group_manager(group, actor, "view this group")

    worksheets = db.execute(
        select(Worksheet)
        .join(Worker, Worksheet.worker_id == Worker.worker_id)
        .where(Worksheet.group_id == group_id, Worksheet.work_date == work_date)
        .order_by(Worker.employee_code)
        .options(selectinload(Worksheet.records).selectinload(WorksheetRecord.items))
    ).scalars().all()

    rows = []
    for worksheet in worksheets:
        rows.append({
            "worksheet_id": str(worksheet.worksheet_id),
            "worker": _worker_ref(worksheet.worker),
            "default_product": _named(worksheet.product, "product_id"),
            "default_process": _named(worksheet.process, "process_id"),
            "planned_output_per_hour": worksheet.planned_output_per_hour,
            "shift_type": worksheet.shift_type.value,
            "status": worksheet.status.value,
            "hours": [record_out(record) for record in worksheet.records],
            "summary": worksheet_totals(worksheet).as_dict(),
        })

    return {
        "group": _named(group, "group_id"),
        "date": work_date.isoformat(),
        "total_workers": len(rows),
        "workers": rows,
    }


def get_worksheet_detail(db: Session, worksheet_id: UUID, actor: Worker) -> dict:
    worksheet = get_worksheet(db, worksheet_id)
    if not can_view_worksheet(worksheet, actor):
        raise PermissionDenied("No permission to access this worksheet")

    return {
        **worksheet_out(worksheet),
        "records": [record_out(record) for record in worksheet.records],
        "summary": worksheet_totals(worksheet).as_dict(),
    }


def get_worksheet_analytics(db: Session, worksheet_id: UUID, actor: Worker) -> dict:
    worksheet = get_worksheet(db, worksheet_id)
    ensure_group_manager(worksheet.group, actor, "view analytics")

    totals = worksheet_totals(worksheet)
    hourly = []
    for record in worksheet.records:
        planned = record_planned_capacity(record, worksheet)
        actual = record_actual(record)
        hourly.append({
            "work_hour": record.work_hour,
            "start_time": _iso(record.start_time),
            "end_time": _iso(record.end_time),
            "planned_output": as_number(planned),
            "actual_output": actual,
            "efficiency": efficiency(actual, planned),
            "status": record.status.value,
            "items_count": len(record.items),
        })

    # First hour wins ties
    peak = max(hourly, key=lambda h: h["actual_output"], default=None)
    lowest = min(hourly, key=lambda h: h["actual_output"], default=None)

    return {
        "worksheet_id": str(worksheet.worksheet_id),
        "summary": {
            **totals.as_dict(),
            "completion_rate": totals.completion_rate,
        },
        "hourly_data": hourly,
        "trends": {
            "peak_hour": peak,
            "lowest_hour": lowest,
        },
    }


def list_worksheets(
    db: Session,
    actor: Worker,
    office_id: Optional[UUID] = None,
    group_id: Optional[UUID] = None,
    work_date: Optional[date] = None,
    status: Optional[WorksheetStatus] = None,
) -> list[dict]:
    """Newest first. Non-admins see the groups they lead and their own worksheets."""
    stmt = select(Worksheet)
    if office_id is not None:
        stmt = stmt.where(Worksheet.office_id == office_id)
    if group_id is not None:
        stmt = stmt.where(Worksheet.group_id == group_id)
    if work_date is not None:
        stmt = stmt.where(Worksheet.work_date == work_date)
    if status is not None:
        stmt = stmt.where(Worksheet.status == status)

    if not actor.is_admin:
        stmt = stmt.where(_own_scope(db, actor))

    worksheets = db.execute(
        stmt.order_by(Worksheet.work_date.desc(), Worksheet.created_at.desc())
    ).scalars().all()

    completed = {}
    if worksheets:
        completed = dict(db.execute(
            select(WorksheetRecord.worksheet_id, func.count())
            .where(
                WorksheetRecord.worksheet_id.in_([w.worksheet_id for w in worksheets]),
                WorksheetRecord.status == RecordStatus.COMPLETED,
            )
            .group_by(WorksheetRecord.worksheet_id)
        ).all())

    return [
        {**worksheet_out(worksheet), "completed_records": completed.get(worksheet.worksheet_id, 0)}
        for worksheet in worksheets
    ]


def _own_scope(db: Session, actor: Worker):
    """Worksheets in groups the actor leads, or the actor's own."""
    led = led_group_ids(db, actor)
    own = Worksheet.worker_id == actor.worker_id
    return or_(Worksheet.group_id.in_(led), own) if led else own


def _day_worksheets(db: Session, work_date: date, *criteria) -> list[Worksheet]:
    return list(db.execute(
        select(Worksheet)
        .join(Worker, Worksheet.worker_id == Worker.worker_id)
        .where(Worksheet.work_date == work_date, *criteria)
        .order_by(Worker.employee_code)
        .options(selectinload(Worksheet.records).selectinload(WorksheetRecord.items))
    ).scalars().all())


def _rollup_stats(rollup: Rollup) -> dict:
    return {
        "total_worksheets": rollup.worksheets,
        **rollup.totals.as_dict(),
        "completion_rate": rollup.totals.completion_rate,
    }


def list_my_worksheets(db: Session, actor: Worker, work_date: date) -> list[dict]:
    """One day's worksheets for the groups the actor leads plus the actor's own sheet."""
    return [
        {**worksheet_out(worksheet), **worksheet_totals(worksheet).as_dict()}
        for worksheet in _day_worksheets(db, work_date, _own_scope(db, actor))
    ]


def get_production_dashboard(db: Session, work_date: date, actor: Worker) -> dict:
    """Plant-wide totals for one day, broken down by office. Admin only."""
    ensure_admin(actor, "view the production dashboard")
    worksheets = _day_worksheets(db, work_date)

    per_office: dict[UUID, Rollup] = {}
    for worksheet in worksheets:
        per_office.setdefault(worksheet.office_id, Rollup()).add_worksheet(worksheet)
    offices = {}
    if per_office:
        offices = {
            office.office_id: office
            for office in db.execute(select(Office).where(Office.office_id.in_(list(per_office)))).scalars()
        }

    total = Rollup()
    office_rows = []
    for office_id in sorted(per_office, key=lambda oid: offices[oid].code):
        total.merge(per_office[office_id])
        office_rows.append({**_named(offices[office_id], "office_id"), **_rollup_stats(per_office[office_id])})

    recent = sorted(worksheets, key=lambda ws: ws.updated_at, reverse=True)[:10]
    return {
        "date": work_date.isoformat(),
        "summary": {**_rollup_stats(total), "active_offices": len(office_rows)},
        "offices": office_rows,
        "recent_activity": [
            {
                "worksheet_id": str(ws.worksheet_id),
                "worker": _worker_ref(ws.worker),
                "group": _named(ws.group, "group_id"),
                "status": ws.status.value,
                "updated_at": _iso(ws.updated_at),
            }
            for ws in recent
        ],
    }


def get_office_dashboard(db: Session, office_id: UUID, work_date: date, actor: Worker) -> dict:
    """One office's day, one row per group that has worksheets. Admin only."""
    ensure_admin(actor, "view office dashboards")
    office = db.get(Office, office_id)
    if not office:
        raise NotFoundError("Office not found")

    worksheets = _day_worksheets(db, work_date, Worksheet.office_id == office_id)
    per_group: dict[UUID, list[Worksheet]] = {}
    for worksheet in worksheets:
        per_group.setdefault(worksheet.group_id, []).append(worksheet)

    total = Rollup()
    group_rows = []
    for sheets in sorted(per_group.values(), key=lambda s: s[0].group.code):
        group = sheets[0].group
        rollup = Rollup.of(sheets)
        total.merge(rollup)
        leader = db.get(Worker, group.leader_id) if group.leader_id else None
        group_rows.append({
            "group": {**_named(group, "group_id"), "leader": _worker_ref(leader)},
            "total_workers": len(sheets),
            **_rollup_stats(rollup),
        })

    return {
        "office": _named(office, "office_id"),
        "date": work_date.isoformat(),
        "groups": group_rows,
        "summary": {
            "total_groups": len(group_rows),
            "total_workers": len(worksheets),
            **total.summary(),
        },
    }


def get_realtime_analytics(
    db: Session,
    actor: Worker,
    work_date: Optional[date] = None,
    office_id: Optional[UUID] = None,
    now: Optional[datetime] = None,
) -> dict:
    """
    Hour-by-hour progress for a day, flagging the slot the clock is in.

    Slot times are read on the UTC clock, the same way slot_bounds stamps
    record start/end. Non-admins are limited to the groups they lead.
    """
    now = now or datetime.now(timezone.utc)
    work_date = work_date or now.date()
    current_hour = current_work_hour(now.time())

    criteria = []
    if office_id is not None:
        criteria.append(Worksheet.office_id == office_id)
    if not actor.is_admin:
        # An empty IN matches nothing, so a non-leader gets an empty day
        criteria.append(Worksheet.group_id.in_(led_group_ids(db, actor)))
    worksheets = _day_worksheets(db, work_date, *criteria)

    rollup = Rollup.of(worksheets)
    hourly = []
    for row in rollup.hourly_series():
        bucket = rollup.hours[row["work_hour"]]
        row["completion_rate"] = efficiency(bucket.completed_records, bucket.records)
        row["is_current_hour"] = row["work_hour"] == current_hour
        hourly.append(row)

    return {
        "date": work_date.isoformat(),
        "summary": {
            **_rollup_stats(rollup),
            "total_workers": len({ws.worker_id for ws in worksheets}),
        },
        "current_hour": current_hour,
        "hourly_progress": hourly,
    }
