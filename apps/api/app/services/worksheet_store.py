"""
Worksheet lifecycle: create, reshape, adjust, complete, archive, delete.

A worksheet owns exactly one record per slot of its shift schedule. Every
mutation here runs in one unit of work; nothing is committed unless the whole
operation succeeds.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.database import transaction
from app.core.errors import BadRequest, ConflictError, NotFoundError, ValidationError
from app.models.enums import RecordStatus, WorksheetStatus
from app.models.group import Group
from app.models.product_process import ProductProcess
from app.models.worker import Worker
from app.models.worksheet import Worksheet
from app.models.worksheet_record import WorksheetRecord
from app.models.worksheet_record_item import WorksheetRecordItem
from app.scheduling.shift_schedule import parse_shift_type, schedule_for, slot_bounds
from app.services.aggregation import record_actual
from app.services.notifications import EventPublisher, emit_worksheet_update
from app.services.permissions import ensure_admin, ensure_group_manager

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = ("shift_type", "planned_output_per_hour", "product_id", "process_id")


@dataclass
class ResizeResult:
    deleted_hours: list[int] = field(default_factory=list)
    created_hours: list[int] = field(default_factory=list)
    # Subset of deleted_hours whose items carried actual output
    lost_output_hours: list[int] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.deleted_hours or self.created_hours)

    def as_dict(self) -> dict:
        return {
            "deleted_hours": self.deleted_hours,
            "created_hours": self.created_hours,
            "lost_output_hours": self.lost_output_hours,
        }


# ---------- lookups shared with batch updates and views ----------

def get_worksheet(db: Session, worksheet_id: UUID) -> Worksheet:
    worksheet = db.get(Worksheet, worksheet_id)
    if not worksheet:
        raise NotFoundError("Worksheet not found")
    return worksheet


def get_group(db: Session, group_id: UUID) -> Group:
    group = db.get(Group, group_id)
    if not group:
        raise NotFoundError("Group not found")
    return group


def ensure_editable(worksheet: Worksheet) -> None:
    if worksheet.status == WorksheetStatus.ARCHIVED:
        raise ConflictError("Archived worksheets cannot be changed")


def ensure_product_processes(db: Session, pairs: Iterable[tuple[UUID, UUID]]) -> None:
    """Every (product_id, process_id) must be a configured pairing."""
    wanted = set(pairs)
    if not wanted:
        return
    product_ids = {product_id for product_id, _ in wanted}
    rows = db.execute(
        select(ProductProcess.product_id, ProductProcess.process_id).where(
            ProductProcess.product_id.in_(product_ids)
        )
    ).all()
    missing = wanted - {(row.product_id, row.process_id) for row in rows}
    if missing:
        product_id, process_id = sorted(missing, key=str)[0]
        raise NotFoundError(f"Process {process_id} is not configured for product {product_id}")


def new_record(worksheet: Worksheet, slot) -> WorksheetRecord:
    start_time, end_time = slot_bounds(worksheet.work_date, slot)
    return WorksheetRecord(
        work_hour=slot.hour,
        start_time=start_time,
        end_time=end_time,
        planned_output=worksheet.planned_output_per_hour,
        actual_output=0,
        status=RecordStatus.PENDING,
        version=1,
    )


# ---------- create ----------

def _resolve_workers(db: Session, group_id: Optional[UUID], worker_ids: Optional[list[UUID]]) -> list[Worker]:
    if worker_ids:
        if len(set(worker_ids)) != len(worker_ids):
            raise ValidationError("worker_ids contains duplicates")
        workers = db.execute(
            select(Worker).where(Worker.worker_id.in_(worker_ids), Worker.is_active.is_(True))
        ).scalars().all()
        found = {w.worker_id for w in workers}
        missing = [str(worker_id) for worker_id in worker_ids if worker_id not in found]
        if missing:
            raise NotFoundError(f"Workers not found or inactive: {', '.join(missing)}")
        for worker in workers:
            if worker.group_id is None:
                raise NotFoundError(f"Worker {worker.employee_code} is not assigned to a group")
            if group_id is not None and worker.group_id != group_id:
                raise NotFoundError(f"Worker {worker.employee_code} is not a member of group {group_id}")
        return list(workers)

    get_group(db, group_id)
    workers = db.execute(
        select(Worker)
        .where(Worker.group_id == group_id, Worker.is_active.is_(True))
        .order_by(Worker.employee_code)
    ).scalars().all()
    if not workers:
        raise NotFoundError("No active workers found in group")
    return list(workers)


def create_worksheets(
    db: Session,
    *,
    work_date: date,
    shift_type,
    product_id: UUID,
    process_id: UUID,
    planned_output_per_hour: int,
    actor: Worker,
    group_id: Optional[UUID] = None,
    worker_ids: Optional[list[UUID]] = None,
    publisher: Optional[EventPublisher] = None,
) -> list[Worksheet]:
    """
    Create one worksheet per targeted worker, each pre-filled with a PENDING
    record for every slot of the shift. All or nothing: one duplicate aborts
    the whole call.
    """
    if group_id is None and not worker_ids:
        raise ValidationError("Either group_id or worker_ids must be provided")
    if planned_output_per_hour is None or planned_output_per_hour <= 0:
        raise ValidationError("planned_output_per_hour must be positive")
    shift_type = parse_shift_type(shift_type)
    slots = schedule_for(shift_type)

    workers = _resolve_workers(db, group_id, worker_ids)

    groups = {}
    for worker in workers:
        if worker.group_id not in groups:
            groups[worker.group_id] = get_group(db, worker.group_id)
    for group in groups.values():
        ensure_group_manager(group, actor, "create worksheets")

    ensure_product_processes(db, [(product_id, process_id)])

    existing = db.execute(
        select(Worker.employee_code)
        .join(Worksheet, Worksheet.worker_id == Worker.worker_id)
        .where(Worksheet.worker_id.in_([w.worker_id for w in workers]), Worksheet.work_date == work_date)
    ).scalars().all()
    if existing:
        raise ConflictError(f"Worksheets already exist on {work_date} for: {', '.join(sorted(existing))}")

    created = []
    try:
        with transaction(db):
            for worker in workers:
                group = groups[worker.group_id]
                worksheet = Worksheet(
                    worker_id=worker.worker_id,
                    group_id=group.group_id,
                    office_id=group.office_id,
                    product_id=product_id,
                    process_id=process_id,
                    work_date=work_date,
                    shift_type=shift_type,
                    planned_output_per_hour=planned_output_per_hour,
                    status=WorksheetStatus.ACTIVE,
                    created_by_id=actor.worker_id,
                )
                worksheet.records = [new_record(worksheet, slot) for slot in slots]
                db.add(worksheet)
                created.append(worksheet)
    except IntegrityError:
        # Lost a race with another create for the same worker/date
        raise ConflictError(f"Worksheets already exist on {work_date} for one or more workers")

    logger.info(
        "Created %d worksheets (%s, %d records each)", len(created), shift_type.value, len(slots),
        extra={"work_date": str(work_date)},
    )
    for gid in groups:
        emit_worksheet_update(
            publisher,
            group_id=gid,
            work_date=work_date,
            affected_workers=sum(1 for w in workers if w.group_id == gid),
        )
    return created


# ---------- reshape ----------

def resize_for_shift_change(db: Session, worksheet: Worksheet, new_shift_type) -> ResizeResult:
    """
    Bring the record set in line with a new shift type.

    Hours outside the new schedule are deleted with their items; hours that
    are new are created PENDING. Records present in both keep their items,
    actual output and status. Runs inside the caller's transaction.
    """
    new_shift_type = parse_shift_type(new_shift_type)
    slots = {slot.hour: slot for slot in schedule_for(new_shift_type)}
    old_slots = {slot.hour: slot for slot in schedule_for(worksheet.shift_type)}
    result = ResizeResult()

    for record in list(worksheet.records):
        slot = slots.get(record.work_hour)
        if slot is None:
            if record_actual(record) > 0 or (record.actual_output or 0) > 0:
                result.lost_output_hours.append(record.work_hour)
            result.deleted_hours.append(record.work_hour)
            worksheet.records.remove(record)
            continue
        old = old_slots.get(record.work_hour)
        if old is None or (old.start, old.end) != (slot.start, slot.end):
            record.start_time, record.end_time = slot_bounds(worksheet.work_date, slot)
            record.version += 1

    present = {record.work_hour for record in worksheet.records}
    for hour, slot in sorted(slots.items()):
        if hour not in present:
            worksheet.records.append(new_record(worksheet, slot))
            result.created_hours.append(hour)

    worksheet.records.sort(key=lambda record: record.work_hour)
    worksheet.shift_type = new_shift_type
    db.flush()

    if result.lost_output_hours:
        logger.warning(
            "Shift change removed hours %s that held actual output",
            result.lost_output_hours,
            extra={"worksheet_id": str(worksheet.worksheet_id)},
        )
    return result


def _validate_changes(db: Session, worksheet: Worksheet, changes: dict) -> dict:
    unknown = set(changes) - set(UPDATABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Fields cannot be updated: {', '.join(sorted(unknown))}")
    changes = {key: value for key, value in changes.items() if value is not None}
    if "shift_type" in changes:
        changes["shift_type"] = parse_shift_type(changes["shift_type"])
    if "planned_output_per_hour" in changes and changes["planned_output_per_hour"] <= 0:
        raise ValidationError("planned_output_per_hour must be positive")
    if "product_id" in changes or "process_id" in changes:
        ensure_product_processes(db, [(
            changes.get("product_id", worksheet.product_id),
            changes.get("process_id", worksheet.process_id),
        )])
    return changes


def _apply_changes(db: Session, worksheet: Worksheet, changes: dict) -> Optional[ResizeResult]:
    per_hour = changes.get("planned_output_per_hour")
    if per_hour is not None and per_hour != worksheet.planned_output_per_hour:
        worksheet.planned_output_per_hour = per_hour
        # Untouched hours follow the new target; logged hours keep theirs
        for record in worksheet.records:
            if record.status == RecordStatus.PENDING and not record.items:
                record.planned_output = per_hour
                record.version += 1

    if "product_id" in changes:
        worksheet.product_id = changes["product_id"]
    if "process_id" in changes:
        worksheet.process_id = changes["process_id"]

    new_shift = changes.get("shift_type")
    if new_shift is not None and new_shift != worksheet.shift_type:
        return resize_for_shift_change(db, worksheet, new_shift)
    return None


def update_worksheet(
    db: Session,
    worksheet_id: UUID,
    changes: dict,
    actor: Worker,
    publisher: Optional[EventPublisher] = None,
) -> tuple[Worksheet, Optional[ResizeResult]]:
    with transaction(db):
        worksheet = get_worksheet(db, worksheet_id)
        ensure_group_manager(worksheet.group, actor, "update worksheets")
        ensure_editable(worksheet)
        changes = _validate_changes(db, worksheet, changes)
        resize = _apply_changes(db, worksheet, changes)
        group_id, work_date = worksheet.group_id, worksheet.work_date

    logger.info(
        "Updated worksheet fields %s", sorted(changes),
        extra={"worksheet_id": str(worksheet_id), "group_id": str(group_id)},
    )
    emit_worksheet_update(publisher, group_id=group_id, work_date=work_date, affected_workers=1)
    return worksheet, resize


def bulk_update_group(
    db: Session,
    group_id: UUID,
    work_date: date,
    changes: dict,
    actor: Worker,
    publisher: Optional[EventPublisher] = None,
) -> list[tuple[Worksheet, Optional[ResizeResult]]]:
    """Apply the same field changes to every worksheet of a group on one day."""
    with transaction(db):
        group = get_group(db, group_id)
        ensure_group_manager(group, actor, "update worksheets")
        worksheets = db.execute(
            select(Worksheet)
            .where(Worksheet.group_id == group_id, Worksheet.work_date == work_date)
            .with_for_update()
        ).scalars().all()
        if not worksheets:
            raise NotFoundError("No worksheets found for this group and date")

        results = []
        for worksheet in worksheets:
            ensure_editable(worksheet)
            validated = _validate_changes(db, worksheet, changes)
            results.append((worksheet, _apply_changes(db, worksheet, validated)))

    logger.info(
        "Bulk-updated %d worksheets", len(results),
        extra={"group_id": str(group_id), "work_date": str(work_date)},
    )
    emit_worksheet_update(publisher, group_id=group_id, work_date=work_date, affected_workers=len(results))
    return results


# ---------- per-hour edits ----------

def adjust_record_target(
    db: Session,
    worksheet_id: UUID,
    work_hour: int,
    planned_output: int,
    actor: Worker,
    publisher: Optional[EventPublisher] = None,
) -> WorksheetRecord:
    """Override one hour's planned output; 0 falls back to the worksheet target."""
    if planned_output is None or planned_output < 0:
        raise ValidationError("planned_output must be zero or positive")

    with transaction(db):
        worksheet = get_worksheet(db, worksheet_id)
        ensure_group_manager(worksheet.group, actor, "adjust targets")
        ensure_editable(worksheet)
        record = worksheet.record_for(work_hour)
        if record is None:
            raise NotFoundError(f"No record found for hour {work_hour}")
        record.planned_output = planned_output
        record.updated_by_id = actor.worker_id
        record.version += 1
        group_id, work_date = worksheet.group_id, worksheet.work_date

    logger.info(
        "Adjusted planned output to %d", planned_output,
        extra={"worksheet_id": str(worksheet_id), "work_hour": work_hour},
    )
    emit_worksheet_update(publisher, group_id=group_id, work_date=work_date, affected_workers=1, work_hour=work_hour)
    return record


def copy_forward(
    db: Session,
    worksheet_id: UUID,
    from_hour: int,
    to_hour_start: int,
    to_hour_end: int,
    actor: Worker,
    publisher: Optional[EventPublisher] = None,
) -> list[WorksheetRecord]:
    """
    Copy one hour's product/process lines into a range of later (or earlier)
    hours. Targets get fresh items with actual output reset to 0; their status
    is left alone.
    """
    if to_hour_start > to_hour_end:
        raise BadRequest("to_hour_start must not be after to_hour_end")
    if to_hour_start <= from_hour <= to_hour_end:
        raise BadRequest("Target range must not contain the source hour")

    with transaction(db):
        worksheet = get_worksheet(db, worksheet_id)
        ensure_group_manager(worksheet.group, actor, "copy forward")
        ensure_editable(worksheet)
        source = worksheet.record_for(from_hour)
        if source is None:
            raise NotFoundError(f"Source record not found for hour {from_hour}")

        template = [
            (item.product_id, item.process_id, item.planned_output, item.note)
            for item in source.items
        ]
        targets = [r for r in worksheet.records if to_hour_start <= r.work_hour <= to_hour_end]
        if not targets:
            raise BadRequest(f"No records in hours {to_hour_start}-{to_hour_end} for this shift")
        for record in targets:
            record.items.clear()
        db.flush()

        for record in targets:
            for index, (product_id, process_id, planned, note) in enumerate(template, start=1):
                record.items.append(WorksheetRecordItem(
                    entry_index=index,
                    product_id=product_id,
                    process_id=process_id,
                    planned_output=planned,
                    actual_output=0,
                    note=note,
                ))
            if template:
                record.planned_output = sum(planned or 0 for _, _, planned, _ in template)
            record.actual_output = 0
            record.updated_by_id = actor.worker_id
            record.version += 1
        group_id, work_date = worksheet.group_id, worksheet.work_date

    logger.info(
        "Copied hour %d to hours %d-%d (%d records)", from_hour, to_hour_start, to_hour_end, len(targets),
        extra={"worksheet_id": str(worksheet_id)},
    )
    emit_worksheet_update(publisher, group_id=group_id, work_date=work_date, affected_workers=1)
    return targets


# ---------- status ----------

def complete_worksheet(
    db: Session,
    worksheet_id: UUID,
    actor: Worker,
    publisher: Optional[EventPublisher] = None,
) -> Worksheet:
    with transaction(db):
        worksheet = get_worksheet(db, worksheet_id)
        ensure_group_manager(worksheet.group, actor, "complete worksheets")
        if worksheet.status != WorksheetStatus.ACTIVE:
            raise ConflictError(f"Only ACTIVE worksheets can be completed (status is {worksheet.status.value})")
        worksheet.status = WorksheetStatus.COMPLETED
        group_id, work_date = worksheet.group_id, worksheet.work_date

    logger.info("Completed worksheet", extra={"worksheet_id": str(worksheet_id)})
    emit_worksheet_update(publisher, group_id=group_id, work_date=work_date, affected_workers=1)
    return worksheet


def archive_old_worksheets(db: Session, actor: Worker, before_date: Optional[date] = None) -> int:
    """Move every non-archived worksheet dated before before_date to ARCHIVED."""
    ensure_admin(actor, "archive worksheets")
    if before_date is None:
        before_date = date.today() - timedelta(days=settings.archive_retention_days)

    with transaction(db):
        worksheets = db.execute(
            select(Worksheet).where(
                Worksheet.work_date < before_date,
                Worksheet.status != WorksheetStatus.ARCHIVED,
            )
        ).scalars().all()
        for worksheet in worksheets:
            worksheet.status = WorksheetStatus.ARCHIVED

    logger.info("Archived %d worksheets dated before %s", len(worksheets), before_date)
    return len(worksheets)


def remove(
    db: Session,
    worksheet_id: UUID,
    actor: Worker,
    publisher: Optional[EventPublisher] = None,
) -> None:
    """Hard delete; records and items go with it."""
    with transaction(db):
        worksheet = get_worksheet(db, worksheet_id)
        ensure_admin(actor, "delete worksheets")
        group_id, work_date = worksheet.group_id, worksheet.work_date
        db.delete(worksheet)

    logger.info("Deleted worksheet", extra={"worksheet_id": str(worksheet_id)})
    emit_worksheet_update(publisher, group_id=group_id, work_date=work_date, affected_workers=1)
