"""
Hourly output entry.

A group leader submits one hour for the whole group at once. The batch is a
single unit of work: a missing hour, a stale version or a bad pairing for any
worker aborts every worker's update. Workers that have no worksheet in the
group that day are skipped.
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.database import transaction
from app.core.errors import BadRequest, ConflictError, NotFoundError, ValidationError
from app.models.enums import RecordStatus
from app.models.worker import Worker
from app.models.worksheet import Worksheet
from app.models.worksheet_record import WorksheetRecord
from app.models.worksheet_record_item import WorksheetRecordItem
from app.scheduling.shift_schedule import MAX_WORK_HOUR
from app.schemas.worksheets import ProductEntry, WorkerHourOutput
from app.services.notifications import EventPublisher, emit_worksheet_update
from app.services.permissions import ensure_group_manager
from app.services.worksheet_store import ensure_editable, ensure_product_processes, get_group, get_worksheet

logger = logging.getLogger(__name__)


@dataclass
class BatchResult:
    group_id: UUID
    work_date: date
    work_hour: int
    updated: list[dict] = field(default_factory=list)
    skipped_workers: list[UUID] = field(default_factory=list)

    def as_dict(self) -> dict:
        return {
            "group_id": str(self.group_id),
            "date": self.work_date.isoformat(),
            "work_hour": self.work_hour,
            "affected_workers": len(self.updated),
            "updated": self.updated,
            "skipped_workers": [str(worker_id) for worker_id in self.skipped_workers],
        }


def check_work_hour(work_hour: int) -> None:
    if not 1 <= work_hour <= MAX_WORK_HOUR:
        raise ValidationError(f"work_hour must be between 1 and {MAX_WORK_HOUR}")


def check_expected_version(record: WorksheetRecord, expected_version: Optional[int]) -> None:
    if expected_version is not None and expected_version != record.version:
        raise ConflictError(
            f"Record for hour {record.work_hour} is at version {record.version}, not {expected_version}"
        )


def replace_record_entries(
    db: Session,
    worksheet: Worksheet,
    record: WorksheetRecord,
    entries: Sequence[ProductEntry],
    actor: Worker,
) -> WorksheetRecord:
    """
    Replace a record's items with the given entries (entry_index 1..N in
    order) and recompute its totals. Calling it twice with the same entries
    leaves the same state behind.
    """
    record.items.clear()
    db.flush()

    total_planned = 0
    total_actual = 0
    for index, entry in enumerate(entries, start=1):
        planned = entry.planned_output or worksheet.planned_output_per_hour
        record.items.append(WorksheetRecordItem(
            entry_index=index,
            product_id=entry.product_id,
            process_id=entry.process_id,
            planned_output=planned,
            actual_output=entry.actual_output,
            note=entry.note,
        ))
        total_planned += planned
        total_actual += entry.actual_output

    if entries:
        record.planned_output = total_planned
    record.actual_output = total_actual
    record.status = RecordStatus.COMPLETED
    record.updated_by_id = actor.worker_id
    record.version += 1
    return record


def update_record(
    db: Session,
    worksheet_id: UUID,
    work_hour: int,
    entries: Sequence[ProductEntry],
    actor: Worker,
    expected_version: Optional[int] = None,
    publisher: Optional[EventPublisher] = None,
) -> WorksheetRecord:
    """Single-worker form of the hourly replace."""
    check_work_hour(work_hour)
    ensure_product_processes(db, [(e.product_id, e.process_id) for e in entries])

    with transaction(db):
        worksheet = get_worksheet(db, worksheet_id)
        ensure_group_manager(worksheet.group, actor)
        ensure_editable(worksheet)
        record = db.execute(
            select(WorksheetRecord)
            .where(WorksheetRecord.worksheet_id == worksheet_id, WorksheetRecord.work_hour == work_hour)
            .with_for_update()
        ).scalar_one_or_none()
        if record is None:
            raise NotFoundError(f"No record found for hour {work_hour}")
        check_expected_version(record, expected_version)
        replace_record_entries(db, worksheet, record, entries, actor)
        group_id, work_date = worksheet.group_id, worksheet.work_date

    logger.info(
        "Updated record with %d entries", len(entries),
        extra={"worksheet_id": str(worksheet_id), "work_hour": work_hour},
    )
    emit_worksheet_update(publisher, group_id=group_id, work_date=work_date, affected_workers=1, work_hour=work_hour)
    return record


def batch_update_hour(
    db: Session,
    group_id: UUID,
    work_hour: int,
    work_date: date,
    outputs: Sequence[WorkerHourOutput],
    actor: Worker,
    publisher: Optional[EventPublisher] = None,
) -> BatchResult:
    check_work_hour(work_hour)
    seen = set()
    for output in outputs:
        if output.worker_id in seen:
            raise ValidationError(f"Worker {output.worker_id} appears more than once in the batch")
        seen.add(output.worker_id)
    ensure_product_processes(
        db, [(entry.product_id, entry.process_id) for output in outputs for entry in output.entries]
    )

    result = BatchResult(group_id=group_id, work_date=work_date, work_hour=work_hour)
    with transaction(db):
        group = get_group(db, group_id)
        ensure_group_manager(group, actor)

        worksheets = db.execute(
            select(Worksheet)
            .where(Worksheet.group_id == group_id, Worksheet.work_date == work_date)
            .with_for_update()
        ).scalars().all()
        if not worksheets:
            raise NotFoundError("No worksheets found for this group and date")

        records = db.execute(
            select(WorksheetRecord)
            .where(
                WorksheetRecord.worksheet_id.in_([w.worksheet_id for w in worksheets]),
                WorksheetRecord.work_hour == work_hour,
            )
            .with_for_update()
        ).scalars().all()
        by_worker = {w.worker_id: w for w in worksheets}
        by_worksheet = {r.worksheet_id: r for r in records}

        for output in outputs:
            worksheet = by_worker.get(output.worker_id)
            if worksheet is None:
                logger.debug(
                    "Skipping worker %s without a worksheet in this group", output.worker_id,
                    extra={"group_id": str(group_id), "work_hour": work_hour},
                )
                result.skipped_workers.append(output.worker_id)
                continue

            ensure_editable(worksheet)
            record = by_worksheet.get(worksheet.worksheet_id)
            if record is None:
                raise BadRequest(f"No record found for hour {work_hour}")
            check_expected_version(record, output.expected_version)

            replace_record_entries(db, worksheet, record, output.entries, actor)
            result.updated.append({
                "worker_id": str(output.worker_id),
                "record_id": str(record.record_id),
                "total_actual": record.actual_output,
                "items_count": len(output.entries),
                "version": record.version,
            })

    logger.info(
        "Batch update saved %d workers, skipped %d", len(result.updated), len(result.skipped_workers),
        extra={"group_id": str(group_id), "work_hour": work_hour, "work_date": str(work_date)},
    )
    emit_worksheet_update(
        publisher,
        group_id=group_id,
        work_date=work_date,
        affected_workers=len(result.updated),
        work_hour=work_hour,
    )
    return result
