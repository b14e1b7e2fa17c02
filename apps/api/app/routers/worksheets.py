from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.models.enums import WorksheetStatus
from app.models.worker import Worker
from app.routers.auth import get_current_actor
from app.schemas.worksheets import (
    AdjustTarget,
    BatchUpdateByHour,
    CopyForward,
    GroupBulkUpdate,
    RecordUpdate,
    WorksheetCreate,
    WorksheetUpdate,
)
from app.services import batch_update, worksheet_store, worksheet_views
from app.services.notifications import EventPublisher, get_publisher

router = APIRouter()


# --- Create / list ---
@router.post("", status_code=201)
def create_worksheets(
    payload: WorksheetCreate,
    db: Session = Depends(get_db),
    actor: Worker = Depends(get_current_actor),
    publisher: EventPublisher = Depends(get_publisher),
):
    """Create worksheets for a whole group or an explicit list of workers."""
    worksheets = worksheet_store.create_worksheets(
        db,
        group_id=payload.group_id,
        worker_ids=payload.worker_ids,
        work_date=payload.work_date,
        shift_type=payload.shift_type,
        product_id=payload.product_id,
        process_id=payload.process_id,
        planned_output_per_hour=payload.planned_output_per_hour,
        actor=actor,
        publisher=publisher,
    )
    return {
        "created": len(worksheets),
        "worksheets": [
            {**worksheet_views.worksheet_out(ws), "total_records": len(ws.records)}
            for ws in worksheets
        ],
    }


@router.get("")
def list_worksheets(
    office_id: Optional[UUID] = None,
    group_id: Optional[UUID] = None,
    work_date: Optional[date] = Query(None, alias="date"),
    status: Optional[WorksheetStatus] = None,
    db: Session = Depends(get_db),
    actor: Worker = Depends(get_current_actor),
):
    return worksheet_views.list_worksheets(
        db, actor, office_id=office_id, group_id=group_id, work_date=work_date, status=status
    )


@router.get("/my-groups")
def my_group_worksheets(
    work_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
    actor: Worker = Depends(get_current_actor),
):
    """Worksheets of the groups the caller leads, plus the caller's own. Defaults to today."""
    return worksheet_views.list_my_worksheets(db, actor, work_date or date.today())


@router.get("/my-today")
def my_today_worksheets(
    db: Session = Depends(get_db),
    actor: Worker = Depends(get_current_actor),
):
    return worksheet_views.list_my_worksheets(db, actor, date.today())


# --- Dashboards ---
@router.get("/dashboard/today")
def today_dashboard(
    db: Session = Depends(get_db),
    actor: Worker = Depends(get_current_actor),
):
    return worksheet_views.get_production_dashboard(db, date.today(), actor)


@router.get("/dashboard/office/{office_id}")
def office_dashboard(
    office_id: UUID,
    work_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
    actor: Worker = Depends(get_current_actor),
):
    return worksheet_views.get_office_dashboard(db, office_id, work_date or date.today(), actor)


@router.get("/analytics/realtime")
def realtime_analytics(
    office_id: Optional[UUID] = None,
    work_date: Optional[date] = Query(None, alias="date"),
    db: Session = Depends(get_db),
    actor: Worker = Depends(get_current_actor),
):
    return worksheet_views.get_realtime_analytics(db, actor, work_date=work_date, office_id=office_id)


@router.post("/archive-old")
def archive_old_worksheets(
    before_date: Optional[date] = None,
    db: Session = Depends(get_db),
    actor: Worker = Depends(get_current_actor),
):
    """Admin only. Defaults to the configured retention window."""
    archived = worksheet_store.archive_old_worksheets(db, actor, before_date=before_date)
    return {"archived": archived}


# --- Group level ---
@router.get("/group/{group_id}/grid")
def get_group_grid(
    group_id: UUID,
    work_date: date = Query(..., alias="date"),
    db: Session = Depends(get_db),
    actor: Worker = Depends(get_current_actor),
):
    return worksheet_views.get_group_grid(db, group_id, work_date, actor)


@router.post("/group/{group_id}/hour/{work_hour}/batch-update")
def batch_update_hour(
    group_id: UUID,
    work_hour: int,
    payload: BatchUpdateByHour,
    db: Session = Depends(get_db),
    actor: Worker = Depends(get_current_actor),
    publisher: EventPublisher = Depends(get_publisher),
):
    """Replace one hour's output for many workers of a group in one transaction."""
    result = batch_update.batch_update_hour(
        db,
        group_id=group_id,
        work_hour=work_hour,
        work_date=payload.work_date,
        outputs=payload.outputs,
        actor=actor,
        publisher=publisher,
    )
    return result.as_dict()


@router.put("/group/{group_id}/bulk-update")
def bulk_update_group(
    group_id: UUID,
    payload: GroupBulkUpdate,
    db: Session = Depends(get_db),
    actor: Worker = Depends(get_current_actor),
    publisher: EventPublisher = Depends(get_publisher),
):
    results = worksheet_store.bulk_update_group(
        db, group_id, payload.work_date, payload.changes(), actor, publisher=publisher
    )
    return {
        "updated": len(results),
        "worksheets": [
            {
                "worksheet_id": str(ws.worksheet_id),
                "worker_id": str(ws.worker_id),
                "resize": resize.as_dict() if resize else None,
            }
            for ws, resize in results
        ],
    }


# --- Single worksheet ---
@router.get("/{worksheet_id}")
def get_worksheet(
    worksheet_id: UUID,
    db: Session = Depends(get_db),
    actor: Worker = Depends(get_current_actor),
):
    return worksheet_views.get_worksheet_detail(db, worksheet_id, actor)


@router.get("/{worksheet_id}/analytics")
def get_worksheet_analytics(
    worksheet_id: UUID,
    db: Session = Depends(get_db),
    actor: Worker = Depends(get_current_actor),
):
    return worksheet_views.get_worksheet_analytics(db, worksheet_id, actor)


@router.put("/{worksheet_id}")
def update_worksheet(
    worksheet_id: UUID,
    payload: WorksheetUpdate,
    db: Session = Depends(get_db),
    actor: Worker = Depends(get_current_actor),
    publisher: EventPublisher = Depends(get_publisher),
):
    """Field update; a shift type change resizes the hour records."""
    worksheet, resize = worksheet_store.update_worksheet(
        db, worksheet_id, payload.changes(), actor, publisher=publisher
    )
    return {
        **worksheet_views.worksheet_out(worksheet),
        "resize": resize.as_dict() if resize else None,
    }


@router.delete("/{worksheet_id}")
def delete_worksheet(
    worksheet_id: UUID,
    db: Session = Depends(get_db),
    actor: Worker = Depends(get_current_actor),
    publisher: EventPublisher = Depends(get_publisher),
):
    worksheet_store.remove(db, worksheet_id, actor, publisher=publisher)
    return {"deleted": str(worksheet_id)}


@router.post("/{worksheet_id}/complete")
def complete_worksheet(
    worksheet_id: UUID,
    db: Session = Depends(get_db),
    actor: Worker = Depends(get_current_actor),
    publisher: EventPublisher = Depends(get_publisher),
):
    worksheet = worksheet_store.complete_worksheet(db, worksheet_id, actor, publisher=publisher)
    return worksheet_views.worksheet_out(worksheet)


@router.patch("/{worksheet_id}/records/{work_hour}")
def update_record(
    worksheet_id: UUID,
    work_hour: int,
    payload: RecordUpdate,
    db: Session = Depends(get_db),
    actor: Worker = Depends(get_current_actor),
    publisher: EventPublisher = Depends(get_publisher),
):
    record = batch_update.update_record(
        db,
        worksheet_id,
        work_hour,
        payload.entries,
        actor,
        expected_version=payload.expected_version,
        publisher=publisher,
    )
    return worksheet_views.record_out(record)


@router.patch("/{worksheet_id}/adjust-target/{work_hour}")
def adjust_record_target(
    worksheet_id: UUID,
    work_hour: int,
    payload: AdjustTarget,
    db: Session = Depends(get_db),
    actor: Worker = Depends(get_current_actor),
    publisher: EventPublisher = Depends(get_publisher),
):
    record = worksheet_store.adjust_record_target(
        db, worksheet_id, work_hour, payload.planned_output, actor, publisher=publisher
    )
    return worksheet_views.record_out(record)


@router.post("/{worksheet_id}/copy-forward")
def copy_forward(
    worksheet_id: UUID,
    payload: CopyForward,
    db: Session = Depends(get_db),
    actor: Worker = Depends(get_current_actor),
    publisher: EventPublisher = Depends(get_publisher),
):
    records = worksheet_store.copy_forward(
        db,
        worksheet_id,
        payload.from_hour,
        payload.to_hour_start,
        payload.to_hour_end,
        actor,
        publisher=publisher,
    )
    return {
        "message": f"Copied from hour {payload.from_hour} to hours {payload.to_hour_start}-{payload.to_hour_end}",
        "copied_records": len(records),
    }
