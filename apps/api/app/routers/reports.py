from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.core.database import get_db
from app.models.worker import Worker
from app.routers.auth import get_current_actor
from app.services.report_builder import build_organization_report

router = APIRouter()


@router.get("/by-organization")
def report_by_organization(
    work_date: date = Query(..., alias="date"),
    office_id: Optional[UUID] = None,
    department_id: Optional[UUID] = None,
    team_id: Optional[UUID] = None,
    group_id: Optional[UUID] = None,
    db: Session = Depends(get_db),
    actor: Worker = Depends(get_current_actor),
):
    """Office -> department -> team -> group -> worker report for one day."""
    return build_organization_report(
        db,
        work_date,
        actor,
        office_id=office_id,
        department_id=department_id,
        team_id=team_id,
        group_id=group_id,
    )
