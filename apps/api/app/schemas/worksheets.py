from datetime import date
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.models.enums import ShiftType
from app.scheduling.shift_schedule import MAX_WORK_HOUR


class WorksheetCreate(BaseModel):
    """Either group_id (all active members) or worker_ids must be given."""
    model_config = ConfigDict(populate_by_name=True)

    group_id: Optional[UUID] = None
    worker_ids: Optional[list[UUID]] = None
    work_date: date = Field(alias="date")
    shift_type: ShiftType
    product_id: UUID
    process_id: UUID
    planned_output_per_hour: int = Field(gt=0, alias="planned_output")

    @model_validator(mode="after")
    def _check_scope(self):
        if self.group_id is None and not self.worker_ids:
            raise ValueError("Either group_id or worker_ids must be provided")
        return self


class ProductEntry(BaseModel):
    """One product/process line a worker produced within the hour."""
    model_config = ConfigDict(extra="forbid")

    product_id: UUID
    process_id: UUID
    planned_output: Optional[int] = Field(default=None, ge=1)  # defaults to the worksheet's per-hour target
    actual_output: int = Field(ge=0)
    note: Optional[str] = Field(default=None, max_length=500)


class WorkerHourOutput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    worker_id: UUID
    entries: list[ProductEntry] = Field(default_factory=list)
    expected_version: Optional[int] = Field(default=None, ge=1)


class BatchUpdateByHour(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    work_date: date = Field(alias="date")
    outputs: list[WorkerHourOutput]


class RecordUpdate(BaseModel):
    entries: list[ProductEntry]
    expected_version: Optional[int] = Field(default=None, ge=1)


class WorksheetUpdate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    shift_type: Optional[ShiftType] = None
    planned_output_per_hour: Optional[int] = Field(default=None, gt=0, alias="planned_output")
    product_id: Optional[UUID] = None
    process_id: Optional[UUID] = None

    def changes(self) -> dict:
        return self.model_dump(exclude_none=True, by_alias=False, exclude={"work_date"})


class GroupBulkUpdate(WorksheetUpdate):
    work_date: date = Field(alias="date")


class AdjustTarget(BaseModel):
    planned_output: int = Field(ge=0)


class CopyForward(BaseModel):
    from_hour: int = Field(ge=1, le=MAX_WORK_HOUR)
    to_hour_start: int = Field(ge=1, le=MAX_WORK_HOUR)
    to_hour_end: int = Field(ge=1, le=MAX_WORK_HOUR)
