import uuid
from sqlalchemy import Column, DateTime, Enum, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base
from app.models.enums import RecordStatus


class WorksheetRecord(Base):
    """One scheduled work hour of a worksheet."""
    __tablename__ = "worksheet_records"

    record_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    worksheet_id = Column(
        UUID(as_uuid=True),
        ForeignKey("worksheets.worksheet_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    work_hour = Column(Integer, nullable=False)
    start_time = Column(DateTime(timezone=True), nullable=False)
    end_time = Column(DateTime(timezone=True), nullable=False)

    # Write-path cache; aggregation recomputes actual from items
    planned_output = Column(Integer, nullable=False, default=0)
    actual_output = Column(Integer, nullable=False, default=0)

    status = Column(Enum(RecordStatus, name="record_status"), nullable=False, default=RecordStatus.PENDING)
    updated_by_id = Column(UUID(as_uuid=True), ForeignKey("workers.worker_id", ondelete="SET NULL"), nullable=True)

    # Bumped by every write; UPDATE ... WHERE version = :old rejects lost updates
    version = Column(Integer, nullable=False, default=1)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    worksheet = relationship("Worksheet", back_populates="records")
    items = relationship(
        "WorksheetRecordItem",
        back_populates="record",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="WorksheetRecordItem.entry_index",
    )

    __mapper_args__ = {
        "version_id_col": version,
        "version_id_generator": False,
    }

    __table_args__ = (
        UniqueConstraint("worksheet_id", "work_hour", name="uq_worksheet_records_hour"),
    )


from app.models.worksheet_record_item import WorksheetRecordItem  # noqa: E402,F401
