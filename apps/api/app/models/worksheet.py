import uuid
from sqlalchemy import Column, Date, DateTime, Enum, ForeignKey, Integer, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base
from app.models.enums import ShiftType, WorksheetStatus

# IMPORTANT: forces referenced tables to be registered in SQLAlchemy metadata
from app.models.office import Office  # noqa: F401
from app.models.product import Product  # noqa: F401
from app.models.process import Process  # noqa: F401
from app.models.product_process import ProductProcess  # noqa: F401


class Worksheet(Base):
    """One worker's production sheet for one day."""
    __tablename__ = "worksheets"

    worksheet_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    worker_id = Column(UUID(as_uuid=True), ForeignKey("workers.worker_id", ondelete="CASCADE"), nullable=False, index=True)
    group_id = Column(UUID(as_uuid=True), ForeignKey("groups.group_id", ondelete="CASCADE"), nullable=False, index=True)
    office_id = Column(UUID(as_uuid=True), ForeignKey("offices.office_id", ondelete="CASCADE"), nullable=False, index=True)

    # Defaults for new hour entries
    product_id = Column(UUID(as_uuid=True), ForeignKey("products.product_id"), nullable=False)
    process_id = Column(UUID(as_uuid=True), ForeignKey("processes.process_id"), nullable=False)

    work_date = Column(Date, nullable=False, index=True)
    shift_type = Column(Enum(ShiftType, name="shift_type"), nullable=False)
    planned_output_per_hour = Column(Integer, nullable=False)
    status = Column(Enum(WorksheetStatus, name="worksheet_status"), nullable=False, default=WorksheetStatus.ACTIVE)

    created_by_id = Column(UUID(as_uuid=True), ForeignKey("workers.worker_id", ondelete="SET NULL"), nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    worker = relationship("Worker", foreign_keys=[worker_id])
    group = relationship("Group")
    product = relationship("Product")
    process = relationship("Process")
    records = relationship(
        "WorksheetRecord",
        back_populates="worksheet",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="WorksheetRecord.work_hour",
    )

    __table_args__ = (
        UniqueConstraint("worker_id", "work_date", name="uq_worksheets_worker_date"),
    )

    def record_for(self, work_hour: int):
        for record in self.records:
            if record.work_hour == work_hour:
                return record
        return None


# Imported last: worksheet_record refers back to this module
from app.models.worksheet_record import WorksheetRecord  # noqa: E402,F401
