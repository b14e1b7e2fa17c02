import uuid
from sqlalchemy import Column, DateTime, ForeignKey, Integer, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base


class WorksheetRecordItem(Base):
    """One product/process entry a worker logged within an hour."""
    __tablename__ = "worksheet_record_items"

    item_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    record_id = Column(
        UUID(as_uuid=True),
        ForeignKey("worksheet_records.record_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    entry_index = Column(Integer, nullable=False)  # 1-based, insertion order

    product_id = Column(UUID(as_uuid=True), ForeignKey("products.product_id"), nullable=False)
    process_id = Column(UUID(as_uuid=True), ForeignKey("processes.process_id"), nullable=False)

    planned_output = Column(Integer, nullable=False, default=0)
    actual_output = Column(Integer, nullable=False, default=0)
    note = Column(Text, nullable=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    record = relationship("WorksheetRecord", back_populates="items")
    product = relationship("Product")
    process = relationship("Process")

    __table_args__ = (
        UniqueConstraint("record_id", "entry_index", name="uq_worksheet_record_items_entry"),
    )
