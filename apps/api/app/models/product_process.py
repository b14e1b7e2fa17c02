import uuid
from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.core.database import Base

class ProductProcess(Base):
    """Which processes are valid for which product."""
    __tablename__ = "product_processes"

    product_process_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    product_id = Column(
        UUID(as_uuid=True),
        ForeignKey("products.product_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    process_id = Column(
        UUID(as_uuid=True),
        ForeignKey("processes.process_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    standard_output_per_hour = Column(Integer, nullable=True)

    product = relationship("Product")
    process = relationship("Process")

    __table_args__ = (
        UniqueConstraint("product_id", "process_id", name="uq_product_processes_pair"),
    )
