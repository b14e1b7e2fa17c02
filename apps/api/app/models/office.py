import uuid
from sqlalchemy import Column, String, DateTime
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base

# IMPORTANT: registers the whole org chain (department -> team -> group -> worker)
from app.models.department import Department  # noqa: F401

class Office(Base):
    __tablename__ = "offices"

    office_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    code = Column(String, nullable=False, unique=True)
    name = Column(String, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    departments = relationship("Department", back_populates="office", order_by="Department.code")
