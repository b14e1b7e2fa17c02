import uuid
from sqlalchemy import Column, String, Boolean, DateTime, Enum, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base
from app.models.enums import Role

class Worker(Base):
    """A factory user: line worker, group leader or administrator."""
    __tablename__ = "workers"

    worker_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    group_id = Column(
        UUID(as_uuid=True),
        ForeignKey("groups.group_id", ondelete="SET NULL"),
        nullable=True,  # NULL for office staff and admins
        index=True,
    )

    employee_code = Column(String, nullable=False, unique=True, index=True)
    full_name = Column(String, nullable=False)
    role = Column(Enum(Role, name="worker_role"), nullable=False, default=Role.USER)

    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    group = relationship("Group", back_populates="members", foreign_keys=[group_id])

    @property
    def is_admin(self) -> bool:
        return self.role in (Role.SUPERADMIN, Role.ADMIN)
