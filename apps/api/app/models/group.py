import uuid
from sqlalchemy import Column, String, DateTime, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from app.core.database import Base

from app.models.worker import Worker  # noqa: F401

class Group(Base):
    __tablename__ = "groups"

    group_id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    team_id = Column(
        UUID(as_uuid=True),
        ForeignKey("teams.team_id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    # Leader is a worker; use_alter breaks the groups <-> workers FK cycle
    leader_id = Column(
        UUID(as_uuid=True),
        ForeignKey("workers.worker_id", ondelete="SET NULL", use_alter=True, name="fk_groups_leader_id"),
        nullable=True,
        index=True,
    )

    code = Column(String, nullable=False)
    name = Column(String, nullable=False)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    team = relationship("Team", back_populates="groups")
    members = relationship(
        "Worker",
        back_populates="group",
        foreign_keys="Worker.group_id",
        order_by="Worker.employee_code",
    )

    @property
    def office_id(self):
        return self.team.department.office_id
