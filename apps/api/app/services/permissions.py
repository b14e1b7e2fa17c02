from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import PermissionDenied
from app.models.worksheet import Worksheet
from app.models.group import Group
from app.models.worker import Worker


def can_manage_group(group: Group, actor: Worker) -> bool:
    return actor.is_admin or (group.leader_id is not None and group.leader_id == actor.worker_id)


def ensure_group_manager(group: Group, actor: Worker, action: str = "update records") -> None:
    if not can_manage_group(group, actor):
        raise PermissionDenied(f"Only the group leader or an admin can {action}")


def ensure_admin(actor: Worker, action: str) -> None:
    if not actor.is_admin:
        raise PermissionDenied(f"Only admins can {action}")


def can_view_worksheet(worksheet: Worksheet, actor: Worker) -> bool:
    return (
        actor.is_admin
        or worksheet.created_by_id == actor.worker_id
        or worksheet.worker_id == actor.worker_id
        or worksheet.group.leader_id == actor.worker_id
    )


def led_group_ids(db: Session, actor: Worker) -> list[UUID]:
    return list(
        db.execute(select(Group.group_id).where(Group.leader_id == actor.worker_id)).scalars().all()
    )
