"""Workspace membership management. The OWNER row is immutable."""
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from nexus.core.errors import forbidden, not_found
from nexus.models import BoardMember, Board, Membership, Role

logger = structlog.get_logger(__name__)


def list_members(db: Session, workspace_id: UUID) -> list[Membership]:
    return list(db.execute(
        select(Membership)
        .options(joinedload(Membership.user))
        .where(Membership.workspace_id == workspace_id)
        .order_by(Membership.created_at)
    ).scalars())


def _get_membership(db: Session, workspace_id: UUID, membership_id: UUID) -> Membership:
    membership = db.execute(
        select(Membership).where(
            Membership.id == membership_id,
            Membership.workspace_id == workspace_id,
        )
    ).scalar_one_or_none()
    if membership is None:
        raise not_found("Membership not found.")
    return membership


def update_member_role(db: Session, workspace_id: UUID, membership_id: UUID, role: Role) -> Membership:
    membership = _get_membership(db, workspace_id, membership_id)

    if membership.role == Role.OWNER.value:
        raise forbidden("The workspace owner role cannot be changed.")
    if role is Role.OWNER:
        raise forbidden("Ownership cannot be granted through a role change.")

    membership.role = role.value
    db.commit()
    db.refresh(membership)

    logger.info("member.role_updated", workspace_id=str(workspace_id), membership_id=str(membership_id), role=role.value)
    return membership


def remove_member(db: Session, workspace_id: UUID, membership_id: UUID) -> None:
    """Delete the membership and the user's grants on the workspace's private boards."""
    membership = _get_membership(db, workspace_id, membership_id)

    if membership.role == Role.OWNER.value:
        raise forbidden("The workspace owner cannot be removed.")

    board_ids = select(Board.id).where(Board.workspace_id == workspace_id)
    for grant in db.execute(
        select(BoardMember).where(
            BoardMember.user_id == membership.user_id,
            BoardMember.board_id.in_(board_ids),
        )
    ).scalars():
        db.delete(grant)

    db.delete(membership)
    db.commit()

    logger.info("member.removed", workspace_id=str(workspace_id), membership_id=str(membership_id))
