"""Workspace CRUD. A workspace never exists without its OWNER membership."""
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from nexus.core.errors import not_found
from nexus.models import Membership, Role, User, Workspace

logger = structlog.get_logger(__name__)


def create_workspace(db: Session, name: str, owner: User) -> Workspace:
    """Create the workspace and the creator's OWNER membership in one commit."""
    workspace = Workspace(name=name)
    db.add(workspace)
    db.flush()

    db.add(Membership(
        workspace_id=workspace.id,
        user_id=owner.id,
        role=Role.OWNER.value,
    ))
    db.commit()
    db.refresh(workspace)

    logger.info("workspace.created", workspace_id=str(workspace.id), owner_id=str(owner.id))
    return workspace


def list_user_workspaces(db: Session, user_id: UUID) -> list[tuple[Workspace, str]]:
    """Workspaces the user belongs to, each with the user's role."""
    rows = db.execute(
        select(Workspace, Membership.role)
        .join(Membership, Membership.workspace_id == Workspace.id)
        .where(Membership.user_id == user_id)
        .order_by(Workspace.created_at)
    ).all()
    return [(workspace, role) for workspace, role in rows]


def get_workspace(db: Session, workspace_id: UUID) -> Workspace:
    workspace = db.get(Workspace, workspace_id)
    if workspace is None:
        raise not_found("Workspace not found.")
    return workspace


def update_workspace(db: Session, workspace_id: UUID, name: str) -> Workspace:
    workspace = get_workspace(db, workspace_id)
    workspace.name = name
    db.commit()
    db.refresh(workspace)
    return workspace


def delete_workspace(db: Session, workspace_id: UUID) -> None:
    """Delete the workspace; memberships, invites and boards go with it."""
    workspace = get_workspace(db, workspace_id)
    db.delete(workspace)
    db.commit()
    logger.info("workspace.deleted", workspace_id=str(workspace_id))
