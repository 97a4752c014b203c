"""Workspace, membership and invitation endpoints."""
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Request, status
from pydantic import BaseModel

from nexus.core.audit import create_audit_log
from nexus.core.deps import CurrentUser, DbSession, ManagerAccess, MemberAccess, OwnerAccess
from nexus.core.errors import bad_request
from nexus.core.validators import DisplayName, Email
from nexus.models import Role
from nexus.models.enums import ASSIGNABLE_ROLES
from nexus.services import invites as invite_service
from nexus.services import members as member_service
from nexus.services import workspaces as workspace_service

router = APIRouter(prefix="/workspaces", tags=["workspaces"])


class WorkspaceRequest(BaseModel):
    name: DisplayName

    class Config:
        extra = "forbid"


class WorkspaceResponse(BaseModel):
    id: UUID
    name: str
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class UserWorkspaceResponse(WorkspaceResponse):
    role: Role


class MemberUser(BaseModel):
    id: UUID
    name: str
    email: str

    class Config:
        from_attributes = True


class MemberResponse(BaseModel):
    id: UUID
    workspace_id: UUID
    user_id: UUID
    role: Role
    user: MemberUser | None = None

    class Config:
        from_attributes = True


class RoleUpdateRequest(BaseModel):
    role: Role

    class Config:
        extra = "forbid"


class InviteRequest(BaseModel):
    email: Email
    role: Role = Role.MEMBER

    class Config:
        extra = "forbid"


class InviteResponse(BaseModel):
    id: UUID
    workspace_id: UUID
    email: str
    role: Role
    expires_at: datetime

    class Config:
        from_attributes = True


# =============================================================================
# Workspaces
# =============================================================================

@router.post("", response_model=WorkspaceResponse, status_code=status.HTTP_201_CREATED)
def create_workspace(data: WorkspaceRequest, request: Request, user: CurrentUser, db: DbSession):
    """Create a new workspace. User becomes OWNER."""
    workspace = workspace_service.create_workspace(db, data.name, user)

    create_audit_log(
        db=db,
        action="workspace.create",
        resource_type="workspace",
        resource_id=workspace.id,
        workspace_id=workspace.id,
        actor_user_id=user.id,
        request=request,
        details={"name": data.name},
    )

    return workspace


@router.get("", response_model=list[UserWorkspaceResponse])
def list_workspaces(user: CurrentUser, db: DbSession):
    """List workspaces the user is a member of, with the user's role."""
    return [
        UserWorkspaceResponse(
            id=workspace.id,
            name=workspace.name,
            created_at=workspace.created_at,
            role=role,
        )
        for workspace, role in workspace_service.list_user_workspaces(db, user.id)
    ]


@router.get("/{workspace_id}", response_model=WorkspaceResponse)
def get_workspace(workspace_id: UUID, access: MemberAccess, db: DbSession):
    return workspace_service.get_workspace(db, workspace_id)


@router.patch("/{workspace_id}", response_model=WorkspaceResponse)
def update_workspace(
    workspace_id: UUID,
    data: WorkspaceRequest,
    request: Request,
    access: ManagerAccess,
    db: DbSession,
):
    """Rename a workspace. Requires ADMIN or OWNER."""
    workspace = workspace_service.update_workspace(db, workspace_id, data.name)

    create_audit_log(
        db=db,
        action="workspace.update",
        resource_type="workspace",
        resource_id=workspace_id,
        workspace_id=workspace_id,
        actor_user_id=access.user.id,
        request=request,
        details={"name": data.name},
    )

    return workspace


@router.delete("/{workspace_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_workspace(workspace_id: UUID, request: Request, access: OwnerAccess, db: DbSession):
    """Delete a workspace and everything in it. Requires OWNER."""
    workspace_service.delete_workspace(db, workspace_id)

    create_audit_log(
        db=db,
        action="workspace.delete",
        resource_type="workspace",
        resource_id=workspace_id,
        workspace_id=workspace_id,
        actor_user_id=access.user.id,
        request=request,
    )


# =============================================================================
# Members
# =============================================================================

@router.get("/{workspace_id}/members", response_model=list[MemberResponse])
def list_members(workspace_id: UUID, access: MemberAccess, db: DbSession):
    return member_service.list_members(db, workspace_id)


@router.patch("/{workspace_id}/members/{membership_id}", response_model=MemberResponse)
def update_member_role(
    workspace_id: UUID,
    membership_id: UUID,
    data: RoleUpdateRequest,
    request: Request,
    access: ManagerAccess,
    db: DbSession,
):
    """Change a member's role to ADMIN or MEMBER. The OWNER cannot be changed."""
    membership = member_service.update_member_role(db, workspace_id, membership_id, data.role)

    create_audit_log(
        db=db,
        action="member.role_update",
        resource_type="membership",
        resource_id=membership_id,
        workspace_id=workspace_id,
        actor_user_id=access.user.id,
        request=request,
        details={"role": data.role.value},
    )

    return membership


@router.delete("/{workspace_id}/members/{membership_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_member(
    workspace_id: UUID,
    membership_id: UUID,
    request: Request,
    access: ManagerAccess,
    db: DbSession,
):
    member_service.remove_member(db, workspace_id, membership_id)

    create_audit_log(
        db=db,
        action="member.remove",
        resource_type="membership",
        resource_id=membership_id,
        workspace_id=workspace_id,
        actor_user_id=access.user.id,
        request=request,
    )


# =============================================================================
# Invitations
# =============================================================================

@router.post(
    "/{workspace_id}/members/invite",
    response_model=InviteResponse,
    status_code=status.HTTP_201_CREATED,
)
def invite_member(
    workspace_id: UUID,
    data: InviteRequest,
    request: Request,
    access: ManagerAccess,
    db: DbSession,
):
    """Invite an email address as ADMIN or MEMBER. Requires ADMIN or OWNER."""
    if data.role not in ASSIGNABLE_ROLES:
        raise bad_request("Invites can only grant the ADMIN or MEMBER role.")

    workspace = workspace_service.get_workspace(db, workspace_id)
    invite = invite_service.create_invite(db, workspace, data.email, data.role, invited_by=access.user.id)

    create_audit_log(
        db=db,
        action="invite.create",
        resource_type="invite",
        resource_id=invite.id,
        workspace_id=workspace_id,
        actor_user_id=access.user.id,
        request=request,
        details={"email": data.email, "role": data.role.value},
    )

    return invite


@router.get("/{workspace_id}/members/invites", response_model=list[InviteResponse])
def list_invites(workspace_id: UUID, access: ManagerAccess, db: DbSession):
    """Pending (unexpired) invitations."""
    return invite_service.list_pending_invites(db, workspace_id)


@router.delete(
    "/{workspace_id}/members/invites/{invite_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
def revoke_invite(
    workspace_id: UUID,
    invite_id: UUID,
    request: Request,
    access: ManagerAccess,
    db: DbSession,
):
    invite_service.revoke_invite(db, workspace_id, invite_id)

    create_audit_log(
        db=db,
        action="invite.revoke",
        resource_type="invite",
        resource_id=invite_id,
        workspace_id=workspace_id,
        actor_user_id=access.user.id,
        request=request,
    )
