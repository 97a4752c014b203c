"""Invitation endpoints for the invited user."""
from uuid import UUID

from fastapi import APIRouter, Request
from pydantic import BaseModel

from nexus.core.audit import create_audit_log
from nexus.core.deps import CurrentUser, DbSession
from nexus.models import Role
from nexus.services import invites as invite_service

router = APIRouter(prefix="/invites", tags=["invites"])


class InvitePreviewResponse(BaseModel):
    email: str
    workspace_name: str


class AcceptInviteRequest(BaseModel):
    token: str

    class Config:
        extra = "forbid"


class AcceptInviteResponse(BaseModel):
    workspace_id: UUID
    role: Role

    class Config:
        from_attributes = True


@router.get("/verify/{token}", response_model=InvitePreviewResponse)
def verify_invite(token: str, db: DbSession):
    """Public preview of an invitation (no authentication required)."""
    preview = invite_service.verify_invite(db, token)
    return InvitePreviewResponse(email=preview.email, workspace_name=preview.workspace_name)


@router.post("/accept", response_model=AcceptInviteResponse)
def accept_invite(data: AcceptInviteRequest, request: Request, user: CurrentUser, db: DbSession):
    """Join the workspace. The signed-in user's email must match the invite."""
    membership = invite_service.accept_invite(db, data.token, user)

    create_audit_log(
        db=db,
        action="invite.accept",
        resource_type="membership",
        resource_id=membership.id,
        workspace_id=membership.workspace_id,
        actor_user_id=user.id,
        request=request,
    )

    return membership
