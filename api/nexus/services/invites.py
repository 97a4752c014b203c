"""
Workspace invitations.

Lifecycle: created by OWNER/ADMIN -> verified anonymously (preview) ->
accepted by the invited, authenticated user -> deleted.
Expiry is checked in every lookup; expired rows linger until the same
(workspace, email) pair is invited again.
"""
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from uuid import UUID

import structlog
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from nexus.core import mailer
from nexus.core.config import settings
from nexus.core.errors import conflict, forbidden, not_found
from nexus.core.metrics import invites as invite_metrics
from nexus.core.security import generate_token
from nexus.models import Invite, Membership, Role, User, Workspace

logger = structlog.get_logger(__name__)

INVALID_INVITE = "Invalid or expired invitation link."


@dataclass(frozen=True)
class InvitePreview:
    email: str
    workspace_name: str


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _get_active_invite(db: Session, token: str) -> Invite | None:
    return db.execute(
        select(Invite).where(Invite.token == token, Invite.expires_at >= _now())
    ).scalar_one_or_none()


def _has_active_invite(db: Session, workspace_id: UUID, email: str) -> bool:
    return db.execute(
        select(Invite.id).where(
            Invite.workspace_id == workspace_id,
            Invite.email == email,
            Invite.expires_at >= _now(),
        )
    ).first() is not None


def create_invite(
    db: Session,
    workspace: Workspace,
    email: str,
    role: Role,
    invited_by: UUID | None = None,
) -> Invite:
    """
    Invite an email address to a workspace at the given role.

    Conflict when the address already belongs to a member, or when an
    unexpired invite for the pair exists (including one committed by a
    concurrent request, caught by the unique constraint).
    """
    already_member = db.execute(
        select(Membership.id)
        .join(User, User.id == Membership.user_id)
        .where(Membership.workspace_id == workspace.id, User.email == email)
    ).first()
    if already_member is not None:
        raise conflict("This user is already a member of the workspace.")

    if _has_active_invite(db, workspace.id, email):
        raise conflict("An active invitation for this email already exists.")

    # Make room for the new row under uq_invites_workspace_email
    db.execute(
        delete(Invite).where(
            Invite.workspace_id == workspace.id,
            Invite.email == email,
            Invite.expires_at < _now(),
        )
    )

    token = generate_token()
    invite = Invite(
        workspace_id=workspace.id,
        email=email,
        role=role.value,
        token=token,
        invited_by=invited_by,
        expires_at=_now() + timedelta(days=settings.INVITE_EXPIRE_DAYS),
    )
    db.add(invite)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise conflict("An active invitation for this email already exists.")
    db.refresh(invite)

    mailer.send_workspace_invite(email, token, workspace.name)
    invite_metrics.labels(event="created").inc()
    logger.info("invite.created", workspace_id=str(workspace.id), invite_id=str(invite.id), role=role.value)
    return invite


def list_pending_invites(db: Session, workspace_id: UUID) -> list[Invite]:
    return list(db.execute(
        select(Invite)
        .where(Invite.workspace_id == workspace_id, Invite.expires_at >= _now())
        .order_by(Invite.created_at)
    ).scalars())


def verify_invite(db: Session, token: str) -> InvitePreview:
    """Public preview of an invite, shown before the user signs in."""
    invite = _get_active_invite(db, token)
    if invite is None:
        raise not_found(INVALID_INVITE)
    return InvitePreview(email=invite.email, workspace_name=invite.workspace.name)


def accept_invite(db: Session, token: str, user: User) -> Membership:
    """Turn an invite into a membership for the user it was addressed to."""
    invite = _get_active_invite(db, token)
    if invite is None:
        invite_metrics.labels(event="accept_invalid").inc()
        raise not_found(INVALID_INVITE)

    if user.email != invite.email:
        invite_metrics.labels(event="accept_wrong_user").inc()
        logger.warning("invite.accept.email_mismatch", invite_id=str(invite.id), user_id=str(user.id))
        raise forbidden("This invitation is intended for a different email address.")

    membership = Membership(
        user_id=user.id,
        workspace_id=invite.workspace_id,
        role=invite.role,
    )
    db.add(membership)
    db.delete(invite)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise conflict("You are already a member of this workspace.")
    db.refresh(membership)

    invite_metrics.labels(event="accepted").inc()
    logger.info("invite.accepted", workspace_id=str(membership.workspace_id), user_id=str(user.id))
    return membership


def revoke_invite(db: Session, workspace_id: UUID, invite_id: UUID) -> None:
    invite = db.execute(
        select(Invite).where(Invite.id == invite_id, Invite.workspace_id == workspace_id)
    ).scalar_one_or_none()
    if invite is None:
        raise not_found("Invitation not found.")

    db.delete(invite)
    db.commit()
    invite_metrics.labels(event="revoked").inc()
