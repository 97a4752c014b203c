import uuid
from typing import Any
from fastapi import Request
from sqlalchemy.orm import Session

from nexus.models.audit_log import AuditLog

# Keys never written to the audit trail
SENSITIVE_KEYS = frozenset([
    "password",
    "password_hash",
    "current_password",
    "new_password",
    "token",
    "otp",
    "secret",
    "refresh_token",
    "access_token",
])


def create_audit_log(
    db: Session,
    action: str,
    resource_type: str,
    resource_id: uuid.UUID | None = None,
    workspace_id: uuid.UUID | None = None,
    actor_user_id: uuid.UUID | None = None,
    request: Request | None = None,
    details: dict[str, Any] | None = None,
) -> AuditLog:
    """
    Create an audit log entry.

    Actions:
        - auth.register, auth.login, auth.password_reset, auth.password_change
        - workspace.create, workspace.update, workspace.delete
        - member.role_update, member.remove
        - invite.create, invite.accept, invite.revoke
        - board.member_add, board.member_remove
    """
    ip = None
    user_agent = None
    request_id = None

    if request:
        ip = request.client.host if request.client else None
        user_agent = request.headers.get("User-Agent")
        request_id = request.headers.get("X-Request-ID")

    # Sanitize details - remove sensitive data
    safe_details = None
    if details:
        safe_details = {
            k: v for k, v in details.items()
            if k not in SENSITIVE_KEYS
        }

    log = AuditLog(
        workspace_id=workspace_id,
        actor_user_id=actor_user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        ip=ip,
        user_agent=user_agent,
        request_id=request_id,
        details_json=safe_details,
    )

    db.add(log)
    db.commit()

    return log


def audit_login(db: Session, user_id: uuid.UUID, request: Request, success: bool = True):
    return create_audit_log(
        db=db,
        action="auth.login",
        resource_type="user",
        resource_id=user_id,
        actor_user_id=user_id if success else None,
        request=request,
        details={"success": success},
    )
