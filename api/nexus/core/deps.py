from typing import Annotated
from uuid import UUID

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from nexus.db.session import get_db
from nexus.core.config import settings
from nexus.core.errors import unauthorized
from nexus.core.security import (
    ExpiredTokenError,
    ImmatureTokenError,
    InvalidTokenError,
    decode_access_token,
)
from nexus.models import Role, User
from nexus.services.access import ALL_ROLES, MANAGER_ROLES, OWNER_ONLY, WorkspaceAccess, authorize

security = HTTPBearer(auto_error=False)

DbSession = Annotated[Session, Depends(get_db)]


def _extract_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None,
) -> str | None:
    """Bearer header first, then the access token cookie."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.ACCESS_COOKIE_NAME)


def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: DbSession,
) -> User:
    """Get current authenticated user from JWT token."""
    token = _extract_token(request, credentials)
    if not token:
        raise unauthorized("Not authenticated.", code="token_invalid")

    try:
        claims = decode_access_token(token)
    except ExpiredTokenError:
        raise unauthorized("Token has expired.", code="token_expired")
    except ImmatureTokenError:
        raise unauthorized("Token not active yet.", code="token_not_active")
    except InvalidTokenError:
        raise unauthorized("Invalid token.", code="token_invalid")

    user = db.get(User, claims.id)
    if user is None:
        raise unauthorized("User not found.", code="token_invalid")

    return user


CurrentUser = Annotated[User, Depends(get_current_user)]


class WorkspaceAccessChecker:
    """Dependency resolving the caller's membership in {workspace_id}."""

    def __init__(self, allowed_roles: frozenset[Role]):
        self.allowed_roles = allowed_roles

    def __call__(
        self,
        workspace_id: UUID,
        user: CurrentUser,
        db: DbSession,
    ) -> WorkspaceAccess:
        return authorize(db, user, workspace_id, self.allowed_roles)


# Pre-configured access checkers
require_member = WorkspaceAccessChecker(ALL_ROLES)
require_manager = WorkspaceAccessChecker(MANAGER_ROLES)
require_owner = WorkspaceAccessChecker(OWNER_ONLY)

MemberAccess = Annotated[WorkspaceAccess, Depends(require_member)]
ManagerAccess = Annotated[WorkspaceAccess, Depends(require_manager)]
OwnerAccess = Annotated[WorkspaceAccess, Depends(require_owner)]
