"""
Workspace and board access resolution.

Roles are always read from the memberships table for the request at hand;
the membership list inside an access token is never trusted for
authorization because it goes stale as soon as a role changes.

Board visibility:
- OWNER/ADMIN: every board in the workspace
- MEMBER: PUBLIC boards, plus PRIVATE boards with a board_members row
"""
from dataclasses import dataclass
from uuid import UUID

import structlog
from sqlalchemy import select
from sqlalchemy.orm import Session

from nexus.core.errors import forbidden, not_found
from nexus.core.metrics import access_denied
from nexus.models import Board, BoardList, BoardMember, Card, Membership, Role, User

logger = structlog.get_logger(__name__)

ALL_ROLES = frozenset([Role.OWNER, Role.ADMIN, Role.MEMBER])
MANAGER_ROLES = frozenset([Role.OWNER, Role.ADMIN])
OWNER_ONLY = frozenset([Role.OWNER])


@dataclass(frozen=True)
class WorkspaceAccess:
    """Resolved caller identity and membership for one workspace."""
    user: User
    membership: Membership

    @property
    def role(self) -> Role:
        return Role(self.membership.role)

    @property
    def workspace_id(self) -> UUID:
        return self.membership.workspace_id

    @property
    def is_manager(self) -> bool:
        return self.role in MANAGER_ROLES


@dataclass(frozen=True)
class BoardAccess:
    access: WorkspaceAccess
    board: Board


def get_membership(db: Session, user_id: UUID, workspace_id: UUID) -> Membership | None:
    return db.execute(
        select(Membership).where(
            Membership.workspace_id == workspace_id,
            Membership.user_id == user_id,
        )
    ).scalar_one_or_none()


def authorize(
    db: Session,
    user: User,
    workspace_id: UUID,
    allowed_roles: frozenset[Role] = ALL_ROLES,
) -> WorkspaceAccess:
    """
    Resolve the caller's membership and check it against allowed_roles.

    A missing workspace and a workspace the user does not belong to fail
    the same way, so workspace ids cannot be probed.
    """
    membership = get_membership(db, user.id, workspace_id)

    if membership is None:
        access_denied.labels(reason="not_member").inc()
        logger.info("access.denied", reason="not_member", user_id=str(user.id), workspace_id=str(workspace_id))
        raise forbidden("You do not have access to this workspace.")

    if Role(membership.role) not in allowed_roles:
        access_denied.labels(reason="role").inc()
        logger.info(
            "access.denied",
            reason="role",
            user_id=str(user.id),
            workspace_id=str(workspace_id),
            role=membership.role,
        )
        raise forbidden("You don't have the required permissions to perform this action.")

    return WorkspaceAccess(user=user, membership=membership)


def is_board_member(db: Session, board_id: UUID, user_id: UUID) -> bool:
    return db.execute(
        select(BoardMember).where(
            BoardMember.board_id == board_id,
            BoardMember.user_id == user_id,
        )
    ).scalar_one_or_none() is not None


def can_view_board(db: Session, board: Board, membership: Membership) -> bool:
    if Role(membership.role) in MANAGER_ROLES:
        return True
    if not board.is_private:
        return True
    return is_board_member(db, board.id, membership.user_id)


def ensure_board_access(db: Session, board: Board, access: WorkspaceAccess) -> None:
    if not can_view_board(db, board, access.membership):
        access_denied.labels(reason="private_board").inc()
        logger.info("access.denied", reason="private_board", user_id=str(access.user.id), board_id=str(board.id))
        raise forbidden("You don't have access to this private board.")


def get_workspace_board(db: Session, workspace_id: UUID, board_id: UUID) -> Board:
    board = db.execute(
        select(Board).where(Board.id == board_id, Board.workspace_id == workspace_id)
    ).scalar_one_or_none()
    if board is None:
        raise not_found("Board not found.")
    return board


def authorize_board(
    db: Session,
    access: WorkspaceAccess,
    board_id: UUID,
) -> BoardAccess:
    """Board of the already-authorized workspace, visible to the caller."""
    board = get_workspace_board(db, access.workspace_id, board_id)
    ensure_board_access(db, board, access)
    return BoardAccess(access=access, board=board)


def authorize_board_for_user(db: Session, user: User, board: Board) -> BoardAccess:
    """Resolve the caller's membership from the board's workspace, then check visibility."""
    access = authorize(db, user, board.workspace_id, ALL_ROLES)
    ensure_board_access(db, board, access)
    return BoardAccess(access=access, board=board)


def authorize_list(db: Session, user: User, list_id: UUID) -> tuple[BoardList, BoardAccess]:
    """Resolve list -> board -> workspace and check the caller can see the board."""
    board_list = db.get(BoardList, list_id)
    if board_list is None:
        raise not_found("List not found.")
    return board_list, authorize_board_for_user(db, user, board_list.board)


def authorize_card(db: Session, user: User, card_id: UUID) -> tuple[Card, BoardAccess]:
    """Resolve card -> list -> board -> workspace and check the caller can see the board."""
    card = db.get(Card, card_id)
    if card is None:
        raise not_found("Card not found.")
    return card, authorize_board_for_user(db, user, card.board_list.board)
