from nexus.models.enums import Role, BoardVisibility, CardStatus, CardPriority
from nexus.models.user import User
from nexus.models.workspace import Workspace, Membership
from nexus.models.board import Board, BoardMember, BoardList, DEFAULT_LISTS
from nexus.models.card import Card, Comment
from nexus.models.tokens import EmailVerificationToken, PasswordResetToken
from nexus.models.invite import Invite
from nexus.models.audit_log import AuditLog

__all__ = [
    "Role",
    "BoardVisibility",
    "CardStatus",
    "CardPriority",
    "User",
    "Workspace",
    "Membership",
    "Board",
    "BoardMember",
    "BoardList",
    "DEFAULT_LISTS",
    "Card",
    "Comment",
    "EmailVerificationToken",
    "PasswordResetToken",
    "Invite",
    "AuditLog",
]
