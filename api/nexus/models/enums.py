"""Enumerations shared by models, services and schemas."""

from enum import Enum


class Role(str, Enum):
    """Roles within a workspace (highest first)."""

    OWNER = "OWNER"
    ADMIN = "ADMIN"
    MEMBER = "MEMBER"


class BoardVisibility(str, Enum):
    """Who can see a board inside its workspace."""

    PUBLIC = "PUBLIC"      # Any workspace member
    PRIVATE = "PRIVATE"    # ADMIN/OWNER, plus explicit board members


class CardStatus(str, Enum):
    TO_DO = "TO_DO"
    IN_PROGRESS = "IN_PROGRESS"
    IN_REVIEW = "IN_REVIEW"
    DONE = "DONE"


class CardPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


# Roles an invite or a role change may grant (OWNER is only ever set at creation)
ASSIGNABLE_ROLES = (Role.ADMIN, Role.MEMBER)


def check_values(enum_cls: type[Enum]) -> str:
    """Comma-separated SQL literal list for CheckConstraint expressions."""
    return ", ".join(f"'{member.value}'" for member in enum_cls)
