"""Boards, their lists, and private-board grants."""
import uuid
from datetime import datetime

from sqlalchemy import String, Integer, DateTime, ForeignKey, Uuid, func, CheckConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from nexus.db.base import Base
from nexus.models.enums import BoardVisibility, check_values


# Lists every new board starts with, in display order
DEFAULT_LISTS = ("To Do", "In Progress", "In Review", "Done")


class Board(Base):
    __tablename__ = "boards"
    __table_args__ = (
        CheckConstraint(f"visibility IN ({check_values(BoardVisibility)})", name="valid_visibility"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    workspace_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("workspaces.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    visibility: Mapped[str] = mapped_column(String(20), nullable=False, default=BoardVisibility.PUBLIC.value)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    # Relationships
    workspace = relationship("Workspace", back_populates="boards")
    lists = relationship(
        "BoardList",
        back_populates="board",
        cascade="all, delete-orphan",
        order_by="BoardList.position",
    )
    members = relationship("BoardMember", back_populates="board", cascade="all, delete-orphan")

    @property
    def is_private(self) -> bool:
        return self.visibility == BoardVisibility.PRIVATE.value


class BoardMember(Base):
    """Explicit access grant to a PRIVATE board."""
    __tablename__ = "board_members"

    board_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("boards.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    board = relationship("Board", back_populates="members")
    user = relationship("User")


class BoardList(Base):
    __tablename__ = "lists"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    board_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("boards.id", ondelete="CASCADE"), nullable=False, index=True
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now())

    # Relationships
    board = relationship("Board", back_populates="lists")
    cards = relationship(
        "Card",
        back_populates="board_list",
        cascade="all, delete-orphan",
        order_by="Card.position",
    )
