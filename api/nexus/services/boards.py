"""Boards and private-board membership."""
from uuid import UUID

import structlog
from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from nexus.core.errors import bad_request, conflict, forbidden, not_found
from nexus.models import Board, BoardList, BoardMember, BoardVisibility, DEFAULT_LISTS, Card
from nexus.services.access import WorkspaceAccess, can_view_board, get_membership, get_workspace_board

logger = structlog.get_logger(__name__)


def create_board(db: Session, workspace_id: UUID, name: str, visibility: BoardVisibility) -> Board:
    """Create a board with its default lists in one commit."""
    board = Board(workspace_id=workspace_id, name=name, visibility=visibility.value)
    db.add(board)
    db.flush()

    for position, list_name in enumerate(DEFAULT_LISTS, start=1):
        db.add(BoardList(board_id=board.id, name=list_name, position=position))

    db.commit()
    db.refresh(board)
    logger.info("board.created", workspace_id=str(workspace_id), board_id=str(board.id))
    return board


def list_boards_for_member(db: Session, access: WorkspaceAccess) -> list[Board]:
    """PUBLIC boards plus the PRIVATE ones the caller can see."""
    query = select(Board).where(Board.workspace_id == access.workspace_id)

    if not access.is_manager:
        granted = select(BoardMember.board_id).where(BoardMember.user_id == access.user.id)
        query = query.where(or_(
            Board.visibility == BoardVisibility.PUBLIC.value,
            Board.id.in_(granted),
        ))

    return list(db.execute(query.order_by(Board.created_at)).scalars())


def load_board_detail(db: Session, board_id: UUID) -> Board:
    """Board with lists and cards, both ordered by position."""
    return db.execute(
        select(Board)
        .options(selectinload(Board.lists).selectinload(BoardList.cards))
        .where(Board.id == board_id)
        .execution_options(populate_existing=True)
    ).scalar_one()


def update_board(
    db: Session,
    board: Board,
    name: str | None = None,
    visibility: BoardVisibility | None = None,
) -> Board:
    if name is not None:
        board.name = name
    if visibility is not None:
        board.visibility = visibility.value
    db.commit()
    db.refresh(board)
    return board


def delete_board(db: Session, board: Board) -> None:
    """Lists, cards, comments and board grants go with the board."""
    board_id = board.id
    db.delete(board)
    db.commit()
    logger.info("board.deleted", board_id=str(board_id))


def add_board_member(db: Session, workspace_id: UUID, board_id: UUID, user_id: UUID) -> BoardMember:
    """Grant a workspace member access to a PRIVATE board."""
    board = get_workspace_board(db, workspace_id, board_id)

    if not board.is_private:
        raise bad_request("This board is public; all workspace members have access.")

    if get_membership(db, user_id, workspace_id) is None:
        raise forbidden("Cannot add a user who is not a member of the workspace.")

    existing = db.get(BoardMember, {"board_id": board_id, "user_id": user_id})
    if existing is not None:
        raise conflict("This user is already a member of the board.")

    grant = BoardMember(board_id=board_id, user_id=user_id)
    db.add(grant)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise conflict("This user is already a member of the board.")
    db.refresh(grant)
    return grant


def remove_board_member(db: Session, workspace_id: UUID, board_id: UUID, user_id: UUID) -> None:
    board = get_workspace_board(db, workspace_id, board_id)

    grant = db.get(BoardMember, {"board_id": board_id, "user_id": user_id})
    if grant is None:
        raise not_found("This user is not a member of the board.")

    db.delete(grant)
    db.flush()

    # Cards on a board the user can no longer see do not stay assigned to them
    membership = get_membership(db, user_id, workspace_id)
    if membership is None or not can_view_board(db, board, membership):
        list_ids = select(BoardList.id).where(BoardList.board_id == board_id)
        for card in db.execute(
            select(Card).where(Card.list_id.in_(list_ids), Card.assignee_id == user_id)
        ).scalars():
            card.assignee_id = None

    db.commit()
