"""Cards: CRUD, assignment and cross-list reordering."""
from dataclasses import dataclass
from uuid import UUID

import structlog
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from nexus.core.errors import bad_request
from nexus.models import BoardList, Card, CardPriority, CardStatus, User
from nexus.services.access import BoardAccess, can_view_board, get_membership

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CardPosition:
    id: UUID
    list_id: UUID
    position: int


def create_card(
    db: Session,
    board_list: BoardList,
    creator: User,
    title: str,
    description: str | None = None,
    status: CardStatus = CardStatus.TO_DO,
    priority: CardPriority = CardPriority.MEDIUM,
) -> Card:
    """Append a card at the end of the list."""
    last = db.execute(
        select(func.max(Card.position)).where(Card.list_id == board_list.id)
    ).scalar()

    card = Card(
        list_id=board_list.id,
        title=title,
        description=description,
        status=status.value,
        priority=priority.value,
        position=(last or 0) + 1,
        created_by=creator.id,
    )
    db.add(card)
    db.commit()
    db.refresh(card)
    logger.info("card.created", card_id=str(card.id), list_id=str(board_list.id))
    return card


def update_card(db: Session, card: Card, changes: dict) -> Card:
    """Apply a partial update. Enums are stored as their string value."""
    for field, value in changes.items():
        # Only description may be cleared
        if value is None and field != "description":
            continue
        if isinstance(value, (CardStatus, CardPriority)):
            value = value.value
        setattr(card, field, value)
    db.commit()
    db.refresh(card)
    return card


def delete_card(db: Session, card: Card) -> None:
    card_id = card.id
    db.delete(card)
    db.commit()
    logger.info("card.deleted", card_id=str(card_id))


def assign_card(db: Session, card: Card, board_access: BoardAccess, assignee_id: UUID | None) -> Card:
    """
    Set or clear the assignee.

    The assignee must belong to the board's workspace and be able to see
    the board (PRIVATE boards need a board_members row for MEMBERs).
    """
    if assignee_id is not None:
        membership = get_membership(db, assignee_id, board_access.board.workspace_id)
        if membership is None or not can_view_board(db, board_access.board, membership):
            raise bad_request("Assignee must be a workspace member with access to this board.")

    card.assignee_id = assignee_id
    db.commit()
    db.refresh(card)
    logger.info(
        "card.assigned",
        card_id=str(card.id),
        assignee_id=str(assignee_id) if assignee_id else None,
    )
    return card


def reorder_cards(db: Session, board_id: UUID, items: list[CardPosition]) -> list[Card]:
    """
    Move cards between lists and positions of one board.

    Every card and every destination list must live on board_id; the
    whole batch is applied in one commit or not at all.
    """
    card_ids = {item.id for item in items}
    if len(card_ids) != len(items):
        raise bad_request("Duplicate card ids in reorder request.")

    board_list_ids = set(db.execute(
        select(BoardList.id).where(BoardList.board_id == board_id)
    ).scalars())

    if any(item.list_id not in board_list_ids for item in items):
        raise bad_request("One or more target lists do not belong to this board.")

    cards = {
        card.id: card
        for card in db.execute(
            select(Card).where(Card.id.in_(card_ids), Card.list_id.in_(board_list_ids))
        ).scalars()
    }
    if len(cards) != len(card_ids):
        raise bad_request("One or more cards are invalid or do not belong to this board.")

    for item in items:
        card = cards[item.id]
        card.list_id = item.list_id
        card.position = item.position
    db.commit()

    return [cards[item.id] for item in items]


def resolve_reorder_board(db: Session, items: list[CardPosition]) -> UUID:
    """Board that owns the first card of a reorder batch."""
    if not items:
        raise bad_request("Reorder request must contain at least one card.")

    board_id = db.execute(
        select(BoardList.board_id)
        .join(Card, Card.list_id == BoardList.id)
        .where(Card.id == items[0].id)
    ).scalar_one_or_none()
    if board_id is None:
        raise bad_request("One or more cards are invalid or do not belong to this board.")
    return board_id
