"""Card and comment endpoints. Access is resolved from the card's board."""
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from nexus.core.deps import CurrentUser, DbSession
from nexus.models import Board, CardPriority, CardStatus
from nexus.services import cards as card_service
from nexus.services import comments as comment_service
from nexus.services.access import authorize_board_for_user, authorize_card, authorize_list
from nexus.services.cards import CardPosition

router = APIRouter(tags=["cards"])


class CardCreate(BaseModel):
    title: str = Field(min_length=1, max_length=255)
    description: str | None = None
    status: CardStatus = CardStatus.TO_DO
    priority: CardPriority = CardPriority.MEDIUM

    class Config:
        extra = "forbid"


class CardUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    status: CardStatus | None = None
    priority: CardPriority | None = None

    class Config:
        extra = "forbid"


class CardAssign(BaseModel):
    assignee_id: UUID | None

    class Config:
        extra = "forbid"


class CardPositionItem(BaseModel):
    id: UUID
    list_id: UUID
    position: int = Field(ge=0)

    class Config:
        extra = "forbid"


class CardReorderRequest(BaseModel):
    cards: list[CardPositionItem]

    class Config:
        extra = "forbid"


class CardResponse(BaseModel):
    id: UUID
    list_id: UUID
    title: str
    description: str | None = None
    status: CardStatus
    priority: CardPriority
    position: int
    assignee_id: UUID | None = None
    created_by: UUID | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


class CommentRequest(BaseModel):
    content: str = Field(min_length=1)

    class Config:
        extra = "forbid"


class CommentAuthor(BaseModel):
    id: UUID
    name: str

    class Config:
        from_attributes = True


class CommentResponse(BaseModel):
    id: UUID
    card_id: UUID
    author_id: UUID
    content: str
    author: CommentAuthor | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    class Config:
        from_attributes = True


# =============================================================================
# Cards
# =============================================================================

@router.post("/lists/{list_id}/cards", response_model=CardResponse, status_code=status.HTTP_201_CREATED)
def create_card(list_id: UUID, data: CardCreate, user: CurrentUser, db: DbSession):
    board_list, _ = authorize_list(db, user, list_id)
    return card_service.create_card(
        db,
        board_list,
        user,
        title=data.title,
        description=data.description,
        status=data.status,
        priority=data.priority,
    )


@router.patch("/cards/reorder", response_model=list[CardResponse])
def reorder_cards(data: CardReorderRequest, user: CurrentUser, db: DbSession):
    """Drag-and-drop moves within and across the lists of one board."""
    items = [
        CardPosition(id=item.id, list_id=item.list_id, position=item.position)
        for item in data.cards
    ]
    board_id = card_service.resolve_reorder_board(db, items)
    authorize_board_for_user(db, user, db.get(Board, board_id))
    return card_service.reorder_cards(db, board_id, items)


@router.get("/cards/{card_id}", response_model=CardResponse)
def get_card(card_id: UUID, user: CurrentUser, db: DbSession):
    card, _ = authorize_card(db, user, card_id)
    return card


@router.patch("/cards/{card_id}", response_model=CardResponse)
def update_card(card_id: UUID, data: CardUpdate, user: CurrentUser, db: DbSession):
    card, _ = authorize_card(db, user, card_id)
    return card_service.update_card(db, card, data.model_dump(exclude_unset=True))


@router.delete("/cards/{card_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_card(card_id: UUID, user: CurrentUser, db: DbSession):
    card, _ = authorize_card(db, user, card_id)
    card_service.delete_card(db, card)


@router.patch("/cards/{card_id}/assign", response_model=CardResponse)
def assign_card(card_id: UUID, data: CardAssign, user: CurrentUser, db: DbSession):
    """Assign a card to a workspace member who can see the board, or clear it."""
    card, board_access = authorize_card(db, user, card_id)
    return card_service.assign_card(db, card, board_access, data.assignee_id)


# =============================================================================
# Comments
# =============================================================================

@router.post(
    "/cards/{card_id}/comments",
    response_model=CommentResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["comments"],
)
def create_comment(card_id: UUID, data: CommentRequest, user: CurrentUser, db: DbSession):
    card, board_access = authorize_card(db, user, card_id)
    return comment_service.create_comment(db, card, board_access.access, data.content)


@router.get("/cards/{card_id}/comments", response_model=list[CommentResponse], tags=["comments"])
def list_comments(card_id: UUID, user: CurrentUser, db: DbSession):
    card, _ = authorize_card(db, user, card_id)
    return comment_service.list_comments(db, card)


@router.patch(
    "/cards/{card_id}/comments/{comment_id}",
    response_model=CommentResponse,
    tags=["comments"],
)
def update_comment(card_id: UUID, comment_id: UUID, data: CommentRequest, user: CurrentUser, db: DbSession):
    """Only the author may edit."""
    card, board_access = authorize_card(db, user, card_id)
    return comment_service.update_comment(db, card, comment_id, board_access.access, data.content)


@router.delete(
    "/cards/{card_id}/comments/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    tags=["comments"],
)
def delete_comment(card_id: UUID, comment_id: UUID, user: CurrentUser, db: DbSession):
    """The author, or a workspace ADMIN/OWNER."""
    card, board_access = authorize_card(db, user, card_id)
    comment_service.delete_comment(db, card, comment_id, board_access.access)
