"""Board endpoints, nested under their workspace."""
from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Request, status
from pydantic import BaseModel, Field

from nexus.core.audit import create_audit_log
from nexus.core.deps import DbSession, ManagerAccess, MemberAccess
from nexus.core.validators import DisplayName
from nexus.models import BoardVisibility, CardPriority, CardStatus
from nexus.services import boards as board_service
from nexus.services.access import authorize_board
from nexus.services.lists import ListPosition, reorder_lists

router = APIRouter(prefix="/workspaces/{workspace_id}/boards", tags=["boards"])


class BoardCreate(BaseModel):
    name: DisplayName
    visibility: BoardVisibility = BoardVisibility.PUBLIC

    class Config:
        extra = "forbid"


class BoardUpdate(BaseModel):
    name: DisplayName | None = None
    visibility: BoardVisibility | None = None

    class Config:
        extra = "forbid"


class BoardResponse(BaseModel):
    id: UUID
    workspace_id: UUID
    name: str
    visibility: BoardVisibility
    created_at: datetime | None = None

    class Config:
        from_attributes = True


class CardSummary(BaseModel):
    id: UUID
    list_id: UUID
    title: str
    status: CardStatus
    priority: CardPriority
    position: int
    assignee_id: UUID | None = None

    class Config:
        from_attributes = True


class ListResponse(BaseModel):
    id: UUID
    board_id: UUID
    name: str
    position: int

    class Config:
        from_attributes = True


class ListWithCards(ListResponse):
    cards: list[CardSummary] = []


class BoardDetailResponse(BoardResponse):
    lists: list[ListWithCards] = []


class BoardMemberRequest(BaseModel):
    user_id: UUID

    class Config:
        extra = "forbid"


class BoardMemberResponse(BaseModel):
    board_id: UUID
    user_id: UUID

    class Config:
        from_attributes = True


class ListPositionItem(BaseModel):
    id: UUID
    position: int = Field(ge=0)

    class Config:
        extra = "forbid"


class ListReorderRequest(BaseModel):
    lists: list[ListPositionItem]

    class Config:
        extra = "forbid"


@router.post("", response_model=BoardDetailResponse, status_code=status.HTTP_201_CREATED)
def create_board(workspace_id: UUID, data: BoardCreate, access: ManagerAccess, db: DbSession):
    """Create a board with the default lists. Requires ADMIN or OWNER."""
    board = board_service.create_board(db, workspace_id, data.name, data.visibility)
    return board_service.load_board_detail(db, board.id)


@router.get("", response_model=list[BoardResponse])
def list_boards(workspace_id: UUID, access: MemberAccess, db: DbSession):
    """Boards visible to the caller."""
    return board_service.list_boards_for_member(db, access)


@router.get("/{board_id}", response_model=BoardDetailResponse)
def get_board(workspace_id: UUID, board_id: UUID, access: MemberAccess, db: DbSession):
    """Board with its lists and cards, ordered by position."""
    authorize_board(db, access, board_id)
    return board_service.load_board_detail(db, board_id)


@router.patch("/{board_id}", response_model=BoardResponse)
def update_board(
    workspace_id: UUID,
    board_id: UUID,
    data: BoardUpdate,
    access: ManagerAccess,
    db: DbSession,
):
    board_access = authorize_board(db, access, board_id)
    return board_service.update_board(db, board_access.board, data.name, data.visibility)


@router.delete("/{board_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_board(workspace_id: UUID, board_id: UUID, access: ManagerAccess, db: DbSession):
    board_access = authorize_board(db, access, board_id)
    board_service.delete_board(db, board_access.board)


@router.post(
    "/{board_id}/members",
    response_model=BoardMemberResponse,
    status_code=status.HTTP_201_CREATED,
)
def add_board_member(
    workspace_id: UUID,
    board_id: UUID,
    data: BoardMemberRequest,
    request: Request,
    access: ManagerAccess,
    db: DbSession,
):
    """Grant a workspace member access to a PRIVATE board."""
    grant = board_service.add_board_member(db, workspace_id, board_id, data.user_id)

    create_audit_log(
        db=db,
        action="board.member_add",
        resource_type="board",
        resource_id=board_id,
        workspace_id=workspace_id,
        actor_user_id=access.user.id,
        request=request,
        details={"user_id": str(data.user_id)},
    )

    return grant


@router.delete("/{board_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_board_member(
    workspace_id: UUID,
    board_id: UUID,
    user_id: UUID,
    request: Request,
    access: ManagerAccess,
    db: DbSession,
):
    board_service.remove_board_member(db, workspace_id, board_id, user_id)

    create_audit_log(
        db=db,
        action="board.member_remove",
        resource_type="board",
        resource_id=board_id,
        workspace_id=workspace_id,
        actor_user_id=access.user.id,
        request=request,
        details={"user_id": str(user_id)},
    )


@router.patch("/{board_id}/lists/reorder", response_model=list[ListResponse])
def reorder_board_lists(
    workspace_id: UUID,
    board_id: UUID,
    data: ListReorderRequest,
    access: MemberAccess,
    db: DbSession,
):
    """Drag-and-drop reordering of a board's lists."""
    authorize_board(db, access, board_id)
    items = [ListPosition(id=item.id, position=item.position) for item in data.lists]
    return reorder_lists(db, board_id, items)
