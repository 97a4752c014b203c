"""List ordering within a board."""
from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from nexus.core.errors import bad_request
from nexus.models import BoardList


@dataclass(frozen=True)
class ListPosition:
    id: UUID
    position: int


def reorder_lists(db: Session, board_id: UUID, items: list[ListPosition]) -> list[BoardList]:
    """
    Apply new positions to lists of one board in a single transaction.

    Every id must be a list of this board, otherwise nothing changes.
    """
    ids = {item.id for item in items}
    if len(ids) != len(items):
        raise bad_request("Duplicate list ids in reorder request.")

    lists = {
        board_list.id: board_list
        for board_list in db.execute(
            select(BoardList).where(BoardList.id.in_(ids), BoardList.board_id == board_id)
        ).scalars()
    }
    if len(lists) != len(ids):
        raise bad_request("One or more lists are invalid or do not belong to this board.")

    for item in items:
        lists[item.id].position = item.position
    db.commit()

    return list(db.execute(
        select(BoardList).where(BoardList.board_id == board_id).order_by(BoardList.position)
    ).scalars())
