"""Card comments."""
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session, joinedload

from nexus.core.errors import forbidden, not_found
from nexus.models import Card, Comment
from nexus.services.access import WorkspaceAccess


def create_comment(db: Session, card: Card, access: WorkspaceAccess, content: str) -> Comment:
    comment = Comment(card_id=card.id, author_id=access.user.id, content=content)
    db.add(comment)
    db.commit()
    db.refresh(comment)
    return comment


def list_comments(db: Session, card: Card) -> list[Comment]:
    return list(db.execute(
        select(Comment)
        .options(joinedload(Comment.author))
        .where(Comment.card_id == card.id)
        .order_by(Comment.created_at)
    ).scalars())


def _get_comment(db: Session, card: Card, comment_id: UUID) -> Comment:
    comment = db.execute(
        select(Comment).where(Comment.id == comment_id, Comment.card_id == card.id)
    ).scalar_one_or_none()
    if comment is None:
        raise not_found("Comment not found.")
    return comment


def update_comment(db: Session, card: Card, comment_id: UUID, access: WorkspaceAccess, content: str) -> Comment:
    """Only the author may edit a comment."""
    comment = _get_comment(db, card, comment_id)
    if comment.author_id != access.user.id:
        raise forbidden("You can only edit your own comments.")

    comment.content = content
    db.commit()
    db.refresh(comment)
    return comment


def delete_comment(db: Session, card: Card, comment_id: UUID, access: WorkspaceAccess) -> None:
    """The author or a workspace OWNER/ADMIN may delete a comment."""
    comment = _get_comment(db, card, comment_id)
    if comment.author_id != access.user.id and not access.is_manager:
        raise forbidden("You can only delete your own comments.")

    db.delete(comment)
    db.commit()
