"""
Comments on published events.
"""

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ewm.core.exceptions import ConflictError, NotFoundError
from ewm.core.logging import get_logger
from ewm.models.comment import Comment
from ewm.models.event import Event, EventState
from ewm.models.user import User
from ewm.schemas.comment import NewCommentDto

logger = get_logger(__name__)


async def _load(db: AsyncSession, comment_id: int) -> Comment:
    result = await db.execute(
        select(Comment).where(Comment.id == comment_id).execution_options(populate_existing=True)
    )
    comment = result.scalar_one_or_none()
    if not comment:
        raise NotFoundError(f"Comment with id={comment_id} was not found")
    return comment


async def add_comment(db: AsyncSession, user_id: int, event_id: int, data: NewCommentDto) -> Comment:
    if not await db.get(User, user_id):
        raise NotFoundError(f"User with id={user_id} was not found")

    event = await db.get(Event, event_id)
    if not event:
        raise NotFoundError(f"Event with id={event_id} was not found")
    if event.state != EventState.PUBLISHED:
        raise ConflictError("Cannot comment on an unpublished event")

    comment = Comment(text=data.text, author_id=user_id, event_id=event_id, created=datetime.now())
    db.add(comment)
    await db.flush()

    logger.info("comment_added", comment_id=comment.id, event_id=event_id, author_id=user_id)
    return await _load(db, comment.id)


async def get_comments(db: AsyncSession, event_id: int) -> list[Comment]:
    """Comments for an event, newest first."""
    result = await db.execute(
        select(Comment)
        .where(Comment.event_id == event_id)
        .order_by(Comment.created.desc(), Comment.id.desc())
    )
    return list(result.scalars().all())


async def delete_comment(db: AsyncSession, user_id: int, comment_id: int) -> None:
    comment = await _load(db, comment_id)
    if comment.author_id != user_id:
        raise ConflictError("Only the author can delete a comment")

    await db.delete(comment)
    await db.flush()
    logger.info("comment_deleted", comment_id=comment_id, author_id=user_id)
