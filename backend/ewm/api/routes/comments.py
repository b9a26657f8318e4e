"""
Comment endpoints.
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ewm.db.session import get_db
from ewm.schemas.comment import CommentDto, NewCommentDto
from ewm.services import comment_service

router = APIRouter(tags=["Comments"])


@router.post(
    "/users/{user_id}/events/{event_id}/comments",
    response_model=CommentDto,
    status_code=status.HTTP_201_CREATED,
)
async def add_comment_endpoint(
    user_id: int,
    event_id: int,
    data: NewCommentDto,
    db: AsyncSession = Depends(get_db),
):
    comment = await comment_service.add_comment(db, user_id, event_id, data)
    return CommentDto.from_comment(comment)


@router.get("/events/{event_id}/comments", response_model=list[CommentDto])
async def list_comments_endpoint(event_id: int, db: AsyncSession = Depends(get_db)):
    comments = await comment_service.get_comments(db, event_id)
    return [CommentDto.from_comment(c) for c in comments]


@router.delete("/users/{user_id}/comments/{comment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_comment_endpoint(user_id: int, comment_id: int, db: AsyncSession = Depends(get_db)):
    """Only the author may delete a comment."""
    await comment_service.delete_comment(db, user_id, comment_id)
