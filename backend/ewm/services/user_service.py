"""
User administration: create, list, delete.
"""

from typing import Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ewm.core.exceptions import ConflictError, NotFoundError
from ewm.core.logging import get_logger
from ewm.core.pagination import paginate
from ewm.models.request import ParticipationRequest, RequestStatus
from ewm.models.user import User
from ewm.schemas.user import NewUserRequest
from ewm.services import capacity_service

logger = get_logger(__name__)


async def create_user(db: AsyncSession, user_data: NewUserRequest) -> User:
    """
    Register a new user.
    Raises ConflictError if the email already exists.
    """
    result = await db.execute(select(User).where(User.email == user_data.email))
    if result.scalar_one_or_none():
        logger.warning("user_create_failed", reason="email_exists", email=user_data.email)
        raise ConflictError(f"User with email {user_data.email} already exists")

    user = User(name=user_data.name, email=user_data.email)
    db.add(user)
    await db.flush()
    await db.refresh(user)

    logger.info("user_created", user_id=user.id, email=user.email)
    return user


async def get_users(
    db: AsyncSession,
    ids: Optional[Sequence[int]] = None,
    from_: int = 0,
    size: int = 10,
) -> list[User]:
    query = select(User).order_by(User.id.asc())
    if ids:
        query = query.where(User.id.in_(list(ids)))
    result = await db.execute(paginate(query, from_, size))
    return list(result.scalars().all())


async def delete_user(db: AsyncSession, user_id: int) -> None:
    """
    Delete a user together with their events, requests and comments.

    The user's CONFIRMED requests on other users' events go with them, so the
    slots they held are released first, in the same transaction.
    """
    user = await db.get(User, user_id)
    if not user:
        raise NotFoundError(f"User with id={user_id} was not found")

    held = await db.execute(
        select(ParticipationRequest.event_id, func.count(ParticipationRequest.id))
        .where(
            ParticipationRequest.requester_id == user_id,
            ParticipationRequest.status == RequestStatus.CONFIRMED,
        )
        .group_by(ParticipationRequest.event_id)
    )
    for event_id, count in held.all():
        await capacity_service.decrement_confirmed(db, event_id, count)

    await db.delete(user)
    await db.flush()
    logger.info("user_deleted", user_id=user_id)
