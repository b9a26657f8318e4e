"""
Admin user endpoints.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ewm.db.session import get_db
from ewm.schemas.user import NewUserRequest, UserDto
from ewm.services import user_service

router = APIRouter(prefix="/admin/users", tags=["Admin: Users"])


@router.post("", response_model=UserDto, status_code=status.HTTP_201_CREATED)
async def create_user_endpoint(
    user_data: NewUserRequest,
    db: AsyncSession = Depends(get_db),
):
    return await user_service.create_user(db, user_data)


@router.get("", response_model=list[UserDto])
async def list_users_endpoint(
    ids: Optional[list[int]] = Query(None),
    from_: int = Query(0, ge=0, alias="from"),
    size: int = Query(10, gt=0),
    db: AsyncSession = Depends(get_db),
):
    """Users by id, or a page of all users when no ids are given."""
    return await user_service.get_users(db, ids, from_, size)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user_endpoint(user_id: int, db: AsyncSession = Depends(get_db)):
    await user_service.delete_user(db, user_id)
