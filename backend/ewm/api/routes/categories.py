"""
Category endpoints: admin management and public listing.
"""

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ewm.db.session import get_db
from ewm.schemas.category import CategoryDto, NewCategoryDto
from ewm.services import category_service

admin_router = APIRouter(prefix="/admin/categories", tags=["Admin: Categories"])
public_router = APIRouter(prefix="/categories", tags=["Public: Categories"])


@admin_router.post("", response_model=CategoryDto, status_code=status.HTTP_201_CREATED)
async def create_category_endpoint(data: NewCategoryDto, db: AsyncSession = Depends(get_db)):
    return await category_service.create_category(db, data)


@admin_router.patch("/{cat_id}", response_model=CategoryDto)
async def update_category_endpoint(cat_id: int, data: NewCategoryDto, db: AsyncSession = Depends(get_db)):
    return await category_service.update_category(db, cat_id, data)


@admin_router.delete("/{cat_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category_endpoint(cat_id: int, db: AsyncSession = Depends(get_db)):
    """Fails with 409 while any event still uses the category."""
    await category_service.delete_category(db, cat_id)


@public_router.get("", response_model=list[CategoryDto])
async def list_categories_endpoint(
    from_: int = Query(0, ge=0, alias="from"),
    size: int = Query(10, gt=0),
    db: AsyncSession = Depends(get_db),
):
    return await category_service.get_categories(db, from_, size)


@public_router.get("/{cat_id}", response_model=CategoryDto)
async def get_category_endpoint(cat_id: int, db: AsyncSession = Depends(get_db)):
    return await category_service.get_category(db, cat_id)
