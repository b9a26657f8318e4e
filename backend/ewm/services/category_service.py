"""
Event categories. A category still used by an event cannot be deleted.
"""

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ewm.core.exceptions import ConflictError, NotFoundError
from ewm.core.logging import get_logger
from ewm.core.pagination import paginate
from ewm.models.category import Category
from ewm.models.event import Event
from ewm.schemas.category import NewCategoryDto

logger = get_logger(__name__)


async def _ensure_name_free(db: AsyncSession, name: str, exclude_id: int | None = None) -> None:
    query = select(Category.id).where(Category.name == name)
    if exclude_id is not None:
        query = query.where(Category.id != exclude_id)
    if (await db.execute(query)).first() is not None:
        raise ConflictError(f"Category name '{name}' is already taken")


async def get_category(db: AsyncSession, category_id: int) -> Category:
    category = await db.get(Category, category_id)
    if not category:
        raise NotFoundError(f"Category with id={category_id} was not found")
    return category


async def get_categories(db: AsyncSession, from_: int = 0, size: int = 10) -> list[Category]:
    result = await db.execute(paginate(select(Category).order_by(Category.id.asc()), from_, size))
    return list(result.scalars().all())


async def create_category(db: AsyncSession, data: NewCategoryDto) -> Category:
    await _ensure_name_free(db, data.name)

    category = Category(name=data.name)
    db.add(category)
    await db.flush()
    await db.refresh(category)

    logger.info("category_created", category_id=category.id, name=category.name)
    return category


async def update_category(db: AsyncSession, category_id: int, data: NewCategoryDto) -> Category:
    category = await get_category(db, category_id)
    await _ensure_name_free(db, data.name, exclude_id=category_id)

    category.name = data.name
    await db.flush()
    await db.refresh(category)
    return category


async def delete_category(db: AsyncSession, category_id: int) -> None:
    category = await get_category(db, category_id)

    in_use = await db.execute(select(func.count(Event.id)).where(Event.category_id == category_id))
    if in_use.scalar():
        raise ConflictError("The category is not empty")

    await db.delete(category)
    await db.flush()
    logger.info("category_deleted", category_id=category_id)
