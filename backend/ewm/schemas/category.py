from pydantic import Field

from ewm.schemas.common import CamelModel


class NewCategoryDto(CamelModel):
    name: str = Field(..., min_length=1, max_length=50)


class CategoryDto(CamelModel):
    id: int
    name: str
