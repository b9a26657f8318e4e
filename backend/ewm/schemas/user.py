"""
Pydantic schemas for user-related request/response validation.
"""

from pydantic import EmailStr, Field

from ewm.schemas.common import CamelModel


class NewUserRequest(CamelModel):
    name: str = Field(..., min_length=2, max_length=250)
    email: EmailStr = Field(..., min_length=6, max_length=254)


class UserDto(CamelModel):
    id: int
    name: str
    email: str


class UserShortDto(CamelModel):
    id: int
    name: str
