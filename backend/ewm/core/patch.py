"""
Explicit partial-update helpers.

A PATCH body field is either absent/null (keep the stored value) or carries
a new value. `field_update` turns one field of a pydantic model into a
`Keep | SetTo` value and `apply_update` resolves it against the current one,
so update code names every field it touches instead of copying attributes
generically.
"""

from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

from pydantic import BaseModel

T = TypeVar("T")


class Keep:
    """No change requested."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "KEEP"


KEEP = Keep()


@dataclass(frozen=True)
class SetTo(Generic[T]):
    value: T


FieldUpdate = Union[Keep, SetTo[T]]


def field_update(model: BaseModel, name: str) -> FieldUpdate:
    """Read `name` from a request model; unset, None and blank strings mean keep."""
    if name not in model.model_fields_set:
        return KEEP
    value = getattr(model, name)
    if value is None:
        return KEEP
    if isinstance(value, str) and not value.strip():
        return KEEP
    return SetTo(value)


def apply_update(current: Any, update: FieldUpdate) -> Any:
    if isinstance(update, SetTo):
        return update.value
    return current
