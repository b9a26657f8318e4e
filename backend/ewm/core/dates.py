"""
Wire format for timestamps: `yyyy-MM-dd HH:mm:ss`, naive local time.
"""

from datetime import datetime
from typing import Annotated, Optional

from pydantic import BeforeValidator, PlainSerializer

from ewm.core.exceptions import InvalidArgumentError

DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"


def format_datetime(value: datetime) -> str:
    return value.strftime(DATETIME_FORMAT)


def parse_datetime(value: Optional[str], field: str = "date") -> Optional[datetime]:
    """Parse a query-string timestamp. Blank means absent."""
    if value is None or not value.strip():
        return None
    try:
        return datetime.strptime(value.strip(), DATETIME_FORMAT)
    except ValueError:
        raise InvalidArgumentError(
            f"Invalid {field} format. Expected format: yyyy-MM-dd HH:mm:ss"
        )


def _coerce(value):
    if isinstance(value, str):
        try:
            return datetime.strptime(value.strip(), DATETIME_FORMAT)
        except ValueError:
            raise ValueError("Expected format: yyyy-MM-dd HH:mm:ss")
    return value


# Pydantic field type used by every schema that carries a timestamp
EwmDateTime = Annotated[
    datetime,
    BeforeValidator(_coerce),
    PlainSerializer(format_datetime, return_type=str),
]
