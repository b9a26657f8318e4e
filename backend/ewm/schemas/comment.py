from pydantic import Field

from ewm.core.dates import EwmDateTime
from ewm.models.comment import Comment
from ewm.schemas.common import CamelModel


class NewCommentDto(CamelModel):
    text: str = Field(..., min_length=1, max_length=2000)


class CommentDto(CamelModel):
    id: int
    text: str
    author_id: int
    author_name: str
    event_id: int
    created: EwmDateTime

    @classmethod
    def from_comment(cls, comment: Comment) -> "CommentDto":
        return cls(
            id=comment.id,
            text=comment.text,
            author_id=comment.author_id,
            author_name=comment.author.name,
            event_id=comment.event_id,
            created=comment.created,
        )
