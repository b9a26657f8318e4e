from datetime import datetime

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from ewm.db.base import Base


class Comment(Base):
    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, index=True)
    text = Column(String(2000), nullable=False)
    author_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    created = Column(DateTime, nullable=False, default=datetime.now)

    author = relationship("User", back_populates="comments", lazy="selectin")
    event = relationship("Event", back_populates="comments")

    def __repr__(self) -> str:
        return f"<Comment(id={self.id}, event={self.event_id}, author={self.author_id})>"
