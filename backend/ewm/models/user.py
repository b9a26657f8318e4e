"""
User model. Users are created by administrators; there is no self sign-up.
"""

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import relationship

from ewm.db.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(250), nullable=False)
    email = Column(String(254), unique=True, index=True, nullable=False)

    # Relationships
    events = relationship("Event", back_populates="initiator", cascade="all, delete-orphan", passive_deletes=True)
    requests = relationship("ParticipationRequest", back_populates="requester", cascade="all, delete-orphan", passive_deletes=True)
    comments = relationship("Comment", back_populates="author", cascade="all, delete-orphan", passive_deletes=True)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email})>"
