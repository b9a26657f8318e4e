"""
Event model with participant capacity tracking.

Key design decisions:
- `confirmed_requests` is denormalized (avoids COUNT over participation
  requests on every read). It is only changed by ewm.services.capacity_service
  in the same transaction as the request status change it mirrors.
- `version` column enables optimistic locking for concurrent confirmations
- participant_limit = 0 means unlimited
"""

import enum
from datetime import datetime

from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, Enum, Float, ForeignKey, Index, Integer, String,
)
from sqlalchemy.orm import relationship

from ewm.db.base import Base


class EventState(str, enum.Enum):
    PENDING = "PENDING"
    PUBLISHED = "PUBLISHED"
    CANCELED = "CANCELED"


class Event(Base):
    __tablename__ = "events"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(120), nullable=False)
    annotation = Column(String(2000), nullable=False)
    description = Column(String(7000), nullable=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=False, index=True)
    initiator_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    event_date = Column(DateTime, nullable=False)
    created_on = Column(DateTime, nullable=False, default=datetime.now)
    published_on = Column(DateTime, nullable=True)
    lat = Column(Float, nullable=False, default=0.0)
    lon = Column(Float, nullable=False, default=0.0)
    paid = Column(Boolean, nullable=False, default=False)
    participant_limit = Column(Integer, nullable=False, default=0)
    request_moderation = Column(Boolean, nullable=False, default=True)
    confirmed_requests = Column(Integer, nullable=False, default=0)
    state = Column(
        Enum(EventState, name="event_state", native_enum=False, length=20),
        nullable=False,
        default=EventState.PENDING,
    )

    # Optimistic locking version counter
    version = Column(Integer, nullable=False, default=1)

    # Relationships
    category = relationship("Category", lazy="selectin")
    initiator = relationship("User", back_populates="events", lazy="selectin")
    requests = relationship("ParticipationRequest", back_populates="event", cascade="all, delete-orphan", passive_deletes=True)
    comments = relationship("Comment", back_populates="event", cascade="all, delete-orphan", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("confirmed_requests >= 0", name="check_confirmed_requests_non_negative"),
        CheckConstraint("participant_limit >= 0", name="check_participant_limit_non_negative"),
        # Capacity invariant, final safety net below the optimistic lock
        CheckConstraint(
            "participant_limit = 0 OR confirmed_requests <= participant_limit",
            name="check_confirmed_within_limit",
        ),
        Index("ix_events_event_date", "event_date"),
        Index("ix_events_state_event_date", "state", "event_date"),
    )

    @property
    def requires_moderation(self) -> bool:
        """Requests wait for the initiator only when moderation is on and capacity is bounded."""
        return bool(self.request_moderation) and self.participant_limit > 0

    @property
    def is_full(self) -> bool:
        return self.participant_limit > 0 and self.confirmed_requests >= self.participant_limit

    @property
    def remaining_capacity(self) -> int:
        return self.participant_limit - self.confirmed_requests

    def __repr__(self) -> str:
        return (
            f"<Event(id={self.id}, title={self.title}, state={self.state}, "
            f"confirmed={self.confirmed_requests}/{self.participant_limit})>"
        )
