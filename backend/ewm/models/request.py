"""
Participation request: a user's request to attend an event.

Status machine:
    PENDING -> CONFIRMED | REJECTED | CANCELED
    CONFIRMED -> CANCELED
REJECTED and CANCELED are terminal. Rows are never deleted.

There is no unique constraint on (event_id, requester_id): a requester may
ask again after cancelling, so the duplicate rule is checked in the service.
"""

import enum
from datetime import datetime

from sqlalchemy import Column, DateTime, Enum, ForeignKey, Index, Integer
from sqlalchemy.orm import relationship

from ewm.db.base import Base


class RequestStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"
    CANCELED = "CANCELED"


class ParticipationRequest(Base):
    __tablename__ = "participation_requests"

    id = Column(Integer, primary_key=True, index=True)
    event_id = Column(Integer, ForeignKey("events.id", ondelete="CASCADE"), nullable=False, index=True)
    requester_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    status = Column(
        Enum(RequestStatus, name="request_status", native_enum=False, length=20),
        nullable=False,
        default=RequestStatus.PENDING,
    )
    created = Column(DateTime, nullable=False, default=datetime.now)

    # Relationships
    event = relationship("Event", back_populates="requests")
    requester = relationship("User", back_populates="requests")

    __table_args__ = (
        # Capacity audit: count confirmed requests per event
        Index("ix_requests_event_status", "event_id", "status"),
        Index("ix_requests_event_requester", "event_id", "requester_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<ParticipationRequest(id={self.id}, event={self.event_id}, "
            f"requester={self.requester_id}, status={self.status})>"
        )
