from sqlalchemy import Boolean, Column, ForeignKey, Integer, String, Table
from sqlalchemy.orm import relationship

from ewm.db.base import Base

compilation_events = Table(
    "compilation_events",
    Base.metadata,
    Column("compilation_id", Integer, ForeignKey("compilations.id", ondelete="CASCADE"), primary_key=True),
    Column("event_id", Integer, ForeignKey("events.id", ondelete="CASCADE"), primary_key=True),
)


class Compilation(Base):
    __tablename__ = "compilations"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(50), unique=True, nullable=False)
    pinned = Column(Boolean, nullable=False, default=False)

    events = relationship("Event", secondary=compilation_events, lazy="selectin")

    def __repr__(self) -> str:
        return f"<Compilation(id={self.id}, title={self.title}, pinned={self.pinned})>"
