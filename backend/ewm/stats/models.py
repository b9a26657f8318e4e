from sqlalchemy import Column, DateTime, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase


class StatsBase(DeclarativeBase):
    pass


class EndpointHit(StatsBase):
    """One recorded access to a URI. Rows are only ever inserted."""

    __tablename__ = "endpoint_hits"

    id = Column(Integer, primary_key=True)
    app = Column(String(255), nullable=False)
    uri = Column(String(512), nullable=False)
    ip = Column(String(45), nullable=False)
    timestamp = Column(DateTime, nullable=False)

    __table_args__ = (
        # Range scan over [start, end] then group by (app, uri)
        Index("ix_endpoint_hits_timestamp_uri", "timestamp", "uri"),
    )

    def __repr__(self) -> str:
        return f"<EndpointHit(id={self.id}, app={self.app}, uri={self.uri}, ip={self.ip})>"
