# SQLAlchemy models

from sqlalchemy import Column, Integer, String, Text, Index, UniqueConstraint
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class Event(Base):
    """Append-only event row. Logical duplicates are allowed."""

    __tablename__ = "events"

    id = Column(Integer, primary_key=True, autoincrement=True)
    group = Column(String, nullable=False)
    stream = Column(String, nullable=False)
    timestamp = Column(String, nullable=False)
    message = Column(Text, nullable=False, default="")

    __table_args__ = (
        Index("group_stream_timestamp_index", "group", "stream", "timestamp"),
        Index("timestamp_index", "timestamp"),
    )


class Stream(Base):
    """Last event time per (group, stream)"""

    __tablename__ = "streams"

    id = Column(Integer, primary_key=True, autoincrement=True)
    group = Column(String, nullable=False)
    stream = Column(String, nullable=False)
    last_event_time = Column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("group", "stream", name="group_stream_unique_index"),
        Index("last_event_time_index", "last_event_time"),
    )
