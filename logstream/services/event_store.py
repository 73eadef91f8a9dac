from typing import Any, Dict, List, NamedTuple

from sqlalchemy import delete, func, insert, select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
import structlog

from logstream.core.errors import StoreError
from logstream.models.event import Event, Stream

logger = structlog.get_logger()


class DeletionCounts(NamedTuple):
    events: int
    streams: int


class EventStore:
    """
    Authoritative storage for events and per-stream summaries.

    Every operation opens its own session. Any SQLAlchemy error is raised as
    StoreError and nothing is retried here.
    """

    def __init__(self, sessionmaker: async_sessionmaker):
        self.sessionmaker = sessionmaker

    async def append_event(self, group: str, stream: str, timestamp: str, message: str) -> None:
        """
        Insert one event and upsert its stream summary in a single transaction.

        The summary is overwritten with this timestamp, not maxed, so an
        out-of-order event moves lastEventTime backwards.
        """
        try:
            async with self.sessionmaker() as session:
                async with session.begin():
                    await session.execute(
                        insert(Event).values(
                            group=group,
                            stream=stream,
                            timestamp=timestamp,
                            message=message
                        )
                    )
                    await session.execute(
                        self._upsert_stream(session, group, stream, timestamp)
                    )
        except SQLAlchemyError as e:
            logger.error("event_append_failed", group=group, stream=stream, error=str(e))
            raise StoreError("Failed to append event") from e

    @staticmethod
    def _upsert_stream(session: AsyncSession, group: str, stream: str, timestamp: str):
        # INSERT ... ON CONFLICT (group, stream) DO UPDATE
        dialect = session.bind.dialect.name
        dialect_insert = sqlite_insert if dialect == "sqlite" else pg_insert

        stmt = dialect_insert(Stream).values(
            group=group,
            stream=stream,
            last_event_time=timestamp
        )
        return stmt.on_conflict_do_update(
            index_elements=["group", "stream"],
            set_={"last_event_time": stmt.excluded.last_event_time}
        )

    async def list_groups(self) -> List[Dict[str, Any]]:
        """Groups with their latest event time, most recent first"""
        last_event_time = func.max(Stream.last_event_time).label("last_event_time")
        query = (
            select(Stream.group, last_event_time)
            .group_by(Stream.group)
            .order_by(last_event_time.desc())
        )
        rows = await self._fetch(query, "list_groups")
        return [
            {"group": row[0], "last_event_time": row[1]}
            for row in rows
        ]

    async def list_streams(self, group: str) -> List[Dict[str, Any]]:
        """Streams of one group, most recent first"""
        query = (
            select(Stream.stream, Stream.last_event_time)
            .where(Stream.group == group)
            .order_by(Stream.last_event_time.desc())
        )
        rows = await self._fetch(query, "list_streams")
        return [
            {"stream": row[0], "last_event_time": row[1]}
            for row in rows
        ]

    async def list_events(self, group: str, stream: str) -> List[Dict[str, Any]]:
        """Events of one stream in chronological order"""
        query = (
            select(Event.timestamp, Event.message)
            .where(Event.group == group, Event.stream == stream)
            .order_by(Event.timestamp, Event.id)
        )
        rows = await self._fetch(query, "list_events")
        return [
            {"timestamp": row[0], "message": row[1]}
            for row in rows
        ]

    async def scan_all(self, batch_size: int, offset: int) -> List[Dict[str, Any]]:
        """
        One page of all events ordered by (group, stream, timestamp).

        The order is stable across calls so LIMIT/OFFSET pagination is
        deterministic. Rows appended behind the current offset are not seen.
        """
        query = (
            select(Event.group, Event.stream, Event.timestamp, Event.message)
            .order_by(Event.group, Event.stream, Event.timestamp, Event.id)
            .limit(batch_size)
            .offset(offset)
        )
        rows = await self._fetch(query, "scan_all")
        return [
            {"group": row[0], "stream": row[1], "timestamp": row[2], "message": row[3]}
            for row in rows
        ]

    async def delete_older_than(self, cutoff: str) -> DeletionCounts:
        """
        Delete events and stream summaries strictly older than cutoff.

        Both tables are compared independently as strings, which is only
        chronological for canonical timestamps.
        """
        try:
            async with self.sessionmaker() as session:
                async with session.begin():
                    events = await session.execute(
                        delete(Event).where(Event.timestamp < cutoff)
                    )
                    streams = await session.execute(
                        delete(Stream).where(Stream.last_event_time < cutoff)
                    )
                    counts = DeletionCounts(events=events.rowcount, streams=streams.rowcount)
        except SQLAlchemyError as e:
            logger.error("event_delete_failed", cutoff=cutoff, error=str(e))
            raise StoreError("Failed to delete old events") from e

        logger.info(
            "events_deleted",
            cutoff=cutoff,
            events=counts.events,
            streams=counts.streams
        )
        return counts

    async def count_events(self) -> int:
        rows = await self._fetch(select(func.count()).select_from(Event), "count_events")
        return rows[0][0]

    async def _fetch(self, query, operation: str) -> list:
        try:
            async with self.sessionmaker() as session:
                result = await session.execute(query)
                return result.all()
        except SQLAlchemyError as e:
            logger.error("store_query_failed", operation=operation, error=str(e))
            raise StoreError(f"Failed to run {operation}") from e
