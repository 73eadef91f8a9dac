import asyncio
from dataclasses import dataclass, asdict
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi.concurrency import run_in_threadpool
import structlog

from logstream.core.config import settings
from logstream.core.errors import SearchIndexError, StoreError
from logstream.core.timestamps import format_timestamp
from logstream.services.event_store import EventStore
from logstream.services.search_index import SearchIndex

logger = structlog.get_logger()


@dataclass
class SweepResult:
    cutoff: str
    events_deleted: int
    streams_deleted: int
    documents_deleted: Optional[int]
    index_error: Optional[str] = None

    def to_dict(self) -> dict:
        return asdict(self)


class RetentionSweeper:
    """
    Evicts data older than the retention window from the store and the index.

    The two deletes are independent. If the index delete fails the index is
    left holding documents whose events are gone until the next sweep or a
    rebuild.
    """

    def __init__(
            self,
            store: EventStore,
            index: SearchIndex,
            retention_days: int = settings.retention_days
    ):
        self.store = store
        self.index = index
        self.retention_window = timedelta(days=retention_days)

    async def sweep(
            self,
            retention_window: Optional[timedelta] = None,
            now: Optional[datetime] = None
    ) -> SweepResult:
        window = retention_window if retention_window is not None else self.retention_window
        # Whole seconds so the string cutoff and the epoch cutoff select the same events
        cutoff_time = ((now or datetime.now(timezone.utc)) - window).replace(microsecond=0)
        cutoff = format_timestamp(cutoff_time)

        # StoreError propagates; the index is left alone in that case
        counts = await self.store.delete_older_than(cutoff)

        documents_deleted = None
        index_error = None
        try:
            documents_deleted = await run_in_threadpool(
                self.index.delete_older_than, int(cutoff_time.timestamp())
            )
        except SearchIndexError as e:
            index_error = str(e)
            logger.warning("index_sweep_failed", cutoff=cutoff, error=index_error)

        result = SweepResult(
            cutoff=cutoff,
            events_deleted=counts.events,
            streams_deleted=counts.streams,
            documents_deleted=documents_deleted,
            index_error=index_error
        )
        logger.info("retention_sweep_completed", **result.to_dict())
        return result

    async def run_forever(self, interval: float) -> None:
        """Sweep on a fixed cadence until cancelled"""
        logger.info("retention_sweeper_started", interval=interval, window_days=self.retention_window.days)
        try:
            while True:
                await asyncio.sleep(interval)
                try:
                    await self.sweep()
                except StoreError as e:
                    logger.error("retention_sweep_failed", error=str(e))
                except Exception as e:
                    logger.error("retention_sweep_error", error=str(e), error_type=type(e).__name__)
        except asyncio.CancelledError:
            logger.info("retention_sweeper_stopped")
            raise
