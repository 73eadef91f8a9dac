from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError
import structlog

from logstream.core.errors import EventValidationError, SearchIndexError
from logstream.schemas.event import EventCreate
from logstream.schemas.search import SearchDocument
from logstream.services.event_store import EventStore
from logstream.services.search_index import SearchIndex

logger = structlog.get_logger()


@dataclass
class IngestResult:
    """
    Outcome of one ingest.

    The store write is the primary outcome and is always True here, since a
    failed write raises. Indexing is auxiliary: a failure is only recorded.
    """

    event: EventCreate
    indexed: bool
    index_error: Optional[str] = None

    @property
    def stored(self) -> bool:
        return True


class Synchronizer:
    """Dual-write ingest path: event store first, search index best-effort"""

    def __init__(self, store: EventStore, index: SearchIndex):
        self.store = store
        self.index = index

    async def ingest(self, payload: Union[EventCreate, Dict[str, Any]]) -> IngestResult:
        event = self._validate(payload)

        # StoreError propagates; nothing reaches the index in that case
        await self.store.append_event(event.group, event.stream, event.timestamp, event.message)

        try:
            document = SearchDocument.from_event(
                event.group, event.stream, event.timestamp, event.message
            )
        except ValueError as e:
            # The row is durable but can't be projected into the index
            logger.warning(
                "event_stored_not_indexable",
                group=event.group,
                stream=event.stream,
                timestamp=event.timestamp,
                error=str(e)
            )
            raise EventValidationError(f"Event stored but timestamp is not indexable: {e}") from e

        try:
            await run_in_threadpool(self.index.upsert, document)
        except SearchIndexError as e:
            logger.warning(
                "index_upsert_failed",
                group=event.group,
                stream=event.stream,
                document_id=document.id,
                error=str(e)
            )
            return IngestResult(event=event, indexed=False, index_error=str(e))

        logger.info("event_ingested", group=event.group, stream=event.stream)
        return IngestResult(event=event, indexed=True)

    @staticmethod
    def _validate(payload: Union[EventCreate, Dict[str, Any]]) -> EventCreate:
        if isinstance(payload, EventCreate):
            return payload
        try:
            return EventCreate.model_validate(payload)
        except ValidationError as e:
            raise EventValidationError(str(e)) from e
