from typing import List, Optional, Union

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.concurrency import run_in_threadpool
import structlog

from logstream.api.deps import get_event_store, get_search_index, get_synchronizer
from logstream.core.errors import EventValidationError, SearchIndexError, StoreError
from logstream.schemas.event import (
    EventCreate,
    EventResponse,
    GroupResponse,
    IngestResponse,
    StreamResponse,
    StreamSearchResponse,
)
from logstream.services.event_store import EventStore
from logstream.services.search_index import SearchIndex
from logstream.services.synchronizer import Synchronizer

logger = structlog.get_logger()
router = APIRouter(prefix="/log", tags=["log"])

ListingResponse = Union[
    List[GroupResponse],
    List[StreamResponse],
    List[StreamSearchResponse],
    List[EventResponse],
]


@router.post("", response_model=IngestResponse, status_code=status.HTTP_201_CREATED)
async def ingest_event(
        event: EventCreate,
        synchronizer: Synchronizer = Depends(get_synchronizer)
):
    """
    Store one event and index it for search.

    A 201 means the event is durable. `indexed` tells whether the search
    index accepted it too; if not, the next reindex picks it up.
    """
    try:
        result = await synchronizer.ingest(event)
    except EventValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except StoreError as e:
        logger.error("ingestion_failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to store event"
        )

    return IngestResponse(stored=result.stored, indexed=result.indexed)


@router.get("", response_model=None)
async def list_log(
        group: Optional[str] = Query(default=None, description="Group to list streams of"),
        stream: Optional[str] = Query(default=None, description="Stream to list events of"),
        search: Optional[str] = Query(default=None, description="Full-text search within a group"),
        store: EventStore = Depends(get_event_store),
        index: SearchIndex = Depends(get_search_index)
) -> ListingResponse:
    """
    - no **group**: all groups with their last event time
    - **group**: streams of the group, or search hits when **search** is set
    - **group** and **stream**: events of the stream, oldest first
    """
    try:
        if not group:
            rows = await store.list_groups()
            return [GroupResponse(**row) for row in rows]

        if not stream:
            if search:
                return await _search_streams(index, search, group)
            rows = await store.list_streams(group)
            return [StreamResponse(**row) for row in rows]

        rows = await store.list_events(group, stream)
        logger.info("events_listed", group=group, stream=stream, count=len(rows))
        return [EventResponse(**row) for row in rows]

    except StoreError as e:
        logger.error("listing_failed", group=group, stream=stream, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to read events"
        )


async def _search_streams(index: SearchIndex, search: str, group: str) -> List[StreamSearchResponse]:
    try:
        hits = await run_in_threadpool(index.search, search, group)
    except SearchIndexError as e:
        # Callers can fall back to the unfiltered stream listing
        logger.warning("search_failed", group=group, error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Search unavailable"
        )

    return [
        StreamSearchResponse(
            stream=hit.stream,
            last_event_time=hit.timestamp,
            message=hit.message
        )
        for hit in hits
    ]
