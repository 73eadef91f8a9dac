# Request-scoped access to the long-lived handles built at startup

from fastapi import Depends, Request

from logstream.core.config import settings
from logstream.services.event_store import EventStore
from logstream.services.reindexer import Reindexer
from logstream.services.retention import RetentionSweeper
from logstream.services.search_index import SearchIndex
from logstream.services.synchronizer import Synchronizer


def get_event_store(request: Request) -> EventStore:
    return request.app.state.event_store


def get_search_index(request: Request) -> SearchIndex:
    return request.app.state.search_index


def get_synchronizer(
        store: EventStore = Depends(get_event_store),
        index: SearchIndex = Depends(get_search_index)
) -> Synchronizer:
    return Synchronizer(store, index)


def get_reindexer(
        store: EventStore = Depends(get_event_store),
        index: SearchIndex = Depends(get_search_index)
) -> Reindexer:
    return Reindexer(
        store,
        index,
        chunk_size=settings.reindex_chunk_size,
        batch_size=settings.reindex_batch_size
    )


def get_sweeper(
        store: EventStore = Depends(get_event_store),
        index: SearchIndex = Depends(get_search_index)
) -> RetentionSweeper:
    return RetentionSweeper(store, index, retention_days=settings.retention_days)
