import time
from typing import Any, AsyncIterator, Dict, List

from fastapi.concurrency import run_in_threadpool
import structlog

from logstream.core.config import settings
from logstream.schemas.search import SearchDocument
from logstream.services.event_store import EventStore
from logstream.services.search_index import SearchIndex

logger = structlog.get_logger()


class Reindexer:
    """
    Rebuilds the search index from the event store.

    Pages of chunk_size rows are read from the store and flushed to the index
    in sub-batches of batch_size. Document ids are derived from the event, so
    re-running after a partial run converges to the same index state.
    """

    def __init__(
            self,
            store: EventStore,
            index: SearchIndex,
            chunk_size: int = settings.reindex_chunk_size,
            batch_size: int = settings.reindex_batch_size
    ):
        if chunk_size <= 0 or batch_size <= 0:
            raise ValueError("chunk_size and batch_size must be positive")
        self.store = store
        self.index = index
        self.chunk_size = chunk_size
        self.batch_size = batch_size

    async def iter_pages(self, start_offset: int = 0) -> AsyncIterator[List[Dict[str, Any]]]:
        """Lazy page sequence over the store, ending on the first empty page"""
        offset = start_offset
        while True:
            page = await self.store.scan_all(self.chunk_size, offset)
            if not page:
                return
            yield page
            offset += len(page)

    async def reindex(self, start_offset: int = 0) -> int:
        """Index every stored event. Returns the number of documents sent."""
        start_time = time.time()
        total = 0
        pages = 0

        async for page in self.iter_pages(start_offset):
            documents = self._to_documents(page)
            total += await run_in_threadpool(self.index.upsert_batch, documents, self.batch_size)
            pages += 1

            logger.info(
                "reindex_page_indexed",
                page=pages,
                rows=len(page),
                documents=len(documents),
                total=total
            )

        logger.info(
            "reindex_completed",
            documents=total,
            pages=pages,
            duration_ms=round((time.time() - start_time) * 1000, 2)
        )
        return total

    async def rebuild(self) -> int:
        """Wipe the index and index everything again"""
        await run_in_threadpool(self.index.delete_all)
        logger.info("search_index_wiped")
        return await self.reindex()

    @staticmethod
    def _to_documents(page: List[Dict[str, Any]]) -> List[SearchDocument]:
        documents = []
        for row in page:
            try:
                documents.append(SearchDocument.from_event(**row))
            except ValueError as e:
                logger.warning(
                    "reindex_row_skipped",
                    group=row["group"],
                    stream=row["stream"],
                    timestamp=row["timestamp"],
                    error=str(e)
                )
        return documents
