from typing import Iterable, List, Optional

import meilisearch
from meilisearch.errors import MeilisearchApiError, MeilisearchError
import structlog

from logstream.core.config import settings
from logstream.core.errors import SearchIndexError
from logstream.schemas.search import SearchDocument, SearchHit

logger = structlog.get_logger()

FILTERABLE_ATTRIBUTES = ["group", "stream", "timestamp_epoch"]
SORTABLE_ATTRIBUTES = ["timestamp_epoch"]
HIGHLIGHT_PRE_TAG = "<mark>"
HIGHLIGHT_POST_TAG = "</mark>"


def quote_filter_value(value: str) -> str:
    """Quote a string for a Meilisearch filter expression"""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


class SearchIndex:
    """
    Facade over the Meilisearch events index.

    The index is a disposable projection of the event store. Every engine
    failure is raised as SearchIndexError; callers decide whether it matters.
    Calls are blocking and should be run off the event loop.
    """

    def __init__(
            self,
            client: meilisearch.Client,
            uid: str = "events",
            search_limit: int = 1000,
            task_timeout_ms: int = 5000
    ):
        self.client = client
        self.uid = uid
        self.index = client.index(uid)
        self.search_limit = search_limit
        self.task_timeout_ms = task_timeout_ms

    @classmethod
    def from_settings(cls) -> "SearchIndex":
        client = meilisearch.Client(settings.meilisearch_api_url, settings.meilisearch_api_key)
        return cls(
            client,
            uid=settings.meilisearch_index,
            search_limit=settings.search_limit,
            task_timeout_ms=settings.meilisearch_task_timeout_ms
        )

    def ensure_settings(self) -> bool:
        """
        Make sure the attributes used for filtering and sorting are configured.

        Returns True when settings had to be updated.
        """
        try:
            try:
                current = self.index.get_settings()
            except MeilisearchApiError as e:
                if getattr(e, "code", None) != "index_not_found":
                    raise
                logger.info("search_index_creating", index=self.uid)
                task = self.client.create_index(self.uid, {"primaryKey": "id"})
                self.client.wait_for_task(task.task_uid, timeout_in_ms=self.task_timeout_ms)
                current = self.index.get_settings()

            filterable = set(current.get("filterableAttributes") or [])
            sortable = set(current.get("sortableAttributes") or [])
            if set(FILTERABLE_ATTRIBUTES) <= filterable and set(SORTABLE_ATTRIBUTES) <= sortable:
                return False

            logger.info("search_index_settings_updating", index=self.uid)
            self.index.update_settings({
                "filterableAttributes": sorted(filterable | set(FILTERABLE_ATTRIBUTES)),
                "sortableAttributes": sorted(sortable | set(SORTABLE_ATTRIBUTES)),
            })
            return True

        except MeilisearchError as e:
            raise SearchIndexError(f"Failed to configure index settings: {e}") from e

    def upsert(self, document: SearchDocument) -> None:
        """Add or replace one document, keyed by its derived id"""
        try:
            self.index.add_documents([document.model_dump()], primary_key="id")
        except MeilisearchError as e:
            raise SearchIndexError(f"Failed to index document {document.id}: {e}") from e

    def upsert_batch(self, documents: Iterable[SearchDocument], batch_size: int) -> int:
        """
        Add or replace documents, sent in sub-batches of batch_size to keep
        each request under the engine's payload limit.
        """
        payload = [document.model_dump() for document in documents]
        if not payload:
            return 0

        try:
            self.index.add_documents_in_batches(payload, batch_size=batch_size, primary_key="id")
        except MeilisearchError as e:
            raise SearchIndexError(f"Failed to index {len(payload)} documents: {e}") from e

        return len(payload)

    def search(self, query: str, group: Optional[str] = None) -> List[SearchHit]:
        """
        Ranked full-text search over messages.

        Results are capped at search_limit; this is not an exhaustive scan.
        """
        params = {
            "limit": self.search_limit,
            "attributesToHighlight": ["message"],
            "highlightPreTag": HIGHLIGHT_PRE_TAG,
            "highlightPostTag": HIGHLIGHT_POST_TAG,
        }
        if group:
            params["filter"] = f"group = {quote_filter_value(group)}"

        try:
            result = self.index.search(query, params)
        except MeilisearchError as e:
            raise SearchIndexError(f"Search failed: {e}") from e

        return [SearchHit.from_hit(hit) for hit in result.get("hits", [])]

    def delete_by_filter(self, expression: str) -> Optional[int]:
        """
        Delete every document matching a filter expression.

        Waits for the engine task so the number of deleted documents can be
        reported; returns None when the engine doesn't report it.
        """
        try:
            task_info = self.index.delete_documents(filter=expression)
            task = self.index.wait_for_task(task_info.task_uid, timeout_in_ms=self.task_timeout_ms)
        except MeilisearchError as e:
            raise SearchIndexError(f"Failed to delete documents by filter: {e}") from e

        if task.status == "failed":
            raise SearchIndexError(f"Delete by filter task failed: {task.error}")

        details = task.details or {}
        return details.get("deletedDocuments")

    def delete_older_than(self, epoch_cutoff: int) -> Optional[int]:
        return self.delete_by_filter(f"timestamp_epoch < {int(epoch_cutoff)}")

    def delete_all(self) -> None:
        """Wipe the index. Only for rebuilds."""
        try:
            task_info = self.index.delete_all_documents()
            self.index.wait_for_task(task_info.task_uid, timeout_in_ms=self.task_timeout_ms)
        except MeilisearchError as e:
            raise SearchIndexError(f"Failed to delete all documents: {e}") from e
