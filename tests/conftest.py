import pytest
import pytest_asyncio

from logstream.core.database import create_engine, create_sessionmaker, init_models
from logstream.core.errors import SearchIndexError
from logstream.schemas.search import SearchHit
from logstream.services.event_store import EventStore


class InMemorySearchIndex:
    """Stand-in for SearchIndex that keeps documents in a dict keyed by id"""

    def __init__(self):
        self.documents = {}
        self.batch_sizes = []
        self.available = True

    def _check(self):
        if not self.available:
            raise SearchIndexError("search engine unavailable")

    def ensure_settings(self):
        self._check()
        return False

    def upsert(self, document):
        self._check()
        self.documents[document.id] = document

    def upsert_batch(self, documents, batch_size):
        self._check()
        documents = list(documents)
        for i in range(0, len(documents), batch_size):
            chunk = documents[i:i + batch_size]
            self.batch_sizes.append(len(chunk))
            for document in chunk:
                self.documents[document.id] = document
        return len(documents)

    def search(self, query, group=None):
        self._check()
        hits = []
        for document in self.documents.values():
            if group and document.group != group:
                continue
            if query.lower() not in document.message.lower():
                continue
            hits.append(SearchHit(
                group=document.group,
                stream=document.stream,
                timestamp=document.timestamp,
                message=document.message.replace(query, f"<mark>{query}</mark>")
            ))
        return hits

    def delete_older_than(self, epoch_cutoff):
        self._check()
        expired = [
            doc_id for doc_id, document in self.documents.items()
            if document.timestamp_epoch < epoch_cutoff
        ]
        for doc_id in expired:
            del self.documents[doc_id]
        return len(expired)

    def delete_all(self):
        self._check()
        self.documents.clear()


@pytest_asyncio.fixture
async def engine():
    engine = create_engine("sqlite+aiosqlite://")
    await init_models(engine)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def store(engine):
    return EventStore(create_sessionmaker(engine))


@pytest.fixture
def search_index():
    return InMemorySearchIndex()
