import pytest

from logstream.core.errors import EventValidationError, StoreError
from logstream.models.event import Base
from logstream.schemas.search import document_id
from logstream.services.synchronizer import Synchronizer


def event(**overrides):
    payload = {
        "group": "api",
        "stream": "web-1",
        "timestamp": "2024-03-01T10:00:00Z",
        "message": "request served",
    }
    payload.update(overrides)
    return payload


@pytest.mark.asyncio
async def test_ingest_writes_store_and_index(store, search_index):
    result = await Synchronizer(store, search_index).ingest(event())

    assert result.stored is True
    assert result.indexed is True
    assert result.event.timestamp == "2024-03-01T10:00:00.000000Z"

    assert await store.list_events("api", "web-1") == [
        {"timestamp": "2024-03-01T10:00:00.000000Z", "message": "request served"}
    ]
    assert await store.list_streams("api") == [
        {"stream": "web-1", "last_event_time": "2024-03-01T10:00:00.000000Z"}
    ]

    doc_id = document_id("api", "web-1", "2024-03-01T10:00:00.000000Z")
    assert list(search_index.documents) == [doc_id]
    assert search_index.documents[doc_id].timestamp_epoch == 1709287200


@pytest.mark.asyncio
async def test_repeated_key_overwrites_single_document(store, search_index):
    synchronizer = Synchronizer(store, search_index)

    await synchronizer.ingest(event(message="first"))
    # Same instant in another offset is the same key once normalized
    await synchronizer.ingest(event(message="second", timestamp="2024-03-01T12:00:00+02:00"))

    assert len(search_index.documents) == 1
    assert next(iter(search_index.documents.values())).message == "second"
    assert await store.count_events() == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("payload", [
    event(group=""),
    event(stream="   "),
    event(timestamp="not a timestamp"),
    event(timestamp="2024-03-01T10:00:00"),
    {"group": "api", "stream": "web-1"},
])
async def test_invalid_event_writes_nothing(store, search_index, payload):
    with pytest.raises(EventValidationError):
        await Synchronizer(store, search_index).ingest(payload)

    assert await store.count_events() == 0
    assert await store.list_groups() == []
    assert search_index.documents == {}


@pytest.mark.asyncio
async def test_index_failure_does_not_fail_ingest(store, search_index):
    search_index.available = False

    result = await Synchronizer(store, search_index).ingest(event())

    assert result.stored is True
    assert result.indexed is False
    assert "unavailable" in result.index_error
    assert await store.count_events() == 1


@pytest.mark.asyncio
async def test_store_failure_skips_index(engine, store, search_index):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    with pytest.raises(StoreError):
        await Synchronizer(store, search_index).ingest(event())

    assert search_index.documents == {}
