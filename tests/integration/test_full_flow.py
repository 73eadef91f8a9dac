import uuid

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from datetime import datetime, timedelta, timezone
from logstream.api.deps import get_event_store, get_search_index
from logstream.core.timestamps import format_timestamp
from logstream.main import app


transport = ASGITransport(app=app)


@pytest_asyncio.fixture
async def client(store, search_index):
    """App wired to an in-memory store and index; lifespan is not run"""
    app.dependency_overrides[get_event_store] = lambda: store
    app.dependency_overrides[get_search_index] = lambda: search_index
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    app.dependency_overrides.clear()


def recent(hours: int) -> str:
    return format_timestamp(datetime.now(timezone.utc) - timedelta(hours=hours))


@pytest.mark.asyncio
async def test_health_check(client):
    """Test health endpoint"""
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"


@pytest.mark.asyncio
async def test_each_request_gets_its_own_request_id(client):
    first = await client.get("/health")
    second = await client.get("/log")

    ids = [first.headers["X-Request-ID"], second.headers["X-Request-ID"]]
    assert all(uuid.UUID(request_id) for request_id in ids)
    assert ids[0] != ids[1]


@pytest.mark.asyncio
async def test_ingest_and_list_flow(client):
    """Test complete flow: ingest events → list groups, streams, events"""
    events = [
        {"group": "api", "stream": "web-2", "timestamp": "2024-02-01T11:00:00Z", "message": "second"},
        {"group": "api", "stream": "web-1", "timestamp": "2024-02-01T10:00:00Z", "message": "first"},
        {"group": "worker", "stream": "queue", "timestamp": "2024-02-01T12:00:00Z", "message": "third"},
    ]

    for event in events:
        response = await client.post("/log", json=event)
        assert response.status_code == 201
        assert response.json() == {"stored": True, "indexed": True}

    response = await client.get("/log")
    assert response.status_code == 200
    assert response.json() == [
        {"group": "worker", "lastEventTime": "2024-02-01T12:00:00.000000Z"},
        {"group": "api", "lastEventTime": "2024-02-01T11:00:00.000000Z"},
    ]

    response = await client.get("/log", params={"group": "api"})
    assert response.status_code == 200
    assert [s["stream"] for s in response.json()] == ["web-2", "web-1"]

    response = await client.get("/log", params={"group": "api", "stream": "web-1"})
    assert response.status_code == 200
    assert response.json() == [{"timestamp": "2024-02-01T10:00:00.000000Z", "message": "first"}]


@pytest.mark.asyncio
async def test_search_within_group(client):
    await client.post("/log", json={
        "group": "api", "stream": "web-1", "timestamp": "2024-02-01T10:00:00Z", "message": "disk full"
    })
    await client.post("/log", json={
        "group": "other", "stream": "web-9", "timestamp": "2024-02-01T10:00:00Z", "message": "disk full"
    })

    response = await client.get("/log", params={"group": "api", "search": "disk"})

    assert response.status_code == 200
    assert response.json() == [{
        "stream": "web-1",
        "lastEventTime": "2024-02-01T10:00:00.000000Z",
        "message": "<mark>disk</mark> full",
    }]


@pytest.mark.asyncio
async def test_search_unavailable(client, search_index):
    search_index.available = False

    response = await client.post("/log", json={
        "group": "api", "stream": "web-1", "timestamp": "2024-02-01T10:00:00Z", "message": "x"
    })
    # Still durable
    assert response.status_code == 201
    assert response.json() == {"stored": True, "indexed": False}

    response = await client.get("/log", params={"group": "api", "search": "x"})
    assert response.status_code == 503

    # Unfiltered listing still works
    response = await client.get("/log", params={"group": "api"})
    assert response.status_code == 200
    assert len(response.json()) == 1


@pytest.mark.asyncio
async def test_validation_errors(client, store, search_index):
    """Test input validation"""
    # Empty group
    response = await client.post("/log", json={
        "group": "", "stream": "web-1", "timestamp": "2024-02-01T10:00:00Z", "message": "x"
    })
    assert response.status_code == 422

    # Unparseable timestamp
    response = await client.post("/log", json={
        "group": "api", "stream": "web-1", "timestamp": "yesterday", "message": "x"
    })
    assert response.status_code == 422

    # Missing required field
    response = await client.post("/log", json={"group": "api", "timestamp": "2024-02-01T10:00:00Z"})
    assert response.status_code == 422

    assert await store.count_events() == 0
    assert search_index.documents == {}


@pytest.mark.asyncio
async def test_reindex_endpoint(client, search_index):
    for i in range(3):
        await client.post("/log", json={
            "group": "api", "stream": "web-1", "timestamp": f"2024-02-01T10:00:0{i}Z", "message": str(i)
        })
    search_index.documents.clear()

    response = await client.post("/index")
    assert response.status_code == 200
    assert response.json() == {"indexed": 3}
    assert len(search_index.documents) == 3

    response = await client.post("/index", params={"reset": True})
    assert response.status_code == 200
    assert len(search_index.documents) == 3

    search_index.available = False
    response = await client.post("/index")
    assert response.status_code == 503


@pytest.mark.asyncio
async def test_retention_sweep_endpoint(client, store, search_index):
    await client.post("/log", json={
        "group": "api", "stream": "old", "timestamp": recent(24 * 10), "message": "old"
    })
    await client.post("/log", json={
        "group": "api", "stream": "new", "timestamp": recent(1), "message": "new"
    })

    response = await client.post("/retention/sweep", params={"days": 2})

    assert response.status_code == 200
    data = response.json()
    assert data["events_deleted"] == 1
    assert data["streams_deleted"] == 1
    assert data["documents_deleted"] == 1
    assert data["index_error"] is None
    assert [s["stream"] for s in await store.list_streams("api")] == ["new"]
    assert len(search_index.documents) == 1
