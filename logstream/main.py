import asyncio
from contextlib import asynccontextmanager, suppress
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
import structlog

from logstream.core.config import settings
from logstream.core.database import create_engine, create_sessionmaker, init_models
from logstream.core.errors import SearchIndexError, StoreError
from logstream.api import admin, events
from logstream.services.event_store import EventStore
from logstream.services.retention import RetentionSweeper
from logstream.services.search_index import SearchIndex

# Configure structured logging
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer()
    ]
)

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Build the store and index handles once and hold them for the process lifetime"""
    logger.info("application_startup", app_name=settings.app_name)

    engine = create_engine(settings.database_url, echo=settings.debug)
    await init_models(engine)
    store = EventStore(create_sessionmaker(engine))
    index = SearchIndex.from_settings()

    try:
        updated = await run_in_threadpool(index.ensure_settings)
        logger.info("search_index_ready", index=index.uid, settings_updated=updated)
    except SearchIndexError as e:
        # Search degrades, ingestion still works
        logger.warning("search_index_settings_failed", error=str(e))

    app.state.event_store = store
    app.state.search_index = index

    sweeper = RetentionSweeper(store, index, retention_days=settings.retention_days)
    try:
        await sweeper.sweep()
    except StoreError as e:
        logger.error("retention_sweep_failed", error=str(e))
    sweeper_task = asyncio.create_task(sweeper.run_forever(settings.retention_sweep_interval))

    yield

    sweeper_task.cancel()
    with suppress(asyncio.CancelledError):
        await sweeper_task
    await engine.dispose()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.app_name,
    debug=settings.debug,
    lifespan=lifespan
)


# Middleware for logging requests
@app.middleware("http")
async def log_requests(request: Request, call_next):
    start_time = time.time()

    # Every log line emitted while handling this request carries the id
    request_id = str(uuid.uuid4())
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path
    )

    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id

    duration = time.time() - start_time
    logger.info(
        "request_completed",
        status_code=response.status_code,
        duration_ms=round(duration * 1000, 2)
    )

    return response


# Include routers
app.include_router(events.router)
app.include_router(admin.router)


@app.get("/health")
async def health_check():
    """Health check endpoint"""
    return {"status": "healthy", "app": settings.app_name}


@app.get("/")
async def root():
    """Root endpoint"""
    return {
        "message": "Logstream API",
        "endpoints": {
            "health": "/health",
            "log": "/log",
            "index": "/index",
            "retention": "/retention/sweep",
            "docs": "/docs"
        }
    }
