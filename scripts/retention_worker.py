"""
Retention Worker - Evicts old events outside the API process

Usage:
    python scripts/retention_worker.py [--once]
"""
import asyncio
import sys
from pathlib import Path

# Add parent directory to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from logstream.core.config import settings
from logstream.core.database import create_engine, create_sessionmaker, init_models
from logstream.core.errors import SearchIndexError
from logstream.services.event_store import EventStore
from logstream.services.retention import RetentionSweeper
from logstream.services.search_index import SearchIndex
import structlog

logger = structlog.get_logger()


async def run(once: bool) -> None:
    engine = create_engine(settings.database_url)
    await init_models(engine)

    index = SearchIndex.from_settings()
    try:
        index.ensure_settings()
    except SearchIndexError as e:
        logger.warning("search_index_settings_failed", error=str(e))

    sweeper = RetentionSweeper(
        EventStore(create_sessionmaker(engine)),
        index,
        retention_days=settings.retention_days
    )

    try:
        result = await sweeper.sweep()
        print(f"Swept: {result.events_deleted} events, {result.streams_deleted} streams, "
              f"{result.documents_deleted} documents older than {result.cutoff}")

        if not once:
            await sweeper.run_forever(settings.retention_sweep_interval)
    finally:
        await engine.dispose()


def main():
    """Main worker loop"""
    once = "--once" in sys.argv[1:]
    logger.info("worker_started", retention_days=settings.retention_days, once=once)

    if not once:
        print("Retention Worker started. Press Ctrl+C to stop.")

    try:
        asyncio.run(run(once))
    except KeyboardInterrupt:
        logger.info("worker_stopped")
        print("\nWorker stopped.")
    except Exception as e:
        logger.error("worker_error", error=str(e))
        raise


if __name__ == "__main__":
    main()
