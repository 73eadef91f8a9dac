# POST /index, POST /retention/sweep

from datetime import timedelta
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
import structlog

from logstream.api.deps import get_reindexer, get_sweeper
from logstream.core.errors import SearchIndexError, StoreError
from logstream.schemas.event import ReindexResponse, SweepResponse
from logstream.services.reindexer import Reindexer
from logstream.services.retention import RetentionSweeper

logger = structlog.get_logger()
router = APIRouter(tags=["admin"])


@router.post("/index", response_model=ReindexResponse)
async def reindex(
        reset: bool = Query(default=False, description="Wipe the search index before reindexing"),
        reindexer: Reindexer = Depends(get_reindexer)
):
    """
    Rebuild the search index from the event store.

    Safe to repeat: documents are keyed by (group, stream, timestamp).
    """
    try:
        indexed = await (reindexer.rebuild() if reset else reindexer.reindex())
    except StoreError as e:
        logger.error("reindex_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to read events")
    except SearchIndexError as e:
        logger.error("reindex_failed", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Search index unavailable"
        )

    return ReindexResponse(indexed=indexed)


@router.post("/retention/sweep", response_model=SweepResponse)
async def sweep(
        days: Optional[int] = Query(default=None, ge=1, description="Override the retention window in days"),
        sweeper: RetentionSweeper = Depends(get_sweeper)
):
    """Delete events, stream summaries and index documents older than the retention window"""
    window = timedelta(days=days) if days is not None else None
    try:
        result = await sweeper.sweep(window)
    except StoreError as e:
        logger.error("retention_sweep_failed", error=str(e))
        raise HTTPException(status_code=500, detail="Failed to delete old events")

    return SweepResponse(**result.to_dict())
