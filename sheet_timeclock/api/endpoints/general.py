import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from sheet_timeclock.api.deps import get_session_engine
from sheet_timeclock.api.responses import envelope
from sheet_timeclock.core.config import GoogleConfig, ServerConfig, TrackingConfig
from sheet_timeclock.core.database import RecordStore, get_store
from sheet_timeclock.core.errors import StoreError
from sheet_timeclock.services.session_engine import SessionEngine

router = APIRouter()
logger = logging.getLogger(__name__)

@router.get("/")
async def root():
    return envelope(data={
        "name": ServerConfig.APP_NAME,
        "version": ServerConfig.APP_VERSION,
        "description": ServerConfig.APP_DESCRIPTION,
        "status": "running",
        "provider_login_enabled": GoogleConfig.is_configured(),
        "poll_interval_seconds": TrackingConfig.POLL_INTERVAL_SECONDS,
        "currency": TrackingConfig.CURRENCY,
    })

@router.get("/health")
async def health_check(
    store: RecordStore = Depends(get_store),
    engine: SessionEngine = Depends(get_session_engine),
):
    """Store health and the number of running work sessions"""
    try:
        counts = store.health()
    except StoreError as e:
        logger.error(f"Health check failed: {e.message}")
        return JSONResponse(status_code=503, content=envelope(success=False, message="Service unavailable"))
    
    return envelope(data={
        "status": "healthy",
        "store": str(store.data_dir),
        "collections": counts,
        "active_sessions": engine.active_count,
    })
