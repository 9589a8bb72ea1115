"""System health endpoints."""
import logging
import time

import psutil
from fastapi import APIRouter, Depends
from pydantic import BaseModel

from store import RecordStore, StoreError
from ..dependencies import get_store

logger = logging.getLogger(__name__)

# Create router
router = APIRouter(
    prefix="/system",
    tags=["System"]
)

class SystemHealth(BaseModel):
    """Model for system health data."""
    status: str
    uptime: float
    cpu_usage: float
    memory_usage: float
    store_status: str

@router.get("/health")
async def get_system_health(store: RecordStore = Depends(get_store)) -> SystemHealth:
    """Get system health status.

    The record store is checked with a read round trip; the service is
    'degraded' when that fails.

    Returns:
        SystemHealth object containing process and store status
    """
    try:
        await store.ping()
        store_status = "connected"
    except (StoreError, OSError) as e:
        logger.error(f"Record store health check failed: {e}")
        store_status = "unreachable"

    process = psutil.Process()
    return SystemHealth(
        status="healthy" if store_status == "connected" else "degraded",
        uptime=time.time() - process.create_time(),
        cpu_usage=psutil.cpu_percent(interval=None),
        memory_usage=psutil.virtual_memory().percent,
        store_status=store_status
    )
