"""
Health check endpoints.
"""

import structlog
from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from src.api.dependencies import StatusProvider, get_monitor
from src.api.models import HealthResponse

router = APIRouter()
logger = structlog.get_logger(__name__)

BANNER = "✅ Heart Monitor (hybrid)"


@router.get("/", response_class=PlainTextResponse, include_in_schema=False)
async def root() -> str:
    return BANNER


@router.get("/health", response_model=HealthResponse)
async def health_check(monitor: StatusProvider = Depends(get_monitor)) -> HealthResponse:
    """
    Report whether the monitor is receiving messages.

    ``healthy`` means at least one source is live (gateway connected or a
    poll has completed); ``degraded`` means the monitor runs but neither
    source has produced anything yet.
    """
    return HealthResponse(**monitor.status())
