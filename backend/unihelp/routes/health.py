"""
UniHelp Backend — Health Check Route
======================================

What:  Health check endpoint for monitoring and load balancer probes.
How:   Runs `SELECT 1` through a request session and reports the number of
       open notification hub connections.

Status levels:
    - healthy:   database reachable
    - unhealthy: database unreachable (still HTTP 200 so the body is readable;
                 probes should key off `status`)
"""

import logging
import time

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from unihelp import __version__
from unihelp.database import get_db_session
from unihelp.dependencies import get_broadcaster
from unihelp.schemas.common import HealthResponse
from unihelp.services.notification_service import NotificationBroadcaster

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

# Initialized once when the module loads
_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(
    db: AsyncSession = Depends(get_db_session),
    broadcaster: NotificationBroadcaster = Depends(get_broadcaster),
) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        await db.execute(text("SELECT 1"))
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        active_connections=broadcaster.connection_count(),
        uptime_seconds=round(time.time() - _start_time, 2),
    )
