"""
Emuji Backend: Health Check Route
====================================

What:  Health check endpoint for load balancer and uptime probes.
How:   Runs SELECT 1 through the pool and reports pool occupancy.

Status levels:
    - healthy:   database reachable (HTTP 200)
    - unhealthy: database unreachable (HTTP 503)

Registered before the emuji routes so /health is not read as a Spotify URI.
"""

import logging
import time

from fastapi import APIRouter, Depends, Response

from emuji import __version__
from emuji.database import Database, get_database
from emuji.schemas.emuji import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(
    response: Response,
    database: Database = Depends(get_database),
) -> HealthResponse:
    db_status = "connected"
    overall = "healthy"

    try:
        await database.ping()
    except Exception as e:
        db_status = "disconnected"
        overall = "unhealthy"
        response.status_code = 503
        logger.warning("Health check: database unreachable: %s", str(e))

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        pool=database.status(),
        uptime_seconds=round(time.time() - _start_time, 2),
    )
