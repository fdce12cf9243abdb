"""
LifeMon Backend — Health Check Routes
=======================================

What:  GET / (fixed text for uptime probes) and GET /health (dependency report).
Who:   Load balancers, the serverless platform, monitoring.

Status levels (GET /health):
    healthy    database reachable, all route groups mounted   (HTTP 200)
    degraded   database reachable, some route group missing   (HTTP 200)
    unhealthy  database unreachable                           (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from lifemon import __version__
from lifemon.database import get_db_session
from lifemon.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

ROOT_MESSAGE = "LifeMon API is running"

_start_time = time.time()


@router.get("/", response_class=PlainTextResponse, summary="Liveness text")
async def root() -> str:
    return ROOT_MESSAGE


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
)
async def health_check(request: Request, db: AsyncSession = Depends(get_db_session)):
    """
    Probe the database with SELECT 1 and report the route-group load states
    recorded at startup.
    """
    db_status = "connected"
    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        logger.warning("Health check: database unreachable: %s", str(e))
        await db.rollback()

    route_groups = list(getattr(request.app.state, "route_groups", []))

    if db_status != "connected":
        overall = "unhealthy"
    elif any(group.state == "unavailable" for group in route_groups):
        overall = "degraded"
    else:
        overall = "healthy"

    report = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        route_groups=route_groups,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if overall == "unhealthy":
        return JSONResponse(status_code=503, content=report.model_dump(mode="json"))
    return report
