"""
DeskBook Backend - Health Check Route
=======================================

What:  GET /health for container probes and load balancers.
How:   SELECT 1 against the database, plus the image host's circuit state.

Status levels:
    healthy    database reachable, image host available
    degraded   database reachable, image host circuit open
    unhealthy  database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from deskbook import __version__
from deskbook.config import settings
from deskbook.database import get_db_session
from deskbook.schemas.responses import HealthResponse
from deskbook.services.image_host import image_host

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
)
async def health_check(db: AsyncSession = Depends(get_db_session)):
    db_status = "connected"
    overall = "healthy"

    try:
        await db.execute(text("SELECT 1"))
    except (SQLAlchemyError, OSError) as e:
        db_status = "disconnected"
        overall = "unhealthy"
        logger.warning("Health check: database unreachable: %s", str(e))
        await db.rollback()

    if settings.photo_upload_enabled:
        image_host_status = image_host.status()
        if image_host_status != "available" and overall == "healthy":
            overall = "degraded"
    else:
        image_host_status = "disabled"

    report = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        image_host=image_host_status,
        mail=settings.mail_backend,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if overall == "unhealthy":
        return JSONResponse(status_code=503, content=report.model_dump())
    return report
