"""
Jokes API — Root & Health Check Routes
=======================================

What:  GET / (plain-text greeting) and GET /health (service + database status).
Who:   Docker health checks, load balancers and anyone poking the server.

Status levels:
    - healthy:   Database reachable (HTTP 200)
    - unhealthy: Database unreachable (HTTP 503)
"""

import logging
import time

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from jokes_api import __version__
from jokes_api.database import ping
from jokes_api.schemas.joke import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get("/", response_class=PlainTextResponse, summary="Greeting")
async def index() -> str:
    return "Hi there! The jokes server is running"


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(request: Request):
    """
    Probe the database with SELECT 1 and report aggregate status.

    Apps built around a caller-supplied store have no engine of their own;
    their database status is reported as "external".
    """
    engine = getattr(request.app.state, "engine", None)
    db_status = "external"
    overall = "healthy"

    if engine is not None:
        try:
            await ping(engine)
            db_status = "connected"
        except Exception as e:
            db_status = "disconnected"
            overall = "unhealthy"
            logger.warning("Health check: database unreachable: %s", str(e))

    payload = HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    if overall == "unhealthy":
        return JSONResponse(status_code=503, content=payload.model_dump())
    return payload
