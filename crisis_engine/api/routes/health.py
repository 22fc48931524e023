"""
Health Check Endpoints

Health, readiness and liveness checks. Besides process status they report
which storage backend the crisis logs live in and which lexicon version the
analyzer is scoring with, so a degraded deployment (Redis fallback to
memory, stale lexicon) is visible from the outside.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from crisis_engine.config import settings
from crisis_engine.infra.redis import check_redis_health
from crisis_engine.infra.storage import InMemoryKeyValueStore

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])

_start_time: Optional[datetime] = None


def set_start_time() -> None:
    """Record application start. Called once from the lifespan."""
    global _start_time
    _start_time = datetime.now(timezone.utc)


def get_uptime_seconds() -> Optional[float]:
    if _start_time is None:
        return None
    return (datetime.now(timezone.utc) - _start_time).total_seconds()


def storage_backend(request: Request) -> str:
    """Name of the store behind the crisis logs: memory, redis or none."""
    store = getattr(request.app.state, "key_value_store", None)
    if store is None:
        return "none"
    if isinstance(store, InMemoryKeyValueStore):
        return "memory"
    return "redis"


class HealthResponse(BaseModel):
    """Basic health check response."""
    status: str
    timestamp: datetime
    version: str
    environment: str
    storage: str
    lexicon_version: Optional[str] = None


class ReadyResponse(BaseModel):
    """Readiness check response with dependency status."""
    status: str
    timestamp: datetime
    checks: dict[str, str]


class LiveResponse(BaseModel):
    """Liveness check response."""
    status: str
    timestamp: datetime
    uptime_seconds: Optional[float] = None
    pending_event_writes: int = 0


@router.get(
    "",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
    description="Returns 200 if the application is running, with the storage backend and lexicon version.",
)
async def health(request: Request) -> HealthResponse:
    """
    Basic health check.

    Does not contact Redis; use /health/ready for that.
    """
    service = getattr(request.app.state, "crisis_service", None)
    lexicon_version = service.analyzer.lexicon.version if service is not None else None

    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version="1.0.0",
        environment=settings.app_env,
        storage=storage_backend(request),
        lexicon_version=lexicon_version,
    )


@router.get(
    "/ready",
    response_model=ReadyResponse,
    summary="Readiness check",
    description="Checks the crisis service and storage. Returns 503 if a dependency is unavailable.",
    responses={
        200: {"description": "All dependencies are ready"},
        503: {"description": "One or more dependencies are unavailable"},
    },
)
async def ready(request: Request) -> ReadyResponse:
    """
    Readiness check for load balancers and Kubernetes.

    Checks:
    - Crisis service constructed
    - Redis connectivity, unless the in-memory store is in use

    Returns 503 if any check fails.
    """
    checks = {}
    all_ok = True

    service = getattr(request.app.state, "crisis_service", None)
    checks["crisis_service"] = "ok" if service is not None else "missing"
    if service is None:
        all_ok = False
        logger.warning("Readiness check: Crisis service not initialized")

    if storage_backend(request) == "memory":
        # Process-local store; nothing external to check
        checks["storage"] = "memory"
    else:
        try:
            redis_ok = await check_redis_health()
            checks["redis"] = "ok" if redis_ok else "failed"
            if not redis_ok:
                all_ok = False
                logger.warning("Readiness check: Redis unhealthy")
        except Exception as e:
            checks["redis"] = "error"
            all_ok = False
            logger.error(f"Readiness check: Redis error - {e}")

    response = ReadyResponse(
        status="ready" if all_ok else "not_ready",
        timestamp=datetime.now(timezone.utc),
        checks=checks,
    )

    if not all_ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(mode="json"),
        )

    return response


@router.get(
    "/live",
    response_model=LiveResponse,
    status_code=status.HTTP_200_OK,
    summary="Liveness check",
    description="Returns 200 if the process is alive, with the number of crisis events still being written.",
)
async def live(request: Request) -> LiveResponse:
    """Liveness check. Always 200 while the process runs."""
    service = getattr(request.app.state, "crisis_service", None)

    return LiveResponse(
        status="alive",
        timestamp=datetime.now(timezone.utc),
        uptime_seconds=get_uptime_seconds(),
        pending_event_writes=service.pending_event_writes if service is not None else 0,
    )
