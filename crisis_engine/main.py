"""
Crisis Engine API

FastAPI application entry point that ties all components together.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from crisis_engine.api.routes import crisis, health, safety_plan
from crisis_engine.config import settings
from crisis_engine.infra.redis import RedisClient
from crisis_engine.infra.storage import KeyValueStore, get_key_value_store
from crisis_engine.safety.service import build_crisis_service


def setup_logging() -> None:
    """Configure logging based on environment."""
    log_level = logging.DEBUG if settings.debug else logging.INFO
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    Builds the key-value store and the CrisisService on startup and
    flushes pending event writes on shutdown.
    """
    # === STARTUP ===
    setup_logging()
    logger.info(f"Starting {settings.app_name} in {settings.app_env} mode")

    # Set health check start time
    health.set_start_time()

    store = app.state.key_value_store_override
    if store is None:
        store = await get_key_value_store(settings)
    app.state.key_value_store = store

    service = build_crisis_service(store, settings)
    app.state.crisis_service = service
    logger.info(f"Crisis service ready (lexicon phrases={service.analyzer.lexicon.phrase_count})")

    logger.info(f"Application ready at http://{settings.host}:{settings.port}")

    yield

    # === SHUTDOWN ===
    logger.info("Shutting down application...")

    # Let in-flight crisis event writes finish
    await service.drain()

    # Close Redis connection
    await RedisClient.close()

    logger.info("Shutdown complete")


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle Pydantic validation errors."""
    # Field locations and messages only; input values may contain user text
    errors = [{"loc": error["loc"], "msg": error["msg"], "type": error["type"]} for error in exc.errors()]
    logger.warning(f"Validation error: {errors}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "Validation error",
            "detail": errors,
        },
    )


async def generic_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle uncaught exceptions."""
    logger.exception(f"Unhandled exception: {exc}")

    # Don't expose internal errors in production
    detail = str(exc) if settings.is_development else "Internal server error"

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "detail": detail,
        },
    )


async def request_timing_middleware(request: Request, call_next):
    """Log request duration in debug mode."""
    start_time = time.time()

    try:
        response = await call_next(request)
        return response
    finally:
        if settings.debug:
            duration = time.time() - start_time
            logger.debug(
                f"{request.method} {request.url.path} "
                f"completed in {duration:.3f}s"
            )


def create_app(key_value_store: Optional[KeyValueStore] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        key_value_store: Store to use instead of the configured backend
                         (tests, embedding)
    """
    app = FastAPI(
        title="Crisis Engine API",
        description="""
    Crisis-risk detection and intervention selection for mental-health support apps.

    ## Features
    - Keyword-based crisis risk analysis (none/low/moderate/high/critical)
    - Deterministic, tier-based interventions with crisis resources
    - Versioned safety plans
    - Crisis statistics and anonymized provider reports

    This service is a supplementary safety layer. It does not replace
    professional crisis intervention services.
    """,
        version="1.0.0",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
        lifespan=lifespan,
    )
    app.state.key_value_store_override = key_value_store

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(request_timing_middleware)

    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, generic_exception_handler)

    app.include_router(health.router)
    app.include_router(crisis.router)
    app.include_router(safety_plan.router)

    @app.get("/", tags=["Root"])
    async def root() -> dict:
        """
        Root endpoint.

        Returns basic API information.
        """
        return {
            "name": settings.app_name,
            "version": "1.0.0",
            "status": "running",
            "environment": settings.app_env,
            "docs": "/docs" if settings.is_development else None,
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "crisis_engine.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level="debug" if settings.debug else "info",
    )
