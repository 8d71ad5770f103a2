"""
Toxicity-Service - Main Application Entry Point

- FastAPI app with lifespan handler
- uvicorn toxicity_service.main:app starts the service

Patterns Applied:
- Lifespan context manager
- One-time configure_logging() at startup
- One ModerationOrchestrator per process, stored on app.state

Anti-Patterns Avoided:
- Deprecated @app.on_event - using modern lifespan pattern
- structlog.configure() per request - one-time at startup
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from toxicity_service.api.health import get_health_service
from toxicity_service.api.health import router as health_router
from toxicity_service.api.moderate import moderate_router
from toxicity_service.classifiers.orchestrator import build_orchestrator
from toxicity_service.core.config import get_settings
from toxicity_service.core.logging import configure_logging, get_logger
from toxicity_service.core.tracing import configure_tracing

# Get settings
settings = get_settings()

# Configure logging ONCE at module load
configure_logging(
    log_level=settings.log_level,
    json_output=settings.log_json,
)

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: build the orchestrator, start cache maintenance."""
    # =========================================================================
    # STARTUP
    # =========================================================================
    logger.info(
        "startup",
        service=settings.service_name,
        version=settings.version,
        environment=settings.environment,
    )

    if settings.tracing_enabled:
        configure_tracing(
            service_name=settings.service_name,
            service_version=settings.version,
            console_export=settings.tracing_console_export,
        )
        logger.info("tracing_configured")

    orchestrator = build_orchestrator(settings)
    await orchestrator.start()
    app.state.orchestrator = orchestrator

    remote_tiers = len(orchestrator.provider_status())
    get_health_service().set_orchestrator_ready(True, remote_tiers=remote_tiers)
    logger.info(
        "orchestrator_ready",
        remote_tiers=remote_tiers,
        remote_enabled=orchestrator.remote_enabled,
    )

    yield

    # =========================================================================
    # SHUTDOWN
    # =========================================================================
    logger.info("shutdown", service=settings.service_name)

    get_health_service().set_orchestrator_ready(False)
    await orchestrator.aclose()
    app.state.orchestrator = None


app = FastAPI(
    title="Toxicity-Service",
    description="Toxicity moderation cascade for chat messages",
    version=settings.version,
    docs_url="/docs" if settings.environment != "production" else None,
    redoc_url="/redoc" if settings.environment != "production" else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.environment == "development" else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
app.include_router(moderate_router)


@app.get("/", include_in_schema=False)
async def root() -> dict[str, str]:
    """Root endpoint pointing at the docs."""
    return {
        "service": settings.service_name,
        "version": settings.version,
        "docs": "/docs",
    }
