import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from apps.api.middlewares.metrics import MetricsMiddleware
from apps.api.routers import admin, health, moderation, reports, users
from apps.workers.notifier import notifier
from core import close_redis
from core.config import settings
from moderation import ModerationError, error_response
from moderation.admin_api import wait_for_notifications

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    # Startup
    yield
    # Shutdown
    await wait_for_notifications()
    await notifier.close()
    await close_redis()


app = FastAPI(
    title="Civic Moderation API",
    description="Content reports, moderation review and user sanctions for the civic issue platform",
    version="0.1.0",
    lifespan=lifespan,
)

# Middlewares
app.add_middleware(MetricsMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.is_development else [],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ModerationError)
async def moderation_error_handler(request: Request, exc: ModerationError) -> JSONResponse:
    """Single translation point from moderation errors to HTTP responses."""
    status_code, payload = error_response(exc)
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return JSONResponse(status_code=status_code, content=payload, headers=headers)


# Include routers
app.include_router(health.router, prefix="/health", tags=["health"])
app.include_router(reports.router)  # Already has /report prefix
app.include_router(admin.router)  # Already has /admin prefix
app.include_router(moderation.router)
app.include_router(users.router)  # Already has /users prefix


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint."""
    return {"status": "ok", "service": "civic-moderation"}


@app.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint."""
    from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
