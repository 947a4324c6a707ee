"""FastAPI application entry point."""

import asyncio
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.config import settings
from app.middleware import BodySizeLimitMiddleware, RequestLoggingMiddleware, SecurityHeadersMiddleware
from app.redis import close_redis_pool
from app.routers import admin, auth, chat, disputes, feedback, jobs, notifications, providers, uploads
from app.services.response_timeouts import run_response_timeout_consumer

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan: startup and shutdown."""
    timeout_task = None
    if settings.response_timeout_enabled:
        timeout_task = asyncio.create_task(run_response_timeout_consumer())
        logger.info(
            "Response timeout sweep every %ds", settings.response_timeout_check_seconds,
        )

    yield

    if timeout_task is not None:
        timeout_task.cancel()
        try:
            await timeout_task
        except asyncio.CancelledError:
            pass
    await close_redis_pool()


app = FastAPI(
    title="Home Services Marketplace",
    description="Customers, service providers and local service managers coordinating jobs",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Outermost first
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(BodySizeLimitMiddleware, max_bytes=settings.max_body_bytes)
app.add_middleware(RequestLoggingMiddleware)

app.include_router(auth.router)
app.include_router(jobs.router)
app.include_router(feedback.router)
app.include_router(providers.router)
app.include_router(admin.router)
app.include_router(chat.router)
app.include_router(notifications.router)
app.include_router(disputes.router)
app.include_router(uploads.router)

if settings.storage_backend == "local":
    upload_root = Path(settings.upload_dir)
    upload_root.mkdir(parents=True, exist_ok=True)
    app.mount(f"/{upload_root.name}", StaticFiles(directory=upload_root), name="uploads")


@app.get("/health")
async def health() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "ok"}
