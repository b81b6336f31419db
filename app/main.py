"""
FastAPI application: Gmail push webhook plus health endpoints.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from app.config import settings
from app.db.pool import db_pool
from app.features.gmail_webhook import gmail_webhook_router
from app.infrastructure.observability.logging import get_logger, setup_logging
from app.routes import health
from app.services.redis_client import fast_redis

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Postgres is required at startup; Redis only backs in-flight claims."""
    logger.info("Application starting", environment=settings.environment)

    await db_pool.initialize()

    try:
        await fast_redis.initialize()
    except RuntimeError as e:
        logger.warning("Redis unavailable at startup, continuing without claims", error=str(e))

    try:
        yield
    finally:
        logger.info("Application shutting down")
        await fast_redis.close()
        await db_pool.close()


app = FastAPI(
    title="Inbox Autopilot",
    description="Gmail push notification processor for inbox automation rules",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(gmail_webhook_router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.time()
    response = await call_next(request)

    logger.info(
        "HTTP request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.time() - started) * 1000, 2),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
