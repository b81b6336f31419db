"""
Health check endpoints with database pool and Redis monitoring.
"""

import time

from fastapi import APIRouter

from app.config import settings
from app.db.pool import db_health_check
from app.services.redis_client import fast_redis

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "inbox-autopilot"}


@router.get("/readyz")
async def readyz():
    """
    Readiness check across database, Redis and configuration.

    Redis only backs in-flight claims, so it is reported but does not
    fail readiness.
    """
    checks = {}
    overall_ok = True

    t0 = time.time()
    redis_ok = await fast_redis.ping()
    checks["redis"] = {
        "ok": redis_ok,
        "latency_ms": round((time.time() - t0) * 1000, 1),
        "required": False,
    }

    t0 = time.time()
    try:
        db_health = await db_health_check()
        is_healthy = db_health.get("healthy", False)

        checks["database"] = {
            "ok": is_healthy,
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }

        if is_healthy:
            checks["database"].update(
                {
                    "pool_size": db_health.get("pool_size", 0),
                    "pool_available": db_health.get("pool_available", 0),
                }
            )
        else:
            checks["database"]["error"] = db_health.get("error", "Database unhealthy")

        overall_ok = overall_ok and is_healthy

    except Exception as e:
        checks["database"] = {
            "ok": False,
            "error": f"{type(e).__name__}: {e}",
            "latency_ms": round((time.time() - t0) * 1000, 1),
        }
        overall_ok = False

    config_issues = []
    if not settings.DATABASE_URL:
        config_issues.append("DATABASE_URL not set")
    if not settings.ENCRYPTION_KEY:
        config_issues.append("ENCRYPTION_KEY not set")
    if not settings.GOOGLE_CLIENT_ID or not settings.GOOGLE_CLIENT_SECRET:
        config_issues.append("Google OAuth client not configured")

    checks["configuration"] = {
        "ok": not config_issues,
        "issues": config_issues or None,
        "environment": settings.environment,
    }
    overall_ok = overall_ok and not config_issues

    return {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}
