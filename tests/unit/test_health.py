"""
Tests for health check endpoints.
"""

from unittest.mock import AsyncMock, patch

from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.routes import health

app = FastAPI()
app.include_router(health.router)
client = TestClient(app)

HEALTHY_DB = {"healthy": True, "pool_size": 3, "pool_available": 2}


def test_healthz_endpoint():
    """Test the basic health check endpoint."""
    response = client.get("/healthz")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_readyz_all_services_healthy():
    with (
        patch("app.routes.health.fast_redis.ping", AsyncMock(return_value=True)),
        patch("app.routes.health.db_health_check", AsyncMock(return_value=HEALTHY_DB)),
        patch("app.routes.health.settings.ENCRYPTION_KEY", "key"),
        patch("app.routes.health.settings.GOOGLE_CLIENT_ID", "client"),
        patch("app.routes.health.settings.GOOGLE_CLIENT_SECRET", "secret"),
    ):
        response = client.get("/readyz")

    data = response.json()
    assert response.status_code == 200
    assert data["overall_ok"] is True
    assert data["checks"]["database"]["pool_size"] == 3
    assert "latency_ms" in data["checks"]["redis"]


def test_readyz_redis_down_does_not_fail_readiness():
    with (
        patch("app.routes.health.fast_redis.ping", AsyncMock(return_value=False)),
        patch("app.routes.health.db_health_check", AsyncMock(return_value=HEALTHY_DB)),
        patch("app.routes.health.settings.ENCRYPTION_KEY", "key"),
        patch("app.routes.health.settings.GOOGLE_CLIENT_ID", "client"),
        patch("app.routes.health.settings.GOOGLE_CLIENT_SECRET", "secret"),
    ):
        data = client.get("/readyz").json()

    assert data["checks"]["redis"]["ok"] is False
    assert data["overall_ok"] is True


def test_readyz_database_unhealthy():
    with (
        patch("app.routes.health.fast_redis.ping", AsyncMock(return_value=True)),
        patch(
            "app.routes.health.db_health_check",
            AsyncMock(return_value={"healthy": False, "error": "Pool not initialized"}),
        ),
    ):
        data = client.get("/readyz").json()

    assert data["overall_ok"] is False
    assert data["checks"]["database"]["error"] == "Pool not initialized"


def test_readyz_missing_configuration():
    with (
        patch("app.routes.health.fast_redis.ping", AsyncMock(return_value=True)),
        patch("app.routes.health.db_health_check", AsyncMock(return_value=HEALTHY_DB)),
        patch("app.routes.health.settings.ENCRYPTION_KEY", None),
    ):
        data = client.get("/readyz").json()

    assert data["overall_ok"] is False
    assert "ENCRYPTION_KEY not set" in data["checks"]["configuration"]["issues"]
