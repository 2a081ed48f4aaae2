"""Health check tests."""

import pytest
from sqlalchemy.exc import OperationalError

from finance_tracker import main


class _Session:
    def __init__(self, error: Exception | None = None):
        self.error = error

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False

    async def execute(self, statement):
        if self.error:
            raise self.error


@pytest.mark.asyncio
async def test_health_check(client):
    response = await client.get("/health")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "healthy"


@pytest.mark.asyncio
async def test_readiness_check(client, monkeypatch):
    monkeypatch.setattr(main, "async_session_factory", lambda: _Session())
    response = await client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "ready"
    assert data["checks"]["database"] == "ok"


@pytest.mark.asyncio
async def test_readiness_check_degraded_without_database(client, monkeypatch):
    error = OperationalError("SELECT 1", {}, ConnectionRefusedError("connection refused"))
    monkeypatch.setattr(main, "async_session_factory", lambda: _Session(error))
    response = await client.get("/ready")
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "degraded"
    assert data["checks"]["database"].startswith("error")
