"""Unit tests for the health endpoint."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from app.shared.api import health


@pytest.fixture
def client() -> TestClient:
    app = FastAPI()
    app.include_router(health.router)
    return TestClient(app)


class TestHealth:
    def test_database_up(self, client: TestClient, monkeypatch):
        async def ping_ok() -> bool:
            return True

        monkeypatch.setattr(health, "ping_database", ping_ok)

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["results"] == {"service": "OK", "database": "up"}

    def test_database_down(self, client: TestClient, monkeypatch):
        async def ping_failed() -> bool:
            return False

        monkeypatch.setattr(health, "ping_database", ping_failed)

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["results"]["database"] == "down"
