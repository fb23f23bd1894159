"""Tests for the health API."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from scriptorium import __version__
from scriptorium.api import create_app
from scriptorium.config import Config


@pytest.fixture
def app(test_config: Config, engine):
    """Create a test FastAPI application."""
    application = create_app(test_config)
    application.state.db = engine
    application.state.bot_ref = []
    return application


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


class TestAppInitialization:
    def test_app_title_and_version(self, app) -> None:
        assert app.title == "Scriptorium"
        assert app.version == __version__


class TestHealth:
    def test_health_ok(self, client: TestClient) -> None:
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["database"] == "ok"
        assert data["version"] == __version__
        assert "timestamp" in data

    def test_health_degraded_on_db_error(self, app, client: TestClient) -> None:
        broken = MagicMock()
        broken.connect.side_effect = OperationalError("SELECT 1", {}, Exception("gone"))
        app.state.db = broken

        data = client.get("/health").json()

        assert data["status"] == "degraded"
        assert data["database"] == "error"

    def test_health_without_database(self, test_config: Config) -> None:
        client = TestClient(create_app(test_config))

        data = client.get("/health").json()

        assert data["status"] == "degraded"


class TestStatus:
    def test_status_before_bot_starts(self, client: TestClient) -> None:
        data = client.get("/").json()

        assert data["status"] == "starting"
        assert data["guilds"] == 0
        assert data["uptime_seconds"] == 0.0

    def test_status_with_ready_bot(self, app, client: TestClient) -> None:
        bot = MagicMock()
        bot.is_ready.return_value = True
        bot.uptime_seconds = 12.345
        bot.guilds = [MagicMock(), MagicMock()]
        app.state.bot_ref.append(bot)

        data = client.get("/").json()

        assert data["status"] == "running"
        assert data["guilds"] == 2
        assert data["uptime_seconds"] == 12.3
