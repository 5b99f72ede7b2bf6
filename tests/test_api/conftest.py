"""Shared fixtures for API tests."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from pagesync.api.app import create_app
from pagesync.api.dependencies import (
    get_database,
    get_datasource_configs,
    get_orchestrator_factory,
)
from pagesync.config.settings import get_settings
from pagesync.sync.config import DataSourceConfig


@pytest.fixture
def api_configs() -> list[DataSourceConfig]:
    """Two configured datasources."""
    return [
        DataSourceConfig(alias="blog", data_source_id="ds-blog", token="secret_blog"),
        DataSourceConfig(alias="docs", data_source_id="ds-docs", token="secret_docs"),
    ]


@pytest.fixture
def mock_orchestrator():
    """Orchestrator stand-in usable as an async context manager."""
    orchestrator = MagicMock()
    orchestrator.__aenter__ = AsyncMock(return_value=orchestrator)
    orchestrator.__aexit__ = AsyncMock(return_value=None)
    orchestrator.process_page_id = AsyncMock(return_value=True)
    return orchestrator


@pytest.fixture
def mock_factory(mock_orchestrator):
    """Orchestrator factory returning mock_orchestrator."""
    return MagicMock(return_value=mock_orchestrator)


@pytest.fixture
def secrets(monkeypatch):
    """Configure both trigger secrets."""
    monkeypatch.setenv("CRON_SECRET", "cron-s3cret")
    monkeypatch.setenv("WEBHOOK_SECRET", "hook-s3cret")
    get_settings.cache_clear()
    return {"cron": "cron-s3cret", "webhook": "hook-s3cret"}


@pytest.fixture
def client(mock_database, api_configs, mock_factory, monkeypatch):
    """FastAPI TestClient with dependency overrides."""
    monkeypatch.delenv("CRON_SECRET", raising=False)
    monkeypatch.delenv("WEBHOOK_SECRET", raising=False)
    get_settings.cache_clear()

    app = create_app()

    app.dependency_overrides[get_database] = lambda: mock_database
    app.dependency_overrides[get_datasource_configs] = lambda: api_configs
    app.dependency_overrides[get_orchestrator_factory] = lambda: mock_factory

    with TestClient(app) as c:
        yield c

    app.dependency_overrides.clear()
