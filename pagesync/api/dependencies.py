"""
Dependency injection for FastAPI endpoints.
"""

from collections.abc import Callable

from pagesync.storage.database import Database
from pagesync.sync.config import DataSourceConfig, load_datasource_configs
from pagesync.sync.factory import create_sync_orchestrator
from pagesync.sync.orchestrator import SyncOrchestrator

OrchestratorFactory = Callable[[DataSourceConfig, Database], SyncOrchestrator]

# Global instances (initialized on first request)
_database: Database | None = None
_datasource_configs: list[DataSourceConfig] | None = None


async def get_database() -> Database:
    """Get the shared database pool, connecting on first use."""
    global _database

    if _database is None:
        _database = Database()
        await _database.connect()

    return _database


async def get_datasource_configs() -> list[DataSourceConfig]:
    """Datasource registry, loaded once per process."""
    global _datasource_configs

    if _datasource_configs is None:
        _datasource_configs = load_datasource_configs()

    return _datasource_configs


def get_orchestrator_factory() -> OrchestratorFactory:
    """Builder for per-datasource orchestrators (overridden in tests)."""
    return create_sync_orchestrator


async def cleanup_dependencies() -> None:
    """Clean up global dependencies on shutdown."""
    global _database, _datasource_configs

    _datasource_configs = None

    if _database is not None:
        await _database.close()
        _database = None
