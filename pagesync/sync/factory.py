"""Wiring for sync orchestrators."""

from pagesync.config.settings import get_settings
from pagesync.provider.adapter import NotionAdapter
from pagesync.storage.database import Database
from pagesync.sync.builder import PostBuilder
from pagesync.sync.config import DataSourceConfig, SyncConfig, resolve_token
from pagesync.sync.orchestrator import SyncOrchestrator
from pagesync.sync.repository import PostRepository


def create_sync_orchestrator(
    config: DataSourceConfig,
    database: Database,
    sync_config: SyncConfig | None = None,
) -> SyncOrchestrator:
    """
    Build adapter -> repository -> builder -> orchestrator for one datasource.

    Raises:
        ConfigurationError: No token could be resolved for the datasource.
    """
    token = resolve_token(config.token, config.alias, get_settings().notion_token)
    adapter = NotionAdapter(token)
    repository = PostRepository(database)
    builder = PostBuilder(config, adapter, repository)
    return SyncOrchestrator(adapter, builder, repository, config, sync_config)


def create_sync_orchestrators(
    configs: list[DataSourceConfig],
    database: Database,
    sync_config: SyncConfig | None = None,
) -> dict[str, SyncOrchestrator]:
    """One independent orchestrator per datasource, keyed by alias."""
    return {
        config.alias: create_sync_orchestrator(config, database, sync_config)
        for config in configs
    }
