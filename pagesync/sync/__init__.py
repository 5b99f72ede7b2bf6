"""Content synchronization engine: provider pages -> pages table."""

from pagesync.sync.builder import PostBuilder
from pagesync.sync.config import (
    DataSourceConfig,
    SyncConfig,
    load_datasource_configs,
    resolve_token,
)
from pagesync.sync.factory import create_sync_orchestrator, create_sync_orchestrators
from pagesync.sync.orchestrator import SyncOrchestrator
from pagesync.sync.repository import PostRepository
from pagesync.sync.schemas import (
    PostRecord,
    SyncOptions,
    SyncResult,
    SyncState,
    SyncStatus,
    SyncSummary,
)
from pagesync.sync.service import find_datasource, sync_from_provider
from pagesync.sync.slug import slugify

__all__ = [
    "DataSourceConfig",
    "PostBuilder",
    "PostRecord",
    "PostRepository",
    "SyncConfig",
    "SyncOptions",
    "SyncOrchestrator",
    "SyncResult",
    "SyncState",
    "SyncStatus",
    "SyncSummary",
    "create_sync_orchestrator",
    "create_sync_orchestrators",
    "find_datasource",
    "load_datasource_configs",
    "resolve_token",
    "slugify",
    "sync_from_provider",
]
