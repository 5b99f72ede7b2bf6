"""
Multi-datasource sync service.

Entry point used by the poll endpoint and the CLI: selects datasources,
runs each with its own orchestrator and aggregates the summaries.
"""

from datetime import datetime, timedelta, timezone

import structlog

from pagesync.errors import DataSourceNotFoundError
from pagesync.storage.database import Database
from pagesync.sync.config import DataSourceConfig, SyncConfig
from pagesync.sync.factory import create_sync_orchestrator
from pagesync.sync.schemas import SyncOptions, SyncResult, SyncStatus, SyncSummary

logger = structlog.get_logger(__name__)


def find_datasource(
    configs: list[DataSourceConfig], identifier: str
) -> DataSourceConfig | None:
    """Datasource whose alias or provider id equals ``identifier``."""
    return next((c for c in configs if c.matches(identifier)), None)


def select_datasources(
    configs: list[DataSourceConfig], identifier: str | None = None
) -> list[DataSourceConfig]:
    """
    Datasources targeted by a run.

    Raises:
        DataSourceNotFoundError: Nothing configured, or nothing matched.
    """
    selected = [c for c in configs if identifier is None or c.matches(identifier)]
    if not selected:
        raise DataSourceNotFoundError(identifier)
    return selected


async def sync_from_provider(
    configs: list[DataSourceConfig],
    database: Database,
    *,
    datasource: str | None = None,
    since: datetime | None = None,
    sync_all: bool = False,
    wipe: bool = False,
    sync_config: SyncConfig | None = None,
) -> SyncResult:
    """
    Sync the selected datasources one after another.

    A failing datasource, including one that cannot be set up (e.g. no
    token), is reported in its summary and does not stop the others.
    Incremental runs without ``since`` use the lookback bound, which is
    reported as ``SyncResult.since``.

    Raises:
        DataSourceNotFoundError: ``datasource`` matched nothing.
    """
    selected = select_datasources(configs, datasource)
    sync_config = sync_config or SyncConfig()
    if since is None and not sync_all:
        since = datetime.now(timezone.utc) - timedelta(
            minutes=sync_config.default_lookback_minutes
        )
    options = SyncOptions(since=since, sync_all=sync_all, wipe=wipe)
    result = SyncResult(since=None if sync_all else since)

    logger.info(
        "sweep_started",
        datasources=[c.alias for c in selected],
        since=since.isoformat() if since else None,
        sync_all=sync_all,
        wipe=wipe,
    )
    for config in selected:
        try:
            orchestrator = create_sync_orchestrator(config, database, sync_config)
            async with orchestrator:
                summary = await orchestrator.sync_data_source(options)
        except Exception as e:
            logger.error(
                "datasource_sync_failed",
                datasource=config.alias,
                error=str(e),
                error_type=type(e).__name__,
            )
            summary = SyncSummary(
                alias=config.alias,
                data_source_id=config.data_source_id,
                status=SyncStatus.ERROR,
                details=str(e),
            )
        result.summaries.append(summary)

    logger.info("sweep_completed", has_errors=result.has_errors)
    return result
