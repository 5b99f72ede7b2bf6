"""
Sync orchestrator - drives one datasource through a sync run.

Run lifecycle::

    IDLE -> (WIPING) -> FETCHING -> PROCESSING -> DONE | ERROR

Pages are processed strictly one at a time: slug resolution for a page
must observe the slug given to the page before it. A failing page is
counted and skipped; only a failure while wiping or fetching (or a
rejected credential) ends the run early.
"""

import time
from datetime import datetime, timedelta, timezone
from types import TracebackType

import structlog

from pagesync.errors import AuthError
from pagesync.observability.metrics import get_metrics
from pagesync.observability.tracing import get_tracer, traced
from pagesync.provider.adapter import NotionAdapter, modified_after_filter
from pagesync.provider.schemas import SourcePage
from pagesync.sync.builder import PostBuilder
from pagesync.sync.config import DataSourceConfig, SyncConfig
from pagesync.sync.repository import PostRepository
from pagesync.sync.schemas import (
    SyncOptions,
    SyncState,
    SyncStatus,
    SyncSummary,
)

logger = structlog.get_logger(__name__)
tracer = get_tracer(__name__)


class SyncOrchestrator:
    """
    Synchronizes one datasource into the pages table.

    Owns its adapter, builder and repository; two orchestrators never
    share mutable state, so different datasources can run side by side.
    Used as an async context manager so the adapter's HTTP client is
    opened and closed around the run.

    Usage:
        async with SyncOrchestrator(adapter, builder, repository, config) as orch:
            summary = await orch.sync_data_source(SyncOptions(sync_all=True))
    """

    def __init__(
        self,
        adapter: NotionAdapter,
        builder: PostBuilder,
        repository: PostRepository,
        config: DataSourceConfig,
        sync_config: SyncConfig | None = None,
    ):
        self._adapter = adapter
        self._builder = builder
        self._repository = repository
        self.config = config
        self._sync_config = sync_config or SyncConfig()
        self._state = SyncState.IDLE

    @property
    def state(self) -> SyncState:
        """Current lifecycle state of the latest run."""
        return self._state

    async def __aenter__(self) -> "SyncOrchestrator":
        await self._adapter.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self._adapter.__aexit__(exc_type, exc_val, exc_tb)

    async def sync_data_source(self, options: SyncOptions | None = None) -> SyncSummary:
        """
        Run one sync of the datasource.

        Args:
            options: since/sync_all/wipe; defaults to an incremental run
                over the default lookback window.

        Returns:
            Summary with per-page counts, status and wall-clock duration.
        """
        options = options or SyncOptions()
        alias = self.config.alias
        summary = SyncSummary(alias=alias, data_source_id=self.config.data_source_id)
        start = time.perf_counter()

        with structlog.contextvars.bound_contextvars(datasource=alias), traced(
            tracer,
            "sync_data_source",
            {
                "datasource": alias,
                "sync_all": options.sync_all,
                "wipe": options.wipe,
            },
        ):
            try:
                if options.wipe:
                    self._state = SyncState.WIPING
                    deleted = await self._repository.delete_for_source(
                        self.config.data_source_id
                    )
                    logger.info("datasource_wiped", deleted=deleted)

                self._state = SyncState.FETCHING
                pages = await self._fetch_pages(options)
            except Exception as e:
                self._fail(summary, e, "fetch_failed")
            else:
                self._state = SyncState.PROCESSING
                logger.info("sync_started", pages=len(pages), sync_all=options.sync_all)
                await self._process_all(pages, summary)

        summary.duration_ms = (time.perf_counter() - start) * 1000
        if summary.status == SyncStatus.SUCCESS:
            self._state = SyncState.DONE

        get_metrics().record_sync_run(alias, summary.status.value, summary.duration_ms / 1000)
        logger.info(
            "sync_completed",
            datasource=alias,
            processed=summary.processed,
            skipped=summary.skipped,
            failed=summary.failed,
            status=summary.status.value,
            duration_ms=round(summary.duration_ms, 2),
        )
        return summary

    async def _fetch_pages(self, options: SyncOptions) -> list[SourcePage]:
        """Query every page matching the run's filter, following cursors."""
        if options.sync_all:
            filter_ = None
        else:
            since = options.since or datetime.now(timezone.utc) - timedelta(
                minutes=self._sync_config.default_lookback_minutes
            )
            filter_ = modified_after_filter(since)

        pages: list[SourcePage] = []
        cursor: str | None = None
        while True:
            result = await self._adapter.query_data_source(
                self.config.data_source_id,
                filter=filter_,
                cursor=cursor,
            )
            pages.extend(result.pages)
            cursor = result.next_cursor
            if cursor is None:
                break
        return pages

    async def _process_all(self, pages: list[SourcePage], summary: SyncSummary) -> None:
        alias = self.config.alias
        metrics = get_metrics()

        for page in pages:
            page_start = time.perf_counter()
            try:
                stored = await self.process_page(page)
            except AuthError as e:
                # Every later call would be rejected too
                summary.failed += 1
                metrics.record_page(alias, "failed")
                self._fail(summary, e, "auth_failed")
                return
            except Exception as e:
                summary.failed += 1
                metrics.record_page(alias, "failed")
                logger.error(
                    "page_failed",
                    page_id=page.id,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                continue

            if stored:
                summary.processed += 1
                metrics.record_page(alias, "processed", time.perf_counter() - page_start)
            else:
                summary.skipped += 1
                metrics.record_page(alias, "skipped")

    def _fail(self, summary: SyncSummary, error: Exception, event: str) -> None:
        self._state = SyncState.ERROR
        summary.status = SyncStatus.ERROR
        summary.details = str(error)
        get_metrics().record_provider_error(self.config.alias, type(error).__name__)
        logger.error(event, error=str(error), error_type=type(error).__name__)

    async def process_page(self, page: SourcePage) -> bool:
        """
        Build and store one page.

        Shared by the batch loop and the webhook path.

        Returns:
            True if a record was written, False if the page was skipped.
        """
        with traced(tracer, "process_page", {"page_id": page.id}):
            post = await self._builder.build_post(page)
            if post is None:
                logger.debug("page_skipped", page_id=page.id)
                return False

            await self._repository.upsert(post)
            logger.debug("page_stored", page_id=page.id, slug=post.slug)
            return True

    async def process_page_id(self, page_id: str) -> bool:
        """Fetch a page by id and process it (webhook entry point)."""
        page = await self._adapter.get_page(page_id)
        return await self.process_page(page)
