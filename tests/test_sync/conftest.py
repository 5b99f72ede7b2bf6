"""Shared fixtures for sync engine tests."""

from dataclasses import replace
from unittest.mock import AsyncMock

import pytest

from pagesync.errors import SlugConflictError
from pagesync.provider.adapter import NotionAdapter
from pagesync.provider.http_client import RetryConfig
from pagesync.provider.schemas import QueryResult
from pagesync.sync.builder import PostBuilder
from pagesync.sync.config import DataSourceConfig
from pagesync.sync.orchestrator import SyncOrchestrator
from pagesync.sync.schemas import PostRecord


class InMemoryPostRepository:
    """PostRepository stand-in backed by a dict, with the same slug constraint."""

    def __init__(self) -> None:
        self.rows: dict[tuple[str, str], PostRecord] = {}
        self.upserts = 0

    async def get_by_provider_page_id(self, page_id, datasource_id):
        return self.rows.get((datasource_id, page_id))

    async def get_by_slug(self, slug, datasource_id):
        return next(
            (
                r for (ds, _), r in self.rows.items()
                if ds == datasource_id and r.slug == slug
            ),
            None,
        )

    async def get_all_for_source(self, datasource_id):
        return [r for (ds, _), r in self.rows.items() if ds == datasource_id]

    async def upsert(self, post):
        if post.slug is not None:
            holder = await self.get_by_slug(post.slug, post.datasource_id)
            if holder is not None and holder.page_id != post.page_id:
                raise SlugConflictError(post.datasource_id, post.slug)
        self.upserts += 1
        self.rows[(post.datasource_id, post.page_id)] = replace(post)

    async def delete_for_source(self, datasource_id):
        keys = [k for k in self.rows if k[0] == datasource_id]
        for key in keys:
            del self.rows[key]
        return len(keys)

    async def count_for_source(self, datasource_id):
        return len([k for k in self.rows if k[0] == datasource_id])

    def slugs(self) -> dict[str, str | None]:
        return {page_id: r.slug for (_, page_id), r in self.rows.items()}


@pytest.fixture
def repository() -> InMemoryPostRepository:
    return InMemoryPostRepository()


@pytest.fixture
def blog_config() -> DataSourceConfig:
    """Blog datasource with every policy left at its default."""
    return DataSourceConfig(alias="blog", data_source_id="ds-blog", token="secret_token")


@pytest.fixture
def adapter() -> NotionAdapter:
    """Real adapter for property extraction, with every network call mocked."""
    adapter = NotionAdapter("secret_token", retry_config=RetryConfig(max_retries=0))
    adapter.get_page = AsyncMock()
    adapter.query_data_source = AsyncMock(return_value=QueryResult(pages=[]))
    adapter.update_property = AsyncMock()
    adapter.page_to_markdown = AsyncMock(return_value="Body text")
    return adapter


@pytest.fixture
def make_orchestrator(adapter, repository):
    """Wire builder + orchestrator for a config, sharing the fakes."""

    def _make(config: DataSourceConfig) -> SyncOrchestrator:
        builder = PostBuilder(config, adapter, repository)
        return SyncOrchestrator(adapter, builder, repository, config)

    return _make
