"""
Post builder - turns one provider page into a PostRecord.

Applies the datasource's policies, resolves a unique slug against the
store and gathers the body, tags, authors and metadata. Nothing is
written to the store here; the orchestrator persists the result.
"""

import structlog

from pagesync.observability.metrics import get_metrics
from pagesync.provider.adapter import NotionAdapter
from pagesync.provider.schemas import SourcePage
from pagesync.sync.config import DataSourceConfig
from pagesync.sync.repository import PostRepository
from pagesync.sync.schemas import PostRecord
from pagesync.sync.slug import numbered_candidates, random_suffix_slug, slugify

logger = structlog.get_logger(__name__)


class PostBuilder:
    """
    Builds records for one datasource.

    Slug conflicts are resolved with a store lookup per candidate, so a
    slug claimed earlier in the same run (or by another process that
    already committed) is always seen.
    """

    def __init__(
        self,
        config: DataSourceConfig,
        adapter: NotionAdapter,
        repository: PostRepository,
    ):
        self.config = config
        self._adapter = adapter
        self._repository = repository

    async def build_post(self, page: SourcePage) -> PostRecord | None:
        """
        Build the record for ``page``.

        Unpublished pages are still built so their title and content stay
        current, but they get neither a slug nor a publish time.

        Returns:
            The record to upsert, or None when the page should be skipped.
        """
        config = self.config
        title = self._adapter.get_title_property(page)

        is_public = config.publish_policy.evaluate(page)
        if is_public is None:
            is_public = True

        publish_at = None
        slug = None
        if is_public:
            publish_at = config.publish_date_policy.evaluate(page) or page.last_edited_time
            slug, slug_changed = await self._resolve_slug(page, title)
            if slug_changed and config.slug_sync_property:
                await self._sync_slug_back(page, slug)

        content = await self._adapter.page_to_markdown(page.id)

        tags = (
            self._adapter.get_property_values(page, config.tags_property)
            if config.tags_property
            else []
        )
        authors = (
            self._adapter.get_property_values(page, config.authors_property)
            if config.authors_property
            else []
        )

        return PostRecord(
            datasource_id=config.data_source_id,
            page_id=page.id,
            title=title,
            slug=slug,
            content=content,
            publish_at=publish_at,
            updated_at=page.last_edited_time,
            tags=tags or None,
            authors=authors or None,
            meta=self._extract_meta(page),
        )

    async def _resolve_slug(self, page: SourcePage, title: str) -> tuple[str, bool]:
        """Return (slug, changed) for a public page."""
        custom_slug = self.config.slug_policy.evaluate(page)
        existing = await self._repository.get_by_provider_page_id(
            page.id, self.config.data_source_id
        )

        if existing is not None and existing.slug:
            if custom_slug and custom_slug != existing.slug:
                slug = await self.ensure_unique_slug(custom_slug, exclude_page_id=page.id)
                logger.info(
                    "slug_renamed",
                    page_id=page.id,
                    old_slug=existing.slug,
                    new_slug=slug,
                )
                return slug, True
            return existing.slug, False

        base = custom_slug or slugify(title)
        slug = await self.ensure_unique_slug(base, exclude_page_id=page.id)
        return slug, True

    async def ensure_unique_slug(
        self,
        base: str,
        exclude_page_id: str | None = None,
    ) -> str:
        """
        First free slug among ``base``, ``base-2`` .. ``base-100``.

        A slug held by ``exclude_page_id`` counts as free. When every
        numbered candidate is taken a random suffix is used instead.
        """
        if await self._is_free(base, exclude_page_id):
            return base

        for candidate in numbered_candidates(base):
            if await self._is_free(candidate, exclude_page_id):
                get_metrics().record_slug_conflict(self.config.alias, "numbered")
                return candidate

        slug = random_suffix_slug(base)
        get_metrics().record_slug_conflict(self.config.alias, "random")
        logger.warning(
            "slug_candidates_exhausted",
            base=base,
            slug=slug,
            datasource=self.config.alias,
        )
        return slug

    async def _is_free(self, slug: str, exclude_page_id: str | None) -> bool:
        holder = await self._repository.get_by_slug(slug, self.config.data_source_id)
        return holder is None or holder.page_id == exclude_page_id

    async def _sync_slug_back(self, page: SourcePage, slug: str) -> None:
        """Write the final slug to the provider if it differs from what it holds."""
        property_name = self.config.slug_sync_property
        current = self._adapter.get_property_values(page, property_name)
        if current and current[0].strip() == slug:
            return
        await self._adapter.update_property(page.id, property_name, slug)
        logger.debug("slug_synced_back", page_id=page.id, slug=slug)

    def _extract_meta(self, page: SourcePage):
        extractor = self.config.metadata_extractor
        if extractor is None:
            return None
        try:
            return extractor.extract(page)
        except Exception as e:
            logger.warning(
                "metadata_extraction_failed",
                page_id=page.id,
                datasource=self.config.alias,
                error=str(e),
                error_type=type(e).__name__,
            )
            return None
