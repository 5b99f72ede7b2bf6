"""Database repository for the pages table."""

import logging

import asyncpg

from pagesync.errors import SlugConflictError
from pagesync.storage.database import Database
from pagesync.sync.schemas import PostRecord

logger = logging.getLogger(__name__)

# Slug uniqueness is enforced per datasource; NULL slugs never collide
_CREATE_TABLE_SQL = """
CREATE TABLE IF NOT EXISTS pages (
    datasource_id TEXT NOT NULL,
    page_id       TEXT NOT NULL,
    title         TEXT NOT NULL DEFAULT '',
    slug          TEXT,
    content       TEXT NOT NULL DEFAULT '',
    publish_at    TIMESTAMPTZ,
    updated_at    TIMESTAMPTZ NOT NULL,
    tags          JSONB,
    authors       JSONB,
    meta          JSONB,
    PRIMARY KEY (datasource_id, page_id),
    CONSTRAINT pages_datasource_slug_key UNIQUE (datasource_id, slug)
);

CREATE INDEX IF NOT EXISTS idx_pages_datasource_publish_at
    ON pages(datasource_id, publish_at DESC) WHERE publish_at IS NOT NULL;
CREATE INDEX IF NOT EXISTS idx_pages_updated_at
    ON pages(updated_at DESC);
"""

_UPSERT_SQL = """
INSERT INTO pages (
    datasource_id, page_id, title, slug, content,
    publish_at, updated_at, tags, authors, meta
)
VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10)
ON CONFLICT (datasource_id, page_id) DO UPDATE SET
    title = EXCLUDED.title,
    slug = EXCLUDED.slug,
    content = EXCLUDED.content,
    publish_at = EXCLUDED.publish_at,
    updated_at = EXCLUDED.updated_at,
    tags = EXCLUDED.tags,
    authors = EXCLUDED.authors,
    meta = EXCLUDED.meta
"""


def _record_to_post(record) -> PostRecord:
    """Convert an asyncpg Record to a PostRecord dataclass."""
    return PostRecord(
        datasource_id=record["datasource_id"],
        page_id=record["page_id"],
        title=record["title"],
        slug=record["slug"],
        content=record["content"],
        publish_at=record["publish_at"],
        updated_at=record["updated_at"],
        tags=list(record["tags"]) if record["tags"] is not None else None,
        authors=list(record["authors"]) if record["authors"] is not None else None,
        meta=dict(record["meta"]) if record["meta"] is not None else None,
    )


class PostRepository:
    """
    CRUD operations for the pages table.

    Every call is an independent round trip with no local caching, so a
    read always reflects the store at call time. No isolation is held
    between a slug lookup and the later upsert.
    """

    def __init__(self, database: Database) -> None:
        self._db = database

    async def create_table(self) -> None:
        """Create the pages table and indexes (idempotent)."""
        await self._db.execute(_CREATE_TABLE_SQL)
        logger.info("Pages table ensured")

    async def get_by_provider_page_id(
        self, page_id: str, datasource_id: str
    ) -> PostRecord | None:
        """Fetch the record for a provider page."""
        row = await self._db.fetchrow(
            "SELECT * FROM pages WHERE datasource_id = $1 AND page_id = $2",
            datasource_id, page_id,
        )
        return _record_to_post(row) if row else None

    async def get_by_slug(self, slug: str, datasource_id: str) -> PostRecord | None:
        """Fetch the record holding ``slug`` in a datasource."""
        row = await self._db.fetchrow(
            "SELECT * FROM pages WHERE datasource_id = $1 AND slug = $2",
            datasource_id, slug,
        )
        return _record_to_post(row) if row else None

    async def get_all_for_source(self, datasource_id: str) -> list[PostRecord]:
        """Fetch every record of a datasource, newest edit first."""
        rows = await self._db.fetch(
            "SELECT * FROM pages WHERE datasource_id = $1 ORDER BY updated_at DESC, page_id",
            datasource_id,
        )
        return [_record_to_post(r) for r in rows]

    async def upsert(self, post: PostRecord) -> None:
        """
        Insert or update the row for (datasource_id, page_id).

        The slug written is the one already resolved by the builder.

        Raises:
            SlugConflictError: Another page claimed the slug between the
                builder's lookup and this write.
        """
        try:
            await self._db.execute(
                _UPSERT_SQL,
                post.datasource_id,
                post.page_id,
                post.title,
                post.slug,
                post.content,
                post.publish_at,
                post.updated_at,
                post.tags,
                post.authors,
                post.meta,
            )
        except asyncpg.UniqueViolationError as e:
            raise SlugConflictError(post.datasource_id, post.slug) from e

    async def delete_for_source(self, datasource_id: str) -> int:
        """Delete every record of a datasource. Returns the number removed."""
        result = await self._db.execute(
            "DELETE FROM pages WHERE datasource_id = $1",
            datasource_id,
        )
        # asyncpg returns the command tag, e.g. "DELETE 12"
        try:
            return int(result.split()[-1])
        except (AttributeError, IndexError, ValueError):
            return 0

    async def count_for_source(self, datasource_id: str) -> int:
        """Count records of a datasource."""
        count = await self._db.fetchval(
            "SELECT COUNT(*) FROM pages WHERE datasource_id = $1",
            datasource_id,
        )
        return count or 0
