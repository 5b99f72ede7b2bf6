"""Data models for the sync engine.

``PostRecord`` maps 1:1 to a row of the ``pages`` table. The remaining
types describe sync runs and their outcomes.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any


@dataclass
class PostRecord:
    """A persisted post, keyed by (datasource_id, page_id).

    Attributes:
        datasource_id: Provider datasource the page belongs to.
        page_id: Provider page id.
        title: Page title at last sync.
        slug: URL identifier, unique per datasource. None while unpublished.
        content: Page body as markdown.
        publish_at: Publication time. None iff the page is not public.
        updated_at: Provider's last-edited time (never sync time).
        tags: Tag names, or None when the page has none.
        authors: Author names, or None when the page has none.
        meta: Output of the datasource's metadata extractor.
    """

    datasource_id: str
    page_id: str
    title: str
    slug: str | None
    content: str
    publish_at: datetime | None
    updated_at: datetime
    tags: list[str] | None = None
    authors: list[str] | None = None
    meta: dict[str, Any] | None = None

    @property
    def is_public(self) -> bool:
        return self.publish_at is not None


@dataclass
class SyncOptions:
    """Options for one ``sync_data_source`` run.

    Attributes:
        since: Only sync pages edited after this time. Defaults to a short
            lookback window when omitted.
        sync_all: Ignore ``since`` and fetch every page.
        wipe: Delete every record for the datasource before syncing.
    """

    since: datetime | None = None
    sync_all: bool = False
    wipe: bool = False


class SyncStatus(str, Enum):
    """Outcome of a datasource sync run."""

    SUCCESS = "success"
    ERROR = "error"


class SyncState(str, Enum):
    """Lifecycle of a sync orchestrator run."""

    IDLE = "idle"
    WIPING = "wiping"
    FETCHING = "fetching"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"


@dataclass
class SyncSummary:
    """Per-datasource result of a sync run."""

    alias: str
    data_source_id: str
    processed: int = 0
    skipped: int = 0
    failed: int = 0
    status: SyncStatus = SyncStatus.SUCCESS
    duration_ms: float = 0.0
    details: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "alias": self.alias,
            "data_source_id": self.data_source_id,
            "processed": self.processed,
            "skipped": self.skipped,
            "failed": self.failed,
            "status": self.status.value,
            "duration_ms": round(self.duration_ms, 2),
            "details": self.details,
        }


@dataclass
class SyncResult:
    """Aggregate result of a multi-datasource sweep."""

    since: datetime | None
    summaries: list[SyncSummary] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return any(s.status == SyncStatus.ERROR for s in self.summaries)

    def to_dict(self) -> dict[str, Any]:
        return {
            "since": self.since.isoformat() if self.since else None,
            "summaries": [s.to_dict() for s in self.summaries],
        }
