"""Content provider layer: Notion API client, typed pages, markdown conversion."""

from pagesync.provider.adapter import NotionAdapter, modified_after_filter
from pagesync.provider.http_client import HTTPClient, HTTPClientError, RetryConfig
from pagesync.provider.schemas import (
    PageProperty,
    PropertyType,
    QueryResult,
    SourcePage,
)

__all__ = [
    "HTTPClient",
    "HTTPClientError",
    "NotionAdapter",
    "PageProperty",
    "PropertyType",
    "QueryResult",
    "RetryConfig",
    "SourcePage",
    "modified_after_filter",
]
