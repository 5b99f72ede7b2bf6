"""
Notion adapter - pure provider API interactions.

Responsibilities:
- Query datasources (paginated), fetch pages, update properties
- Convert page bodies to markdown
- Extract typed property values from pages

No business logic lives here: publishing rules, slugs and persistence
belong to the sync package.
"""

import json
from datetime import datetime
from types import TracebackType
from typing import Any

import httpx
import structlog

from pagesync.config.settings import get_settings
from pagesync.errors import AuthError, NotFoundError, ProviderError
from pagesync.provider.http_client import HTTPClient, HTTPClientError, RetryConfig
from pagesync.provider.markdown import blocks_to_markdown
from pagesync.provider.schemas import PropertyType, QueryResult, SourcePage

logger = structlog.get_logger(__name__)

UNTITLED = "Untitled"


def modified_after_filter(since: datetime) -> dict[str, Any]:
    """Provider filter selecting pages edited strictly after ``since``."""
    return {
        "timestamp": "last_edited_time",
        "last_edited_time": {"after": since.isoformat()},
    }


def _translate_error(exc: HTTPClientError, context: str) -> ProviderError:
    """Map a transport failure onto the provider error taxonomy."""
    code = None
    message = str(exc)
    if exc.response_body:
        try:
            body = json.loads(exc.response_body)
            code = body.get("code")
            message = body.get("message", message)
        except (ValueError, AttributeError):
            pass

    if exc.status_code == 401 or code == "unauthorized":
        return AuthError(
            f"Notion API authentication failed ({context}): invalid or expired token. "
            f"Check the datasource token configuration. Provider message: {message}",
            status_code=exc.status_code,
            code=code,
        )
    if exc.status_code == 404 or code == "object_not_found":
        return NotFoundError(
            f"{context}: {message}",
            status_code=exc.status_code,
            code=code,
        )
    return ProviderError(f"{context}: {message}", status_code=exc.status_code, code=code)


class NotionAdapter:
    """
    Async client for the Notion REST API.

    Must be used as an async context manager so the underlying HTTP
    connection pool is opened and closed deterministically.

    Usage:
        async with NotionAdapter(token) as adapter:
            result = await adapter.query_data_source(database_id)
            markdown = await adapter.page_to_markdown(result.pages[0].id)
    """

    def __init__(
        self,
        token: str,
        api_url: str | None = None,
        notion_version: str | None = None,
        page_size: int | None = None,
        retry_config: RetryConfig | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        settings = get_settings()

        self._api_url = (api_url or settings.notion_api_url).rstrip("/")
        self._page_size = page_size or settings.notion_page_size
        self._http = HTTPClient(
            retry_config=retry_config
            or RetryConfig(
                max_retries=settings.max_http_retries,
                max_backoff_seconds=settings.max_backoff_seconds,
            ),
            timeout=timeout or settings.notion_timeout_seconds,
            headers={
                "Authorization": f"Bearer {token}",
                "Notion-Version": notion_version or settings.notion_version,
                "Content-Type": "application/json",
            },
            transport=transport,
        )

    async def __aenter__(self) -> "NotionAdapter":
        await self._http.__aenter__()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self._http.__aexit__(exc_type, exc_val, exc_tb)

    # ── API calls ───────────────────────────────────────────────

    async def get_page(self, page_id: str) -> SourcePage:
        """
        Fetch a single page by id.

        Raises:
            AuthError: Credential rejected.
            NotFoundError: Unknown id, or the id is not a database page.
        """
        logger.debug("fetch_page", page_id=page_id)
        try:
            response = await self._http.get(f"{self._api_url}/pages/{page_id}")
        except HTTPClientError as e:
            raise _translate_error(e, f"get_page {page_id}") from e

        payload = response.json()
        if "properties" not in payload:
            raise NotFoundError(f"Page {page_id} is not a database page")
        return SourcePage.from_api(payload)

    async def query_data_source(
        self,
        data_source_id: str,
        filter: dict[str, Any] | None = None,
        cursor: str | None = None,
    ) -> QueryResult:
        """
        Run one query round trip against a datasource.

        Callers loop on ``next_cursor`` until it is None to get the full
        result set. Non-page results are dropped.
        """
        logger.debug(
            "query_datasource",
            data_source_id=data_source_id,
            has_filter=filter is not None,
            cursor=cursor,
        )
        body: dict[str, Any] = {"page_size": self._page_size}
        if filter is not None:
            body["filter"] = filter
        if cursor:
            body["start_cursor"] = cursor

        try:
            response = await self._http.post(
                f"{self._api_url}/databases/{data_source_id}/query",
                json_body=body,
            )
        except HTTPClientError as e:
            raise _translate_error(e, f"query_datasource {data_source_id}") from e

        payload = response.json()
        pages = [
            SourcePage.from_api(item)
            for item in payload.get("results", [])
            if item.get("object", "page") == "page" and "properties" in item
        ]
        next_cursor = payload.get("next_cursor") if payload.get("has_more") else None
        return QueryResult(pages=pages, next_cursor=next_cursor)

    async def update_property(
        self,
        page_id: str,
        property_name: str,
        value: str,
    ) -> None:
        """
        Write a rich-text property on a page.

        Best effort: provider failures are logged and swallowed. Only
        ``AuthError`` propagates, since a broken credential fails every
        later call too.
        """
        logger.debug(
            "update_property",
            page_id=page_id,
            property_name=property_name,
            value=value,
        )
        body = {
            "properties": {
                property_name: {
                    "rich_text": [{"type": "text", "text": {"content": value}}]
                }
            }
        }
        try:
            await self._http.patch(f"{self._api_url}/pages/{page_id}", json_body=body)
        except HTTPClientError as e:
            error = _translate_error(e, f"update_property {page_id}")
            if isinstance(error, AuthError):
                raise error from e
            logger.warning(
                "update_property_failed",
                page_id=page_id,
                property_name=property_name,
                status_code=error.status_code,
                error=str(error),
            )

    async def page_to_markdown(self, page_id: str) -> str:
        """Convert a page body to markdown. Provider errors propagate."""
        logger.debug("convert_to_markdown", page_id=page_id)
        blocks = await self._fetch_block_tree(page_id)
        return blocks_to_markdown(blocks)

    async def _fetch_block_tree(self, block_id: str) -> list[dict[str, Any]]:
        """Fetch all children of a block, recursing into nested blocks."""
        blocks: list[dict[str, Any]] = []
        cursor: str | None = None
        while True:
            params: dict[str, Any] = {"page_size": self._page_size}
            if cursor:
                params["start_cursor"] = cursor
            try:
                response = await self._http.get(
                    f"{self._api_url}/blocks/{block_id}/children",
                    params=params,
                )
            except HTTPClientError as e:
                raise _translate_error(e, f"block_children {block_id}") from e

            payload = response.json()
            blocks.extend(payload.get("results", []))
            cursor = payload.get("next_cursor") if payload.get("has_more") else None
            if not cursor:
                break

        for block in blocks:
            # Child pages are separate documents, not part of this body
            if block.get("has_children") and block.get("type") != "child_page":
                block["children"] = await self._fetch_block_tree(block["id"])
        return blocks

    # ── Property extraction ─────────────────────────────────────

    def get_property_values(self, page: SourcePage, property_name: str) -> list[str]:
        """
        Read a property as a list of strings.

        multi_select -> option names; select -> zero or one name;
        people -> display names (id when nameless); rich_text -> zero or
        one concatenated string. Other variants yield [] and a warning.
        """
        prop = page.get(property_name)
        if prop is None:
            return []

        values = prop.values()
        if values is None:
            logger.warning(
                "unsupported_property_type",
                page_id=page.id,
                property_name=property_name,
                type=prop.raw_type,
            )
            return []
        return values

    def get_title_property(self, page: SourcePage) -> str:
        """Text of the property typed ``title`` (found by type, not name)."""
        for prop in page.properties.values():
            if prop.type == PropertyType.TITLE:
                return prop.text or UNTITLED

        logger.warning("no_title_property", page_id=page.id)
        return UNTITLED

    def get_unique_id_property(self, page: SourcePage) -> str | None:
        """Provider unique id formatted as ``PREFIX-N`` or ``N``."""
        return page.unique_id()
