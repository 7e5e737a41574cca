"""Resilient Notion client composing rate limiting, retries and narrowing.

Every operation follows the same pipeline:
- Derive a limiter key for the operation (and target resource, if any)
- Acquire rate limit budget for that key, suspending while it is exhausted
- Run the transport call under the retrying executor
- Narrow the response to the expected object kind (lists are filtered)

Limiter keys are partitioned by resource id wherever the operation targets
one (``page:<id>``, ``block:<id>:children``) and by operation class
otherwise (``search``, ``page:create``).
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, AsyncIterator, Awaitable, Callable, Literal

from notion_bridge.adapters.notion.base import AbstractNotionTransport
from notion_bridge.adapters.notion.factory import create_notion_transport
from notion_bridge.adapters.rate_limit.factory import create_rate_limit_store
from notion_bridge.core.config import Settings
from notion_bridge.core.errors import UnexpectedObjectKindError, ValidationAppError
from notion_bridge.resilience.backoff import BackoffPolicy
from notion_bridge.resilience.limiter import KeyedRateLimiter
from notion_bridge.resilience.retry import RetryingExecutor
from notion_bridge.schemas.notion import (
    Block,
    Database,
    ObjectModel,
    Page,
    filter_results,
    narrow,
)

logger = logging.getLogger(__name__)

SEARCH_KEY = "search"
PAGE_CREATE_KEY = "page:create"


def page_key(page_id: str) -> str:
    return f"page:{page_id}"


def database_key(database_id: str) -> str:
    return f"database:{database_id}"


def database_query_key(database_id: str) -> str:
    return f"database:{database_id}:query"


def block_key(block_id: str) -> str:
    return f"block:{block_id}"


def block_children_key(block_id: str) -> str:
    return f"block:{block_id}:children"


def _require_id(value: str, field: str) -> str:
    if not value or not value.strip():
        raise ValidationAppError(
            code="missing_resource_id",
            message=f"{field} must be a non-empty string",
        )
    return value


class ResilientNotionClient:
    """Public operation surface over the Notion API.

    Attributes:
        transport: Raw HTTP transport to Notion.
        limiter: Keyed distributed rate limiter.
        executor: Retrying executor applied to every transport call.
    """

    def __init__(
        self,
        transport: AbstractNotionTransport,
        limiter: KeyedRateLimiter,
        executor: RetryingExecutor,
    ) -> None:
        self.transport = transport
        self.limiter = limiter
        self.executor = executor

    async def _call(
        self,
        key: str,
        operation_name: str,
        call: Callable[[], Awaitable[dict[str, Any]]],
        cancel: asyncio.Event | None,
    ) -> dict[str, Any]:
        # Budget is taken before each attempt, so retries are throttled too.
        async def attempt() -> dict[str, Any]:
            await self.limiter.acquire(key, cancel=cancel)
            return await call()

        return await self.executor.execute(
            attempt,
            cancel=cancel,
            operation_name=operation_name,
        )

    async def _paginate(
        self,
        key: str,
        operation_name: str,
        fetch: Callable[[str | None], Awaitable[dict[str, Any]]],
        expected: type[ObjectModel],
        cancel: asyncio.Event | None,
    ) -> AsyncIterator[ObjectModel]:
        cursor: str | None = None
        while True:
            response = await self._call(key, operation_name, lambda: fetch(cursor), cancel)
            for item in filter_results(response.get("results") or [], expected):
                yield item
            cursor = response.get("next_cursor")
            if not response.get("has_more") or not cursor:
                return

    async def search(
        self,
        params: dict[str, Any] | None = None,
        *,
        object_kind: Literal["page", "database"] = "page",
        cancel: asyncio.Event | None = None,
    ) -> list[Page] | list[Database]:
        """Search the workspace and return results of one object kind.

        Args:
            params: Search body (query, filter, sort, start_cursor, page_size).
            object_kind: Kind of objects to keep from the results.
            cancel: Optional event abandoning the operation while it waits.

        Returns:
            Pages (default) or databases; other result kinds are dropped.
        """
        expected = Page if object_kind == "page" else Database
        body = params or {}
        response = await self._call(
            SEARCH_KEY, "search", lambda: self.transport.search(body), cancel
        )
        return filter_results(response.get("results") or [], expected)

    async def get_page(self, page_id: str, *, cancel: asyncio.Event | None = None) -> Page:
        _require_id(page_id, "page_id")
        raw = await self._call(
            page_key(page_id),
            "get_page",
            lambda: self.transport.retrieve_page(page_id),
            cancel,
        )
        return narrow(raw, Page)

    async def create_page(self, payload: dict[str, Any], *, cancel: asyncio.Event | None = None) -> Page:
        """Create a page from a builder-produced payload (parent, properties, children)."""
        raw = await self._call(
            PAGE_CREATE_KEY,
            "create_page",
            lambda: self.transport.create_page(payload),
            cancel,
        )
        return narrow(raw, Page)

    async def update_page(
        self,
        page_id: str,
        payload: dict[str, Any],
        *,
        cancel: asyncio.Event | None = None,
    ) -> Page:
        _require_id(page_id, "page_id")
        raw = await self._call(
            page_key(page_id),
            "update_page",
            lambda: self.transport.update_page(page_id, payload),
            cancel,
        )
        return narrow(raw, Page)

    async def get_database(self, database_id: str, *, cancel: asyncio.Event | None = None) -> Database:
        _require_id(database_id, "database_id")
        raw = await self._call(
            database_key(database_id),
            "get_database",
            lambda: self.transport.retrieve_database(database_id),
            cancel,
        )
        return narrow(raw, Database)

    async def query_database(
        self,
        database_id: str,
        params: dict[str, Any] | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> list[Page]:
        """Query a database and return the matching pages of one result page."""
        _require_id(database_id, "database_id")
        body = params or {}
        response = await self._call(
            database_query_key(database_id),
            "query_database",
            lambda: self.transport.query_database(database_id, body),
            cancel,
        )
        return filter_results(response.get("results") or [], Page)

    def iterate_database(
        self,
        database_id: str,
        params: dict[str, Any] | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> AsyncIterator[Page]:
        """Yield every page matching a query, following ``next_cursor``."""
        _require_id(database_id, "database_id")
        base = params or {}

        def fetch(cursor: str | None) -> Awaitable[dict[str, Any]]:
            body = {**base, "start_cursor": cursor} if cursor else base
            return self.transport.query_database(database_id, body)

        return self._paginate(database_query_key(database_id), "query_database", fetch, Page, cancel)

    async def get_block(self, block_id: str, *, cancel: asyncio.Event | None = None) -> Block:
        _require_id(block_id, "block_id")
        raw = await self._call(
            block_key(block_id),
            "get_block",
            lambda: self.transport.retrieve_block(block_id),
            cancel,
        )
        return narrow(raw, Block)

    async def update_block(
        self,
        block_id: str,
        payload: dict[str, Any],
        *,
        cancel: asyncio.Event | None = None,
    ) -> Block:
        _require_id(block_id, "block_id")
        raw = await self._call(
            block_key(block_id),
            "update_block",
            lambda: self.transport.update_block(block_id, payload),
            cancel,
        )
        return narrow(raw, Block)

    async def delete_block(self, block_id: str, *, cancel: asyncio.Event | None = None) -> Block:
        """Archive a block (or page, addressed as a block)."""
        _require_id(block_id, "block_id")
        raw = await self._call(
            block_key(block_id),
            "delete_block",
            lambda: self.transport.delete_block(block_id),
            cancel,
        )
        return narrow(raw, Block)

    async def list_block_children(
        self,
        block_id: str,
        params: dict[str, Any] | None = None,
        *,
        cancel: asyncio.Event | None = None,
    ) -> list[Block]:
        _require_id(block_id, "block_id")
        query = params or {}
        response = await self._call(
            block_children_key(block_id),
            "list_block_children",
            lambda: self.transport.list_block_children(block_id, query),
            cancel,
        )
        return filter_results(response.get("results") or [], Block)

    def iterate_block_children(
        self,
        block_id: str,
        *,
        page_size: int = 100,
        cancel: asyncio.Event | None = None,
    ) -> AsyncIterator[Block]:
        """Yield every direct child of a block, following ``next_cursor``."""
        _require_id(block_id, "block_id")

        def fetch(cursor: str | None) -> Awaitable[dict[str, Any]]:
            query: dict[str, Any] = {"page_size": page_size}
            if cursor:
                query["start_cursor"] = cursor
            return self.transport.list_block_children(block_id, query)

        return self._paginate(block_children_key(block_id), "list_block_children", fetch, Block, cancel)

    async def append_block_children(
        self,
        block_id: str,
        children: list[dict[str, Any]],
        *,
        cancel: asyncio.Event | None = None,
    ) -> list[Block]:
        """Append builder-produced blocks under a page or block."""
        _require_id(block_id, "block_id")
        if not children:
            raise ValidationAppError(
                code="empty_children",
                message="children must contain at least one block",
            )
        body = {"children": children}
        response = await self._call(
            block_children_key(block_id),
            "append_block_children",
            lambda: self.transport.append_block_children(block_id, body),
            cancel,
        )
        return filter_results(response.get("results") or [], Block)

    async def create_block(
        self,
        parent_id: str,
        block: dict[str, Any],
        *,
        cancel: asyncio.Event | None = None,
    ) -> Block:
        """Append a single block and return it."""
        created = await self.append_block_children(parent_id, [block], cancel=cancel)
        if not created:
            raise UnexpectedObjectKindError(
                code="unexpected_object_kind",
                message="Notion did not return the appended block",
                details={"expected_kind": "block", "actual_kind": "none"},
            )
        return created[0]

    async def aclose(self) -> None:
        await self.transport.aclose()
        await self.limiter.store.aclose()


def create_notion_client(app_settings: Settings) -> ResilientNotionClient:
    """Wire transport, rate limiter and retry executor from configuration.

    Args:
        app_settings: Full application settings.

    Returns:
        ResilientNotionClient: Ready-to-use client.

    Raises:
        ValidationAppError: If the Notion token, rate limit backend or retry policy
            is misconfigured.
    """
    try:
        policy = BackoffPolicy(
            base_delay=app_settings.retry.base_delay_seconds,
            max_delay=app_settings.retry.max_delay_seconds,
            jitter=app_settings.retry.jitter,
        )
    except ValueError as exc:
        raise ValidationAppError(
            code="retry_invalid_policy",
            message=f"Invalid retry settings: {exc}",
            details={"hint": "RETRY_MAX_DELAY_SECONDS must be >= RETRY_BASE_DELAY_SECONDS"},
        ) from exc

    transport = create_notion_transport(app_settings.notion)
    store = create_rate_limit_store(app_settings.rate_limit)
    limiter = KeyedRateLimiter(store, key_prefix=app_settings.rate_limit.key_prefix)
    executor = RetryingExecutor(policy, max_retries=app_settings.retry.max_retries)

    logger.info(
        "notion_client.initialized",
        extra={
            "rate_limit_backend": app_settings.rate_limit.backend,
            "points": app_settings.rate_limit.points,
            "duration_s": app_settings.rate_limit.duration_seconds,
            "max_retries": app_settings.retry.max_retries,
        },
    )
    return ResilientNotionClient(transport=transport, limiter=limiter, executor=executor)
