"""Notion REST transport built on httpx."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from notion_bridge.adapters.notion.base import AbstractNotionTransport
from notion_bridge.core.errors import (
    ClientError,
    InternalServerError,
    NotionAPIError,
    NotionTransportError,
    RateLimitedError,
    ServiceUnavailableError,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.notion.com/v1"
DEFAULT_API_VERSION = "2022-06-28"

_ERROR_BY_CODE: dict[str, type[NotionAPIError]] = {
    "rate_limited": RateLimitedError,
    "service_unavailable": ServiceUnavailableError,
    "internal_server_error": InternalServerError,
}

# Used only when the error body carries no code.
_CODE_BY_STATUS = {
    429: "rate_limited",
    500: "internal_server_error",
    503: "service_unavailable",
}


def parse_retry_after(response: httpx.Response) -> float | None:
    """Parse a numeric ``Retry-After`` header, ignoring date values."""
    retry_after = response.headers.get("Retry-After")
    if retry_after:
        try:
            return max(0.0, float(retry_after))
        except ValueError:
            pass
    return None


def error_from_response(response: httpx.Response) -> NotionAPIError:
    """Translate a Notion error response into a typed error.

    Notion error bodies look like
    ``{"object": "error", "status": 404, "code": "object_not_found", "message": "..."}``.
    """
    try:
        body = response.json()
    except ValueError:
        body = None

    code = body.get("code") if isinstance(body, dict) else None
    message = body.get("message") if isinstance(body, dict) else None
    if not isinstance(message, str) or not message:
        message = f"Notion API error {response.status_code}"

    retry_after = parse_retry_after(response)

    if isinstance(code, str) and code:
        error_type = _ERROR_BY_CODE.get(code, ClientError)
        return error_type(
            code=code,
            message=message,
            status=response.status_code,
            retry_after=retry_after,
        )

    fallback_code = _CODE_BY_STATUS.get(response.status_code)
    if fallback_code is not None:
        return _ERROR_BY_CODE[fallback_code](
            code=fallback_code,
            message=message,
            status=response.status_code,
            retry_after=retry_after,
        )

    return NotionAPIError(
        code="unknown_error",
        message=message,
        status=response.status_code,
        details={"http_status": response.status_code},
    )


class NotionHttpTransport(AbstractNotionTransport):
    """Calls the Notion REST API over a shared ``httpx.AsyncClient``."""

    def __init__(
        self,
        token: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        api_version: str = DEFAULT_API_VERSION,
        timeout_seconds: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the transport.

        Args:
            token: Notion integration token.
            base_url: REST API root.
            api_version: Value sent in the ``Notion-Version`` header.
            timeout_seconds: Per-request timeout.
            client: Pre-built client (tests inject ``httpx.MockTransport`` here).
        """
        headers = {
            "Authorization": f"Bearer {token}",
            "Notion-Version": api_version,
            "Content-Type": "application/json",
        }
        if client is None:
            client = httpx.AsyncClient(
                base_url=base_url,
                timeout=timeout_seconds,
                headers=headers,
            )
        else:
            client.headers.update(headers)
        self.client = client

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        try:
            response = await self.client.request(method, path, json=json, params=params)
        except httpx.TimeoutException as exc:
            raise NotionTransportError(
                code="request_timeout",
                message=f"Request to Notion timed out: {method} {path}",
            ) from exc
        except httpx.TransportError as exc:
            raise NotionTransportError(
                code="transport_error",
                message=f"Could not reach Notion: {type(exc).__name__}",
            ) from exc

        if response.status_code >= 400:
            error = error_from_response(response)
            logger.warning(
                "notion.request_failed",
                extra={
                    "method": method,
                    "path": path,
                    "status_code": response.status_code,
                    "error_code": error.code,
                },
            )
            raise error

        return response.json()

    async def search(self, body: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/search", json=body)

    async def retrieve_page(self, page_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/pages/{page_id}")

    async def create_page(self, body: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", "/pages", json=body)

    async def update_page(self, page_id: str, body: dict[str, Any]) -> dict[str, Any]:
        return await self._request("PATCH", f"/pages/{page_id}", json=body)

    async def retrieve_database(self, database_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/databases/{database_id}")

    async def query_database(self, database_id: str, body: dict[str, Any]) -> dict[str, Any]:
        return await self._request("POST", f"/databases/{database_id}/query", json=body)

    async def retrieve_block(self, block_id: str) -> dict[str, Any]:
        return await self._request("GET", f"/blocks/{block_id}")

    async def update_block(self, block_id: str, body: dict[str, Any]) -> dict[str, Any]:
        return await self._request("PATCH", f"/blocks/{block_id}", json=body)

    async def delete_block(self, block_id: str) -> dict[str, Any]:
        return await self._request("DELETE", f"/blocks/{block_id}")

    async def list_block_children(self, block_id: str, params: dict[str, Any]) -> dict[str, Any]:
        return await self._request("GET", f"/blocks/{block_id}/children", params=params or None)

    async def append_block_children(self, block_id: str, body: dict[str, Any]) -> dict[str, Any]:
        return await self._request("PATCH", f"/blocks/{block_id}/children", json=body)

    async def aclose(self) -> None:
        await self.client.aclose()
