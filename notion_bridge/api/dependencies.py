"""FastAPI dependencies shared by the routers."""

from __future__ import annotations

from fastapi import Request

from notion_bridge.core.errors import NotionClientNotConfiguredError
from notion_bridge.services.notion_service import ResilientNotionClient


def get_notion_client(request: Request) -> ResilientNotionClient:
    """Return the client built at startup and stored on ``app.state``.

    Raises:
        NotionClientNotConfiguredError: If the application started without a usable Notion client.
    """
    client = getattr(request.app.state, "notion_client", None)
    if client is None:
        raise NotionClientNotConfiguredError(
            code="notion_client_not_configured",
            message="Notion client is not configured; set NOTION_TOKEN and restart",
        )
    return client
