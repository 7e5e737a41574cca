"""Factory pattern for creating Notion transport instances."""

from notion_bridge.adapters.notion.base import AbstractNotionTransport
from notion_bridge.adapters.notion.http_client import NotionHttpTransport
from notion_bridge.core.config import NotionSettings
from notion_bridge.core.errors import ValidationAppError


def create_notion_transport(notion_settings: NotionSettings) -> AbstractNotionTransport:
    """Instantiate the HTTP transport from configuration.

    Args:
        notion_settings: Connection settings (token, base URL, version, timeout).

    Returns:
        AbstractNotionTransport: Configured transport instance.

    Raises:
        ValidationAppError: If no integration token is configured.
    """
    if not notion_settings.token:
        raise ValidationAppError(
            code="notion_missing_token",
            message="Notion transport requires the NOTION_TOKEN environment variable",
        )

    return NotionHttpTransport(
        token=notion_settings.token,
        base_url=notion_settings.base_url,
        api_version=notion_settings.api_version,
        timeout_seconds=notion_settings.timeout_seconds,
    )
