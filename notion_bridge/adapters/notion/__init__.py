"""Notion transport layer - raw HTTP access to the Notion REST API."""

from notion_bridge.adapters.notion.base import AbstractNotionTransport
from notion_bridge.adapters.notion.factory import create_notion_transport
from notion_bridge.adapters.notion.http_client import NotionHttpTransport

__all__ = [
    "AbstractNotionTransport",
    "NotionHttpTransport",
    "create_notion_transport",
]
