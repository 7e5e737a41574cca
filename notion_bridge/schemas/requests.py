"""Pydantic schemas for the HTTP surface.

Request bodies mirror Notion's own request shapes and allow extra fields,
so builder-produced payloads pass through without being reshaped.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from notion_bridge.schemas.notion import Block, Database, Page


class PassthroughBody(BaseModel):
    """Body forwarded to Notion as-is.

    Fields the caller did not send are omitted; explicit ``null`` values are
    kept, since Notion uses them to clear icons, covers, colors and dates.
    """

    model_config = ConfigDict(extra="allow")

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True)


class SearchRequest(PassthroughBody):
    query: str | None = Field(None, description="Text to match against titles.")
    filter: dict[str, Any] | None = Field(None, description="Notion search filter.")
    sort: dict[str, Any] | None = Field(None, description="Notion search sort.")
    start_cursor: str | None = None
    page_size: int | None = Field(None, ge=1, le=100)
    object_kind: Literal["page", "database"] = Field(
        "page",
        description="Kind of objects to return; other result kinds are dropped.",
    )

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude={"object_kind"})


class CreatePageRequest(PassthroughBody):
    parent: dict[str, Any] = Field(..., description="Parent page or database reference.")
    properties: dict[str, Any] = Field(default_factory=dict)
    children: list[dict[str, Any]] | None = None


class UpdatePageRequest(PassthroughBody):
    properties: dict[str, Any] | None = None
    archived: bool | None = None


class QueryDatabaseRequest(PassthroughBody):
    filter: dict[str, Any] | None = None
    sorts: list[dict[str, Any]] | None = None
    start_cursor: str | None = None
    page_size: int | None = Field(None, ge=1, le=100)


class UpdateBlockRequest(PassthroughBody):
    """Block type key (e.g. ``paragraph``) with its new content, or ``archived``."""


class AppendChildrenRequest(BaseModel):
    children: list[dict[str, Any]] = Field(..., min_length=1, max_length=100)


class PageList(BaseModel):
    object: Literal["list"] = "list"
    results: list[Page]


class DatabaseList(BaseModel):
    object: Literal["list"] = "list"
    results: list[Database]


class BlockList(BaseModel):
    object: Literal["list"] = "list"
    results: list[Block]
