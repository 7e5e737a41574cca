"""Notion proxy endpoints.

Every route goes through the resilient client, so callers get Notion's
objects back after rate limiting, retries and object-kind narrowing.
Errors surface through the global exception handlers.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends, Path, Query

from notion_bridge.api.dependencies import get_notion_client
from notion_bridge.core.auth import verify_api_key
from notion_bridge.core.rate_limit import enforce_rate_limit
from notion_bridge.schemas.notion import Block, Database, Page
from notion_bridge.schemas.requests import (
    AppendChildrenRequest,
    BlockList,
    CreatePageRequest,
    DatabaseList,
    PageList,
    QueryDatabaseRequest,
    SearchRequest,
    UpdateBlockRequest,
    UpdatePageRequest,
)
from notion_bridge.services.notion_service import ResilientNotionClient

router = APIRouter(
    tags=["Notion"],
    dependencies=[Depends(verify_api_key), Depends(enforce_rate_limit)],
)

NotionClient = Annotated[ResilientNotionClient, Depends(get_notion_client)]
ObjectId = Annotated[str, Path(min_length=1, description="Notion object id (with or without dashes).")]


@router.post("/search", response_model=PageList | DatabaseList)
async def search(body: SearchRequest, client: NotionClient) -> PageList | DatabaseList:
    """Search the workspace.

    Only objects of ``object_kind`` (pages by default) are returned; any
    other kind Notion includes in the results is dropped.
    """
    results = await client.search(body.to_payload(), object_kind=body.object_kind)
    if body.object_kind == "database":
        return DatabaseList(results=results)
    return PageList(results=results)


@router.get("/pages/{page_id}", response_model=Page)
async def get_page(page_id: ObjectId, client: NotionClient) -> Page:
    return await client.get_page(page_id)


@router.post("/pages", response_model=Page, status_code=201)
async def create_page(body: CreatePageRequest, client: NotionClient) -> Page:
    """Create a page under a page or database parent."""
    return await client.create_page(body.to_payload())


@router.patch("/pages/{page_id}", response_model=Page)
async def update_page(page_id: ObjectId, body: UpdatePageRequest, client: NotionClient) -> Page:
    return await client.update_page(page_id, body.to_payload())


@router.get("/databases/{database_id}", response_model=Database)
async def get_database(database_id: ObjectId, client: NotionClient) -> Database:
    return await client.get_database(database_id)


@router.post("/databases/{database_id}/query", response_model=PageList)
async def query_database(
    database_id: ObjectId,
    body: QueryDatabaseRequest,
    client: NotionClient,
) -> PageList:
    """Query a database; returns the pages of one result page."""
    pages = await client.query_database(database_id, body.to_payload())
    return PageList(results=pages)


@router.get("/blocks/{block_id}", response_model=Block)
async def get_block(block_id: ObjectId, client: NotionClient) -> Block:
    return await client.get_block(block_id)


@router.patch("/blocks/{block_id}", response_model=Block)
async def update_block(block_id: ObjectId, body: UpdateBlockRequest, client: NotionClient) -> Block:
    return await client.update_block(block_id, body.to_payload())


@router.delete("/blocks/{block_id}", response_model=Block)
async def delete_block(block_id: ObjectId, client: NotionClient) -> Block:
    """Archive a block. Notion returns the archived block."""
    return await client.delete_block(block_id)


@router.get("/blocks/{block_id}/children", response_model=BlockList)
async def list_block_children(
    block_id: ObjectId,
    client: NotionClient,
    start_cursor: Annotated[str | None, Query()] = None,
    page_size: Annotated[int | None, Query(ge=1, le=100)] = None,
) -> BlockList:
    params: dict[str, Any] = {}
    if start_cursor:
        params["start_cursor"] = start_cursor
    if page_size is not None:
        params["page_size"] = page_size
    blocks = await client.list_block_children(block_id, params)
    return BlockList(results=blocks)


@router.patch("/blocks/{block_id}/children", response_model=BlockList)
async def append_block_children(
    block_id: ObjectId,
    body: AppendChildrenRequest,
    client: NotionClient,
) -> BlockList:
    """Append up to 100 blocks under a page or block."""
    blocks = await client.append_block_children(block_id, body.children)
    return BlockList(results=blocks)
