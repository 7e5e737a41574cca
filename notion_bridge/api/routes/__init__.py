from __future__ import annotations

from notion_bridge.api.routes.health import router as health_router
from notion_bridge.api.routes.notion import router as notion_router

__all__ = ["health_router", "notion_router"]
