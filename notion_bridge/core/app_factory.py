"""Application factory for FastAPI app.

Centralizes app construction (metadata, middleware, handlers, routers,
Notion client lifecycle) so tests can build isolated instances.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable

from fastapi import FastAPI

from notion_bridge.api.routes import health_router, notion_router
from notion_bridge.core.config import Settings, settings
from notion_bridge.core.errors import ValidationAppError
from notion_bridge.core.exception_handlers import setup_exception_handlers
from notion_bridge.core.logging import configure_logging
from notion_bridge.core.middleware import request_id_middleware
from notion_bridge.core.openapi import apply_openapi_customizations
from notion_bridge.core.rate_limit import build_inbound_limiter
from notion_bridge.services.notion_service import ResilientNotionClient, create_notion_client

logger = logging.getLogger(__name__)

ClientFactory = Callable[[Settings], ResilientNotionClient]


def _build_lifespan(client_factory: ClientFactory):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        try:
            app.state.notion_client = client_factory(settings)
        except ValidationAppError as exc:
            # The process still serves /health so orchestration can report it.
            logger.error(
                "notion_client.not_configured",
                extra={"error_code": exc.code, "error_message": exc.message},
            )
            app.state.notion_client = None
        app.state.inbound_limiter = build_inbound_limiter(settings)

        try:
            yield
        finally:
            client = app.state.notion_client
            if client is not None:
                await client.aclose()
                logger.info("notion_client.closed")
            inbound_limiter = getattr(app.state, "inbound_limiter", None)
            if inbound_limiter is not None:
                await inbound_limiter.aclose()

    return lifespan


def create_app(client_factory: ClientFactory = create_notion_client) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        client_factory: Builds the Notion client at startup from settings.

    Returns:
        Configured FastAPI app with middleware, handlers, routers and docs.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    app = FastAPI(
        title="Notion Bridge",
        description=(
            "Resilient access layer over the Notion API. Calls are throttled by a "
            "shared per-resource rate limiter, retried with exponential backoff on "
            "transient failures, and narrowed to the expected object kind. "
            "Requires X-API-Key."
        ),
        version="0.1.0",
        license_info={
            "name": "MIT License",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=_build_lifespan(client_factory),
    )

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(notion_router, prefix="/v1")
    app.include_router(health_router)

    # OpenAPI customizations (security scheme, tags, exemptions)
    apply_openapi_customizations(app)

    return app
