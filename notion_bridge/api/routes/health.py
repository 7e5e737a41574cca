from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness check.

    Returns a simple status response to verify the API process is up.

    Returns:
        dict: A dictionary with a single "status" key set to "ok".
    """

    return {"status": "ok"}


@router.get("/health/ready")
async def readiness_check(request: Request) -> JSONResponse:
    """Readiness check.

    Reports 503 while the Notion client is missing or its rate limit store
    is unreachable, since every Notion call would be refused.
    """

    client = getattr(request.app.state, "notion_client", None)
    if client is None:
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "notion_client": "not_configured"},
        )

    store_ok = await client.limiter.store.ping()
    if not store_ok:
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "rate_limit_store": "unreachable"},
        )

    return JSONResponse(status_code=200, content={"status": "ok", "rate_limit_store": "ok"})
