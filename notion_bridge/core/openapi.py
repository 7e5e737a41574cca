"""OpenAPI customization for the Notion proxy.

Enriches the generated schema with:
- The API Key security scheme (``X-API-Key``), required by default and
  exempted on health endpoints
- Tags metadata
- The shared error envelope and the statuses every ``/v1`` route can
  return on top of its own (auth, throttling, upstream failures)
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

ERROR_SCHEMA_NAME = "ErrorResponse"

_ERROR_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "properties": {
        "error": {
            "type": "object",
            "properties": {
                "code": {"type": "string"},
                "message": {"type": "string"},
                "request_id": {"type": "string", "nullable": True},
                "details": {"type": "object"},
            },
            "required": ["code", "message"],
        }
    },
}

_COMMON_ERROR_RESPONSES: Dict[str, str] = {
    "403": "Missing or invalid API key.",
    "429": "Caller exceeded its budget, or Notion kept rate limiting after all retries.",
    "502": "Notion returned an unexpected object kind or an unclassified failure.",
    "503": "Notion or the shared rate limit store is unavailable.",
}

_TAGS = [
    {
        "name": "Notion",
        "description": "Rate-limited, retried proxy endpoints for pages, databases, blocks and search.",
    },
    {
        "name": "Health",
        "description": "Liveness and readiness checks.",
    },
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add security and error docs."""

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        schema = original_openapi()

        components = schema.setdefault("components", {})
        components.setdefault("securitySchemes", {}).setdefault(
            "ApiKeyAuth",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": "Provide your API key via the X-API-Key header.",
            },
        )
        components.setdefault("schemas", {}).setdefault(ERROR_SCHEMA_NAME, _ERROR_SCHEMA)
        schema.setdefault("security", [{"ApiKeyAuth": []}])

        tags = schema.setdefault("tags", [])
        existing = {t.get("name") for t in tags}
        tags.extend(tag for tag in _TAGS if tag["name"] not in existing)

        error_ref = {"$ref": f"#/components/schemas/{ERROR_SCHEMA_NAME}"}
        for path, methods in schema.get("paths", {}).items():
            for operation in methods.values():
                if not isinstance(operation, dict):
                    continue
                if path.startswith("/health"):
                    operation["security"] = []
                    continue
                responses = operation.setdefault("responses", {})
                for status_code, description in _COMMON_ERROR_RESPONSES.items():
                    responses.setdefault(
                        status_code,
                        {
                            "description": description,
                            "content": {"application/json": {"schema": error_ref}},
                        },
                    )

        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
