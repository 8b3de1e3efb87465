"""OpenAPI metadata and customization utilities.

Provides a helper to enrich the generated OpenAPI schema with:
- Tags metadata
- The shared error envelope schema
- Documented 429 responses (with rate limit headers) on rate-limited operations

This keeps documentation concerns decoupled from the app factory.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

RATE_LIMITED_OPERATIONS = {("/v1/weather/current", "get")}

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

_RATE_LIMIT_HEADERS: Dict[str, Any] = {
    "Retry-After": {"description": "Seconds until the window resets.", "schema": {"type": "integer"}},
    "X-RateLimit-Limit": {"description": "Requests allowed per window.", "schema": {"type": "integer"}},
    "X-RateLimit-Remaining": {"description": "Requests left in the window.", "schema": {"type": "integer"}},
    "X-RateLimit-Reset": {"description": "UNIX time the window resets.", "schema": {"type": "integer"}},
}


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add metadata and error docs.

    - Adds tags metadata if not present
    - Registers ``ErrorResponse`` under components.schemas
    - Documents 429 (with rate limit headers) and 503 on rate-limited operations
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema

        schema = original_openapi()

        components = schema.setdefault("components", {})
        schemas = components.setdefault("schemas", {})
        schemas.setdefault("ErrorResponse", _ERROR_SCHEMA)
        error_ref = {"application/json": {"schema": {"$ref": "#/components/schemas/ErrorResponse"}}}

        tags = schema.setdefault("tags", [])
        existing_tag_names = {t.get("name") for t in tags}
        desired_tags = [
            {
                "name": "Weather",
                "description": "Current weather lookups served through a cache, and cache invalidation.",
            },
            {
                "name": "Health",
                "description": "Liveness and cache backend checks.",
            },
        ]
        for tag in desired_tags:
            if tag["name"] not in existing_tag_names:
                tags.append(tag)

        paths = schema.get("paths", {})
        for path, method in RATE_LIMITED_OPERATIONS:
            operation = paths.get(path, {}).get(method)
            if not isinstance(operation, dict):
                continue
            responses = operation.setdefault("responses", {})
            responses.setdefault(
                "429",
                {
                    "description": "Rate limit exceeded for this caller.",
                    "headers": _RATE_LIMIT_HEADERS,
                    "content": error_ref,
                },
            )
            responses.setdefault(
                "503",
                {"description": "Weather provider unavailable.", "content": error_ref},
            )

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
