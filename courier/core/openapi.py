"""OpenAPI customization.

Adds the admin API key security scheme (``X-API-Key``) to every operation,
exempts the health endpoints, and fills in tag descriptions.
"""

from __future__ import annotations

from typing import Any, Dict

from fastapi import FastAPI

TAGS_METADATA = [
    {
        "name": "Email queue",
        "description": "Operator view and overrides of the delivery queue.",
    },
    {
        "name": "Health",
        "description": "Liveness and queue depth checks.",
    },
]


def apply_openapi_customizations(app: FastAPI) -> None:
    """Patch FastAPI's OpenAPI generation to add security and tag metadata.

    Args:
        app: Application whose ``openapi`` method is replaced.

    Side Effects:
        - Declares the ``AdminApiKey`` header scheme and applies it globally
        - Clears security on ``/health*`` operations so probes show as public
        - Appends tag descriptions for the email queue and health routes
        - Caches the generated schema on ``app.openapi_schema``
    """

    original_openapi = app.openapi

    def custom_openapi() -> Dict[str, Any]:
        if app.openapi_schema:
            return app.openapi_schema
        schema = original_openapi()

        security_schemes = schema.setdefault("components", {}).setdefault(
            "securitySchemes", {}
        )
        security_schemes.setdefault(
            "AdminApiKey",
            {
                "type": "apiKey",
                "in": "header",
                "name": "X-API-Key",
                "description": "Admin API key (APP_ADMIN_API_KEYS).",
            },
        )
        schema.setdefault("security", [{"AdminApiKey": []}])

        tags = schema.setdefault("tags", [])
        known = {tag.get("name") for tag in tags}
        tags.extend(tag for tag in TAGS_METADATA if tag["name"] not in known)

        for path, methods in schema.get("paths", {}).items():
            if not path.startswith("/health"):
                continue
            for method_obj in methods.values():
                if isinstance(method_obj, dict):
                    method_obj["security"] = []

        app.openapi_schema = schema
        return schema

    app.openapi = custom_openapi  # type: ignore[assignment]
