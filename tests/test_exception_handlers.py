"""Tests for global exception handlers.

Every error type maps to a stable status code and JSON shape, and nothing
server-side (details of 5xx errors, exception text, tracebacks) leaks to the
client.
"""

import asyncio
import json
from unittest.mock import AsyncMock, patch

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from courier.adapters.rate_limit.base import RateLimitResult
from courier.core.errors import (
    AppError,
    AuthenticationAppError,
    ConfigurationError,
    DispatchError,
    PersistenceError,
    RateLimitExceeded,
    ValidationAppError,
)
from courier.core.exception_handlers import general_exception_handler, setup_exception_handlers

DENIED = RateLimitResult(
    allowed=False,
    limit=10,
    remaining=0,
    reset_at=1_000_900_000,
    retry_after_seconds=900,
)


@pytest.fixture
def app_with_handlers() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers, raise_server_exceptions=False)


def _raising_route(app: FastAPI, exc: Exception) -> str:
    @app.get("/boom")
    async def boom():
        raise exc

    return "/boom"


class TestAppErrorHandler:
    @pytest.mark.parametrize(
        ("exc", "status"),
        [
            (ValidationAppError(code="invalid_action", message="Invalid action"), 400),
            (AuthenticationAppError(code="invalid_api_key", message="nope"), 403),
            (PersistenceError(code="queue_store_error", message="db down"), 503),
            (ConfigurationError(code="mail_missing_api_key", message="no key"), 500),
            (DispatchError(code="dispatch_failed", message="bounced"), 400),
        ],
    )
    def test_status_per_error_type(self, client, app_with_handlers, exc, status) -> None:
        response = client.get(_raising_route(app_with_handlers, exc))

        assert response.status_code == status
        error = response.json()["error"]
        assert error["code"] == exc.code
        assert error["message"] == exc.message
        assert "request_id" in error

    def test_client_errors_include_details(self, client, app_with_handlers) -> None:
        exc = ValidationAppError(
            code="invalid_window",
            message="Unparseable window",
            details={"window": "15 fortnights"},
        )

        response = client.get(_raising_route(app_with_handlers, exc))

        assert response.json()["error"]["details"] == {"window": "15 fortnights"}

    def test_server_errors_hide_details(self, client, app_with_handlers) -> None:
        exc = PersistenceError(
            code="queue_store_error",
            message="Queue store operation failed",
            details={"operation": "requeue"},
        )

        response = client.get(_raising_route(app_with_handlers, exc))

        assert response.status_code == 503
        assert "details" not in response.json()["error"]


class TestRateLimitExceededHandler:
    def test_renders_429_body_and_headers(self, client, app_with_handlers) -> None:
        exc = RateLimitExceeded(DENIED, limiter="admin")

        response = client.get(_raising_route(app_with_handlers, exc))

        assert response.status_code == 429
        assert response.json() == {
            "error": "Rate limit exceeded. Please try again later.",
            "retryAfter": 900,
            "limit": 10,
            "remaining": 0,
            "reset": 1_000_900_000,
        }
        assert response.headers["Retry-After"] == "900"
        assert response.headers["X-RateLimit-Limit"] == "10"
        assert response.headers["X-RateLimit-Reset"] == "1000900000"

    @patch("courier.core.exception_handlers.settings")
    def test_headers_can_be_disabled(self, mock_settings, client, app_with_handlers) -> None:
        mock_settings.rate_limit.include_headers = False
        exc = RateLimitExceeded(DENIED, limiter="admin")

        response = client.get(_raising_route(app_with_handlers, exc))

        assert response.status_code == 429
        assert "Retry-After" not in response.headers
        assert "X-RateLimit-Limit" not in response.headers


class TestGeneralExceptionHandler:
    def test_unexpected_exception_returns_generic_500(self, client, app_with_handlers) -> None:
        response = client.get(_raising_route(app_with_handlers, RuntimeError("secret dsn leaked")))

        assert response.status_code == 500
        error = response.json()["error"]
        assert error["code"] == "internal_server_error"
        assert "secret" not in response.text

    def test_handler_never_leaks_traceback(self) -> None:
        request = AsyncMock()
        request.url.path = "/v1/admin/email-queue"
        request.method = "POST"

        response = asyncio.run(general_exception_handler(request, ValueError("bad row 42")))

        body = bytes(response.body).decode()
        assert response.status_code == 500
        assert json.loads(body)["error"]["code"] == "internal_server_error"
        assert "Traceback" not in body
        assert "ValueError" not in body
        assert "bad row" not in body


def test_handlers_are_registered_idempotently() -> None:
    app = FastAPI()

    setup_exception_handlers(app)
    setup_exception_handlers(app)

    for exc_type in (RateLimitExceeded, AppError, Exception):
        assert exc_type in app.exception_handlers
