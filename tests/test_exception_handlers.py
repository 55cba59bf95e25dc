"""Tests for global exception handlers.

Validates that domain errors map to the right HTTP status codes with a
consistent error body, and that unexpected errors never leak details.
"""

import asyncio
import json
from unittest.mock import AsyncMock

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from rate_guard.core.errors import (
    AppError,
    AuthenticationAppError,
    UnknownLimiterError,
    ValidationAppError,
)
from rate_guard.core.exception_handlers import general_exception_handler, setup_exception_handlers


@pytest.fixture
def app_with_handlers() -> FastAPI:
    app = FastAPI()
    setup_exception_handlers(app)
    return app


@pytest.fixture
def client(app_with_handlers: FastAPI) -> TestClient:
    return TestClient(app_with_handlers, raise_server_exceptions=False)


class TestAppErrorHandler:
    """Test handler for AppError and subclasses."""

    @pytest.mark.parametrize(
        ("error", "expected_status"),
        [
            (ValidationAppError(code="bad_rule", message="Invalid rule"), 400),
            (AppError(code="generic", message="Generic failure"), 400),
            (AuthenticationAppError(code="invalid_api_key", message="Invalid or missing API key"), 403),
            (UnknownLimiterError(code="unknown_operation_class", message="No limiter"), 404),
        ],
    )
    def test_status_mapping(
        self, client: TestClient, app_with_handlers: FastAPI, error: AppError, expected_status: int
    ) -> None:
        @app_with_handlers.get("/boom")
        async def boom():
            raise error

        response = client.get("/boom")

        assert response.status_code == expected_status
        data = response.json()
        assert data["error"]["code"] == error.code
        assert data["error"]["message"] == error.message
        assert "request_id" in data["error"]

    def test_details_are_included_when_present(self, client: TestClient, app_with_handlers: FastAPI) -> None:
        @app_with_handlers.get("/detailed")
        async def detailed():
            raise UnknownLimiterError(
                code="unknown_operation_class",
                message="No rate limiter configured for operation 'x'",
                details={"operation": "x", "hint": "Known operations: ai"},
            )

        data = client.get("/detailed").json()

        assert data["error"]["details"] == {"operation": "x", "hint": "Known operations: ai"}

    def test_details_are_omitted_when_absent(self, client: TestClient, app_with_handlers: FastAPI) -> None:
        @app_with_handlers.get("/plain")
        async def plain():
            raise ValidationAppError(code="test", message="test")

        assert "details" not in client.get("/plain").json()["error"]


class TestGeneralExceptionHandler:
    """Test fallback handler for unexpected exceptions."""

    def test_unexpected_error_returns_generic_500(self, client: TestClient, app_with_handlers: FastAPI) -> None:
        @app_with_handlers.get("/crash")
        async def crash():
            raise RuntimeError("lock table corrupted")

        response = client.get("/crash")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "internal_server_error"
        assert "corrupted" not in response.text

    def test_never_leaks_stack_trace(self) -> None:
        request = AsyncMock()
        request.url.path = "/test"
        request.method = "GET"

        response = asyncio.run(general_exception_handler(request, ValueError("Test error with details")))

        body = bytes(response.body).decode()
        assert response.status_code == 500
        assert json.loads(body)["error"]["code"] == "internal_server_error"
        assert "Traceback" not in body
        assert "ValueError" not in body


def test_setup_registers_both_handlers(app_with_handlers: FastAPI) -> None:
    assert AppError in app_with_handlers.exception_handlers
    assert Exception in app_with_handlers.exception_handlers
