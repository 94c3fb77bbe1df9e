"""
Tests for error handling.

Covers the sanitizer, validation error formatting and the registered
exception handlers, exercised through a small FastAPI app.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from pydantic import BaseModel

from app.error_handlers import (
    GENERIC_ERROR_MESSAGE,
    format_validation_errors,
    register_exception_handlers,
    sanitize_error_message,
)
from app.exceptions import (
    AuthenticationError,
    ConflictError,
    DatabaseError,
    ErrorCode,
    PublishError,
    RateLimitError,
    ValidationError,
)


class TestSanitizeErrorMessage:

    @pytest.mark.parametrize("message", [
        "invalid api_key supplied",
        "Bearer abc.def failed",
        "could not connect to postgresql://user:pw@db/prod",
        "SUPABASE_SERVICE_ROLE key rejected",
        "refresh_token expired",
    ])
    def test_sensitive_messages_are_replaced(self, message):
        assert sanitize_error_message(message) == GENERIC_ERROR_MESSAGE

    def test_paths_ips_and_ids_are_masked(self):
        message = "failed at /srv/app/store.py from 10.1.2.3 for 123e4567-e89b-12d3-a456-426614174000"
        assert sanitize_error_message(message) == "failed at [path] from [ip] for [id]"

    def test_long_messages_are_cut(self):
        result = sanitize_error_message("x" * 600)
        assert len(result) == 503
        assert result.endswith("...")

    def test_empty(self):
        assert sanitize_error_message("") == ""


class TestFormatValidationErrors:

    def test_field_names_drop_location_prefix(self):
        errors = format_validation_errors([
            {"loc": ("body", "contentId"), "type": "missing", "msg": "Field required"},
            {"loc": ("query", "token"), "type": "string_type", "msg": "Input should be a string"},
            {"loc": ("body",), "type": "json_invalid", "msg": "JSON decode error"},
        ])
        assert errors == [
            {"field": "contentId", "message": "Field 'contentId' is required"},
            {"field": "token", "message": "Field 'token' has an invalid type"},
            {"field": "request", "message": "Request body must be valid JSON"},
        ]

    def test_at_most_ten(self):
        errors = [{"loc": ("body", f"f{i}"), "type": "missing"} for i in range(15)]
        assert len(format_validation_errors(errors)) == 10


class Payload(BaseModel):
    name: str


def build_app():
    app = FastAPI()
    register_exception_handlers(app)

    @app.get("/validation")
    async def validation():
        raise ValidationError("Block is required", field="blockId")

    @app.get("/auth")
    async def auth():
        raise AuthenticationError()

    @app.get("/conflict")
    async def conflict():
        raise ConflictError("Content is already published", error_code=ErrorCode.ALREADY_PUBLISHED)

    @app.get("/limited")
    async def limited():
        raise RateLimitError(retry_after=42)

    @app.get("/publish")
    async def publish():
        raise PublishError("Forbidden by X")

    @app.get("/database")
    async def database():
        raise DatabaseError(internal_message="relation content does not exist")

    @app.get("/boom")
    async def boom():
        raise RuntimeError("secret=hunter2")

    @app.post("/body")
    async def body(payload: Payload):
        return {"ok": True}

    return app


@pytest.fixture
def handler_client():
    return TestClient(build_app(), raise_server_exceptions=False)


class TestExceptionHandlers:

    def test_validation_error(self, handler_client):
        response = handler_client.get("/validation")
        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "error": "Block is required",
            "error_code": "VALIDATION_ERROR",
            "details": {"field": "blockId"},
        }

    def test_default_messages(self, handler_client):
        response = handler_client.get("/auth")
        assert response.status_code == 401
        assert response.json()["error"] == "Unauthorized"
        assert "details" not in response.json()

    def test_conflict_code(self, handler_client):
        response = handler_client.get("/conflict")
        assert response.status_code == 409
        assert response.json()["error_code"] == "ALREADY_PUBLISHED"

    def test_rate_limit_sets_retry_after(self, handler_client):
        response = handler_client.get("/limited")
        assert response.status_code == 429
        assert response.headers["Retry-After"] == "42"

    def test_platform_message_is_passed_through(self, handler_client):
        response = handler_client.get("/publish")
        assert response.status_code == 500
        assert response.json()["error"] == "Forbidden by X"
        assert response.json()["error_code"] == "PUBLISH_FAILED"

    def test_internal_message_is_not_returned(self, handler_client):
        response = handler_client.get("/database")
        assert response.status_code == 500
        assert response.json()["error"] == "Internal server error"
        assert "relation" not in response.text

    def test_unhandled_exception(self, handler_client):
        response = handler_client.get("/boom")
        body = response.json()
        assert response.status_code == 500
        assert body["error"] == "Internal server error"
        assert body["error_code"] == "INTERNAL_ERROR"
        assert len(body["details"]["error_reference"]) == 8
        assert "hunter2" not in response.text

    def test_request_validation_is_400(self, handler_client):
        response = handler_client.post("/body", json={})
        assert response.status_code == 400
        assert response.json()["error"] == "Field 'name' is required"
        assert response.json()["details"]["errors"] == [
            {"field": "name", "message": "Field 'name' is required"},
        ]

    def test_unknown_route(self, handler_client):
        response = handler_client.get("/nowhere")
        assert response.status_code == 404
        assert response.json()["error_code"] == "RESOURCE_NOT_FOUND"
