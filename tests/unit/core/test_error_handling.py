"""
Tests for error handling middleware.
Tests domain error mapping, framework errors, sanitization and the
response envelope.
"""

import pytest
import json
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from unittest.mock import patch

from core.errors import (
    AlreadyUsedError,
    ConflictError,
    EmailMismatchError,
    ExpiredError,
    NoAnswersError,
    NotFoundError,
    OwnershipError,
    StitchingError,
    StorageError,
    TranscodingError,
    ValidationError,
)
from core.middleware.error_handling import (
    sanitize_error_message,
    get_safe_error_details,
    ErrorHandlingMiddleware,
    setup_error_handlers,
)


class TestSensitiveDataSanitization:
    """Test sensitive data sanitization."""

    @pytest.mark.parametrize("sensitive_input,expected_redacted", [
        # Passwords
        ('password="secret123"', True),
        ('user_password: "P@ssw0rd!"', True),

        # Tokens
        ('token="Bearer abc123xyz"', True),
        ('access_token:jwt.token.here', True),

        # API Keys
        ('api_key="sk_live_12345"', True),
        ('api-key="secret-key-123"', True),

        # Secrets
        ('secret="confidential"', True),
        ('SECRET_KEY="django-secret"', True),

        # Authorization
        ('authorization: Bearer token123', True),

        # Presigned URLs
        ('GET https://bucket.s3.amazonaws.com/k?X-Amz-Signature=abcdef123', True),

        # Safe values (should not be redacted)
        ('username="john_doe"', False),
        ('email="user@example.com"', False),
        ('message="Operation successful"', False),
        ('count=12345', False),
    ])
    def test_sanitize_sensitive_patterns(self, sensitive_input, expected_redacted):
        """Test that sensitive patterns are properly detected and redacted."""
        sanitized = sanitize_error_message(sensitive_input)

        if expected_redacted:
            assert "[REDACTED]" in sanitized
        else:
            assert "[REDACTED]" not in sanitized

    def test_multiple_sensitive_fields_in_one_message(self):
        message = 'Error: password="secret" and token="abc123" and api_key="xyz789"'
        sanitized = sanitize_error_message(message)

        assert "abc123" not in sanitized
        assert "xyz789" not in sanitized
        assert sanitized.count("[REDACTED]") == 3

    def test_empty_string(self):
        assert sanitize_error_message("") == ""

    def test_non_string_input(self):
        assert sanitize_error_message(404) == "404"


class TestSafeErrorDetails:
    """Test safe error detail extraction."""

    def test_basic_exception_details(self):
        exc = ValueError("Test error message")
        details = get_safe_error_details(exc, include_details=False)

        assert details == {"type": "ValueError", "message": "Test error message"}

    def test_details_with_debug_mode(self):
        details = get_safe_error_details(ValueError("Test error"), include_details=True)

        assert isinstance(details["traceback"], str)

    def test_sanitization_in_error_details(self):
        details = get_safe_error_details(ValueError("Error with password=secret123"))

        assert "secret123" not in details["message"]


class Payload(BaseModel):
    email: str
    question_order: int


class TestErrorHandlingMiddleware:
    """Test error handling middleware with various exception types."""

    @pytest.fixture
    def app(self):
        """Create FastAPI app with error handling middleware."""
        app = FastAPI()
        setup_error_handlers(app)
        app.add_middleware(ErrorHandlingMiddleware, debug=False)

        @app.get("/success")
        async def success():
            return {"message": "success"}

        @app.post("/validated")
        async def validated(payload: Payload):
            return payload

        @app.get("/http-error")
        async def http_error():
            raise HTTPException(status_code=401, detail="Unauthorized with token=abc123")

        @app.get("/database-integrity-error")
        async def db_integrity_error():
            raise IntegrityError("duplicate key", None, None)

        @app.get("/database-operational-error")
        async def db_operational_error():
            raise OperationalError("connection lost", None, None)

        @app.get("/database-error")
        async def db_error():
            raise SQLAlchemyError("broken")

        @app.get("/timeout-error")
        async def timeout_err():
            raise TimeoutError("Request timed out")

        @app.get("/generic-error")
        async def generic_err():
            raise Exception("Unexpected error with api_key=secret")

        return app

    @pytest.fixture
    def client(self, app):
        return TestClient(app, raise_server_exceptions=False)

    def test_successful_request(self, client):
        response = client.get("/success")
        assert response.status_code == 200
        assert response.json() == {"message": "success"}

    def test_request_validation_is_400(self, client):
        response = client.post("/validated", json={"email": "a@b.co", "question_order": "x"})

        assert response.status_code == 400
        data = response.json()
        assert data["error"]["code"] == "VALIDATION_ERROR"
        fields = [d["field"] for d in data["error"]["details"]]
        assert "body.question_order" in fields

    def test_http_exception_handling(self, client):
        response = client.get("/http-error")
        assert response.status_code == 401

        data = response.json()
        assert data["error"]["code"] == "HTTP_EXCEPTION"
        assert "abc123" not in json.dumps(data)

    def test_database_integrity_error(self, client):
        response = client.get("/database-integrity-error")
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "INTEGRITY_ERROR"

    def test_database_operational_error(self, client):
        response = client.get("/database-operational-error")
        assert response.status_code == 503
        assert "unavailable" in response.json()["error"]["message"].lower()

    def test_database_error(self, client):
        response = client.get("/database-error")
        assert response.status_code == 500
        assert response.json()["error"]["code"] == "DATABASE_ERROR"

    def test_timeout_error(self, client):
        response = client.get("/timeout-error")
        assert response.status_code == 504
        assert response.json()["error"]["code"] == "TIMEOUT"

    def test_generic_error_handling(self, client):
        response = client.get("/generic-error")
        assert response.status_code == 500

        data = response.json()
        assert data["error"]["code"] == "INTERNAL_SERVER_ERROR"
        assert data["error"]["message"] == "An unexpected error occurred"
        assert "secret" not in json.dumps(data)

    def test_request_id_echoed_in_error(self, client):
        response = client.get("/generic-error", headers={"x-request-id": "req-42"})

        assert response.json()["error"]["request_id"] == "req-42"

    def test_error_response_structure(self, client):
        data = client.get("/http-error").json()

        assert set(data["error"]) >= {"code", "message", "path", "method"}
        assert data["error"]["path"] == "/http-error"
        assert data["error"]["method"] == "GET"


class TestDomainErrors:
    """Domain exceptions map to their status and code."""

    @pytest.mark.parametrize("exc,status_code,code", [
        (ValidationError("bad"), 400, "VALIDATION_ERROR"),
        (ExpiredError("This interview link has expired"), 400, "LINK_EXPIRED"),
        (AlreadyUsedError("used"), 400, "LINK_ALREADY_USED"),
        (EmailMismatchError("mismatch"), 400, "EMAIL_MISMATCH"),
        (NotFoundError("missing"), 404, "NOT_FOUND"),
        (NoAnswersError("none"), 404, "NO_ANSWERS"),
        (OwnershipError("not yours"), 403, "PERMISSION_DENIED"),
        (ConflictError("dup"), 409, "CONFLICT"),
        (StorageError("s3"), 500, "STORAGE_ERROR"),
        (StitchingError("ffmpeg"), 500, "STITCHING_ERROR"),
        (TranscodingError("ffmpeg", stderr="x"), 500, "TRANSCODING_ERROR"),
    ])
    def test_mapping(self, exc, status_code, code):
        app = FastAPI()
        setup_error_handlers(app)
        app.add_middleware(ErrorHandlingMiddleware, debug=False)

        @app.get("/boom")
        async def boom():
            raise exc

        response = TestClient(app, raise_server_exceptions=False).get("/boom")

        assert response.status_code == status_code
        assert response.json()["error"]["code"] == code
        assert response.json()["error"]["message"] == exc.message

    def test_middleware_maps_without_handlers(self):
        """The middleware alone also understands domain errors."""
        app = FastAPI()
        app.add_middleware(ErrorHandlingMiddleware, debug=False)

        @app.get("/boom")
        async def boom():
            raise OwnershipError("You do not have access to this role")

        response = TestClient(app, raise_server_exceptions=False).get("/boom")

        assert response.status_code == 403
        assert response.json()["error"]["message"] == "You do not have access to this role"

    def test_unhandled_error_is_logged(self):
        app = FastAPI()
        app.add_middleware(ErrorHandlingMiddleware, debug=False)

        @app.get("/test")
        async def test():
            raise RuntimeError("Test error")

        client = TestClient(app, raise_server_exceptions=False)

        with patch('core.middleware.error_handling.logger') as mock_logger:
            client.get("/test")

        assert mock_logger.error.called

    def test_debug_mode_includes_details(self):
        app = FastAPI()
        app.add_middleware(ErrorHandlingMiddleware, debug=True)

        @app.get("/error")
        async def error():
            raise RuntimeError("Test error")

        data = TestClient(app, raise_server_exceptions=False).get("/error").json()

        assert data["error"]["details"]["type"] == "RuntimeError"
