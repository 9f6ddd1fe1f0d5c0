"""
Centralized exception hierarchy for the ticketing admin client.

Provides specific exception types for the failure modes the client has to
tell apart: configuration and storage problems on the local side, and the
HTTP fault taxonomy (401/403/404/422/5xx/transport) on the remote side.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

logger = logging.getLogger(__name__)


# =============================================================================
# Base Exception
# =============================================================================


class AdminClientError(RuntimeError):
    """
    Base exception for all admin client errors.

    Attributes:
        message: Human-readable error message.
        detail: Additional error details (optional).
        error_code: Machine-readable error code.
        request_id: Identifier of the request that failed (optional).
    """

    def __init__(
        self,
        message: str,
        *,
        detail: str | None = None,
        error_code: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.error_code = error_code or self._default_error_code()
        self.request_id = request_id or self._generate_request_id()

    def _default_error_code(self) -> str:
        """Generate default error code from class name."""
        return f"admin_client_{self.__class__.__name__.lower()}"

    def _generate_request_id(self) -> str:
        """Generate request ID if not provided."""
        return str(uuid.uuid4())

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to a display/logging friendly dict."""
        result = {
            "error": self.error_code,
            "message": self.message,
        }
        if self.detail:
            result["detail"] = self.detail
        if self.request_id:
            result["request_id"] = self.request_id
        return result

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}: {self.detail}"
        return self.message

    def log(self, level: int = logging.ERROR) -> None:
        """Log the exception with structured data."""
        logger.log(
            level,
            self.message,
            extra={
                "error_code": self.error_code,
                "detail": self.detail,
                "request_id": self.request_id,
                "exception_type": self.__class__.__name__,
            },
        )


# =============================================================================
# Local Errors
# =============================================================================


class ConfigurationError(AdminClientError):
    """Raised when configuration is invalid or missing."""

    def __init__(
        self,
        message: str,
        *,
        detail: str | None = None,
        setting_name: str | None = None,
    ) -> None:
        self.setting_name = setting_name
        if detail is None and setting_name:
            detail = f"Missing or invalid setting: {setting_name}"
        super().__init__(
            message,
            detail=detail,
            error_code="configuration_error",
        )


class StorageError(AdminClientError):
    """Raised when a session storage tier cannot be read or written."""

    def __init__(
        self,
        message: str = "Storage operation failed",
        *,
        operation: str | None = None,
        key: str | None = None,
        tier: str | None = None,
    ) -> None:
        self.operation = operation
        self.key = key
        self.tier = tier
        detail_parts = []
        if tier:
            detail_parts.append(f"Tier: {tier}")
        if operation:
            detail_parts.append(f"Operation: {operation}")
        if key:
            detail_parts.append(f"Key: {key}")
        detail = "; ".join(detail_parts) if detail_parts else None
        super().__init__(
            message,
            detail=detail,
            error_code="storage_error",
        )


# =============================================================================
# API Errors
# =============================================================================


class ApiError(AdminClientError):
    """
    Raised when the API answers with a non-2xx status.

    `error_code` is the server's own `code` field when the body carries one,
    otherwise a generic code for the status family. `transport_code` is the
    status-family code used when a list view has to show an opaque failure.
    """

    default_code = "bad_request"

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        error_code: str | None = None,
        payload: Any = None,
        path: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.status_code = status_code
        self.payload = payload
        self.path = path
        detail_parts = []
        if status_code:
            detail_parts.append(f"Status: {status_code}")
        if path:
            detail_parts.append(f"Path: {path}")
        detail = "; ".join(detail_parts) if detail_parts else None
        super().__init__(
            message,
            detail=detail,
            error_code=error_code or _server_code(payload) or self.default_code,
            request_id=request_id,
        )

    @property
    def transport_code(self) -> str:
        if self.status_code is not None and self.status_code >= 500:
            return "server_error"
        return "bad_request"


class AuthenticationError(ApiError):
    """
    Raised on 401.

    On a protected path the fault classifier has already cleared the session
    by the time the caller sees this.
    """

    default_code = "unauthenticated"


class InvalidCredentialsError(AuthenticationError):
    """Raised when a login attempt is rejected."""

    default_code = "invalid_credentials"


class AuthorizationError(ApiError):
    """Raised on 403: authenticated but not allowed."""

    default_code = "forbidden"


class NotFoundError(ApiError):
    """Raised on 404."""

    default_code = "not_found"


class ValidationError(ApiError):
    """
    Raised on 422.

    Attributes:
        field_errors: Mapping of field name to validation messages.
    """

    default_code = "validation_error"

    def __init__(
        self,
        message: str,
        *,
        field_errors: dict[str, list[str]] | None = None,
        **kwargs: Any,
    ) -> None:
        self.field_errors = field_errors or {}
        super().__init__(message, **kwargs)


class TwoFactorRequiredError(ApiError):
    """Raised when the login needs a second factor before a token is issued."""

    default_code = "twofa_required"


class ServerError(ApiError):
    """Raised on 5xx."""

    default_code = "server_error"


class TransportError(AdminClientError):
    """
    Raised when no usable HTTP response was received.

    Codes:
        connection_aborted: the request timed out.
        network_error: the connection could not be established.
        request_failed: any other requests-level failure.
        bad_response: a response arrived but its body could not be parsed.
    """

    def __init__(
        self,
        code: str,
        *,
        reason: str | None = None,
        path: str | None = None,
        request_id: str | None = None,
    ) -> None:
        self.reason = reason
        self.path = path
        super().__init__(
            f"Request to {path or 'API'} failed",
            detail=reason,
            error_code=code,
            request_id=request_id,
        )

    @property
    def transport_code(self) -> str:
        return self.error_code


# =============================================================================
# Status Mapping
# =============================================================================


def _server_code(payload: Any) -> str | None:
    if isinstance(payload, dict):
        code = payload.get("code")
        if isinstance(code, str) and code:
            return code
    return None


def _server_message(payload: Any, default: str) -> str:
    if isinstance(payload, dict):
        message = payload.get("message")
        if isinstance(message, str) and message:
            return message
    return default


def _field_errors(payload: Any) -> dict[str, list[str]]:
    if not isinstance(payload, dict):
        return {}
    errors = payload.get("errors")
    if not isinstance(errors, dict):
        return {}
    result: dict[str, list[str]] = {}
    for key, messages in errors.items():
        if isinstance(messages, str):
            result[str(key)] = [messages]
        elif isinstance(messages, list):
            result[str(key)] = [str(m) for m in messages]
        else:
            result[str(key)] = [str(messages)]
    return result


def error_for_status(
    status_code: int,
    payload: Any = None,
    *,
    path: str | None = None,
    request_id: str | None = None,
) -> ApiError:
    """
    Build the ApiError subclass matching an HTTP status.

    Args:
        status_code: HTTP status of the failed response.
        payload: Decoded JSON body, if any.
        path: Request path for the error detail.
        request_id: Client-side request identifier.

    Returns:
        An ApiError instance (not raised).
    """
    common = {
        "status_code": status_code,
        "payload": payload,
        "path": path,
        "request_id": request_id,
    }
    if status_code == 401:
        return AuthenticationError(_server_message(payload, "Authentication required"), **common)
    if status_code == 403:
        return AuthorizationError(_server_message(payload, "Access forbidden"), **common)
    if status_code == 404:
        return NotFoundError(_server_message(payload, "Resource not found"), **common)
    if status_code == 422:
        return ValidationError(
            _server_message(payload, "Validation failed"),
            field_errors=_field_errors(payload),
            **common,
        )
    if status_code >= 500:
        return ServerError(_server_message(payload, "Server error"), **common)
    return ApiError(_server_message(payload, "Request rejected"), **common)
