"""
Tests for src.exceptions module.

Covers:
- Base error formatting
- Status to exception mapping
- Transport codes
"""

import pytest


class TestAdminClientError:
    def test_to_dict_and_str(self):
        from src.exceptions import AdminClientError

        error = AdminClientError("Broken", detail="disk full", error_code="boom", request_id="r1")

        assert str(error) == "Broken: disk full"
        assert error.to_dict() == {"error": "boom", "message": "Broken", "detail": "disk full", "request_id": "r1"}

    def test_default_code_from_class_name(self):
        from src.exceptions import AdminClientError

        error = AdminClientError("Broken")

        assert error.error_code == "admin_client_adminclienterror"
        assert error.request_id


class TestLocalErrors:
    def test_storage_error_detail(self):
        from src.exceptions import StorageError

        error = StorageError(operation="get", key="auth_token", tier="durable")

        assert error.error_code == "storage_error"
        assert error.detail == "Tier: durable; Operation: get; Key: auth_token"
        assert (error.operation, error.key, error.tier) == ("get", "auth_token", "durable")

    def test_configuration_error_setting_name(self):
        from src.exceptions import ConfigurationError

        error = ConfigurationError("Invalid settings", setting_name="ADMIN_API_BASE_URL")

        assert error.setting_name == "ADMIN_API_BASE_URL"
        assert error.detail == "Missing or invalid setting: ADMIN_API_BASE_URL"
        assert error.error_code == "configuration_error"


class TestErrorForStatus:
    @pytest.mark.parametrize(
        "status, cls_name, transport_code",
        [
            (400, "ApiError", "bad_request"),
            (401, "AuthenticationError", "bad_request"),
            (403, "AuthorizationError", "bad_request"),
            (404, "NotFoundError", "bad_request"),
            (422, "ValidationError", "bad_request"),
            (500, "ServerError", "server_error"),
            (502, "ServerError", "server_error"),
        ],
    )
    def test_mapping(self, status, cls_name, transport_code):
        import src.exceptions as exceptions

        error = exceptions.error_for_status(status, None, path="/api/x")

        assert type(error).__name__ == cls_name
        assert error.status_code == status
        assert error.transport_code == transport_code
        assert "Path: /api/x" in str(error)

    def test_server_code_and_message(self):
        from src.exceptions import error_for_status

        error = error_for_status(400, {"code": "twofa_required", "message": "Need 2FA"})

        assert error.error_code == "twofa_required"
        assert error.message == "Need 2FA"

    def test_field_errors_normalized(self):
        from src.exceptions import error_for_status

        error = error_for_status(422, {"errors": {"status": ["bad"], "page": "too big", "per_page": 3}})

        assert error.field_errors == {"status": ["bad"], "page": ["too big"], "per_page": ["3"]}

    def test_field_errors_missing(self):
        from src.exceptions import error_for_status

        assert error_for_status(422, {"message": "invalid"}).field_errors == {}
        assert error_for_status(422, "not json").field_errors == {}


class TestTransportError:
    def test_code(self):
        from src.exceptions import TransportError

        error = TransportError("connection_aborted", reason="timed out", path="/api/tickets")

        assert error.error_code == "connection_aborted"
        assert error.transport_code == "connection_aborted"
        assert str(error) == "Request to /api/tickets failed: timed out"
