"""
Tests for src.services module.

Covers:
- Login success, origin redirect, 2FA and bad credentials
- Logout always clearing the session
- Admin mutations reporting success as bool
"""

import json
import logging

import pytest
import requests


@pytest.fixture
def auth(api_client, session_store, navigator):
    from src.services import AuthService

    return AuthService(api_client, session_store, navigator)


@pytest.fixture
def actions(api_client, logged_in):
    from src.services import AdminActions

    return AdminActions(api_client, logged_in)


class TestLogin:
    def test_success_stores_credential_and_navigates(self, auth, adapter, session_store, navigator, durable):
        from src.session import Role

        adapter.add(200, {"token": "tok-1", "user": {"role": "admin", "twofa_enabled": False}})

        result = auth.login("admin@example.com", "secret", remember=True)

        assert result.role is Role.ADMIN
        assert result.redirect_to == "/admin/dashboard"
        assert session_store.token == "tok-1"
        assert durable.get("auth_token") == "tok-1"
        assert navigator.current_path == "/admin/dashboard"
        assert json.loads(adapter.last_request.body) == {
            "email": "admin@example.com",
            "password": "secret",
            "remember": True,
            "twofa_code": "",
        }

    def test_returns_to_guarded_origin(self, auth, adapter, navigator):
        adapter.add(200, {"token": "tok-1", "user": {"role": "employee"}})

        result = auth.login("e@example.com", "pw", origin={"from": "/employee/scan"}, navigate=False)

        assert result.redirect_to == "/employee/scan"
        assert navigator.current_path == "/"

    def test_twofa_required(self, auth, adapter, session_store):
        from src.exceptions import TwoFactorRequiredError

        adapter.add(400, {"code": "twofa_required", "message": "2FA code required"})

        with pytest.raises(TwoFactorRequiredError):
            auth.login("a@example.com", "pw")

        assert session_store.token is None

    def test_invalid_credentials_has_no_session_side_effect(self, auth, adapter, logged_in, navigator):
        from src.exceptions import InvalidCredentialsError

        adapter.add(401, {"code": "invalid_credentials"})

        with pytest.raises(InvalidCredentialsError):
            auth.login("a@example.com", "wrong")

        assert logged_in.token == "tok-admin"
        assert navigator.current_path == "/"

    def test_other_rejections_keep_server_code(self, auth, adapter):
        from src.exceptions import ApiError, InvalidCredentialsError

        adapter.add(403, {"code": "account_disabled"})

        with pytest.raises(ApiError) as exc_info:
            auth.login("a@example.com", "pw")

        assert not isinstance(exc_info.value, InvalidCredentialsError)
        assert exc_info.value.error_code == "account_disabled"

    def test_response_without_token(self, auth, adapter):
        from src.exceptions import TransportError

        adapter.add(200, {"message": "ok"})

        with pytest.raises(TransportError) as exc_info:
            auth.login("a@example.com", "pw")

        assert exc_info.value.error_code == "bad_response"


class TestLogout:
    def test_revokes_then_clears(self, auth, adapter, logged_in, navigator):
        adapter.add(204)

        auth.logout()

        assert adapter.last_request.url == "http://api.test/api/auth/logout"
        assert adapter.last_request.headers["Authorization"] == "Bearer tok-admin"
        assert logged_in.token is None
        assert navigator.current_path == "/"

    def test_server_failure_still_clears(self, auth, adapter, logged_in, navigator):
        adapter.add_error(requests.ConnectionError("down"))

        auth.logout(redirect_path="/login")

        assert logged_in.token is None
        assert navigator.current_path == "/login"

    def test_without_token_skips_request(self, auth, adapter, session_store):
        auth.logout()

        assert adapter.requests == []
        assert session_store.token is None


class TestAdminActions:
    def test_update_ticket_status(self, actions, adapter):
        adapter.add(200, {"status": "used"})

        assert actions.update_ticket_status(12, "used") is True

        request = adapter.last_request
        assert request.method == "PUT"
        assert request.url == "http://api.test/api/tickets/admin/12/status"
        assert json.loads(request.body) == {"status": "used"}
        assert request.headers["Authorization"] == "Bearer tok-admin"

    def test_refund_payment(self, actions, adapter):
        adapter.add(200, {})

        assert actions.refund_payment("pay-uuid", 25.5) is True

        request = adapter.last_request
        assert request.method == "POST"
        assert request.url == "http://api.test/api/payments/pay-uuid/refund"
        assert json.loads(request.body) == {"amount": 25.5}

    def test_failure_returns_false_and_logs(self, actions, adapter, caplog):
        adapter.add(422, {"errors": {"amount": ["too large"]}})

        assert actions.refund_payment("pay-uuid", 1000) is False

        errors = [r for r in caplog.records if r.getMessage() == "admin_action_failed"]
        assert errors and errors[0].levelno == logging.ERROR

    def test_expired_token_still_ends_session(self, actions, adapter, logged_in, navigator):
        adapter.add(401)

        assert actions.update_ticket_status(1, "used") is False
        assert logged_in.token is None
        assert navigator.current_path == "/login"
