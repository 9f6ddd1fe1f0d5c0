"""
Authentication and admin mutation services.

AuthService turns login / logout calls into SessionStore mutations and
navigation. AdminActions wraps the single-shot admin writes; they report
success as a bool and go through the same FaultClassifier hook as list
queries, so an expired token still ends the session.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

from src.exceptions import (
    AdminClientError,
    ApiError,
    InvalidCredentialsError,
    TransportError,
    TwoFactorRequiredError,
)
from src.guard import redirect_target
from src.logging_config import log_error
from src.navigation import Navigator
from src.session import Role, SessionStore
from src.transport import ApiClient

logger = logging.getLogger(__name__)

LOGIN_PATH = "/api/auth/login"
LOGOUT_PATH = "/api/auth/logout"


@dataclass(frozen=True)
class LoginResult:
    role: Role
    redirect_to: str


class AuthService:
    """Login / logout against the auth endpoints."""

    def __init__(self, client: ApiClient, session: SessionStore, navigator: Navigator) -> None:
        self._client = client
        self._session = session
        self._navigator = navigator

    def login(
        self,
        email: str,
        password: str,
        remember: bool = False,
        twofa_code: str = "",
        *,
        origin: Optional[dict[str, Any]] = None,
        language: Optional[str] = None,
        navigate: bool = True,
    ) -> LoginResult:
        """
        Authenticate and store the credential.

        Args:
            email: Account email.
            password: Account password.
            remember: Keep the credential in the durable tier.
            twofa_code: Second-factor code, empty on the first step.
            origin: Navigation state carried by the guard redirect
                ({"from": path}); the user is sent back there.
            language: Sent as Accept-Language.
            navigate: Navigate to the redirect target after storing.

        Returns:
            LoginResult with the role and where the user should go next.

        Raises:
            TwoFactorRequiredError: The account needs a second-factor code.
            InvalidCredentialsError: Wrong email / password.
            ApiError: Any other rejection (e.g. code "account_disabled").
            TransportError: No usable response.
            ValueError: The server returned an unknown role.
        """
        headers = {"Accept-Language": language} if language else None
        body = {"email": email, "password": password, "remember": remember, "twofa_code": twofa_code}
        try:
            data = self._client.post(LOGIN_PATH, json=body, headers=headers)
        except ApiError as e:
            raise self._login_error(e) from e

        token = data.get("token") if isinstance(data, dict) else None
        user = data.get("user") if isinstance(data, dict) else None
        if not token or not isinstance(user, dict):
            raise TransportError("bad_response", reason="login response carried no token", path=LOGIN_PATH)

        session = self._session.set_credential(token, remember, user.get("role"))
        result = LoginResult(role=session.role, redirect_to=redirect_target(origin, session.role))
        logger.info("Login succeeded for role %s", session.role.value)
        if navigate:
            self._navigator.navigate(result.redirect_to, replace=True)
        return result

    @staticmethod
    def _login_error(error: ApiError) -> ApiError:
        common = {
            "status_code": error.status_code,
            "payload": error.payload,
            "path": error.path,
            "request_id": error.request_id,
        }
        if error.error_code == "twofa_required":
            return TwoFactorRequiredError(error.message, **common)
        if error.status_code == 401 or error.error_code == "invalid_credentials":
            return InvalidCredentialsError(error.message, **common)
        return error

    def logout(self, redirect_path: str = "/") -> None:
        """
        Revoke the token server-side, then clear the session and navigate.

        Server failures are logged; the local session is cleared regardless.
        """
        token = self._session.token
        if token:
            try:
                self._client.post(LOGOUT_PATH, token=token)
            except AdminClientError as e:
                logger.warning("Logout request failed (%s); clearing session anyway", e.error_code)
        self._session.clear()
        self._navigator.navigate(redirect_path, replace=True)


class AdminActions:
    """Admin write operations returning True on success, False on failure."""

    def __init__(self, client: ApiClient, session: SessionStore) -> None:
        self._client = client
        self._session = session

    def update_ticket_status(self, ticket_id: int, status: str) -> bool:
        return self._send("PUT", f"/api/tickets/admin/{ticket_id}/status", {"status": status})

    def refund_payment(self, payment_uuid: str, amount: float) -> bool:
        return self._send("POST", f"/api/payments/{payment_uuid}/refund", {"amount": amount})

    def _send(self, method: str, path: str, body: dict[str, Any]) -> bool:
        try:
            self._client.request(method, path, json=body, token=self._session.token)
        except AdminClientError as e:
            log_error("admin_action_failed", e, method=method, endpoint_path=path, error_code=e.error_code)
            return False
        return True
