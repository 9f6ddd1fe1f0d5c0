"""
Access guard for protected views.

check_access is a pure function of (token, role, required_role); it never
navigates by itself. Callers act on the returned Redirect (see
src.ui.session.require_access for the Streamlit side).
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any, Optional, TypeVar, Union

from src.session import Role, SessionStore

T = TypeVar("T")

DEFAULT_LOGIN_PATH = "/login"
DEFAULT_UNAUTHORIZED_PATH = "/unauthorized"

ROLE_HOME_PATHS: dict[Role, str] = {
    Role.ADMIN: "/admin/dashboard",
    Role.EMPLOYEE: "/employee/dashboard",
    Role.USER: "/user/dashboard",
}


@dataclass(frozen=True)
class Redirect:
    """Instruction to send the user elsewhere instead of rendering."""

    path: str
    replace: bool = True
    state: Optional[dict[str, Any]] = field(default=None, compare=False)


@dataclass(frozen=True)
class Allow:
    """The guarded content may render."""


ALLOW = Allow()

AccessDecision = Union[Allow, Redirect]


def check_access(
    token: Optional[str],
    role: Optional[Role | str],
    required_role: Optional[Role | str] = None,
    *,
    login_path: str = DEFAULT_LOGIN_PATH,
    unauthorized_path: str = DEFAULT_UNAUTHORIZED_PATH,
    location: Optional[str] = None,
) -> AccessDecision:
    """
    Decide whether a protected view may render.

    Args:
        token: Current bearer token, or None.
        role: Current role, or None.
        required_role: Role the view demands; None means any signed-in user.
        login_path: Where unauthenticated users are sent.
        unauthorized_path: Where users with the wrong role are sent.
        location: Path being guarded, carried to the login page so it can
            send the user back afterwards.

    Returns:
        ALLOW, or a Redirect.

    Raises:
        ValueError: required_role is not a known role.
    """
    required = None
    if required_role is not None:
        required = Role.parse(required_role)
        if required is None:
            raise ValueError(f"Unknown required role: {required_role!r}")
    if not token:
        return Redirect(login_path, replace=True, state={"from": location} if location else None)
    if required is not None and Role.parse(role) is not required:
        return Redirect(unauthorized_path, replace=True)
    return ALLOW


def home_path_for_role(role: Optional[Role | str]) -> str:
    """Landing page after login; users without a known role go to the user dashboard."""
    return ROLE_HOME_PATHS.get(Role.parse(role), ROLE_HOME_PATHS[Role.USER])


def redirect_target(state: Optional[dict[str, Any]], role: Optional[Role | str]) -> str:
    """Where to go after login: the guarded origin if one was carried, else the role's home."""
    if state and isinstance(state.get("from"), str) and state["from"]:
        return state["from"]
    return home_path_for_role(role)


class AccessGuard:
    """AccessGuard bound to a SessionStore."""

    def __init__(
        self,
        session: SessionStore,
        *,
        login_path: str = DEFAULT_LOGIN_PATH,
        unauthorized_path: str = DEFAULT_UNAUTHORIZED_PATH,
    ) -> None:
        self._session = session
        self._login_path = login_path
        self._unauthorized_path = unauthorized_path

    def decide(
        self,
        required_role: Optional[Role | str] = None,
        *,
        location: Optional[str] = None,
        login_path: Optional[str] = None,
        unauthorized_path: Optional[str] = None,
    ) -> AccessDecision:
        return check_access(
            self._session.token,
            self._session.role,
            required_role,
            login_path=login_path or self._login_path,
            unauthorized_path=unauthorized_path or self._unauthorized_path,
            location=location,
        )

    def render(
        self,
        content: Callable[[], T],
        required_role: Optional[Role | str] = None,
        *,
        location: Optional[str] = None,
        login_path: Optional[str] = None,
        unauthorized_path: Optional[str] = None,
    ) -> Union[T, Redirect]:
        """Return content() when allowed, otherwise the Redirect. content is not called on redirect."""
        decision = self.decide(
            required_role,
            location=location,
            login_path=login_path,
            unauthorized_path=unauthorized_path,
        )
        if isinstance(decision, Redirect):
            return decision
        return content()
