"""
Session state helpers for the Streamlit UI.

Adapters that let the core run on top of `st.session_state`:

- SessionStateStorage: the ephemeral storage tier
- StreamlitNavigator: the navigation primitive
- require_access: applies an AccessGuard decision

All of them accept any MutableMapping in place of `st.session_state`, so
they work outside a running Streamlit script.
"""

from __future__ import annotations

from collections.abc import Callable, MutableMapping
from typing import Any, Optional

import streamlit as st

from src.guard import AccessGuard, Redirect
from src.navigation import Navigator
from src.session import Role

KEY_PREFIX = "_admin_"
NAV_PATH_KEY = "_nav_path"
NAV_STATE_KEY = "_nav_state"


def _state(state: Optional[MutableMapping[str, Any]]) -> MutableMapping[str, Any]:
    return st.session_state if state is None else state


class SessionStateStorage:
    """Ephemeral storage tier: lives as long as the browser session."""

    def __init__(self, state: Optional[MutableMapping[str, Any]] = None, *, prefix: str = KEY_PREFIX) -> None:
        self._state = _state(state)
        self._prefix = prefix

    def get(self, key: str) -> Optional[str]:
        value = self._state.get(self._prefix + key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        self._state[self._prefix + key] = value

    def remove(self, key: str) -> None:
        self._state.pop(self._prefix + key, None)


class StreamlitNavigator:
    """
    Navigator keeping the current path in session state.

    When query_params is given (normally `st.query_params`) the path is
    mirrored to its "path" entry so a reload lands on the same view.
    rerun, when given, is called after every navigation.
    """

    def __init__(
        self,
        state: Optional[MutableMapping[str, Any]] = None,
        *,
        query_params: Optional[MutableMapping[str, Any]] = None,
        rerun: Optional[Callable[[], Any]] = None,
        default_path: str = "/",
    ) -> None:
        self._state = _state(state)
        self._query_params = query_params
        self._rerun = rerun
        if NAV_PATH_KEY not in self._state:
            initial = query_params.get("path") if query_params is not None else None
            self._state[NAV_PATH_KEY] = initial or default_path

    @property
    def current_path(self) -> str:
        return self._state[NAV_PATH_KEY]

    @property
    def current_state(self) -> Optional[dict[str, Any]]:
        return self._state.get(NAV_STATE_KEY)

    def navigate(self, path: str, *, replace: bool = False, state: Optional[dict[str, Any]] = None) -> None:
        self._state[NAV_PATH_KEY] = path
        self._state[NAV_STATE_KEY] = state
        if self._query_params is not None:
            self._query_params["path"] = path
        if self._rerun is not None:
            self._rerun()


def require_access(
    guard: AccessGuard,
    navigator: Navigator,
    required_role: Optional[Role | str] = None,
    *,
    location: Optional[str] = None,
) -> bool:
    """
    Gate a Streamlit view.

    Returns True if the view may render. Otherwise issues the redirect
    through the navigator and returns False; the caller should stop
    rendering (e.g. `if not require_access(...): st.stop()`).
    """
    decision = guard.decide(required_role, location=location or navigator.current_path)
    if isinstance(decision, Redirect):
        navigator.navigate(decision.path, replace=decision.replace, state=decision.state)
        return False
    return True
