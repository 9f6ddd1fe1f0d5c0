"""
Global HTTP fault classifier.

A FaultClassifier is installed once as a `requests` response hook on the
API client's session. It sees every response before the caller does:

- 401 on a non-public path clears the session and sends the user to login
- 403 sends the user to the unauthorized page, session untouched
- anything else passes through

The hook never swallows the failure; the client still raises for the
status after the hook ran.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any, Optional
from urllib.parse import urljoin, urlsplit

import requests

from src.config import PUBLIC_PATHS
from src.logging_config import log_event
from src.navigation import Navigator
from src.session import SessionStore

logger = logging.getLogger(__name__)

_ABSOLUTE_URL = re.compile(r"^https?://", re.IGNORECASE)


@dataclass(frozen=True)
class RequestConfig:
    """The parts of an outgoing request needed to classify its failure."""

    url: Optional[str] = None
    base_url: Optional[str] = None

    @classmethod
    def from_response(cls, response: requests.Response) -> RequestConfig:
        request = response.request
        url = getattr(request, "url", None) if request is not None else None
        return cls(url=url or response.url or None)


def _strip_query(url: str) -> str:
    return url.split("?", 1)[0]


def resolve_request_path(config: RequestConfig) -> str:
    """
    Derive the request path from a url and optional base url.

    Absolute http(s) urls are parsed directly; relative ones are resolved
    against base_url when there is one; otherwise the url is taken as a path
    and cut at the first "?". A url that fails to parse falls back to that
    same cut.
    """
    url = config.url or ""
    try:
        if _ABSOLUTE_URL.match(url):
            return urlsplit(url).path
        if config.base_url:
            return urlsplit(urljoin(config.base_url, url)).path
    except ValueError:
        return _strip_query(url)
    return _strip_query(url)


def is_public_path(path: str, public_paths: Sequence[str] = PUBLIC_PATHS) -> bool:
    return any(path.startswith(prefix) for prefix in public_paths)


class FaultClassifier:
    """
    Response hook enforcing session and authorization invariants.

    Usable directly as a `requests` hook: `session.hooks["response"]`
    calls it with each response.
    """

    def __init__(
        self,
        session: SessionStore,
        navigator: Navigator,
        *,
        public_paths: Sequence[str] = PUBLIC_PATHS,
        login_path: str = "/login",
        unauthorized_path: str = "/unauthorized",
    ) -> None:
        self._session = session
        self._navigator = navigator
        self._public_paths = tuple(public_paths)
        self._login_path = login_path
        self._unauthorized_path = unauthorized_path

    @property
    def public_paths(self) -> tuple[str, ...]:
        return self._public_paths

    def __call__(self, response: requests.Response, *args: Any, **kwargs: Any) -> None:
        self.classify(response.status_code, RequestConfig.from_response(response))

    def classify(self, status_code: Optional[int], config: RequestConfig) -> None:
        """
        Apply the side effects for one response status.

        A status of None stands for "no response" and does nothing.
        """
        if status_code == 401:
            self._handle_unauthenticated(config)
        elif status_code == 403:
            self._handle_forbidden(config)

    def _handle_unauthenticated(self, config: RequestConfig) -> None:
        path = resolve_request_path(config)
        if is_public_path(path, self._public_paths):
            logger.debug("401 on public path %s left to the caller", path)
            return

        self._session.clear()
        redirected = self._navigator.current_path != self._login_path
        if redirected:
            self._navigator.navigate(self._login_path, replace=True)
        log_event("session_expired_redirect", endpoint_path=path, redirected=redirected)

    def _handle_forbidden(self, config: RequestConfig) -> None:
        redirected = self._navigator.current_path != self._unauthorized_path
        if redirected:
            self._navigator.navigate(self._unauthorized_path, replace=True)
        log_event("forbidden_redirect", endpoint_path=resolve_request_path(config), redirected=redirected)
