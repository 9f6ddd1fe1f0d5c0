"""
HTTP transport for the admin API.

ApiClient owns one `requests.Session` with the FaultClassifier registered as
its response hook at construction. Two ways to call it:

- request(): returns decoded JSON, raises ApiError / TransportError
- fetch(): never raises for HTTP or transport failures; returns a tagged
  outcome (Ok | ValidationFailure | NotFound | TransportFailure) so list
  controllers do not depend on requests' error conventions
"""

from __future__ import annotations

import logging
import time
import uuid
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Union

import requests

from src.exceptions import (
    ApiError,
    NotFoundError,
    TransportError,
    ValidationError,
    error_for_status,
)
from src.faults import FaultClassifier
from src.logging_config import LogContextManager, log_performance

logger = logging.getLogger(__name__)


# =============================================================================
# Outcomes
# =============================================================================


@dataclass(frozen=True)
class Ok:
    data: Any
    status_code: int = 200


@dataclass(frozen=True)
class ValidationFailure:
    field_errors: dict[str, list[str]] = field(default_factory=dict)


@dataclass(frozen=True)
class NotFound:
    pass


@dataclass(frozen=True)
class TransportFailure:
    code: str
    status_code: Optional[int] = None


Outcome = Union[Ok, ValidationFailure, NotFound, TransportFailure]


# =============================================================================
# Client
# =============================================================================


def _transport_code(exc: requests.RequestException) -> str:
    if isinstance(exc, requests.Timeout):
        return "connection_aborted"
    if isinstance(exc, requests.ConnectionError):
        return "network_error"
    return "request_failed"


def _decode(response: requests.Response) -> Any:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


class ApiClient:
    """
    Thin wrapper over requests.Session bound to the API base url.

    Example:
        client = ApiClient("https://api.example.com", classifier)
        data = client.request("GET", "/api/tickets", params={"page": 1}, token=tok)
    """

    def __init__(
        self,
        base_url: str,
        classifier: Optional[FaultClassifier] = None,
        *,
        timeout: float = 10.0,
        session: Optional[requests.Session] = None,
        default_headers: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()
        self._session.headers.update({"Accept": "application/json"})
        if default_headers:
            self._session.headers.update(default_headers)
        self._classifier = classifier
        if classifier is not None:
            self._install(classifier)

    def _install(self, classifier: FaultClassifier) -> None:
        hooks = self._session.hooks.setdefault("response", [])
        if classifier not in hooks:
            hooks.append(classifier)

    @property
    def session(self) -> requests.Session:
        return self._session

    @property
    def classifier(self) -> Optional[FaultClassifier]:
        return self._classifier

    def url_for(self, path: str) -> str:
        if path.lower().startswith(("http://", "https://")):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        headers: Optional[Mapping[str, str]] = None,
        token: Optional[str] = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Args:
            method: HTTP method.
            path: API path (or absolute url).
            params: Query string parameters.
            json: JSON body for POST/PUT/PATCH.
            headers: Extra headers for this call.
            token: Bearer token; sent as Authorization when given.

        Returns:
            Decoded JSON, or None for an empty body.

        Raises:
            ApiError: For any non-2xx status (after the fault hook ran).
            TransportError: When no response was received or the body of a
                successful response is not JSON.
        """
        request_headers = dict(headers or {})
        if token:
            request_headers["Authorization"] = f"Bearer {token}"

        request_id = uuid.uuid4().hex[:12]
        started = time.perf_counter()
        with LogContextManager(request_id=request_id, endpoint=path):
            try:
                response = self._session.request(
                    method.upper(),
                    self.url_for(path),
                    params=params,
                    json=json,
                    headers=request_headers,
                    timeout=self.timeout,
                )
            except requests.RequestException as e:
                logger.warning("%s %s failed without a response: %s", method.upper(), path, e)
                raise TransportError(_transport_code(e), reason=str(e), path=path, request_id=request_id) from e

            log_performance(
                "api_request",
                (time.perf_counter() - started) * 1000,
                method=method.upper(),
                status_code=response.status_code,
            )

            if not response.ok:
                raise error_for_status(
                    response.status_code,
                    _decode(response),
                    path=path,
                    request_id=request_id,
                )

            if response.content:
                try:
                    return response.json()
                except ValueError as e:
                    raise TransportError("bad_response", reason=str(e), path=path, request_id=request_id) from e
            return None

    def get(self, path: str, **kwargs: Any) -> Any:
        return self.request("GET", path, **kwargs)

    def post(self, path: str, **kwargs: Any) -> Any:
        return self.request("POST", path, **kwargs)

    def put(self, path: str, **kwargs: Any) -> Any:
        return self.request("PUT", path, **kwargs)

    def patch(self, path: str, **kwargs: Any) -> Any:
        return self.request("PATCH", path, **kwargs)

    def fetch(self, method: str, path: str, **kwargs: Any) -> Outcome:
        """
        Like request(), but returns an Outcome instead of raising.

        401/403 side effects still happen in the hook before this returns.
        """
        try:
            return Ok(self.request(method, path, **kwargs))
        except ValidationError as e:
            return ValidationFailure(e.field_errors)
        except NotFoundError:
            return NotFound()
        except ApiError as e:
            return TransportFailure(e.transport_code, e.status_code)
        except TransportError as e:
            return TransportFailure(e.transport_code)

    def close(self) -> None:
        self._session.close()
