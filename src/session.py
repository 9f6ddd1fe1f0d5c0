"""
Session state: who is logged in, with which role, and where it is persisted.

The credential lives in exactly one of two tiers: the ephemeral tier (gone
when the browser session ends) or the durable tier ("remember me"). The
SessionStore is the only writer of the token/role keys in either tier.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from src.logging_config import LogContext, log_event
from src.storage import FailSafeStorage, StorageTier

logger = logging.getLogger(__name__)

TOKEN_KEY = "auth_token"
ROLE_KEY = "auth_role"


class Role(str, Enum):
    USER = "user"
    ADMIN = "admin"
    EMPLOYEE = "employee"

    @classmethod
    def parse(cls, value: object) -> Optional[Role]:
        """Return the matching Role, or None for anything unknown."""
        if isinstance(value, Role):
            return value
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class Session:
    token: Optional[str] = None
    role: Optional[Role] = None
    remember: bool = False

    @property
    def authenticated(self) -> bool:
        return bool(self.token)


SessionListener = Callable[[Session], None]


class SessionStore:
    """
    Single source of truth for the current credential.

    State is hydrated once at construction: ephemeral tier first, durable
    tier second. `remember` is true iff the token came from the durable tier.

    Both tiers are wrapped in FailSafeStorage, so a disabled or broken
    backend never aborts hydration or a mutation.
    """

    def __init__(self, ephemeral: StorageTier, durable: StorageTier) -> None:
        self._ephemeral = ephemeral if isinstance(ephemeral, FailSafeStorage) else FailSafeStorage(ephemeral, name="ephemeral")
        self._durable = durable if isinstance(durable, FailSafeStorage) else FailSafeStorage(durable, name="durable")
        self._lock = threading.RLock()
        self._listeners: list[SessionListener] = []
        self._session = self._hydrate()

    def _hydrate(self) -> Session:
        token = self._ephemeral.get(TOKEN_KEY)
        from_durable = False
        if token is None:
            token = self._durable.get(TOKEN_KEY)
            from_durable = token is not None

        role_raw = self._ephemeral.get(ROLE_KEY)
        if role_raw is None:
            role_raw = self._durable.get(ROLE_KEY)

        if token is None:
            return Session()

        role = Role.parse(role_raw)
        if role_raw is not None and role is None:
            logger.warning("Ignoring unknown stored role %r", role_raw)

        session = Session(token=token, role=role, remember=from_durable)
        log_event("session_hydrated", role=role.value if role else None, remember=from_durable)
        return session

    # ------------------------------------------------------------------
    # Read accessors
    # ------------------------------------------------------------------

    @property
    def session(self) -> Session:
        return self._session

    @property
    def token(self) -> Optional[str]:
        return self._session.token

    @property
    def role(self) -> Optional[Role]:
        return self._session.role

    @property
    def remember(self) -> bool:
        return self._session.remember

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def set_credential(self, token: str, remember: bool, role: Role | str) -> Session:
        """
        Store a new credential in exactly one tier.

        Args:
            token: Bearer token issued at login.
            remember: Durable tier if True, ephemeral tier otherwise.
            role: Role attached to the token.

        Returns:
            The new session snapshot.

        Raises:
            ValueError: If token is empty or role is unknown.
        """
        if not token:
            raise ValueError("token must be a non-empty string")
        parsed_role = Role.parse(role)
        if parsed_role is None:
            raise ValueError(f"unknown role: {role!r}")

        target, stale = (self._durable, self._ephemeral) if remember else (self._ephemeral, self._durable)
        with self._lock:
            self._session = Session(token=token, role=parsed_role, remember=bool(remember))
            target.set(TOKEN_KEY, token)
            target.set(ROLE_KEY, parsed_role.value)
            stale.remove(TOKEN_KEY)
            stale.remove(ROLE_KEY)
            session = self._session

        LogContext.set_role(parsed_role.value)
        log_event("session_stored", role=parsed_role.value, remember=bool(remember))
        self._notify(session)
        return session

    def clear(self) -> None:
        """Drop the credential from memory and from both tiers. Idempotent."""
        with self._lock:
            had_token = self._session.token is not None
            self._session = Session()
            for tier in (self._ephemeral, self._durable):
                tier.remove(TOKEN_KEY)
                tier.remove(ROLE_KEY)
            session = self._session

        LogContext.set_role(None)
        if had_token:
            log_event("session_cleared")
        self._notify(session)

    # ------------------------------------------------------------------
    # Subscriptions
    # ------------------------------------------------------------------

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener called with the new Session after each mutation."""
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def _notify(self, session: Session) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            listener(session)
