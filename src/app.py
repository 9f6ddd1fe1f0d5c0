"""
Ticketing admin client bootstrap.

AdminClient wires settings, storage tiers, session, navigation, the fault
classifier and the API client together. Each browser session (or script)
builds one.

Streamlit entrypoint:
  streamlit run src/app.py
"""

from __future__ import annotations

import logging
import sys
from concurrent.futures import Executor
from pathlib import Path
from typing import Any, Optional, Union

import requests


def _ensure_repo_root_on_path() -> None:
    # `streamlit run src/app.py` sets sys.path[0] == "src", which breaks `import src.*`.
    repo_root = Path(__file__).resolve().parents[1]
    repo_root_s = str(repo_root)
    if repo_root_s not in sys.path:
        sys.path.insert(0, repo_root_s)


_ensure_repo_root_on_path()

from src.config import Settings, get_settings  # noqa: E402
from src.exceptions import StorageError  # noqa: E402
from src.faults import FaultClassifier  # noqa: E402
from src.guard import AccessGuard  # noqa: E402
from src.logging_config import configure_logging  # noqa: E402
from src.navigation import MemoryNavigator, Navigator  # noqa: E402
from src.pages import ResourceListPage  # noqa: E402
from src.resources import ResourceSpec, get_resource  # noqa: E402
from src.services import AdminActions, AuthService  # noqa: E402
from src.session import SessionStore  # noqa: E402
from src.storage import MemoryStorage, SQLiteStorage, StorageTier  # noqa: E402
from src.transport import ApiClient  # noqa: E402

logger = logging.getLogger(__name__)


def open_durable_storage(path: Path) -> StorageTier:
    """SQLite durable tier, or an in-memory one when the file cannot be opened."""
    try:
        return SQLiteStorage(path)
    except StorageError as e:
        e.log(logging.WARNING)
        return MemoryStorage()


class AdminClient:
    """
    Everything a front end needs, built from one Settings object.

    Example:
        client = AdminClient()
        client.auth.login("admin@example.com", "secret", remember=True)
        tickets = client.list_page("admin_tickets", status="issued")
        tickets.result.items
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        *,
        ephemeral: Optional[StorageTier] = None,
        durable: Optional[StorageTier] = None,
        navigator: Optional[Navigator] = None,
        http_session: Optional[requests.Session] = None,
        executor: Optional[Executor] = None,
        setup_logging: bool = False,
    ) -> None:
        self.settings = settings or get_settings()
        if setup_logging:
            configure_logging(log_format="console" if self.settings.debug_mode else None)

        if durable is None:
            durable = open_durable_storage(self.settings.session_db_path)
        self.session = SessionStore(ephemeral if ephemeral is not None else MemoryStorage(), durable)
        self.navigator: Navigator = navigator if navigator is not None else MemoryNavigator()

        self.classifier = FaultClassifier(
            self.session,
            self.navigator,
            public_paths=self.settings.public_paths,
            login_path=self.settings.login_path,
            unauthorized_path=self.settings.unauthorized_path,
        )
        self.api = ApiClient(
            self.settings.api_base_url,
            self.classifier,
            timeout=self.settings.request_timeout_seconds,
            session=http_session,
        )
        self.guard = AccessGuard(
            self.session,
            login_path=self.settings.login_path,
            unauthorized_path=self.settings.unauthorized_path,
        )
        self.auth = AuthService(self.api, self.session, self.navigator)
        self.actions = AdminActions(self.api, self.session)
        self._executor = executor

    def list_page(
        self,
        resource: Union[str, ResourceSpec[Any]],
        *,
        language: Optional[str] = None,
        autoload: bool = True,
        **initial: Any,
    ) -> ResourceListPage:
        """
        Build a list page for a registered resource.

        Keyword arguments beyond the named ones are initial filter values.
        """
        spec = get_resource(resource) if isinstance(resource, str) else resource
        if self.settings.default_per_page is not None:
            initial.setdefault("per_page", self.settings.default_per_page)
        return ResourceListPage(
            self.api,
            spec,
            lambda: self.session.token,
            initial=spec.default_filters(**initial),
            language=language or self.settings.default_language,
            executor=self._executor,
            max_per_page=self.settings.max_per_page,
            autoload=autoload,
        )

    def close(self) -> None:
        self.api.close()


if __name__ == "__main__":
    from src.ui.app import main

    main()
