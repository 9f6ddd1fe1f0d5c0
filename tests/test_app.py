"""
Tests for src.app module (AdminClient wiring).
"""

import os
from pathlib import Path
from unittest import mock

import pytest


@pytest.fixture
def settings(tmp_path: Path):
    from src.config import Settings

    env = {
        "ADMIN_API_BASE_URL": "http://api.test",
        "ADMIN_SESSION_DB_PATH": str(tmp_path / "session.db"),
        "ADMIN_MAX_PER_PAGE": "50",
    }
    with mock.patch.dict(os.environ, env, clear=True):
        return Settings()


@pytest.fixture
def client(settings, http_session):
    from src.app import AdminClient

    client = AdminClient(settings, http_session=http_session)
    yield client
    client.close()


class TestAdminClient:
    def test_remembered_login_survives_restart(self, settings, http_session, adapter):
        from src.app import AdminClient

        adapter.add(200, {"token": "tok-1", "user": {"role": "admin"}})
        first = AdminClient(settings, http_session=http_session)
        first.auth.login("a@example.com", "pw", remember=True)

        second = AdminClient(settings, http_session=http_session)

        assert second.session.token == "tok-1"
        assert second.session.remember is True

    def test_list_page_uses_settings(self, client, adapter):
        client.session.set_credential("tok", False, "admin")
        adapter.add(200, {"data": {"users": []}, "meta": {"total": 0}})

        page = client.list_page("employees", per_page=500, lastname="Doe")

        request = adapter.last_request
        assert request.url.startswith("http://api.test/api/users?")
        assert "per_page=50" in request.url
        assert "role=employee" in request.url
        assert "lastname=Doe" in request.url
        assert page.filters.value.per_page == 500

    def test_default_per_page_override(self, settings, http_session, adapter):
        from src.app import AdminClient

        settings.default_per_page = 30
        client = AdminClient(settings, http_session=http_session)

        page = client.list_page("sales_reports", autoload=False)

        assert page.filters.value.per_page == 30

    def test_localized_list_sends_language(self, client, adapter):
        adapter.add(200, {"data": [], "meta": {"total": 0}})

        client.list_page("sales_reports", language="de")

        assert adapter.last_request.headers["Accept-Language"] == "de"

    def test_hook_wired_to_session_and_navigator(self, client, adapter):
        client.session.set_credential("tok", False, "admin")
        adapter.add(401)

        page = client.list_page("payments")

        assert client.session.token is None
        assert client.navigator.current_path == "/login"
        assert page.result.error == "bad_request"

    def test_unopenable_durable_storage_falls_back_to_memory(self, tmp_path: Path):
        from src.app import open_durable_storage
        from src.storage import MemoryStorage

        blocker = tmp_path / "file"
        blocker.write_text("x", encoding="utf-8")

        assert isinstance(open_durable_storage(blocker / "session.db"), MemoryStorage)
