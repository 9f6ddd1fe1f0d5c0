"""
Streamlit admin UI.

Minimal views over AdminClient: login, the admin list pages, logout.
"""

from __future__ import annotations

import logging
from dataclasses import fields

import streamlit as st

from src.app import AdminClient
from src.exceptions import AdminClientError, InvalidCredentialsError, TwoFactorRequiredError
from src.guard import home_path_for_role
from src.pages import ResourceListPage
from src.session import Role
from src.ui.session import SessionStateStorage, StreamlitNavigator, require_access

logger = logging.getLogger(__name__)

ADMIN_LISTS = {
    "Tickets": "admin_tickets",
    "Payments": "payments",
    "Users": "users",
    "Employees": "employees",
    "Sales report": "sales_reports",
    "Products": "products",
}

_PAGING_FIELDS = {"page", "per_page"}


def get_client() -> AdminClient:
    if "_admin_client" not in st.session_state:
        navigator = StreamlitNavigator(query_params=st.query_params)
        st.session_state["_admin_client"] = AdminClient(
            ephemeral=SessionStateStorage(),
            navigator=navigator,
            setup_logging=True,
        )
    return st.session_state["_admin_client"]


def get_list_page(client: AdminClient, resource: str) -> ResourceListPage:
    key = f"_list_{resource}"
    if key not in st.session_state:
        st.session_state[key] = client.list_page(resource)
    return st.session_state[key]


def render_login(client: AdminClient) -> None:
    st.title("Sign in")
    with st.form("login"):
        email = st.text_input("Email")
        password = st.text_input("Password", type="password")
        twofa_code = st.text_input("2FA code") if st.session_state.get("_needs_twofa") else ""
        remember = st.checkbox("Remember me")
        submitted = st.form_submit_button("Sign in")

    if not submitted:
        return
    navigator = client.navigator
    origin = navigator.current_state if isinstance(navigator, StreamlitNavigator) else None
    try:
        client.auth.login(email, password, remember, twofa_code, origin=origin)
        st.session_state.pop("_needs_twofa", None)
    except TwoFactorRequiredError:
        st.session_state["_needs_twofa"] = True
        st.info("Enter the code from your authenticator app.")
    except InvalidCredentialsError:
        st.error("Invalid email or password.")
    except AdminClientError as e:
        st.error(f"Login failed ({e.error_code}).")


def _display(value) -> str:
    return "" if value is None else str(value)


def render_filters(page: ResourceListPage) -> None:
    current = page.filters.value
    editable = [f for f in fields(current) if f.name not in _PAGING_FIELDS]
    with st.form(f"filters_{page.resource.name}"):
        columns = st.columns(4)
        entered = {
            f.name: columns[i % 4].text_input(f.name, value=_display(getattr(current, f.name)))
            for i, f in enumerate(editable)
        }
        submitted = st.form_submit_button("Apply")
    if not submitted:
        return
    defaults = current.defaults()
    changes = {
        name: _coerce(text, defaults[name])
        for name, text in entered.items()
        if text != _display(getattr(current, name))
    }
    if changes:
        page.apply_filters(**changes)


def _coerce(entered: str, default):
    if isinstance(default, int) or default is None:
        try:
            return int(entered) if entered else default
        except ValueError:
            return entered
    return entered


def render_list(page: ResourceListPage) -> None:
    render_filters(page)
    result = page.result
    if result.error:
        st.error(f"Could not load data ({result.error}).")
        if st.button("Retry"):
            page.retry()
        return
    st.caption(f"{result.total} results")
    st.dataframe([item.model_dump() for item in result.items], use_container_width=True)

    pages = page.page_count
    selected = st.number_input("Page", min_value=1, max_value=pages, value=min(page.filters.value.page, pages))
    if selected != page.filters.value.page:
        page.set_page(int(selected))


def render_admin(client: AdminClient) -> None:
    if not require_access(client.guard, client.navigator, Role.ADMIN):
        return
    with st.sidebar:
        label = st.radio("View", list(ADMIN_LISTS))
        if st.button("Log out"):
            for key in [k for k in st.session_state if str(k).startswith("_list_")]:
                st.session_state[key].close()
                del st.session_state[key]
            client.auth.logout()
            return
    st.title(label)
    render_list(get_list_page(client, ADMIN_LISTS[label]))


def main() -> None:
    st.set_page_config(page_title="Ticketing admin", layout="wide")
    client = get_client()
    settings = client.settings
    path = client.navigator.current_path

    if path == settings.login_path:
        render_login(client)
    elif path == settings.unauthorized_path:
        st.error("You are not allowed to view this page.")
    elif path.startswith("/admin"):
        render_admin(client)
    elif client.session.token:
        home = home_path_for_role(client.session.role)
        if path != home:
            client.navigator.navigate(home, replace=True)
        else:
            st.info("Only the admin views are available here.")
    else:
        client.navigator.navigate(settings.login_path, replace=True)

    if client.navigator.current_path != path:
        st.rerun()
