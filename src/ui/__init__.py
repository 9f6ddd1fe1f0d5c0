"""
Streamlit UI package.

Adapters from the session, navigation and guard core to Streamlit's
session state; the pages themselves live in src.ui.app.
"""

from __future__ import annotations
