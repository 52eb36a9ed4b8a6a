"""
Streamlit chat front-end for the Dota Build Advisor.

Overview
--------
Simulate the chat bot in a browser: the current reply is rendered as HTML
(tables come as ``<pre>`` blocks) and its inline keyboard as rows of buttons.
Clicking a button sends the button's callback data to
:class:`~dota_advisor.ui.menus.ChatFlow`, exactly like a chat transport would.

Design
------
- UI glue only; menus, formatting and aggregation live in their own modules.
- The advisor (catalog + upstream client + cache) is built once per process
  with ``st.cache_resource``; each browser session gets its own chat state.
- Startup failures (missing token, constants unavailable) are shown and
  logged, and the page stops.

Integration
-----------
Run with:
    streamlit run src/dota_advisor/ui/app.py
Settings come from the environment / ``.env`` and, optionally, the YAML file
named by ``DOTA_ADVISOR_SETTINGS``.
"""

from __future__ import annotations

import os
from typing import Final, Optional

import streamlit as st

from dota_advisor import package_info
from dota_advisor.core.exceptions import AdvisorError
from dota_advisor.infra.config import load_settings
from dota_advisor.infra.logging import generate_thread_id, logger_for, setup_logging
from dota_advisor.services.advisor import AdvisorService, create_advisor
from dota_advisor.ui import texts
from dota_advisor.ui.menus import ChatFlow, Reply

SETTINGS_ENV: Final[str] = "DOTA_ADVISOR_SETTINGS"
SESSION_FLOW: Final[str] = "chat_flow"
SESSION_REPLY: Final[str] = "chat_reply"
SESSION_CHAT_ID: Final[str] = "chat_id"


@st.cache_resource(show_spinner="Loading game constants...")
def _load_advisor(settings_path: Optional[str]) -> AdvisorService:
    """Build the shared advisor once per process (errors are not cached)."""

    settings = load_settings(settings_path)
    setup_logging(settings.log_level, json=settings.log_json)
    return create_advisor(settings)


def _render_reply(reply: Reply, flow: ChatFlow, chat_id: str) -> None:
    if reply.alert:
        st.warning(reply.alert)
    st.markdown(reply.text.replace("\n", "  \n"), unsafe_allow_html=True)

    for r, row in enumerate(reply.keyboard):
        cols = st.columns(len(row))
        for c, button in enumerate(row):
            with cols[c]:
                if st.button(button.label, key=f"btn::{r}::{c}::{button.data}", use_container_width=True):
                    st.session_state[SESSION_REPLY] = flow.handle(chat_id, button.data)
                    st.rerun()


def run() -> None:
    """Run the Streamlit UI application."""

    setup_logging()
    log = logger_for(component="ui.app", event="start")

    st.set_page_config(page_title=texts.APP_TITLE, layout="centered")
    st.title(texts.APP_TITLE)

    try:
        advisor = _load_advisor(os.environ.get(SETTINGS_ENV))
    except AdvisorError as exc:
        st.error(f"Advisor unavailable: {exc}")
        log.error("Advisor startup failure (UI)", error=str(exc))
        return

    if SESSION_FLOW not in st.session_state:
        st.session_state[SESSION_FLOW] = ChatFlow(advisor)
        st.session_state[SESSION_CHAT_ID] = generate_thread_id()
    flow: ChatFlow = st.session_state[SESSION_FLOW]
    chat_id: str = st.session_state[SESSION_CHAT_ID]
    if SESSION_REPLY not in st.session_state:
        st.session_state[SESSION_REPLY] = flow.handle(chat_id, "start")

    _render_reply(st.session_state[SESSION_REPLY], flow, chat_id)

    info = package_info()
    st.caption(f"{info['name']} {info['version']} · data: {info['upstream']} · patch {advisor.patch_id}")


# Run immediately when executed by Streamlit
run()
