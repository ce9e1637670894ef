#!/usr/bin/env python3
# streamlit_app.py: Chatpane browser host (sidebar, transcript, composer)

from __future__ import annotations

import asyncio
import base64
import html
from typing import Optional, Sequence

import streamlit as st
import streamlit.components.v1 as components
from loguru import logger

# --- Logging (existing helper) ---
import logging_setup

logging_setup.configure_logging()

from adapters.openai_compat import OpenAICompatAdapter
from attachments import Blob
from clipboard import copy_button_html, copy_payloads
from config_home import MODELS_JSON_PATH, STORAGE_QUOTA_BYTES, STORE_DB_PATH, load_env
from controller import ChatController
from conversation_store import ConversationStore
from conversations import Conversation, Sender
from models import ModelRegistry
from preferences import Preferences
from rendering.decorate import pygments_css
from storage import SQLiteStorage
from surface import NullMessageView, replay

# --- App constants ---
APP_TITLE = "Chatpane"
IMAGE_TYPES = ["png", "jpg", "jpeg", "gif", "webp"]

load_env()


def _data_uri_bytes(uri: str) -> bytes:
    return base64.b64decode(uri.split(",", 1)[1]) if "," in uri else b""


# -------------------------- Surface --------------------------

class StreamlitMessageView:
    def __init__(self, sender: Sender):
        box = st.chat_message("user" if sender is Sender.USER else "assistant")
        self._body = box.empty()
        self._images = box.empty()
        self._copies = box.empty()
        self._payloads: list = []

    def show_typing(self) -> None:
        self._body.html('<span class="dots"><span>.</span><span>.</span><span>.</span></span>')

    def set_text(self, text: str) -> None:
        self._body.html(f'<div class="user-text">{html.escape(text)}</div>')

    def set_html(self, markup: str) -> None:
        self._body.html(f'<div class="bot-html">{markup}</div>')
        payloads = copy_payloads(markup)
        if payloads != self._payloads:
            self._payloads = payloads
            with self._copies.container():
                cols = st.columns(max(1, len(payloads))) if payloads else []
                for i, (col, (kind, text)) in enumerate(zip(cols, payloads)):
                    with col:
                        components.html(copy_button_html(text, f"copy-{id(self)}-{i}", f"Copy {kind}"), height=40)

    def set_images(self, images: Sequence[str]) -> None:
        self._images.image([_data_uri_bytes(u) for u in images], width=160)


class StreamlitSurface:
    def __init__(self):
        self._transcript = st.container()
        self._list_note = st.sidebar.empty()

    def clear(self) -> None:
        # each script run starts from an empty page; nothing drawn yet needs removing
        pass

    def add_message(self, sender: Sender) -> StreamlitMessageView:
        with self._transcript:
            return StreamlitMessageView(sender)

    def render_conversation_list(self, conversations: Sequence[Conversation], current_id: Optional[str]) -> None:
        # the radio itself is drawn once per run; a change here means the next run must redraw it
        st.session_state["list_stale"] = True
        self._list_note.caption(f"{len(conversations)} conversation(s)")

    def set_send_enabled(self, enabled: bool) -> None:
        st.session_state["send_enabled"] = enabled


class _DetachedSurface:
    """Used between runs: widget callbacks fire before the page is rebuilt."""

    def clear(self) -> None:
        pass

    def add_message(self, sender: Sender) -> NullMessageView:
        return NullMessageView()

    def render_conversation_list(self, conversations, current_id) -> None:
        st.session_state["list_stale"] = True

    def set_send_enabled(self, enabled: bool) -> None:
        st.session_state["send_enabled"] = enabled


# -------------------------- App state --------------------------

def _controller() -> ChatController:
    if "controller" not in st.session_state:
        registry = ModelRegistry(str(MODELS_JSON_PATH))
        storage = SQLiteStorage(STORE_DB_PATH, quota_bytes=STORAGE_QUOTA_BYTES)
        prefs = Preferences(storage, registry)
        store = ConversationStore(storage, model_provider=lambda: prefs.model)
        ctl = ChatController(store, OpenAICompatAdapter(registry), prefs)
        ctl.start()
        ctl.attach_surface(_DetachedSurface())
        st.session_state["controller"] = ctl
        st.session_state["registry"] = registry
        st.session_state["uploader_gen"] = 0
        logger.info("Chatpane session started with {} conversation(s)", len(store))
    return st.session_state["controller"]


def _reset_uploader() -> None:
    st.session_state["uploader_gen"] = st.session_state.get("uploader_gen", 0) + 1


def _on_pick_conversation() -> None:
    ctl: ChatController = st.session_state["controller"]
    picked = st.session_state.get("conversation_radio")
    if picked and picked != ctl.store.current_id:
        ctl.switch_to(picked)
        _reset_uploader()


def _on_new_chat() -> None:
    st.session_state["controller"].new_conversation()
    _reset_uploader()


def _on_delete_chat(conversation_id: str) -> None:
    st.session_state["controller"].delete(conversation_id)
    _reset_uploader()


def _on_model_change() -> None:
    st.session_state["controller"].select_model(st.session_state["model_select"])


def _on_theme_change() -> None:
    st.session_state["controller"].preferences.theme = "dark" if st.session_state["dark_theme"] else "light"


def _inject_css(theme: str) -> None:
    dark = """
        .stApp { background:#0f172a; color:#e2e8f0; }
        .bot-html, .user-text { color:#e2e8f0; }
    """ if theme == "dark" else ""
    st.html(
        f"""<style>
        .user-text {{ white-space:pre-wrap; }}
        .bot-html pre {{ position:relative; padding:.75rem; border-radius:8px; background:#f6f8fa; overflow-x:auto; }}
        .bot-html .copy-button, .bot-html .table-copy-button {{ display:none; }}
        .bot-html .table-wrapper {{ overflow-x:auto; max-width:100%; }}
        .bot-html table {{ border-collapse:collapse; }}
        .bot-html th, .bot-html td {{ border:1px solid #e2e8f0; padding:.25rem .5rem; }}
        .dots span {{ animation:blink 1.4s infinite both; font-size:1.5rem; }}
        .dots span:nth-child(2) {{ animation-delay:.2s; }}
        .dots span:nth-child(3) {{ animation-delay:.4s; }}
        @keyframes blink {{ 0%,80%,100% {{ opacity:0; }} 40% {{ opacity:1; }} }}
        {pygments_css()}
        {dark}
        </style>"""
    )


# -------------------------- Page --------------------------

st.set_page_config(page_title=APP_TITLE, page_icon="💬", layout="wide")
ctl = _controller()
store = ctl.store
registry: ModelRegistry = st.session_state["registry"]
_inject_css(ctl.preferences.theme)

with st.sidebar:
    st.title(APP_TITLE)
    st.button("➕ New chat", on_click=_on_new_chat, use_container_width=True, disabled=ctl.busy)

    names = [m.name for m in registry.list()]
    st.session_state["model_select"] = ctl.preferences.model
    st.selectbox(
        "Model", names, key="model_select", on_change=_on_model_change,
        format_func=lambda n: registry.get(n).display_name,
    )

    conversations = store.conversations()
    titles = {c.id: c.title for c in conversations}
    st.session_state["conversation_radio"] = store.current_id
    st.session_state["list_stale"] = False
    st.radio(
        "Conversations", [c.id for c in conversations], key="conversation_radio",
        format_func=lambda cid: titles.get(cid, cid), on_change=_on_pick_conversation,
    )
    st.button("🗑 Delete chat", on_click=_on_delete_chat, args=(store.current_id,), use_container_width=True)
    st.session_state["dark_theme"] = ctl.preferences.theme == "dark"
    st.toggle("Dark theme", key="dark_theme", on_change=_on_theme_change)

surface = StreamlitSurface()
ctl.attach_surface(surface)
replay(surface, store.current)

uploads = st.file_uploader(
    "Attach images", type=IMAGE_TYPES, accept_multiple_files=True,
    key=f"uploader_{st.session_state['uploader_gen']}", label_visibility="collapsed",
)
if uploads and not registry.get(ctl.preferences.model).supports_images:
    st.caption("The selected model may ignore images.")

prompt = st.chat_input("Message", disabled=ctl.busy)
send_images_only = bool(uploads) and st.button("Send images")

if prompt is not None or send_images_only:
    if uploads:
        ctl.attach(Blob(data=f.getvalue(), media_type=f.type or "", name=f.name) for f in uploads)
        _reset_uploader()
    asyncio.run(ctl.send(prompt or ""))

ctl.attach_surface(_DetachedSurface())
if st.session_state.get("list_stale"):
    st.rerun()
