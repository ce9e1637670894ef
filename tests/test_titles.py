"""
Tests for titles.py.

Covers:
  - user-message titles: at most 40 chars, then the ellipsis
  - bot-reply titles: first sentence, markdown stripped, 50 chars
  - both triggers only act on a default-titled conversation
"""

import pytest

from conversations import DEFAULT_TITLE
from titles import (
    BOT_TITLE_MAX,
    ELLIPSIS,
    USER_TITLE_MAX,
    TitleDeriver,
    title_from_bot_reply,
    title_from_user_message,
)


class TestUserTitle:

    def test_short_kept(self):
        assert title_from_user_message("Hello") == "Hello"

    def test_exactly_max_not_truncated(self):
        text = "x" * USER_TITLE_MAX
        assert title_from_user_message(text) == text

    def test_long_truncated(self):
        text = "What is the capital of France, and can you show it in a table?"
        assert title_from_user_message(text) == "What is the capital of France, and can y" + ELLIPSIS


class TestBotTitle:

    @pytest.mark.parametrize("reply,expected", [
        ("Paris is the capital. It is big.", "Paris is the capital"),
        ("## **Great** question! More", "Great question"),
        ("Use `print` and [docs](x)? yes", "Use print and docs(x)"),
        ("   \n  ", ""),
        ("", ""),
    ])
    def test_first_sentence(self, reply, expected):
        assert title_from_bot_reply(reply) == expected

    def test_long_truncated(self):
        reply = "word " * 30
        title = title_from_bot_reply(reply)
        assert title.endswith(ELLIPSIS)
        assert len(title) == BOT_TITLE_MAX + len(ELLIPSIS)


class TestDeriver:

    def test_user_trigger_renames_once(self, store):
        cid = store.create()
        deriver = TitleDeriver(store)
        assert deriver.on_user_message(store.get(cid), "First question") == "First question"
        assert deriver.on_user_message(store.get(cid), "Second question") is None
        assert store.get(cid).title == "First question"

    def test_bot_trigger_only_on_default_title(self, store):
        cid = store.create()
        deriver = TitleDeriver(store)
        assert store.get(cid).title == DEFAULT_TITLE
        assert deriver.on_bot_reply(store.get(cid), "Sure! Here you go.") == "Sure"
        assert deriver.on_bot_reply(store.get(cid), "Another reply.") is None
        assert store.get(cid).title == "Sure"

    def test_empty_bot_title_leaves_default(self, store):
        cid = store.create()
        assert TitleDeriver(store).on_bot_reply(store.get(cid), "...") is None
        assert store.get(cid).title == DEFAULT_TITLE
