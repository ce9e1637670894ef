# titles.py
from __future__ import annotations

import re
from typing import Optional

from loguru import logger

from conversations import Conversation

USER_TITLE_MAX = 40
BOT_TITLE_MAX = 50
ELLIPSIS = "..."

_SENTENCE_END_RE = re.compile(r"[.!?]")
_MARKDOWN_CHARS_RE = re.compile(r"[*_#\[\]`]")


def _truncate(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + ELLIPSIS


def title_from_user_message(content: str) -> str:
    return _truncate(content, USER_TITLE_MAX)


def title_from_bot_reply(content: str) -> str:
    """First sentence, markdown emphasis/heading/link brackets removed. May be ''."""
    first = _SENTENCE_END_RE.split(content or "", maxsplit=1)[0]
    first = " ".join(_MARKDOWN_CHARS_RE.sub("", first).split())
    return _truncate(first, BOT_TITLE_MAX) if first else ""


class TitleDeriver:
    """
    Both triggers only act while the conversation still has the default title.

    The user trigger runs before the request is sent, so by the time a reply
    arrives the guard is already false and the bot trigger does nothing. The
    bot trigger only matters for conversations whose first user turn left the
    title untouched.
    """

    def __init__(self, store):
        self._store = store

    def _assign(self, conversation: Conversation, title: str, trigger: str) -> Optional[str]:
        if not title or not conversation.has_default_title:
            return None
        self._store.rename(conversation.id, title)
        logger.debug("TitleDeriver({}) → conversation='{}' title_len={}", trigger, conversation.id, len(title))
        return title

    def on_user_message(self, conversation: Conversation, content: str) -> Optional[str]:
        return self._assign(conversation, title_from_user_message(content), "user")

    def on_bot_reply(self, conversation: Conversation, content: str) -> Optional[str]:
        return self._assign(conversation, title_from_bot_reply(content), "bot")
