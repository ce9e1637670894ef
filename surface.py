# surface.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Protocol, Sequence, Tuple

from loguru import logger

from clipboard import ClipboardWriter, copy_payloads
from conversations import Conversation, Sender
from rendering.decorate import Decorator
from rendering.pipeline import render_static


class MessageView(Protocol):
    """One message bubble."""

    def show_typing(self) -> None:
        ...

    def set_text(self, text: str) -> None:
        """Literal text; never interpreted as markup."""
        ...

    def set_html(self, markup: str) -> None:
        """Replace the bubble's markup wholesale. Only sanitized markup is passed here."""
        ...

    def set_images(self, images: Sequence[str]) -> None:
        ...


class RenderSurface(Protocol):
    def clear(self) -> None:
        ...

    def add_message(self, sender: Sender) -> MessageView:
        ...

    def render_conversation_list(self, conversations: Sequence[Conversation], current_id: Optional[str]) -> None:
        ...

    def set_send_enabled(self, enabled: bool) -> None:
        ...


class NullMessageView:
    """Accepts every update and draws nothing (headless sends, detached pages)."""

    def show_typing(self) -> None:
        pass

    def set_text(self, text: str) -> None:
        pass

    def set_html(self, markup: str) -> None:
        pass

    def set_images(self, images: Sequence[str]) -> None:
        pass


def replay(surface: RenderSurface, conversation: Conversation) -> None:
    """Redraw a conversation's messages in insertion order."""
    surface.clear()
    decorator = Decorator()
    for message in conversation.messages:
        view = surface.add_message(message.sender)
        try:
            if message.sender is Sender.BOT:
                view.set_html(render_static(message.content, decorator))
            else:
                view.set_text(message.content)
            if message.images:
                view.set_images(message.images)
        except Exception as e:
            logger.warning("replay: message in '{}' failed to render: {}", conversation.id, e)
            view.set_text(message.content or "Error loading message")


# -----------------------------
# In-memory surface (tests, headless runs)
# -----------------------------
@dataclass
class MemoryMessageView:
    sender: Sender
    html: str = ""
    text: str = ""
    images: Tuple[str, ...] = ()
    typing: bool = False
    updates: int = 0

    def show_typing(self) -> None:
        self.typing = True

    def set_text(self, text: str) -> None:
        self.typing = False
        self.text, self.html = text, ""
        self.updates += 1

    def set_html(self, markup: str) -> None:
        self.typing = False
        self.html, self.text = markup, ""
        self.updates += 1

    def set_images(self, images: Sequence[str]) -> None:
        self.images = tuple(images)


@dataclass
class MemorySurface:
    messages: List[MemoryMessageView] = field(default_factory=list)
    conversation_list: List[Tuple[str, str]] = field(default_factory=list)
    current_id: Optional[str] = None
    send_enabled: bool = True
    list_renders: int = 0
    clipboard: ClipboardWriter = field(default_factory=ClipboardWriter)

    def clear(self) -> None:
        self.messages.clear()

    def add_message(self, sender: Sender) -> MemoryMessageView:
        view = MemoryMessageView(sender=sender)
        self.messages.append(view)
        return view

    def render_conversation_list(self, conversations: Sequence[Conversation], current_id: Optional[str]) -> None:
        self.conversation_list = [(c.id, c.title) for c in conversations]
        self.current_id = current_id
        self.list_renders += 1

    def set_send_enabled(self, enabled: bool) -> None:
        self.send_enabled = enabled

    def copy(self, message_index: int, kind: str, index: int = 0) -> bool:
        """Click on the index-th code ('code') or table ('table') copy button of a message."""
        payloads = [text for k, text in copy_payloads(self.messages[message_index].html) if k == kind]
        if index >= len(payloads):
            return False
        return self.clipboard.write(payloads[index])
