# conversations.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

DEFAULT_TITLE = "New Chat"
IMAGE_ONLY_CONTENT = "(Image)"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class Sender(str, Enum):
    USER = "user"
    BOT = "bot"


@dataclass(frozen=True)
class Message:
    """
    One turn of a conversation. Immutable once appended.

    content is plain text for the user, raw markdown (or the inline error HTML) for the bot.
    images holds self-contained data URIs.
    """

    sender: Sender
    content: str
    images: Tuple[str, ...] = ()
    timestamp: str = field(default_factory=now_iso)

    @classmethod
    def user(cls, content: str, images: Sequence[str] = ()) -> "Message":
        return cls(sender=Sender.USER, content=content, images=tuple(images))

    @classmethod
    def bot(cls, content: str) -> "Message":
        return cls(sender=Sender.BOT, content=content)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "sender": self.sender.value,
            "content": self.content,
            "images": list(self.images),
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Message":
        images = d.get("images") or []
        if not isinstance(images, list):
            raise ValueError(f"images must be a list, got {type(images).__name__}")
        return cls(
            sender=Sender(d["sender"]),
            content=str(d.get("content") or ""),
            images=tuple(str(i) for i in images),
            timestamp=str(d.get("timestamp") or now_iso()),
        )


@dataclass
class Conversation:
    id: str
    model: str
    title: str = DEFAULT_TITLE
    messages: List[Message] = field(default_factory=list)
    created_at: str = field(default_factory=now_iso)

    @property
    def has_default_title(self) -> bool:
        return self.title == DEFAULT_TITLE

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "messages": [m.to_dict() for m in self.messages],
            "createdAt": self.created_at,
            "model": self.model,
        }

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "Conversation":
        if not isinstance(d, dict) or not d.get("id"):
            raise ValueError("conversation record without id")
        messages = d.get("messages") or []
        if not isinstance(messages, list):
            raise ValueError(f"messages must be a list, got {type(messages).__name__}")
        return cls(
            id=str(d["id"]),
            title=str(d.get("title") or DEFAULT_TITLE),
            messages=[Message.from_dict(m) for m in messages],
            created_at=str(d.get("createdAt") or now_iso()),
            model=str(d.get("model") or ""),
        )


@dataclass
class ChatState:
    """Everything the running app mutates: owned by the store, shared with the controller."""

    conversations: Dict[str, Conversation] = field(default_factory=dict)
    current_id: Optional[str] = None
    pending_images: List[str] = field(default_factory=list)
    pending_input: str = ""
    busy: bool = False

    def clear_pending(self) -> None:
        self.pending_images.clear()
        self.pending_input = ""
