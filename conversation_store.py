# conversation_store.py
from __future__ import annotations

import json
from typing import Callable, List, Optional
from uuid import uuid4

from loguru import logger

from config_home import CONVERSATIONS_KEY, CURRENT_CONVERSATION_KEY
from conversations import ChatState, Conversation, Message
from errors import ConversationNotFound
from logging_decorators import log_call
from storage import KeyValueStorage
from surface import RenderSurface, replay

ListListener = Callable[[List[Conversation], Optional[str]], None]


class ConversationStore:
    """
    Owns ChatState.conversations and ChatState.current_id.

    Every mutating operation except append() writes the whole store to storage
    and notifies list listeners, synchronously. append() leaves persisting to the
    caller so a send can batch the message and the title change into one write.
    Writes happen at message boundaries only, never per streamed fragment.
    """

    def __init__(
        self,
        storage: KeyValueStorage,
        *,
        state: Optional[ChatState] = None,
        surface: Optional[RenderSurface] = None,
        model_provider: Callable[[], str] = lambda: "",
        id_factory: Callable[[], str] = lambda: f"conv-{uuid4().hex}",
    ):
        self.storage = storage
        self.state = state or ChatState()
        self.surface = surface
        self._model_provider = model_provider
        self._id_factory = id_factory
        self._listeners: List[ListListener] = []

    # ---------- queries ----------

    def get(self, conversation_id: str) -> Conversation:
        try:
            return self.state.conversations[conversation_id]
        except KeyError:
            raise ConversationNotFound(conversation_id) from None

    @property
    def current_id(self) -> Optional[str]:
        return self.state.current_id

    @property
    def current(self) -> Conversation:
        return self.get(self.state.current_id)

    def conversations(self) -> List[Conversation]:
        """Most recently created first (sidebar order); insertion order breaks timestamp ties."""
        ordered = sorted(
            enumerate(self.state.conversations.values()),
            key=lambda pair: (pair[1].created_at, pair[0]),
            reverse=True,
        )
        return [c for _, c in ordered]

    def __len__(self) -> int:
        return len(self.state.conversations)

    # ---------- notifications ----------

    def subscribe(self, listener: ListListener) -> None:
        self._listeners.append(listener)

    def _notify(self) -> None:
        items, current = self.conversations(), self.state.current_id
        if self.surface is not None:
            self.surface.render_conversation_list(items, current)
        for listener in self._listeners:
            listener(items, current)

    # ---------- mutations ----------

    def _new_id(self) -> str:
        cid = self._id_factory()
        while cid in self.state.conversations:
            logger.warning("ConversationStore: id collision on '{}', drawing again", cid)
            cid = self._id_factory()
        return cid

    @log_call("ConversationStore.create")
    def create(self) -> str:
        cid = self._new_id()
        self.state.conversations[cid] = Conversation(id=cid, model=self._model_provider())
        self.state.current_id = cid
        self.persist()
        self._notify()
        logger.info("Conversation created id='{}' (total={})", cid, len(self))
        return cid

    @log_call("ConversationStore.switch_to")
    def switch_to(self, conversation_id: str) -> Conversation:
        conversation = self.get(conversation_id)
        self.state.current_id = conversation_id
        self.state.clear_pending()
        if self.surface is not None:
            replay(self.surface, conversation)
        self.persist()
        self._notify()
        return conversation

    def append(self, conversation_id: str, message: Message) -> None:
        self.get(conversation_id).messages.append(message)
        logger.debug("append → conversation='{}' sender={} messages={}",
                     conversation_id, message.sender.value, len(self.get(conversation_id).messages))

    def rename(self, conversation_id: str, title: str) -> None:
        self.get(conversation_id).title = title
        self.persist()
        self._notify()

    @log_call("ConversationStore.delete")
    def delete(self, conversation_id: str) -> None:
        self.get(conversation_id)
        del self.state.conversations[conversation_id]
        logger.info("Conversation deleted id='{}' (remaining={})", conversation_id, len(self))

        if self.state.current_id == conversation_id:
            remaining = self.conversations()
            # switch_to persists and notifies
            self.switch_to(remaining[0].id if remaining else self.create())
            return
        self.persist()
        self._notify()

    # ---------- persistence ----------

    def persist(self) -> bool:
        """Write everything. Failures are logged; memory stays authoritative for this session."""
        try:
            payload = json.dumps(
                {cid: c.to_dict() for cid, c in self.state.conversations.items()},
                ensure_ascii=False,
            )
            self.storage.set(CONVERSATIONS_KEY, payload)
            if self.state.current_id is not None:
                self.storage.set(CURRENT_CONVERSATION_KEY, self.state.current_id)
        except Exception as e:
            logger.warning("Failed to save conversations: {}", e)
            return False
        return True

    @log_call("ConversationStore.load")
    def load(self) -> Conversation:
        """
        Restore from storage. Absent or corrupt payloads start over with one fresh
        conversation rather than failing the app. Does not touch the surface.
        """
        self.state.conversations.clear()
        self.state.current_id = None
        try:
            raw = self.storage.get(CONVERSATIONS_KEY)
            saved_current = self.storage.get(CURRENT_CONVERSATION_KEY)
            if raw:
                data = json.loads(raw)
                if not isinstance(data, dict):
                    raise ValueError(f"expected an object, got {type(data).__name__}")
                for cid, record in data.items():
                    conversation = Conversation.from_dict(record)
                    if conversation.id != cid:
                        raise ValueError(f"record id '{conversation.id}' stored under '{cid}'")
                    self.state.conversations[cid] = conversation
        except Exception as e:
            logger.warning("Failed to load conversations, starting fresh: {}", e)
            self.state.conversations.clear()
            saved_current = None

        if not self.state.conversations:
            self.create()
            return self.current

        if saved_current in self.state.conversations:
            self.state.current_id = saved_current
        else:
            self.state.current_id = self.conversations()[0].id
            logger.info("Current conversation pointer '{}' dangling; selected '{}'",
                        saved_current, self.state.current_id)
        logger.info("Loaded {} conversation(s); current='{}'", len(self), self.state.current_id)
        self._notify()
        return self.current
