# controller.py
from __future__ import annotations

import html
from typing import Iterable, Optional

from loguru import logger

from adapters.openai_compat import CompletionService
from attachments import Blob, ingest_files
from conversation_store import ConversationStore
from conversations import IMAGE_ONLY_CONTENT, Message, Sender
from errors import CompletionError, ConversationNotFound
from intents import build_prompt
from logging_decorators import log_call
from preferences import Preferences
from rendering.pipeline import StreamRenderPipeline, render_static
from surface import NullMessageView, RenderSurface, replay
from titles import TitleDeriver


def error_content(exc: BaseException) -> str:
    """Inline bot message for a failed request; persisted like any reply."""
    message = exc.message if isinstance(exc, CompletionError) else (str(exc) or type(exc).__name__)
    return f"<b>Error:</b> {html.escape(message)}"


class ChatController:
    """
    Drives the store, the completion service and the render surface.

    Only one request is in flight per controller: `busy` is process-wide, not
    per conversation. Switching conversations mid-stream does not cancel the
    stream; it keeps updating the bubble it started in, and the reply is appended
    to the conversation that was current when send() began.
    """

    def __init__(
        self,
        store: ConversationStore,
        service: CompletionService,
        preferences: Preferences,
        surface: Optional[RenderSurface] = None,
    ):
        self.store = store
        self.service = service
        self.preferences = preferences
        self.titles = TitleDeriver(store)
        # without a surface of its own, keep drawing on whatever the store already has
        self.surface = surface if surface is not None else store.surface
        store.surface = self.surface

    @property
    def state(self):
        return self.store.state

    @property
    def busy(self) -> bool:
        return self.state.busy

    def attach_surface(self, surface: RenderSurface) -> None:
        """Point rendering at a new surface (the Streamlit page rebuilds it on every run)."""
        self.surface = surface
        self.store.surface = surface
        surface.set_send_enabled(not self.busy)

    def _set_busy(self, busy: bool) -> None:
        self.state.busy = busy
        if self.surface is not None:
            self.surface.set_send_enabled(not busy)

    # ---------- lifecycle ----------

    def start(self) -> None:
        """Load persisted conversations and draw the current one."""
        conversation = self.store.load()
        if self.surface is not None:
            replay(self.surface, conversation)
            self.surface.render_conversation_list(self.store.conversations(), self.store.current_id)

    def new_conversation(self) -> str:
        cid = self.store.create()
        self.store.switch_to(cid)
        return cid

    def switch_to(self, conversation_id: str) -> None:
        self.store.switch_to(conversation_id)

    def delete(self, conversation_id: str) -> None:
        self.store.delete(conversation_id)

    def select_model(self, name: str) -> None:
        self.preferences.model = name

    # ---------- pending input (collaborators) ----------

    def attach(self, blobs: Iterable[Blob]) -> int:
        """File drop / picker: images become pending attachments, the rest is ignored."""
        images = ingest_files(blobs)
        self.state.pending_images.extend(images)
        return len(images)

    def remove_attachment(self, index: int) -> None:
        del self.state.pending_images[index]

    def accept_transcript(self, transcript: str) -> None:
        """Voice capture's final transcript goes into the input box, it is not sent."""
        text = (transcript or "").strip()
        if text:
            self.state.pending_input = text

    # ---------- send ----------

    @log_call("ChatController.send", level="INFO")
    async def send(self, text: Optional[str] = None) -> Optional[Message]:
        """
        Returns the stored bot message, or None when nothing was sent (busy, or
        no text and no images). Request failures never raise out of here: they
        become an inline error reply.
        """
        if self.busy:
            logger.info("send ignored: a reply is still streaming")
            return None

        raw = (self.state.pending_input if text is None else text) or ""
        raw = raw.strip()
        images = list(self.state.pending_images)
        if not raw and not images:
            return None

        conversation = self.store.current
        user_message = Message.user(raw or IMAGE_ONLY_CONTENT, images)
        self.store.append(conversation.id, user_message)
        if self.surface is not None:
            view = self.surface.add_message(Sender.USER)
            view.set_text(user_message.content)
            if images:
                view.set_images(images)
        self.titles.on_user_message(conversation, user_message.content)
        self.store.persist()
        self.state.clear_pending()

        self._set_busy(True)
        bot_view = self.surface.add_message(Sender.BOT) if self.surface is not None else NullMessageView()
        bot_view.show_typing()
        pipeline = StreamRenderPipeline(bot_view)
        try:
            options = {"model": self.preferences.model, "stream": True}
            # image-only sends use the "(Image)" placeholder as prompt text
            prompt = build_prompt(user_message.content)
            stream = await self.service.chat(prompt, images[0] if images else None, options)
            content = await pipeline.consume(stream)
        except Exception as e:
            logger.warning("send: request failed for conversation '{}' after {} chars: {}",
                           conversation.id, len(pipeline.text), e)
            content = error_content(e)
            bot_view.set_html(render_static(content))
        finally:
            self._set_busy(False)

        bot_message = Message.bot(content)
        # the conversation captured above, even if the user switched away meanwhile
        try:
            self.store.append(conversation.id, bot_message)
        except ConversationNotFound:
            logger.info("send: conversation '{}' was deleted mid-stream; reply dropped", conversation.id)
            return bot_message
        self.titles.on_bot_reply(conversation, content)
        self.store.persist()
        return bot_message
