# errors.py
from __future__ import annotations


class ChatpaneError(Exception):
    """Base class for errors raised by chatpane modules."""


class ConversationNotFound(ChatpaneError, KeyError):
    def __init__(self, conversation_id: str):
        self.conversation_id = conversation_id
        super().__init__(f"Conversation '{conversation_id}' not found")

    def __str__(self) -> str:
        # KeyError would repr() the message otherwise
        return self.args[0]


class StorageError(ChatpaneError):
    """Durable storage could not be read or written."""


class StorageQuotaExceeded(StorageError):
    def __init__(self, key: str, size: int, quota: int):
        self.key = key
        self.size = size
        self.quota = quota
        super().__init__(f"Storage quota exceeded writing '{key}' ({size} > {quota} bytes)")


class CompletionError(ChatpaneError):
    """
    The completion service failed before or during streaming.
    `message` is human readable and is shown inline in the transcript.
    """

    def __init__(self, message: str, status: int | None = None):
        self.message = message
        self.status = status
        super().__init__(message)
