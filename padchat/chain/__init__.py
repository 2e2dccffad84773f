# padchat/chain/__init__.py
"""
Conversations: per-party state on top of a shared one-time pad.
"""

from abc import ABC, abstractmethod
from typing import List

from padchat.core.types import EncryptedMessage, PlainMessage


class ConversationBase(ABC):
    """What a conversation offers its user: encrypt, decrypt, export and restore."""

    @abstractmethod
    def add_plain_message(self, message: PlainMessage) -> EncryptedMessage:
        pass

    @abstractmethod
    def get_encrypted_message_preview(self, message: PlainMessage) -> EncryptedMessage:
        pass

    @abstractmethod
    def add_encrypted_message(self, encrypted: EncryptedMessage) -> PlainMessage:
        pass

    @abstractmethod
    def get_plain_conversation_history(self) -> List[PlainMessage]:
        pass

    @abstractmethod
    def get_encrypted_conversation_history(self) -> List[EncryptedMessage]:
        pass

    @abstractmethod
    def serialize_encrypted_messages_to_json(self) -> str:
        pass

    @classmethod
    @abstractmethod
    def restore(cls, serialized_history: str, party: str, pad) -> "ConversationBase":
        pass


from .conversation import Conversation, next_available_chunk_id

__all__ = ["ConversationBase", "Conversation", "next_available_chunk_id"]
