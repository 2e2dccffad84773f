# padchat/chain/conversation.py
import sys
import threading
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Union

from padchat.chain import ConversationBase
from padchat.core.errors import InvalidParty, OneTimePadMismatch, StorageError
from padchat.core.pad import OneTimePad
from padchat.core.serialization import messages_from_json, messages_to_json, pad_from_json
from padchat.core.types import EncryptedMessage, PlainMessage
from padchat.crypto import cryptor
from padchat.storage import StorageBackend, create_storage
from padchat.verify.verifier import HistoryVerifier


def next_available_chunk_id(history: Sequence[EncryptedMessage], party_amount: int, party_index: int) -> int:
    """
    Cursor of a party after `history`: the follow-up index of its most recent own
    message, or its party index if it never sent one.
    """
    for msg in reversed(history):
        if msg.first_chunk_index % party_amount == party_index:
            return msg.follow_up_chunk_index
    return party_index


@dataclass(eq=False)
class Conversation(ConversationBase):
    """
    One party's view of a conversation over a shared one-time pad.

    Owns the party's cursor (next chunk id for encryption), which only moves on a
    successful outgoing encryption. Messages of other parties are recorded and
    decrypted without touching it. Supports optional persistent storage.
    """
    pad: OneTimePad
    party: str
    history: List[EncryptedMessage] = field(default_factory=list)
    storage: Optional[Union[StorageBackend, str]] = None
    _next_chunk_id: int = field(init=False, repr=False, default=0)
    _lock: threading.Lock = field(init=False, repr=False, default_factory=threading.Lock)

    def __post_init__(self):
        party_index = self.pad.party_index(self.party)
        self.history = list(self.history)

        if isinstance(self.storage, str):
            stripped = self.storage.strip()
            if stripped.startswith("sqlite://"):
                self.storage = create_storage(stripped)
            elif stripped:
                # Plain file path → SQLite database at that path
                self.storage = create_storage(f"sqlite://{stripped}")
            else:
                self.storage = None

        # Unreadable storage must fail loudly: an unknown history means an unknown cursor
        if self.storage and not self.history:
            self.history = self.storage.load_messages(self.pad.hash, self.party)
            print(f"[padchat] Loaded {len(self.history)} messages from storage for {self.party}", file=sys.stderr)

        # The cursor is read off the history, so every entry must sit on this pad's stride
        for index, encrypted in enumerate(self.history):
            self._check_entry(index, encrypted)

        self._next_chunk_id = next_available_chunk_id(self.history, self.pad.party_amount, party_index)

    @property
    def next_chunk_id_for_encryption(self) -> int:
        return self._next_chunk_id

    @property
    def length(self) -> int:
        return len(self.history)

    def add_plain_message(self, message: PlainMessage) -> EncryptedMessage:
        """
        Encrypt on behalf of this conversation's party and record the result.
        On OutOfChunks, StorageError or any other error neither cursor nor history
        change, and no ciphertext leaves this method.
        """
        with self._lock:
            encrypted = cryptor.encrypt_message(message, self.pad, self._next_chunk_id)
            self._persist(encrypted)
            self.history.append(encrypted)
            self._next_chunk_id = encrypted.follow_up_chunk_index
        return encrypted

    def get_encrypted_message_preview(self, message: PlainMessage) -> EncryptedMessage:
        """What add_plain_message would produce right now, without committing to it."""
        with self._lock:
            cursor = self._next_chunk_id
        return cryptor.encrypt_message(message, self.pad, cursor)

    def add_encrypted_message(self, encrypted: EncryptedMessage) -> PlainMessage:
        """Record a message received from another party of the same pad."""
        plain = cryptor.decrypt_message(encrypted, self.pad, trim_text=True)
        with self._lock:
            self._check_entry(len(self.history), encrypted)
            self._persist(encrypted)
            self.history.append(encrypted)
        return plain

    def get_plain_conversation_history(self) -> List[PlainMessage]:
        return [
            cryptor.decrypt_message(encrypted, self.pad, trim_text=True)
            for encrypted in self.get_encrypted_conversation_history()
        ]

    def get_encrypted_conversation_history(self) -> List[EncryptedMessage]:
        """Returns copy of the history (immutable view)"""
        with self._lock:
            return self.history.copy()

    def serialize_encrypted_messages_to_json(self) -> str:
        return messages_to_json(self.get_encrypted_conversation_history())

    @classmethod
    def restore(
        cls,
        serialized_history: str,
        party: str,
        pad: Union[OneTimePad, str],
    ) -> "Conversation":
        """
        Rebuild a conversation from an exported history. `pad` may be a live pad or
        its JSON form. The cursor continues exactly where the exporting instance was.
        """
        if isinstance(pad, str):
            pad = pad_from_json(pad)
        if not pad.is_associated_party(party):
            raise InvalidParty(f"Party '{party}' is not associated with pad {pad.hash}")

        history = messages_from_json(serialized_history)
        if history and history[0].otp_hash != pad.hash:
            raise OneTimePadMismatch(
                "Conversation cannot be restored because the provided message history is not "
                "compatible with the provided cryptographic material"
            )
        return cls(pad, party, history=history)

    def _check_entry(self, index: int, encrypted: EncryptedMessage) -> None:
        failures = HistoryVerifier(self.pad).layout_failures(index, encrypted)
        if not failures:
            return
        if failures[0].category == "pad":
            raise OneTimePadMismatch(
                "Conversation history is not compatible with the provided cryptographic material"
            )
        raise ValueError(f"History entry {index} is not laid out on this pad: {failures[0].message}")

    def _persist(self, encrypted: EncryptedMessage) -> None:
        """Write `encrypted` as the next history entry. Must run before the entry is committed in memory."""
        if not self.storage:
            return
        sequence = len(self.history)
        try:
            self.storage.append(self.pad.hash, self.party, sequence, encrypted)
        except Exception as e:
            raise StorageError(f"Failed to persist message {sequence}: {e}") from e

    def close(self) -> None:
        """
        Release any storage resources (e.g. database connection).
        """
        if self.storage:
            try:
                self.storage.close()
                print(f"[padchat] Storage closed for {self.party}", file=sys.stderr)
            except Exception as e:
                print(f"[padchat] Warning: Error closing storage: {e}", file=sys.stderr)
            self.storage = None
