# padchat/storage/__init__.py
"""
Storage backends for persistent encrypted conversation histories, plus pad files.
"""

from abc import ABC, abstractmethod
from typing import List
from pathlib import Path
from padchat.core.types import EncryptedMessage


class StorageBackend(ABC):
    """Abstract base for all persistent history storage implementations.

    Histories are keyed by the pad hash and the party that keeps them; only
    ciphertext is ever stored.
    """

    @abstractmethod
    def append(self, pad_hash: str, party: str, sequence: int, msg: EncryptedMessage) -> None:
        pass

    @abstractmethod
    def load_messages(self, pad_hash: str, party: str) -> List[EncryptedMessage]:
        pass

    @abstractmethod
    def close(self) -> None:
        pass


def create_storage(uri: str) -> StorageBackend:
    if uri.startswith("sqlite://"):
        from .sqlite import SQLiteStorage
        raw_path = uri[len("sqlite://"):]
        if not raw_path:
            raise ValueError(f"No database path in storage URI: {uri}")
        return SQLiteStorage(Path(raw_path).resolve())
    else:
        raise ValueError(f"Unsupported storage URI: {uri}")


from .sqlite import SQLiteStorage
from .padfile import DEFAULT_PAD_NAME, load_pad, save_pad

__all__ = ["StorageBackend", "create_storage", "SQLiteStorage", "DEFAULT_PAD_NAME", "load_pad", "save_pad"]
