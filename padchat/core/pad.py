# padchat/core/pad.py
from typing import Iterable, List, Tuple

from padchat.core.errors import InvalidParty, OutOfChunks
from padchat.crypto.hashing import pad_hash


class OneTimePad:
    """
    Immutable keying material shared by all parties of a conversation.

    A party's position in `parties` is its index: the first chunk it may use and
    its offset in the stride (party amount) that separates its consecutive chunks.
    """

    __slots__ = ("_creation_time", "_parties", "_chunks", "_hash")

    def __init__(self, creation_time: str, parties: Iterable[str], chunks: Iterable[bytes]):
        parties = tuple(parties)
        chunks = tuple(bytes(c) for c in chunks)

        if not parties:
            raise ValueError("A pad needs at least one party")
        if len(set(parties)) != len(parties):
            raise ValueError(f"Duplicate parties in pad: {list(parties)}")
        if not chunks:
            raise ValueError("A pad needs at least one chunk")
        chunk_size = len(chunks[0])
        if chunk_size == 0:
            raise ValueError("Pad chunks must not be empty")
        for i, chunk in enumerate(chunks):
            if len(chunk) != chunk_size:
                raise ValueError(f"Chunk {i} has {len(chunk)} bytes, expected {chunk_size}")

        self._creation_time = creation_time
        self._parties: Tuple[str, ...] = parties
        self._chunks: Tuple[bytes, ...] = chunks
        self._hash = pad_hash(creation_time, parties)

    @property
    def creation_time(self) -> str:
        return self._creation_time

    @property
    def hash(self) -> str:
        return self._hash

    @property
    def parties(self) -> List[str]:
        """Fresh list on every call; changing it does not touch the pad."""
        return list(self._parties)

    @property
    def party_amount(self) -> int:
        return len(self._parties)

    @property
    def chunk_amount(self) -> int:
        return len(self._chunks)

    @property
    def chunk_size(self) -> int:
        return len(self._chunks[0])

    def is_associated_party(self, party: str) -> bool:
        return party in self._parties

    def party_index(self, party: str) -> int:
        for i, candidate in enumerate(self._parties):
            if candidate == party:
                return i
        raise InvalidParty(f"Party '{party}' is not associated with pad {self._hash}")

    def chunk_content(self, index: int) -> bytes:
        """Key material of chunk `index`. Raises OutOfChunks once the pad is exceeded."""
        if index < 0 or index >= len(self._chunks):
            raise OutOfChunks(
                f"Chunk with id {index} cannot be retrieved: the pad only has {len(self._chunks)} chunks"
            )
        # bytes are immutable, callers cannot write through this reference
        return self._chunks[index]

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if not isinstance(other, OneTimePad):
            return NotImplemented
        return (
            self._creation_time == other._creation_time
            and self._parties == other._parties
            and self._chunks == other._chunks
        )

    def __hash__(self) -> int:
        return hash((self._creation_time, self._parties, self._chunks))

    def __repr__(self) -> str:
        return (
            f"OneTimePad(hash={self._hash[:6]}..., parties={list(self._parties)}, "
            f"chunks={self.chunk_amount}x{self.chunk_size})"
        )
