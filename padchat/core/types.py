# padchat/core/types.py
import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Sequence, Tuple

from padchat.core.encoding import hex_decode, hex_encode
from padchat.core.errors import CryptorError, InvalidParty, OneTimePadMismatch
from padchat.core.pad import OneTimePad

TIMESTAMP_FORMAT = "%Y-%m-%d--%H:%M:%S"

NAME_PATTERN = re.compile(r"[A-Za-z\-]+")


def local_timestamp() -> str:
    return datetime.now().strftime(TIMESTAMP_FORMAT)


@dataclass(frozen=True)
class PlainMessage:
    """Unencrypted message authored by `author@machine`. `creation` is informational only."""
    author: str
    machine: str
    payload: bytes
    creation: str = field(default_factory=local_timestamp, compare=False)

    def __post_init__(self):
        if not NAME_PATTERN.fullmatch(self.author or ""):
            raise InvalidParty(f"Author '{self.author}' is not valid for party creation")
        # machine may be empty for pads whose parties carry no "@machine" part
        if self.machine and not NAME_PATTERN.fullmatch(self.machine):
            raise InvalidParty(f"Machine '{self.machine}' is not valid for party creation")
        object.__setattr__(self, "payload", bytes(self.payload))

    @classmethod
    def from_text(cls, author: str, machine: str, text: str) -> "PlainMessage":
        return cls(author, machine, text.encode("utf-8"))

    @property
    def party(self) -> str:
        return f"{self.author}@{self.machine}" if self.machine else self.author

    @property
    def text(self) -> str:
        return self.payload.decode("utf-8", errors="replace")


def chunk_index_digits(chunk_amount: int) -> int:
    """Digits needed to print the largest chunk index of a pad with `chunk_amount` chunks."""
    return max(1, len(str(chunk_amount - 1)))


@dataclass(frozen=True)
class EncryptedMessage:
    """
    Envelope binding ciphertext chops to the absolute pad chunks that produced them.

    `chops` holds (chunk index, ciphertext) pairs in usage order. Consecutive indices
    differ by the pad's party amount; `follow_up_chunk_index` is the index the
    authoring party has to use next.
    """
    otp_hash: str
    chops: Tuple[Tuple[int, bytes], ...]
    follow_up_chunk_index: int
    chunk_index_digits: int = 1

    def __post_init__(self):
        chops = tuple((int(index), bytes(chop)) for index, chop in self.chops)
        if not chops:
            raise CryptorError("An encrypted message needs at least one chop")
        indices = [index for index, _ in chops]
        if len(set(indices)) != len(indices):
            raise CryptorError(f"Encrypted message lists a chunk index twice: {indices}")
        object.__setattr__(self, "chops", chops)

    @classmethod
    def create(cls, pad: OneTimePad, start_chunk_index: int, chops: Sequence[bytes]) -> "EncryptedMessage":
        """Lay out ordered ciphertext blocks on the pad, starting at `start_chunk_index`."""
        stride = pad.party_amount
        current = start_chunk_index
        laid_out = []
        for chop in chops:
            laid_out.append((current, bytes(chop)))
            current += stride
        return cls(
            otp_hash=pad.hash,
            chops=tuple(laid_out),
            follow_up_chunk_index=current,
            chunk_index_digits=chunk_index_digits(pad.chunk_amount),
        )

    @property
    def chunks_used(self) -> List[int]:
        return [index for index, _ in self.chops]

    @property
    def first_chunk_index(self) -> int:
        return self.chops[0][0]

    @property
    def chop_amount(self) -> int:
        return len(self.chops)

    def chop(self, chunk_index: int) -> bytes:
        for index, chop in self.chops:
            if index == chunk_index:
                return chop
        raise KeyError(f"Chunk {chunk_index} is not used by this message")

    def prefix(self, chunk_id: int) -> str:
        return f"{self.otp_hash[:6]}-{chunk_id:0{self.chunk_index_digits}d}-"

    def serialize_to_text(self) -> str:
        """One line per chop: AAAAAA-NNNN-HEX. Safe to relay over plain-text channels."""
        return "".join(self.prefix(index) + hex_encode(chop) + "\n" for index, chop in self.chops)

    @classmethod
    def from_text(cls, text: str, pad: OneTimePad) -> "EncryptedMessage":
        """Parse the line format produced by `serialize_to_text` against the pad it was made with."""
        lines = [line.strip() for line in text.splitlines() if line.strip()]
        if not lines:
            raise CryptorError("No encrypted chops found in text")

        parsed = []
        for number, line in enumerate(lines):
            parts = line.split("-", 2)
            if len(parts) != 3:
                raise CryptorError(f"Line {number} is not of the form HASH-INDEX-CIPHERTEXT")
            hash_prefix, raw_index, raw_chop = parts
            if hash_prefix.upper() != pad.hash[:6]:
                raise OneTimePadMismatch(
                    f"Line {number} was encrypted with pad {hash_prefix}, not {pad.hash[:6]}"
                )
            # int() would also take "²" or Arabic-Indic digits
            if not (raw_index.isascii() and raw_index.isdigit()):
                raise CryptorError(f"Line {number} has a malformed chunk index: {raw_index!r}")
            try:
                chop = hex_decode(raw_chop)
            except ValueError as e:
                raise CryptorError(f"Line {number} has malformed ciphertext") from e
            if len(chop) != pad.chunk_size:
                raise CryptorError(
                    f"Line {number} carries {len(chop)} bytes, pad chunks have {pad.chunk_size}"
                )
            parsed.append((int(raw_index), chop))

        start = parsed[0][0]
        for i, (index, _) in enumerate(parsed):
            if index != start + i * pad.party_amount:
                raise CryptorError(f"Chunk index {index} breaks the stride of {pad.party_amount}")

        return cls.create(pad, start, [chop for _, chop in parsed])

    def to_dict(self) -> dict:
        """Structured wire form; chop keys are decimal strings, ciphertext is uppercase hex."""
        return {
            "otp_hash": self.otp_hash,
            "chops": {str(index): hex_encode(chop) for index, chop in self.chops},
            "follow_up_chunk_index": self.follow_up_chunk_index,
            "chunk_index_digits": self.chunk_index_digits,
        }

    @classmethod
    def from_dict(cls, d: Dict) -> "EncryptedMessage":
        try:
            # canonical JSON sorts keys as strings, usage order is ascending numeric
            chops = sorted((int(k), hex_decode(v)) for k, v in d["chops"].items())
            return cls(
                otp_hash=d["otp_hash"],
                chops=tuple(chops),
                follow_up_chunk_index=int(d["follow_up_chunk_index"]),
                chunk_index_digits=int(d.get("chunk_index_digits", 1)),
            )
        except (KeyError, TypeError, AttributeError, CryptorError) as e:
            raise ValueError(f"Malformed encrypted message record: {e}") from e
