# padchat/crypto/generator.py
import re
import secrets
from typing import Sequence

from padchat.core.errors import PadGeneratorError
from padchat.core.pad import OneTimePad
from padchat.core.types import local_timestamp

# Keep chunks below 80 bytes so hex lines survive mail transport without line breaks
CHUNK_SIZE = 64
ONE_TIME_PAD_SIZE = 16 * 1024

PARTY_PATTERN = re.compile(r"[A-Za-z\-]+@[A-Za-z\-]+")


def generate_chunk(chunk_size: int) -> bytes:
    return secrets.token_bytes(chunk_size)


def validate_parties(parties: Sequence[str]) -> None:
    if not parties:
        raise PadGeneratorError("At least one party in format name@machine is required")
    for party in parties:
        if not PARTY_PATTERN.fullmatch(party):
            raise PadGeneratorError(f'Party "{party}" does not follow "name@machine" convention')
    if len(set(parties)) != len(parties):
        raise PadGeneratorError(f"Parties must be unique: {list(parties)}")


def generate_pad(
    parties: Sequence[str],
    pad_size: int = ONE_TIME_PAD_SIZE,
    chunk_size: int = CHUNK_SIZE,
) -> OneTimePad:
    """Create a fresh pad of `pad_size` random chunks for the given parties."""
    parties = list(parties)
    validate_parties(parties)
    if pad_size < 1 or chunk_size < 1:
        raise PadGeneratorError(f"Pad size and chunk size must be positive, got {pad_size}x{chunk_size}")

    chunks = [generate_chunk(chunk_size) for _ in range(pad_size)]
    return OneTimePad(local_timestamp(), parties, chunks)
