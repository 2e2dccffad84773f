# padchat/core/serialization.py
"""
JSON wire forms for pads and encrypted conversation histories.

Byte blocks travel as uppercase hex strings rather than arrays of integers, which
keeps pad files compact and printable. Output is canonical JSON, so the same pad
or history always serializes to the same text.
"""

import json
from typing import Iterable, List

import jcs

from padchat.core.encoding import hex_decode, hex_encode
from padchat.core.pad import OneTimePad
from padchat.core.types import EncryptedMessage


def pad_to_dict(pad: OneTimePad) -> dict:
    return {
        "creation_time": pad.creation_time,
        "parties": pad.parties,
        "chunks": [hex_encode(pad.chunk_content(i)) for i in range(pad.chunk_amount)],
        "hash": pad.hash,
    }


def pad_from_dict(d: dict) -> OneTimePad:
    try:
        pad = OneTimePad(
            creation_time=d["creation_time"],
            parties=d["parties"],
            chunks=[hex_decode(c) for c in d["chunks"]],
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise ValueError(f"Malformed pad record: {e}") from e

    # The stored hash is informative only; the recomputed one is authoritative
    stored_hash = d.get("hash")
    if stored_hash and stored_hash.upper() != pad.hash:
        raise ValueError(f"Stored pad hash {stored_hash} does not match recomputed hash {pad.hash}")
    return pad


def pad_to_json(pad: OneTimePad) -> str:
    return _dumps(pad_to_dict(pad))


def pad_from_json(text: str) -> OneTimePad:
    return pad_from_dict(_loads(text, dict))


def message_to_json(message: EncryptedMessage) -> str:
    return _dumps(message.to_dict())


def message_from_json(text: str) -> EncryptedMessage:
    return EncryptedMessage.from_dict(_loads(text, dict))


def messages_to_json(messages: Iterable[EncryptedMessage]) -> str:
    """Histories are serialized as a JSON array, oldest message first."""
    return _dumps([m.to_dict() for m in messages])


def messages_from_json(text: str) -> List[EncryptedMessage]:
    return [EncryptedMessage.from_dict(d) for d in _loads(text, list)]


def _loads(text: str, expected: type):
    try:
        obj = json.loads(text)
    except json.JSONDecodeError as e:
        raise ValueError(f"Not valid JSON: {e}") from e
    if not isinstance(obj, expected):
        raise ValueError(f"Expected a JSON {expected.__name__}, got {type(obj).__name__}")
    return obj


def _dumps(obj) -> str:
    # RFC 8785: sorted keys, no whitespace
    return jcs.canonicalize(obj).decode("utf-8")
