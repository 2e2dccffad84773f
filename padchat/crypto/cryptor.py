# padchat/crypto/cryptor.py
"""
Stateless one-time-pad transforms: chopping, padding and XOR.

XOR is its own inverse, so `crypt_chunk_sized_message` serves encryption and
decryption alike. Messages are cut into pad-chunk sized chops; the last chop is
right-padded with ASCII spaces, which text decryption trims again.
"""

from typing import List

from padchat.core.errors import CryptorError, OneTimePadMismatch
from padchat.core.pad import OneTimePad
from padchat.core.types import EncryptedMessage, PlainMessage

PADDING_BYTE = b" "


def whitespace_bytes(length: int) -> bytes:
    return PADDING_BYTE * length


def pad_string(message: str, target_length: int) -> str:
    """Left-pad `message` with spaces up to `target_length`."""
    if len(message) > target_length:
        raise CryptorError(
            f"Message cannot be padded: it already exceeds the target length of {target_length}"
        )
    return message.rjust(target_length)


def chop(message: bytes, chunk_size: int) -> List[bytes]:
    """Split into ceil(len / chunk_size) blocks of exactly chunk_size bytes."""
    if chunk_size < 1:
        raise CryptorError(f"Chop size must be positive, got {chunk_size}")
    chops = [message[i:i + chunk_size] for i in range(0, len(message), chunk_size)]
    if chops and len(chops[-1]) < chunk_size:
        chops[-1] = chops[-1].ljust(chunk_size, PADDING_BYTE)
    return chops


def crypt_chunk_sized_message(data: bytes, chunk: bytes) -> bytes:
    if len(data) != len(chunk):
        raise CryptorError(
            f"Message does not fit chunk: {len(data)} bytes against a {len(chunk)} byte chunk"
        )
    # indexing bytes yields 0..255, nothing to sign-extend
    return bytes(a ^ b for a, b in zip(data, chunk))


def encrypt_message(message: PlainMessage, pad: OneTimePad, start_chunk_id: int) -> EncryptedMessage:
    """
    Encrypt `message` with the chunks start_chunk_id, start_chunk_id + stride, ...
    Raises OutOfChunks (from the pad) before anything is returned if the pad runs out.
    """
    chops = chop(message.payload, pad.chunk_size)
    if not chops:
        raise CryptorError("Cannot encrypt an empty message")

    stride = pad.party_amount
    encrypted_chops = [
        crypt_chunk_sized_message(plain_chop, pad.chunk_content(start_chunk_id + i * stride))
        for i, plain_chop in enumerate(chops)
    ]
    return EncryptedMessage.create(pad, start_chunk_id, encrypted_chops)


def decrypt_message(encrypted: EncryptedMessage, pad: OneTimePad, trim_text: bool) -> PlainMessage:
    """
    Recover the plain message. With `trim_text` trailing whitespace is stripped, which
    undoes the chop padding for text but also eats real trailing spaces of binary payloads.
    The author is the party whose stride the first chunk index belongs to.
    """
    if encrypted.otp_hash != pad.hash:
        raise OneTimePadMismatch(
            f"Message was encrypted with pad {encrypted.otp_hash}, the provided pad is {pad.hash}"
        )

    payload = b"".join(
        crypt_chunk_sized_message(encrypted_chop, pad.chunk_content(index))
        for index, encrypted_chop in encrypted.chops
    )
    if trim_text:
        payload = payload.rstrip()

    party = pad.parties[encrypted.first_chunk_index % pad.party_amount]
    author, _, machine = party.partition("@")
    return PlainMessage(author, machine, payload)
