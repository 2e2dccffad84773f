# padchat/core/encoding.py
import binascii


def hex_encode(data: bytes) -> str:
    """Encode bytes to uppercase hex (the pad and envelope wire form)."""
    return binascii.hexlify(data).decode("ascii").upper()


def hex_decode(s: str) -> bytes:
    """Decode a hex string (either case) back to bytes."""
    try:
        return binascii.unhexlify(s.strip())
    except (binascii.Error, ValueError) as e:
        raise ValueError(f"Invalid hex string: {s[:16]!r}...") from e
