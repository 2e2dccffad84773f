# padchat/crypto/hashing.py
import hashlib
from typing import Sequence


def pad_hash(creation_time: str, parties: Sequence[str]) -> str:
    """
    Identity tag of a pad: uppercase hex MD5 over "<creation_time>-<party_1>-...-<party_n>".
    Chunk contents are deliberately not part of it, so it names a pad without authenticating it.
    """
    identifier = creation_time
    for party in parties:
        identifier += "-" + party
    return hashlib.md5(identifier.encode("utf-8")).hexdigest().upper()
