# padchat/core/errors.py
"""
Exception hierarchy for pad handling, encryption and conversations.
Every error is raised synchronously to the caller and never retried internally.
"""


class PadChatError(Exception):
    """Base class for all padchat errors."""


class CryptorError(PadChatError):
    """Malformed input to a low-level transform (chop length, padding target, empty message)."""


class OutOfChunks(CryptorError):
    """A requested chunk index lies outside the pad. The pad is exhausted for this party."""


class OneTimePadMismatch(CryptorError):
    """An encrypted message or history was produced with a different pad than the one supplied."""


class InvalidParty(PadChatError):
    """Party is not associated with the pad, or its name does not follow the naming convention."""


class PadGeneratorError(PadChatError):
    """Pad generation was requested with invalid parties or sizes."""


class StorageError(PadChatError):
    """A history record could not be written. Nothing was committed."""
