# padchat/verify/verifier.py
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from padchat.core.pad import OneTimePad
from padchat.core.types import EncryptedMessage
from padchat.storage import StorageBackend


@dataclass(frozen=True)
class VerificationFailure:
    index: int
    message: str
    category: str  # "pad", "bounds", "stride", "chop", "reuse", "storage"


@dataclass
class VerificationResult:
    """Outcome of auditing one history. Valid exactly when no failure was found."""
    checked: int = 0
    failures: List[VerificationFailure] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.failures

    @property
    def first_failure(self) -> Optional[VerificationFailure]:
        return self.failures[0] if self.failures else None

    @property
    def message(self) -> str:
        if self.is_valid:
            return f"{self.checked} messages checked, no pad chunk used twice"
        return f"{len(self.failures)} problems in {self.checked} messages"

    def __bool__(self):
        return self.is_valid

    def __str__(self):
        if self.is_valid:
            return f"History is valid: {self.message}"
        lines = [f"History FAILED verification: {self.message}"]
        lines.extend(f"  • [{f.index}] {f.category}: {f.message}" for f in self.failures)
        return "\n".join(lines)


class HistoryVerifier:
    """
    Offline auditor for encrypted conversation histories.
    Confirms every message belongs to the pad and that no pad chunk was used twice.
    """

    def __init__(self, pad: OneTimePad):
        if pad is None:
            raise ValueError("pad is required")
        self.pad = pad

    def layout_failures(self, index: int, msg: EncryptedMessage) -> List[VerificationFailure]:
        """
        Problems with a single message as laid out on the pad: wrong pad, a step
        between chops other than the party stride, a follow-up index that does not
        continue that stride, or a chop of the wrong length.
        Chunk bounds are not checked here; decryption reports those.
        """
        if msg.otp_hash != self.pad.hash:
            return [VerificationFailure(index, f"Encrypted with pad {msg.otp_hash}", "pad")]

        stride = self.pad.party_amount
        indices = msg.chunks_used
        failures = []
        for prev, curr in zip(indices, indices[1:]):
            if curr - prev != stride:
                failures.append(VerificationFailure(index, f"Step {prev} → {curr} is not the stride {stride}", "stride"))
        if msg.follow_up_chunk_index != indices[-1] + stride:
            failures.append(VerificationFailure(
                index, f"Follow-up index {msg.follow_up_chunk_index}, expected {indices[-1] + stride}", "stride"))
        for chunk_index, chop in msg.chops:
            if len(chop) != self.pad.chunk_size:
                failures.append(VerificationFailure(
                    index, f"Chop {chunk_index} has {len(chop)} bytes, pad chunks have {self.pad.chunk_size}", "chop"))
        return failures

    def verify(self, history: List[EncryptedMessage]) -> VerificationResult:
        result = VerificationResult(checked=len(history))

        foreign = [VerificationFailure(i, f"Encrypted with pad {msg.otp_hash}", "pad")
                   for i, msg in enumerate(history) if msg.otp_hash != self.pad.hash]
        if foreign:
            # layout is meaningless against the wrong pad
            result.failures.extend(foreign)
            return result

        for i, msg in enumerate(history):
            for chunk_index in msg.chunks_used:
                if not 0 <= chunk_index < self.pad.chunk_amount:
                    result.failures.append(VerificationFailure(i, f"Chunk {chunk_index} lies outside the pad", "bounds"))
            result.failures.extend(self.layout_failures(i, msg))

        first_use: Dict[int, int] = {}
        for i, msg in enumerate(history):
            for chunk_index in msg.chunks_used:
                if chunk_index in first_use:
                    result.failures.append(VerificationFailure(
                        i, f"Chunk {chunk_index} already used by message {first_use[chunk_index]}", "reuse"))
                else:
                    first_use[chunk_index] = i

        return result

    def verify_from_storage(self, party: str, storage: StorageBackend) -> VerificationResult:
        """Load a party's history from persistent storage and verify it. A load error is a "storage" failure."""
        try:
            history = storage.load_messages(self.pad.hash, party)
        except Exception as e:
            return VerificationResult(failures=[
                VerificationFailure(-1, f"Failed to load history of '{party}': {e}", "storage")
            ])

        return self.verify(history)
