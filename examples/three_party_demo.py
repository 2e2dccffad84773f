# examples/three_party_demo.py
# Run with: python examples/three_party_demo.py
#
# Three parties share one pad. Each keeps its own Conversation; messages travel
# between them in the mail-safe line format.

from padchat.chain import Conversation
from padchat.core.errors import OutOfChunks
from padchat.core.types import EncryptedMessage, PlainMessage
from padchat.crypto.generator import generate_pad
from padchat.verify.verifier import HistoryVerifier


def say(conversation: Conversation, text: str) -> str:
    author, _, machine = conversation.party.partition("@")
    encrypted = conversation.add_plain_message(PlainMessage.from_text(author, machine, text))
    return encrypted.serialize_to_text()


def deliver(wire: str, *receivers: Conversation):
    for receiver in receivers:
        plain = receiver.add_encrypted_message(EncryptedMessage.from_text(wire, receiver.pad))
        print(f"  {receiver.party} got from {plain.party}: {plain.text}")


if __name__ == "__main__":
    pad = generate_pad(["alice@luna", "bob@mars", "carol@venus"], pad_size=48, chunk_size=16)
    print(f"Pad {pad.hash[:6]}: {pad.chunk_amount} chunks of {pad.chunk_size} bytes\n")

    alice, bob, carol = (Conversation(pad, party) for party in pad.parties)

    wire = say(alice, "Morning everyone, status please.")
    print(f"alice@luna sends:\n{wire}")
    deliver(wire, bob, carol)

    deliver(say(bob, "Mars base nominal."), alice, carol)
    deliver(say(carol, "Venus is cloudy, as usual."), alice, bob)

    # Restart alice from her exported history; her cursor continues where it was
    exported = alice.serialize_encrypted_messages_to_json()
    alice = Conversation.restore(exported, "alice@luna", pad)
    print(f"\nalice restored, next chunk: {alice.next_chunk_id_for_encryption}")

    print("\n" + str(HistoryVerifier(pad).verify(alice.get_encrypted_conversation_history())))

    try:
        while True:
            say(alice, "Filling the pad until it runs out of chunks for alice.")
    except OutOfChunks as e:
        print(f"\nPad exhausted for alice: {e}")
        print(f"Cursor stays at {alice.next_chunk_id_for_encryption}, incoming messages still work:")
        deliver(say(bob, "Time for a new pad."), alice)
