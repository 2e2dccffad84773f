# tests/test_cli.py
import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from padchat.chain import Conversation
from padchat.cli.main import app
from padchat.crypto.generator import generate_pad
from padchat.storage import SQLiteStorage, load_pad, save_pad

runner = CliRunner()


@pytest.fixture
def pad_file(tmp_path: Path) -> Path:
    pad = generate_pad(["alice@luna", "bob@mars"], pad_size=64, chunk_size=16)
    return save_pad(pad, tmp_path / "otp-001.json")


@pytest.fixture
def temp_db(tmp_path: Path) -> Path:
    return tmp_path / "test-cli.db"


def encrypted_lines(output: str, pad_file: Path) -> str:
    prefix = load_pad(pad_file).hash[:6]
    return "".join(line + "\n" for line in output.splitlines() if line.startswith(prefix))


def test_generate_creates_pad(tmp_path: Path):
    out = tmp_path / "otp-XXX.json"
    result = runner.invoke(app, ["generate", "alice@luna", "bob@mars", "--chunks", "32", "--chunk-size", "8", "-o", str(out)])

    assert result.exit_code == 0, result.output
    assert "Finished creation" in result.output
    pad = load_pad(out)
    assert pad.parties == ["alice@luna", "bob@mars"]
    assert (pad.chunk_amount, pad.chunk_size) == (32, 8)


def test_generate_refuses_overwrite(pad_file: Path):
    result = runner.invoke(app, ["generate", "alice@luna", "--chunks", "4", "-o", str(pad_file)])
    assert result.exit_code == 1
    assert "already exists" in " ".join(result.output.split())


def test_generate_rejects_bad_party(tmp_path: Path):
    result = runner.invoke(app, ["generate", "alice", "-o", str(tmp_path / "otp.json")])
    assert result.exit_code == 1
    assert "name@machine" in result.output


def test_info_lists_parties(pad_file: Path):
    result = runner.invoke(app, ["info", str(pad_file)])
    assert result.exit_code == 0
    assert "alice@luna" in result.output
    assert "bob@mars" in result.output
    assert "64 x 16" in result.output


def test_missing_pad_file(tmp_path: Path, temp_db: Path):
    result = runner.invoke(app, ["send", str(tmp_path / "nope.json"), "alice@luna", "hi", "--db", str(temp_db)])
    assert result.exit_code == 1
    assert "not found" in result.output.lower()


def test_send_and_receive(pad_file: Path, tmp_path: Path):
    alice_db = tmp_path / "alice.db"
    bob_db = tmp_path / "bob.db"

    sent = runner.invoke(app, ["send", str(pad_file), "alice@luna", "Meet me at the crater", "--db", str(alice_db)])
    assert sent.exit_code == 0, sent.output
    lines = encrypted_lines(sent.output, pad_file)
    assert len(lines.splitlines()) == 2  # 21 bytes in 16 byte chunks

    message_file = tmp_path / "message.txt"
    message_file.write_text(lines, encoding="utf-8")
    received = runner.invoke(app, ["receive", str(pad_file), "bob@mars", "--input", str(message_file), "--db", str(bob_db)])
    assert received.exit_code == 0, received.output
    assert "alice@luna" in received.output
    assert "Meet me at the crater" in received.output

    history = runner.invoke(app, ["history", str(pad_file), "bob@mars", "--db", str(bob_db)])
    assert history.exit_code == 0
    assert "crater" in history.output


def test_receive_from_stdin(pad_file: Path, temp_db: Path):
    sent = runner.invoke(app, ["send", str(pad_file), "bob@mars", "ping", "--db", str(temp_db)])
    lines = encrypted_lines(sent.output, pad_file)

    received = runner.invoke(app, ["receive", str(pad_file), "alice@luna", "--db", str(temp_db)], input=lines)
    assert received.exit_code == 0, received.output
    assert "ping" in received.output


def test_receive_garbage(pad_file: Path, temp_db: Path):
    result = runner.invoke(app, ["receive", str(pad_file), "alice@luna", "--db", str(temp_db)], input="hello\n")
    assert result.exit_code == 1
    assert "decryption failed" in result.output.lower()


def test_send_continues_cursor_across_runs(pad_file: Path, temp_db: Path):
    first = runner.invoke(app, ["send", str(pad_file), "alice@luna", "one", "--db", str(temp_db)])
    second = runner.invoke(app, ["send", str(pad_file), "alice@luna", "two", "--db", str(temp_db)])

    prefix = load_pad(pad_file).hash[:6]
    assert encrypted_lines(first.output, pad_file).startswith(f"{prefix}-00-")
    assert encrypted_lines(second.output, pad_file).startswith(f"{prefix}-02-")


def test_send_prints_nothing_when_history_cannot_be_saved(pad_file: Path, temp_db: Path, monkeypatch):
    def refuse(self, pad_hash, party, sequence, msg):
        raise OSError("disk full")

    monkeypatch.setattr(SQLiteStorage, "append", refuse)
    result = runner.invoke(app, ["send", str(pad_file), "alice@luna", "secret", "--db", str(temp_db)])

    assert result.exit_code == 1
    assert "not sent" in result.output
    assert encrypted_lines(result.output, pad_file) == ""


def test_send_unknown_party(pad_file: Path, temp_db: Path):
    result = runner.invoke(app, ["send", str(pad_file), "eve@pluto", "hi", "--db", str(temp_db)])
    assert result.exit_code == 1
    assert "eve@pluto" in result.output


def test_send_out_of_chunks(tmp_path: Path, temp_db: Path):
    tiny = save_pad(generate_pad(["alice@luna", "bob@mars"], pad_size=2, chunk_size=2), tmp_path / "tiny.json")
    result = runner.invoke(app, ["send", str(tiny), "alice@luna", "far too long", "--db", str(temp_db)])
    assert result.exit_code == 1
    assert "encryption failed" in result.output.lower()


def test_history_empty(pad_file: Path, temp_db: Path):
    result = runner.invoke(app, ["history", str(pad_file), "alice@luna", "--db", str(temp_db)])
    assert result.exit_code == 0
    assert "no messages" in result.output.lower()


def test_verify_runs_on_populated_db(pad_file: Path, temp_db: Path):
    runner.invoke(app, ["send", str(pad_file), "alice@luna", "hello", "--db", str(temp_db)])
    result = runner.invoke(app, ["verify", str(pad_file), "alice@luna", "--db", str(temp_db)])
    assert result.exit_code == 0
    assert "valid" in result.output.lower()


def test_verify_missing_db(pad_file: Path, tmp_path: Path):
    result = runner.invoke(app, ["verify", str(pad_file), "alice@luna", "--db", str(tmp_path / "missing.db")])
    assert result.exit_code == 1
    assert "not found" in result.output.lower()


def test_export_is_restorable(pad_file: Path, temp_db: Path, tmp_path: Path):
    runner.invoke(app, ["send", str(pad_file), "alice@luna", "Hello world", "--db", str(temp_db)])
    runner.invoke(app, ["send", str(pad_file), "alice@luna", "Hi there!", "--db", str(temp_db)])
    output_file = tmp_path / "export.json"

    result = runner.invoke(app, ["export", str(pad_file), "alice@luna", "--db", str(temp_db), "-o", str(output_file)])
    assert result.exit_code == 0, result.output
    assert "Exported 2 messages" in result.output

    exported = output_file.read_text(encoding="utf-8")
    assert len(json.loads(exported)) == 2
    restored = Conversation.restore(exported, "alice@luna", load_pad(pad_file))
    assert [m.text for m in restored.get_plain_conversation_history()] == ["Hello world", "Hi there!"]
    assert restored.next_chunk_id_for_encryption == 4
