# padchat/cli/main.py
"""
CLI for generating one-time pads and exchanging encrypted messages over them.
"""

import os
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from padchat.chain import Conversation
from padchat.core.errors import PadChatError, StorageError
from padchat.core.pad import OneTimePad
from padchat.core.types import EncryptedMessage, PlainMessage
from padchat.crypto.generator import CHUNK_SIZE, ONE_TIME_PAD_SIZE, generate_pad
from padchat.storage import DEFAULT_PAD_NAME, SQLiteStorage, load_pad, save_pad
from padchat.verify.verifier import HistoryVerifier

app = typer.Typer(
    name="padchat",
    help="Generate one-time pads and exchange encrypted messages over them",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


def get_db_path(db_flag: Optional[Path] = None) -> Path:
    """Resolve DB path in this order:
    1. --db flag
    2. PADCHAT_DB_PATH environment variable
    3. Default: ~/.padchat/padchat-history.db
    """
    if db_flag:
        path = db_flag.resolve()
    else:
        env_path = os.environ.get("PADCHAT_DB_PATH")
        if env_path:
            path = Path(env_path).resolve()
        else:
            path = Path.home() / ".padchat" / "padchat-history.db"

    path.parent.mkdir(parents=True, exist_ok=True)
    return path


def open_pad(pad_path: Path) -> OneTimePad:
    if not pad_path.exists():
        console.print(f"[red]Pad file not found: {pad_path}[/]")
        console.print("  Create one with: padchat generate name@machine name@machine")
        raise typer.Exit(1)
    try:
        return load_pad(pad_path)
    except ValueError as e:
        console.print(f"[red]Failed to read pad {pad_path}: {str(e)}[/]")
        raise typer.Exit(1)


def open_conversation(pad: OneTimePad, party: str, db: Optional[Path]) -> Conversation:
    try:
        return Conversation(pad, party, storage=SQLiteStorage(get_db_path(db)))
    except PadChatError as e:
        console.print(f"[red]Cannot open conversation for '{party}': {str(e)}[/]")
        raise typer.Exit(1)
    except ValueError as e:
        console.print(f"[red]Stored history for '{party}' is unreadable: {str(e)}[/]")
        raise typer.Exit(1)


@app.command()
def generate(
    parties: List[str] = typer.Argument(..., help="Parties in name@machine format, in pad order"),
    chunks: int = typer.Option(ONE_TIME_PAD_SIZE, "--chunks", "-c", help="Number of chunks in the pad"),
    chunk_size: int = typer.Option(CHUNK_SIZE, "--chunk-size", "-s", help="Bytes per chunk"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help=f"Pad file (default: ./{DEFAULT_PAD_NAME})"),
):
    """Generate a new one-time pad for the given parties."""
    out_path = output or Path.cwd() / DEFAULT_PAD_NAME

    try:
        pad = generate_pad(parties, pad_size=chunks, chunk_size=chunk_size)
        save_pad(pad, out_path)
    except PadChatError as e:
        console.print(f"[red]Pad generation failed: {str(e)}[/]")
        raise typer.Exit(1)
    except FileExistsError as e:
        console.print(f"[red]{str(e)}[/]")
        raise typer.Exit(1)

    console.print(f"[green]Finished creation of one-time pad {pad.hash[:6]} ({chunks} x {chunk_size} bytes)[/]")
    console.print(f"Written to {out_path}")
    console.print("[yellow]Next steps:[/]")
    console.print('  • Replace the XXX in the file name by a number unique among your pads')
    console.print("  • Copy the pad to every communicating end device, over a channel you trust")


@app.command()
def info(
    pad_file: Path = typer.Argument(..., help="Pad file"),
):
    """Show identity, parties and size of a pad."""
    pad = open_pad(pad_file)

    console.print(f"[bold]Pad {pad.hash}[/]")
    console.print(f"  Created: {pad.creation_time}")
    console.print(f"  Chunks:  {pad.chunk_amount} x {pad.chunk_size} bytes")

    table = Table(title="Parties")
    table.add_column("Index")
    table.add_column("Party")
    for index, party in enumerate(pad.parties):
        table.add_row(str(index), party)
    console.print(table)


@app.command()
def send(
    pad_file: Path = typer.Argument(..., help="Pad file"),
    party: str = typer.Argument(..., help="Sending party (name@machine)"),
    message: str = typer.Argument(..., help="Message text"),
    db: Optional[Path] = typer.Option(None, "--db", help="History database (overrides PADCHAT_DB_PATH)"),
):
    """Encrypt a message as PARTY and print it in the mail-safe line format."""
    pad = open_pad(pad_file)
    conversation = open_conversation(pad, party, db)

    try:
        author, _, machine = party.partition("@")
        encrypted = conversation.add_plain_message(PlainMessage.from_text(author, machine, message))
    except StorageError as e:
        console.print(f"[red]Message not sent, history could not be saved: {str(e)}[/]")
        raise typer.Exit(1)
    except PadChatError as e:
        console.print(f"[red]Encryption failed: {str(e)}[/]")
        raise typer.Exit(1)
    finally:
        conversation.close()

    # plain echo, rich would wrap the long hex lines
    typer.echo(encrypted.serialize_to_text(), nl=False)


@app.command()
def receive(
    pad_file: Path = typer.Argument(..., help="Pad file"),
    party: str = typer.Argument(..., help="Receiving party (name@machine)"),
    input_file: Optional[Path] = typer.Option(None, "--input", "-i", help="File with encrypted lines (default: stdin)"),
    db: Optional[Path] = typer.Option(None, "--db", help="History database (overrides PADCHAT_DB_PATH)"),
):
    """Decrypt a message in line format and add it to PARTY's history."""
    pad = open_pad(pad_file)
    text = input_file.read_text(encoding="utf-8") if input_file else sys.stdin.read()
    conversation = open_conversation(pad, party, db)

    try:
        plain = conversation.add_encrypted_message(EncryptedMessage.from_text(text, pad))
    except PadChatError as e:
        console.print(f"[red]Decryption failed: {str(e)}[/]")
        raise typer.Exit(1)
    finally:
        conversation.close()

    console.print(f"[bold cyan]{plain.party}[/]: {escape(plain.text)}", highlight=False)


@app.command()
def history(
    pad_file: Path = typer.Argument(..., help="Pad file"),
    party: str = typer.Argument(..., help="Party whose history to show (name@machine)"),
    db: Optional[Path] = typer.Option(None, "--db", help="History database (overrides PADCHAT_DB_PATH)"),
):
    """Show the decrypted conversation history of PARTY."""
    pad = open_pad(pad_file)
    conversation = open_conversation(pad, party, db)

    try:
        encrypted = conversation.get_encrypted_conversation_history()
        plain = conversation.get_plain_conversation_history()
    except PadChatError as e:
        console.print(f"[red]Failed to decrypt history: {str(e)}[/]")
        raise typer.Exit(1)
    finally:
        conversation.close()

    if not plain:
        console.print(f"[yellow]No messages recorded for '{party}' on pad {pad.hash[:6]}[/]")
        return

    table = Table(title=f"Conversation of {party} on pad {pad.hash[:6]}")
    table.add_column("#")
    table.add_column("Author")
    table.add_column("Chunks")
    table.add_column("Message")
    for i, (enc, msg) in enumerate(zip(encrypted, plain)):
        chunks = enc.chunks_used
        span = str(chunks[0]) if len(chunks) == 1 else f"{chunks[0]}..{chunks[-1]}"
        table.add_row(str(i), msg.party, span, escape(msg.text))
    console.print(table)


@app.command()
def verify(
    pad_file: Path = typer.Argument(..., help="Pad file"),
    party: str = typer.Argument(..., help="Party whose history to verify (name@machine)"),
    db: Optional[Path] = typer.Option(None, "--db", help="History database (overrides PADCHAT_DB_PATH)"),
):
    """Verify a stored history: pad identity, chunk layout and no chunk reuse."""
    pad = open_pad(pad_file)
    db_path = get_db_path(db)

    if not db_path.exists():
        console.print(f"[red]Database file not found: {db_path}[/]")
        raise typer.Exit(1)

    with SQLiteStorage(db_path) as storage:
        result = HistoryVerifier(pad).verify_from_storage(party, storage)

    if result.is_valid:
        console.print(f"[green]✓ History of '{party}' is valid[/]")
        console.print(f"  {result.message}")
    else:
        console.print(f"[red]✗ Verification failed for '{party}'[/]")
        for failure in result.failures:
            console.print(f"  • [{failure.index}] {failure.category}: {failure.message}", markup=False)
        raise typer.Exit(1)


@app.command()
def export(
    pad_file: Path = typer.Argument(..., help="Pad file"),
    party: str = typer.Argument(..., help="Party whose history to export (name@machine)"),
    db: Optional[Path] = typer.Option(None, "--db", help="History database (overrides PADCHAT_DB_PATH)"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file (default: <pad>-<party>.json)"),
):
    """Export PARTY's encrypted history as a JSON array (restorable with the same pad)."""
    pad = open_pad(pad_file)
    conversation = open_conversation(pad, party, db)

    try:
        if not conversation.length:
            console.print(f"[yellow]No messages recorded for '{party}' on pad {pad.hash[:6]}[/]")
            raise typer.Exit(0)
        out_path = output or Path(f"{pad.hash[:6]}-{party.replace('@', '-')}.json")
        out_path.write_text(conversation.serialize_encrypted_messages_to_json(), encoding="utf-8")
    finally:
        conversation.close()

    console.print(f"[green]Exported {conversation.length} messages to {out_path}[/]")


if __name__ == "__main__":
    app()
