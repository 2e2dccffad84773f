# padchat/storage/sqlite.py
import os
import sqlite3
from pathlib import Path
from typing import List, Optional, Tuple

from padchat.core.serialization import message_from_json, message_to_json
from padchat.core.types import EncryptedMessage, local_timestamp
from . import StorageBackend


class SQLiteStorage(StorageBackend):
    """SQLite persistent storage for encrypted conversation histories."""

    def __init__(self, db_path: str | Path | None = None):
        if db_path is None:
            env_path = os.environ.get("PADCHAT_DB_PATH")
            db_path = env_path if env_path else Path.cwd() / "padchat-history.db"

        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.db_path = self.db_path.resolve()

        self._conn: Optional[sqlite3.Connection] = None
        self._connect()

    def _connect(self):
        self._conn = sqlite3.connect(str(self.db_path), isolation_level=None)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._create_schema()

    def _create_schema(self):
        self.conn.execute("""
            CREATE TABLE IF NOT EXISTS messages (
                pad_hash               TEXT    NOT NULL,
                party                  TEXT    NOT NULL,
                sequence               INTEGER NOT NULL,
                first_chunk_index      INTEGER NOT NULL,
                follow_up_chunk_index  INTEGER NOT NULL,
                stored_at              TEXT    NOT NULL,
                message_json           TEXT    NOT NULL,
                PRIMARY KEY (pad_hash, party, sequence)
            )
        """)
        self.conn.execute("CREATE INDEX IF NOT EXISTS idx_stored_at ON messages(pad_hash, party, stored_at)")

    @property
    def conn(self) -> sqlite3.Connection:
        if self._conn is None:
            raise RuntimeError("Storage connection is closed")
        return self._conn

    def append(self, pad_hash: str, party: str, sequence: int, msg: EncryptedMessage) -> None:
        """Raises sqlite3.IntegrityError if `sequence` is already taken by another writer."""
        if msg.otp_hash != pad_hash:
            raise ValueError(f"Cannot store a message of pad {msg.otp_hash} under pad {pad_hash}")

        self.conn.execute("""
            INSERT INTO messages
            (pad_hash, party, sequence, first_chunk_index, follow_up_chunk_index,
             stored_at, message_json)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """, (
            pad_hash, party, sequence, msg.first_chunk_index, msg.follow_up_chunk_index,
            local_timestamp(), message_to_json(msg)
        ))

    def load_messages(self, pad_hash: str, party: str) -> List[EncryptedMessage]:
        cursor = self.conn.execute("""
            SELECT sequence, message_json
            FROM messages WHERE pad_hash = ? AND party = ? ORDER BY sequence ASC
        """, (pad_hash, party))

        loaded = []
        for expected, (seq, mjson) in enumerate(cursor):
            if seq != expected:
                raise ValueError(f"History gap: expected sequence {expected}, found {seq}")
            msg = message_from_json(mjson)
            if msg.otp_hash != pad_hash:
                raise ValueError(f"Message {seq} belongs to pad {msg.otp_hash}, not {pad_hash}")
            loaded.append(msg)
        return loaded

    def close(self) -> None:
        if self._conn:
            self._conn.close()
            self._conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def list_conversations(self) -> List[Tuple[str, str]]:
        """
        List all (pad_hash, party) pairs, most recently active first.
        """
        cursor = self.conn.execute("""
            SELECT pad_hash, party
            FROM messages
            GROUP BY pad_hash, party
            ORDER BY MAX(stored_at) DESC
        """)
        return [(row[0], row[1]) for row in cursor.fetchall()]

    def get_message_count(self, pad_hash: str, party: str) -> int:
        cursor = self.conn.execute(
            "SELECT COUNT(*) FROM messages WHERE pad_hash = ? AND party = ?",
            (pad_hash, party)
        )
        return cursor.fetchone()[0]
