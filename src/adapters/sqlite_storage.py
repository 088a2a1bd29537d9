"""SQLite storage adapter.

Implements the core RevisionStorePort using a simple SQLite database.
"""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime
from typing import List, Optional

from core.models import MessageRecord, RevisionRecord

LOGGER = logging.getLogger(__name__)


class SchemaError(RuntimeError):
    """Raised when a required table cannot be created."""


class SQLiteRevisionStore:
    """Thin SQLite wrapper that satisfies the RevisionStorePort contract.

    One connection is opened lazily and shared for the lifetime of the store.
    """

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._conn: Optional[sqlite3.Connection] = None

    def _connect(self) -> sqlite3.Connection:
        if self._conn is None:
            conn = sqlite3.connect(self._db_path)
            conn.row_factory = sqlite3.Row
            self._conn = conn
        return self._conn

    def ensure_schema(self) -> None:
        """Create tables if they do not exist.

        Tables:
        - messages: one identity row per archived message
        - revisions: append-only log of every relevant version of a message
        """

        try:
            conn = self._connect()
            with conn:
                # messages is keyed by (channel_id, message_id) so identity
                # writes can be idempotent upserts.
                # Fields:
                # - channel_id: id of the chat the message lives in
                # - message_id: id of the message within that chat
                # - channel_label: "#name", group name, or DM counterpart tag
                # - author_tag: sender display tag at first capture
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS messages (
                        channel_id INTEGER NOT NULL,
                        message_id INTEGER NOT NULL,
                        channel_label TEXT,
                        author_tag TEXT,
                        PRIMARY KEY (channel_id, message_id)
                    )
                    """
                )
                # revisions is append-only; the autoincrement id records
                # insertion order, which matches edit order per message.
                # Fields:
                # - id: auto-increment primary key
                # - channel_id, message_id: back-reference to messages
                # - text: raw message body at that point in time
                # - timestamp: edit time if edited, else creation time
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS revisions (
                        id INTEGER PRIMARY KEY AUTOINCREMENT,
                        channel_id INTEGER NOT NULL,
                        message_id INTEGER NOT NULL,
                        text TEXT NOT NULL,
                        timestamp TIMESTAMP NOT NULL
                    )
                    """
                )
                conn.execute(
                    """
                    CREATE INDEX IF NOT EXISTS idx_revisions_message
                    ON revisions (channel_id, message_id)
                    """
                )
        except sqlite3.Error as e:
            raise SchemaError(f"Error creating tables in {self._db_path}: {e}") from e

    @staticmethod
    def _insert_message(conn: sqlite3.Connection, record: MessageRecord) -> bool:
        cur = conn.execute(
            """
            INSERT OR IGNORE INTO messages (channel_id, message_id, channel_label, author_tag)
            VALUES (?, ?, ?, ?)
            """,
            (record.channel_id, record.message_id, record.channel_label, record.author_tag),
        )
        return cur.rowcount > 0

    @staticmethod
    def _insert_revision(conn: sqlite3.Connection, record: RevisionRecord) -> None:
        conn.execute(
            """
            INSERT INTO revisions (channel_id, message_id, text, timestamp)
            VALUES (?, ?, ?, ?)
            """,
            (record.channel_id, record.message_id, record.text, record.timestamp.isoformat()),
        )

    def create_message(self, record: MessageRecord) -> bool:
        """Insert the identity row unless one already exists for this id."""

        try:
            conn = self._connect()
            with conn:
                if self._insert_message(conn, record):
                    LOGGER.debug("Created identity for message %s", record.message_id)
        except sqlite3.Error:
            LOGGER.exception("Error inserting message %s", record.message_id)
            return False
        return True

    def append_revision(self, record: RevisionRecord) -> bool:
        """Append one content row."""

        try:
            conn = self._connect()
            with conn:
                self._insert_revision(conn, record)
        except sqlite3.Error:
            LOGGER.exception("Error inserting revision for message %s", record.message_id)
            return False
        return True

    def store_revision(self, identity: MessageRecord, revision: RevisionRecord) -> bool:
        """Upsert the identity and append the revision in one transaction."""

        try:
            conn = self._connect()
            with conn:
                self._insert_message(conn, identity)
                self._insert_revision(conn, revision)
        except sqlite3.Error:
            LOGGER.exception("Error storing revision for message %s", revision.message_id)
            return False
        return True

    @staticmethod
    def _message_from_row(row: sqlite3.Row) -> MessageRecord:
        return MessageRecord(
            channel_id=int(row["channel_id"]),
            message_id=int(row["message_id"]),
            channel_label=row["channel_label"],
            author_tag=row["author_tag"],
        )

    def get_message(self, channel_id: int, message_id: int) -> Optional[MessageRecord]:
        """Return the identity row for a message, if archived."""

        row = self._connect().execute(
            """
            SELECT channel_id, message_id, channel_label, author_tag
            FROM messages WHERE channel_id = ? AND message_id = ?
            """,
            (channel_id, message_id),
        ).fetchone()
        return self._message_from_row(row) if row else None

    def find_messages(self, message_id: int) -> List[MessageRecord]:
        """Return identity rows with this message id across all channels."""

        rows = self._connect().execute(
            """
            SELECT channel_id, message_id, channel_label, author_tag
            FROM messages WHERE message_id = ? ORDER BY channel_id
            """,
            (message_id,),
        ).fetchall()
        return [self._message_from_row(row) for row in rows]

    def list_messages(self) -> List[MessageRecord]:
        """Return every archived identity row."""

        rows = self._connect().execute(
            """
            SELECT channel_id, message_id, channel_label, author_tag
            FROM messages ORDER BY channel_id, message_id
            """
        ).fetchall()
        return [self._message_from_row(row) for row in rows]

    def list_revisions(self, channel_id: int, message_id: int) -> List[RevisionRecord]:
        """Return a message's revisions in insertion (edit) order."""

        rows = self._connect().execute(
            """
            SELECT channel_id, message_id, text, timestamp
            FROM revisions WHERE channel_id = ? AND message_id = ? ORDER BY id
            """,
            (channel_id, message_id),
        ).fetchall()
        return [
            RevisionRecord(
                channel_id=int(row["channel_id"]),
                message_id=int(row["message_id"]),
                text=row["text"],
                timestamp=datetime.fromisoformat(row["timestamp"]),
            )
            for row in rows
        ]

    def close(self) -> None:
        """Close the shared connection if it was ever opened."""

        if self._conn is None:
            return
        self._conn.close()
        self._conn = None
