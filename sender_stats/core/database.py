"""
Database repository for sender statistics.

Two tables live in PostgreSQL:
- seen_mails: ids of messages already counted
- senders: running message count per sender

Every message is handled inside one transaction (see Database.unit_of_work) so
its seen-mark and its count increment are committed together or not at all.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Generator

import psycopg
from psycopg.rows import dict_row

from sender_stats.config import settings
from sender_stats.core.errors import StorageError
from sender_stats.core.logging import get_logger
from sender_stats.core.models import SenderCount

log = get_logger(__name__)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS seen_mails (
    mail_id TEXT PRIMARY KEY
);

CREATE TABLE IF NOT EXISTS senders (
    sender TEXT PRIMARY KEY,
    mails_sent INTEGER NOT NULL
);
"""


class SeenMessageStore:
    """Set of message ids that have already been counted."""

    def __init__(self, conn: psycopg.Connection):
        self.conn = conn

    def has_seen(self, message_id: str) -> bool:
        """Check if a message id was already processed."""
        try:
            row = self.conn.execute(
                "SELECT 1 FROM seen_mails WHERE mail_id = %s LIMIT 1",
                (message_id,),
            ).fetchone()
        except psycopg.Error as e:
            raise StorageError(f"Seen lookup failed for {message_id}: {e}") from e
        return row is not None

    def mark_seen(self, message_id: str) -> None:
        """
        Record a message id as processed.

        Raises:
            StorageError: On any failure, including an id that is already present
        """
        try:
            self.conn.execute(
                "INSERT INTO seen_mails (mail_id) VALUES (%s)",
                (message_id,),
            )
        except psycopg.Error as e:
            raise StorageError(f"Failed to mark {message_id} as seen: {e}") from e


class SenderCountStore:
    """Per-sender message counts."""

    def __init__(self, conn: psycopg.Connection):
        self.conn = conn

    def increment(self, sender: str) -> int:
        """
        Add one to a sender's count, creating the row at 1 if needed.

        Returns:
            The new count
        """
        sql = """
        INSERT INTO senders (sender, mails_sent)
        VALUES (%s, 1)
        ON CONFLICT (sender) DO UPDATE SET mails_sent = senders.mails_sent + 1
        RETURNING mails_sent
        """
        try:
            row = self.conn.execute(sql, (sender,)).fetchone()
        except psycopg.Error as e:
            raise StorageError(f"Failed to increment count for {sender!r}: {e}") from e
        if not row:
            raise StorageError(f"Increment returned no row for {sender!r}")
        return row["mails_sent"]


@dataclass
class UnitOfWork:
    """Stores bound to a single open transaction."""

    seen: SeenMessageStore
    senders: SenderCountStore


class Database:
    """PostgreSQL operations for the stats store.

    Holds one connection for the whole run; all access is sequential.
    """

    def __init__(self, connection_string: str | None = None):
        """
        Initialize database access.

        Args:
            connection_string: PostgreSQL connection URL. Uses settings if not provided.
        """
        self.connection_string = connection_string or settings.database_url
        self._conn: psycopg.Connection | None = None

    def connect(self) -> None:
        """Open the shared connection."""
        try:
            self._conn = psycopg.connect(
                self.connection_string,
                autocommit=True,
                row_factory=dict_row,
            )
        except psycopg.Error as e:
            raise StorageError(f"Could not connect to stats database: {e}") from e
        log.info("database_connected")

    def close(self) -> None:
        """Close the shared connection."""
        if self._conn:
            try:
                self._conn.close()
            except psycopg.Error:
                pass
            self._conn = None
            log.info("database_closed")

    def ensure_connection(self) -> None:
        """Reconnect if the connection was never opened, closed, or broken."""
        if self._conn is None or self._conn.closed or self._conn.broken:
            self.close()
            self.connect()

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    @property
    def conn(self) -> psycopg.Connection:
        if self._conn is None:
            raise StorageError("Not connected to stats database")
        return self._conn

    @contextmanager
    def unit_of_work(self) -> Generator[UnitOfWork, None, None]:
        """
        Run a block inside one transaction.

        Commits when the block finishes, rolls back if it raises.
        """
        conn = self.conn
        try:
            with conn.transaction():
                yield UnitOfWork(
                    seen=SeenMessageStore(conn),
                    senders=SenderCountStore(conn),
                )
        except psycopg.Error as e:
            raise StorageError(f"Transaction failed: {e}") from e

    def init_schema(self) -> None:
        """Create the tables if they do not exist."""
        try:
            with self.conn.transaction():
                self.conn.execute(SCHEMA_SQL)
        except psycopg.Error as e:
            raise StorageError(f"Schema initialization failed: {e}") from e
        log.info("database_schema_initialized")

    def top_senders(self, limit: int = 10) -> list[SenderCount]:
        """Senders with the highest counts, ties broken alphabetically."""
        sql = """
        SELECT sender, mails_sent
        FROM senders
        ORDER BY mails_sent DESC, sender ASC
        LIMIT %s
        """
        try:
            rows = self.conn.execute(sql, (limit,)).fetchall()
        except psycopg.Error as e:
            raise StorageError(f"Top senders query failed: {e}") from e
        return [SenderCount(sender=row["sender"], mails_sent=row["mails_sent"]) for row in rows]

    def count_seen(self) -> int:
        """Number of messages processed so far."""
        try:
            row = self.conn.execute("SELECT count(*) AS ct FROM seen_mails").fetchone()
        except psycopg.Error as e:
            raise StorageError(f"Seen count query failed: {e}") from e
        return row["ct"] if row else 0
