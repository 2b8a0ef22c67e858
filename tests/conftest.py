"""
Shared pytest fixtures for sender_stats tests.
"""

from contextlib import contextmanager

import pytest
from unittest.mock import MagicMock

from sender_stats.core.database import UnitOfWork
from sender_stats.core.errors import StorageError
from sender_stats.core.models import Message, MessagePage, MessageStub, SenderCount


def api_message(message_id: str, sender: str | None = None, header_name: str = "From", extra_headers=None) -> dict:
    """Gmail `messages.get` response with the given sender header."""
    headers = [{"name": "Subject", "value": f"Subject of {message_id}"}]
    if sender is not None:
        headers.append({"name": header_name, "value": sender})
    headers.extend(extra_headers or [])
    return {
        "id": message_id,
        "threadId": f"thread-{message_id}",
        "payload": {"headers": headers},
    }


class FakeGmailClient:
    """In-memory stand-in for GmailClient serving pre-built pages."""

    page_size = 500

    def __init__(self, pages: list[list[str]], messages: dict[str, dict]):
        self.pages = pages
        self.messages = messages
        self.list_calls: list[str | None] = []
        self.get_calls: list[str] = []
        self.list_failures: list[Exception] = []
        self.get_failures: dict[str, list[Exception]] = {}

    def list_page(self, page_token: str | None = None) -> MessagePage:
        self.list_calls.append(page_token)
        if self.list_failures:
            raise self.list_failures.pop(0)

        index = 0 if page_token is None else int(page_token.split("-")[1])
        has_next = index + 1 < len(self.pages)
        return MessagePage(
            stubs=[MessageStub(id=mid) for mid in self.pages[index]] if self.pages else [],
            next_page_token=f"page-{index + 1}" if has_next else None,
        )

    def get_message(self, message_id: str) -> Message:
        self.get_calls.append(message_id)
        failures = self.get_failures.get(message_id)
        if failures:
            raise failures.pop(0)
        return Message.from_api(self.messages[message_id])


class _FakeSeenStore:
    def __init__(self, ids: set):
        self.ids = ids

    def has_seen(self, message_id: str) -> bool:
        return message_id in self.ids

    def mark_seen(self, message_id: str) -> None:
        if message_id in self.ids:
            raise StorageError(f"duplicate key value violates unique constraint: {message_id}")
        self.ids.add(message_id)


class _FakeSenderStore:
    def __init__(self, counts: dict):
        self.counts = counts

    def increment(self, sender: str) -> int:
        self.counts[sender] = self.counts.get(sender, 0) + 1
        return self.counts[sender]


class FakeDatabase:
    """
    In-memory stats store with transactional units of work.

    Changes made inside unit_of_work are applied only when the block exits
    cleanly, the same way a committed transaction would be.
    """

    def __init__(self):
        self.seen: set[str] = set()
        self.counts: dict[str, int] = {}
        self.connections = 0
        self.crash_before_commit: set[str] = set()

    def ensure_connection(self) -> None:
        self.connections += 1

    def close(self) -> None:
        pass

    @contextmanager
    def unit_of_work(self):
        seen = set(self.seen)
        counts = dict(self.counts)
        yield UnitOfWork(seen=_FakeSeenStore(seen), senders=_FakeSenderStore(counts))

        crashed = self.crash_before_commit & (seen - self.seen)
        if crashed:
            self.crash_before_commit -= crashed
            raise StorageError(f"connection lost before commit of {sorted(crashed)}")
        self.seen = seen
        self.counts = counts

    def top_senders(self, limit: int = 10) -> list[SenderCount]:
        rows = sorted(self.counts.items(), key=lambda item: (-item[1], item[0]))
        return [SenderCount(sender=s, mails_sent=c) for s, c in rows[:limit]]

    def count_seen(self) -> int:
        return len(self.seen)


@pytest.fixture
def fake_db() -> FakeDatabase:
    """Empty in-memory stats store."""
    return FakeDatabase()


@pytest.fixture
def sample_messages() -> dict[str, dict]:
    """Three messages from a@x.com, one from b@x.com."""
    return {
        "m1": api_message("m1", "Alice <a@x.com>"),
        "m2": api_message("m2", "a@x.com"),
        "m3": api_message("m3", "\"Alice A.\" <a@x.com>"),
        "m4": api_message("m4", "Bob <b@x.com>"),
    }


@pytest.fixture
def sample_client(sample_messages) -> FakeGmailClient:
    """Two pages over the sample messages."""
    return FakeGmailClient(pages=[["m1", "m2"], ["m3", "m4"]], messages=sample_messages)


@pytest.fixture
def mock_conn():
    """Mock psycopg connection; execute() returns a cursor mock."""
    conn = MagicMock()
    conn.execute.return_value.fetchone.return_value = None
    conn.execute.return_value.fetchall.return_value = []
    return conn


@pytest.fixture
def mock_settings(monkeypatch):
    """Mock settings for testing."""
    monkeypatch.setenv("DATABASE_HOST", "db.example.com")
    monkeypatch.setenv("DATABASE_PASSWORD", "test-db-password")
    monkeypatch.setenv("GMAIL_PAGE_SIZE", "100")
    monkeypatch.setenv("MAX_RETRIES", "5")
