"""
Data models for sender statistics.

Uses dataclasses for clean, typed data structures.
"""

from dataclasses import dataclass, field
from typing import Any

from sender_stats.core.errors import DataError


@dataclass(frozen=True)
class Header:
    """A single message header as returned by the Gmail API."""

    name: str
    value: str


@dataclass(frozen=True)
class MessageStub:
    """Listing entry: just enough to fetch the full message."""

    id: str
    thread_id: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "MessageStub":
        """Create from a `messages.list` entry."""
        if not isinstance(data, dict) or not data.get("id"):
            raise DataError(f"Message stub missing id: {data!r}")
        return cls(id=data["id"], thread_id=data.get("threadId"))


@dataclass(frozen=True)
class MessagePage:
    """One page of the message listing."""

    stubs: list[MessageStub] = field(default_factory=list)
    next_page_token: str | None = None

    @property
    def is_last(self) -> bool:
        return not self.next_page_token


@dataclass(frozen=True)
class Message:
    """A fetched message. Only the id and headers matter here."""

    id: str
    thread_id: str | None = None
    headers: tuple[Header, ...] = ()

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Message":
        """
        Create from a `messages.get` response.

        Raises:
            DataError: If the id is missing or the header list is malformed
        """
        if not isinstance(data, dict) or not data.get("id"):
            raise DataError("Message missing id")

        payload = data.get("payload") or {}
        if not isinstance(payload, dict):
            raise DataError(f"Unparseable payload for message {data['id']}")

        raw_headers = payload.get("headers") or []
        if not isinstance(raw_headers, list):
            raise DataError(f"Unparseable header list for message {data['id']}")

        headers = []
        for raw in raw_headers:
            if not isinstance(raw, dict) or raw.get("name") is None:
                raise DataError(f"Unparseable header in message {data['id']}: {raw!r}")
            if raw.get("value") is None:
                raise DataError(f"Header {raw['name']!r} without value in message {data['id']}")
            headers.append(Header(name=raw["name"], value=raw["value"]))

        return cls(id=data["id"], thread_id=data.get("threadId"), headers=tuple(headers))

    def first_header(self, name: str) -> Header | None:
        """First header whose name matches exactly (case-sensitive)."""
        for header in self.headers:
            if header.name == name:
                return header
        return None


@dataclass(frozen=True)
class SenderCount:
    """Row of the senders table."""

    sender: str
    mails_sent: int
