"""
Sender extraction and normalization.

Turns the raw From header of a message into the key used for per-sender counts.
"""

import re

from sender_stats.core.models import Message

# "Display Name <addr@domain> trailing", anything after the address is ignored
ANGLE_ADDRESS_RE = re.compile(r"^[^<]*<?([\w\-\.]+@([\w-]+\.)+[\w-]{2,4}).*\Z")
# Bare address, nothing else allowed
BARE_ADDRESS_RE = re.compile(r"^([\w\-\.]+@([\w-]+\.)+[\w-]{2,4})\Z")

# Checked in order, exact names only
SENDER_HEADERS = ("From", "FROM", "Return-Path")


def normalize_sender(raw: str) -> str:
    """
    Extract an email address from a sender header value.

    'Jane Doe <jane@example.com>' becomes 'jane@example.com'. Values that do not
    look like an address are returned unchanged.
    """
    if "<" in raw:
        match = ANGLE_ADDRESS_RE.match(raw)
    else:
        match = BARE_ADDRESS_RE.match(raw.strip())
    return match.group(1) if match else raw


def sender_header(message: Message) -> str | None:
    """Raw value of the first sender header found, or None."""
    for name in SENDER_HEADERS:
        header = message.first_header(name)
        if header is not None:
            return header.value
    return None


def get_sender(message: Message) -> str:
    """Canonical sender for a message; empty string when it has no sender header."""
    raw = sender_header(message)
    if raw is None:
        return ""
    return normalize_sender(raw)
