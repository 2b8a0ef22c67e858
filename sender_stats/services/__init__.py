"""External services."""

from .gmail import GmailClient, build_service

__all__ = ["GmailClient", "build_service"]
