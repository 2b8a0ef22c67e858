"""Core modules for sender statistics."""

from .logging import configure_logging, get_logger
from .errors import (
    SenderStatsError,
    ProviderError,
    StorageError,
    DataError,
    RetriesExhaustedError,
)
from .models import Header, Message, MessagePage, MessageStub, SenderCount
from .senders import get_sender, normalize_sender
from .database import Database, SeenMessageStore, SenderCountStore, UnitOfWork

__all__ = [
    "configure_logging",
    "get_logger",
    "SenderStatsError",
    "ProviderError",
    "StorageError",
    "DataError",
    "RetriesExhaustedError",
    "Header",
    "Message",
    "MessagePage",
    "MessageStub",
    "SenderCount",
    "get_sender",
    "normalize_sender",
    "Database",
    "SeenMessageStore",
    "SenderCountStore",
    "UnitOfWork",
]
