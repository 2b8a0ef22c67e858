"""
Error taxonomy for the ingestion job.

Every failure the retry loop knows how to recover from is a SenderStatsError.
Anything else is a bug and propagates untouched.
"""


class SenderStatsError(RuntimeError):
    """Base class for recoverable ingestion failures."""


class ProviderError(SenderStatsError):
    """Gmail API failure: auth, quota, network or malformed response."""

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class StorageError(SenderStatsError):
    """Stats database failure: connectivity, constraint violation or query error."""


class DataError(SenderStatsError):
    """Message data the job cannot work with (missing id, bad header list)."""


class RetriesExhaustedError(SenderStatsError):
    """Every ingestion attempt failed."""

    def __init__(self, attempts: int):
        super().__init__(f"Too many retries: {attempts} attempts failed")
        self.attempts = attempts
