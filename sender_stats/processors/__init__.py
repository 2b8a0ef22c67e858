"""Batch processors."""

from .base import BaseProcessor
from .ingest import IngestProcessor

__all__ = ["BaseProcessor", "IngestProcessor"]
