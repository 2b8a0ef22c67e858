"""
Abstract base class for processors.
"""

from abc import ABC, abstractmethod


class BaseProcessor(ABC):
    """Abstract processor interface for batch jobs."""

    @abstractmethod
    def process(self) -> dict:
        """
        Run the job to completion.

        Returns:
            Processing statistics dict
        """
        pass
