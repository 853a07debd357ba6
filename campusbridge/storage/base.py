"""
Intake blob storage interface.
"""

from abc import ABC, abstractmethod
from typing import List


class BlobStorage(ABC):
    """Abstract base class for the storage that holds uploaded materials."""

    @abstractmethod
    async def download(self, path: str) -> bytes:
        """
        Read a stored object.

        Args:
            path: Object path inside the bucket

        Returns:
            Object bytes

        Raises:
            StorageIOError: If the object cannot be read
        """
        pass

    @abstractmethod
    async def remove(self, paths: List[str]) -> None:
        """
        Delete stored objects. Missing objects are not an error.

        Raises:
            StorageIOError: If the storage rejects the request
        """
        pass

    async def close(self) -> None:
        """Release any held resources."""
        return None
