"""
Filesystem-backed intake storage, used for development and tests.
"""

import asyncio
import logging
from pathlib import Path
from typing import List

from .base import BlobStorage
from ..exceptions import StorageIOError

logger = logging.getLogger(__name__)


class LocalBlobStorage(BlobStorage):
    """Stores objects as files under ``root/bucket``."""

    def __init__(self, root: Path, bucket: str = "study-materials"):
        self.base_path = Path(root) / bucket
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _resolve(self, path: str) -> Path:
        resolved = (self.base_path / path.lstrip("/")).resolve()
        if self.base_path.resolve() not in resolved.parents:
            raise StorageIOError(f"Path escapes storage bucket: {path}")
        return resolved

    async def download(self, path: str) -> bytes:
        file_path = self._resolve(path)
        try:
            return await asyncio.to_thread(file_path.read_bytes)
        except OSError as e:
            raise StorageIOError(f"Failed to download {path}: {e}") from e

    async def upload(self, path: str, content: bytes) -> None:
        """Write an object (intake side; not used by processing)."""
        file_path = self._resolve(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(file_path.write_bytes, content)

    async def remove(self, paths: List[str]) -> None:
        for path in paths:
            file_path = self._resolve(path)
            try:
                file_path.unlink()
                logger.info(f"Removed storage object {path}")
            except FileNotFoundError:
                logger.debug(f"Storage object already absent: {path}")
            except OSError as e:
                raise StorageIOError(f"Failed to remove {path}: {e}") from e
