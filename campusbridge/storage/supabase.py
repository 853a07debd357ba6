"""
Supabase Storage backend over its REST API.
"""

import logging
from typing import List, Optional
from urllib.parse import quote

import httpx

from .base import BlobStorage
from ..exceptions import StorageIOError

logger = logging.getLogger(__name__)


class SupabaseBlobStorage(BlobStorage):
    """Reads and deletes objects in a Supabase Storage bucket."""

    def __init__(
        self,
        supabase_url: str,
        service_role_key: str,
        bucket: str = "study-materials",
        timeout: float = 60.0,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize Supabase storage.

        Args:
            supabase_url: Project URL, e.g. https://xyz.supabase.co
            service_role_key: Service role key (server-side only)
            bucket: Storage bucket holding uploaded materials
            timeout: HTTP timeout in seconds
            http_client: Optional preconfigured client (tests)
        """
        self.base_url = f"{supabase_url.rstrip('/')}/storage/v1"
        self.bucket = bucket
        self._headers = {
            "Authorization": f"Bearer {service_role_key}",
            "apikey": service_role_key,
        }
        self._timeout = timeout
        self._http_client = http_client

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    async def download(self, path: str) -> bytes:
        client = await self._get_http_client()
        url = f"{self.base_url}/object/{self.bucket}/{quote(path.lstrip('/'))}"
        try:
            response = await client.get(url, headers=self._headers)
        except httpx.RequestError as e:
            raise StorageIOError(f"Failed to download {path}: {e}") from e

        if response.status_code != 200:
            raise StorageIOError(
                f"Failed to download {path}: HTTP {response.status_code} {response.text[:200]}"
            )
        return response.content

    async def remove(self, paths: List[str]) -> None:
        if not paths:
            return
        client = await self._get_http_client()
        try:
            response = await client.request(
                "DELETE",
                f"{self.base_url}/object/{self.bucket}",
                headers=self._headers,
                json={"prefixes": paths},
            )
        except httpx.RequestError as e:
            raise StorageIOError(f"Failed to remove {paths}: {e}") from e

        if response.status_code >= 400:
            raise StorageIOError(
                f"Failed to remove {paths}: HTTP {response.status_code} {response.text[:200]}"
            )
        logger.info(f"Removed {len(paths)} storage object(s) from {self.bucket}")
