"""
Dropbox HTTP API client.

Covers the calls the bridge needs: identity check, OAuth refresh-token
exchange, file upload and shared-link management.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import httpx

from ..exceptions import HostingError, RefreshFailed

logger = logging.getLogger(__name__)

DROPBOX_API_BASE = "https://api.dropboxapi.com/2"
DROPBOX_CONTENT_BASE = "https://content.dropboxapi.com/2"
DROPBOX_OAUTH_TOKEN = "https://api.dropbox.com/oauth2/token"

DIRECT_DOWNLOAD_HOST = "dl.dropboxusercontent.com"
_PREVIEW_HOSTS = {"www.dropbox.com", "dropbox.com"}


def to_direct_download(url: str) -> str:
    """Rewrite a Dropbox shared link so it serves raw bytes.

    The preview host is swapped for the content host and the ``dl`` query
    parameter is dropped; other parameters such as ``rlkey`` are kept.
    """
    parts = urlsplit(url)
    host = DIRECT_DOWNLOAD_HOST if parts.netloc.lower() in _PREVIEW_HOSTS else parts.netloc
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "dl"]
    return urlunsplit((parts.scheme or "https", host, parts.path, urlencode(query), parts.fragment))


@dataclass
class UploadResult:
    """Metadata Dropbox returns for an uploaded file."""
    path_lower: str
    path_display: str
    size: int = 0
    id: Optional[str] = None

    @classmethod
    def from_response(cls, data: Dict[str, Any]) -> "UploadResult":
        return cls(
            path_lower=data.get("path_lower", ""),
            path_display=data.get("path_display", data.get("path_lower", "")),
            size=int(data.get("size", 0)),
            id=data.get("id"),
        )


class DropboxClient:
    """Async Dropbox API client.

    One client is shared by all jobs; access tokens are passed per call and
    never cached here.
    """

    def __init__(self, timeout: float = 60.0, http_client: Optional[httpx.AsyncClient] = None):
        """Initialize the client.

        Args:
            timeout: HTTP timeout in seconds
            http_client: Optional preconfigured client (tests)
        """
        self._timeout = timeout
        self._http_client = http_client

    async def _get_http_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._http_client is None:
            self._http_client = httpx.AsyncClient(timeout=self._timeout)
        return self._http_client

    async def close(self):
        """Close HTTP client."""
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    @staticmethod
    def _raise_for_error(response: httpx.Response, action: str) -> None:
        if response.status_code == 200:
            return

        summary = ""
        try:
            body = response.json()
            summary = body.get("error_summary", "") if isinstance(body, dict) else ""
        except ValueError:
            summary = response.text[:200]

        raise HostingError(
            f"Dropbox {action} failed: HTTP {response.status_code} {summary}".strip(),
            status=response.status_code,
            summary=summary,
        )

    async def _rpc(self, access_token: str, endpoint: str, payload: Optional[Dict[str, Any]], action: str) -> Dict[str, Any]:
        client = await self._get_http_client()
        try:
            response = await client.post(
                f"{DROPBOX_API_BASE}/{endpoint}",
                headers={"Authorization": f"Bearer {access_token}"},
                json=payload,
            )
        except httpx.RequestError as e:
            raise HostingError(f"Dropbox {action} request failed: {e}") from e

        self._raise_for_error(response, action)
        return response.json()

    # =========================================================================
    # Identity / OAuth
    # =========================================================================

    async def get_current_account(self, access_token: str) -> Dict[str, Any]:
        """Return the identity the access token belongs to."""
        return await self._rpc(access_token, "users/get_current_account", None, "get_current_account")

    async def exchange_refresh_token(self, refresh_token: str, app_key: str, app_secret: str) -> str:
        """Exchange a refresh token for a new short-lived access token.

        Raises:
            RefreshFailed: If Dropbox rejects the exchange or is unreachable
        """
        client = await self._get_http_client()
        try:
            response = await client.post(
                DROPBOX_OAUTH_TOKEN,
                data={"grant_type": "refresh_token", "refresh_token": refresh_token},
                auth=(app_key, app_secret),
                headers={"Content-Type": "application/x-www-form-urlencoded"},
            )
        except httpx.RequestError as e:
            raise RefreshFailed(f"Failed to refresh Dropbox token: {e}") from e

        if response.status_code != 200:
            try:
                body = response.json()
                description = body.get("error_description") or body.get("error") or response.text
            except ValueError:
                description = response.text
            raise RefreshFailed(f"Failed to refresh Dropbox token: {description}")

        data = response.json()
        access_token = data.get("access_token")
        if not access_token:
            raise RefreshFailed("Failed to refresh Dropbox token: response carried no access_token")
        return access_token

    # =========================================================================
    # Files
    # =========================================================================

    async def upload(self, access_token: str, path: str, content: bytes, autorename: bool = False) -> UploadResult:
        """Upload bytes to ``path`` in add mode."""
        if not path.startswith("/"):
            path = f"/{path}"

        api_arg = {"path": path, "mode": "add", "autorename": autorename, "mute": False}
        client = await self._get_http_client()
        try:
            response = await client.post(
                f"{DROPBOX_CONTENT_BASE}/files/upload",
                headers={
                    "Authorization": f"Bearer {access_token}",
                    "Content-Type": "application/octet-stream",
                    "Dropbox-API-Arg": json.dumps(api_arg),
                },
                content=content,
            )
        except httpx.RequestError as e:
            raise HostingError(f"Dropbox upload request failed: {e}") from e

        self._raise_for_error(response, "upload")
        result = UploadResult.from_response(response.json())
        logger.info(f"Uploaded {len(content)} bytes to Dropbox {result.path_display}")
        return result

    # =========================================================================
    # Sharing
    # =========================================================================

    async def create_shared_link(self, access_token: str, path: str) -> str:
        data = await self._rpc(
            access_token,
            "sharing/create_shared_link_with_settings",
            {"path": path},
            "create_shared_link",
        )
        return data["url"]

    async def list_shared_links(self, access_token: str, path: str) -> List[str]:
        data = await self._rpc(
            access_token,
            "sharing/list_shared_links",
            {"path": path, "direct_only": True},
            "list_shared_links",
        )
        return [link["url"] for link in data.get("links", []) if link.get("url")]

    async def create_public_link(self, access_token: str, path: str) -> str:
        """Create (or reuse) a shared link and return its direct-download form."""
        try:
            url = await self.create_shared_link(access_token, path)
        except HostingError as e:
            # Usually shared_link_already_exists; the listing resolves it
            logger.info(f"Shared link creation for {path} failed ({e.summary or e}), listing existing links")
            links = await self.list_shared_links(access_token, path)
            if not links:
                raise HostingError(f"No shared link available for {path}") from e
            url = links[0]

        return to_direct_download(url)
