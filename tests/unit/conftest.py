"""
Shared fixtures for Campus Bridge unit tests.

Dropbox is replaced by ``FakeDropboxAPI`` mounted on ``httpx.MockTransport``
so the real client code (headers, error parsing, link fallback) runs.
"""

import json
import tempfile
from pathlib import Path

import httpx
import pytest
import pytest_asyncio

from campusbridge.data import RepositoryFactory
from campusbridge.hosting import (
    AccountSelector,
    DropboxClient,
    TokenLifecycle,
    TokenRefresher,
    TokenValidator,
    UsageAccountant,
)
from campusbridge.processing import MaterialProcessor
from campusbridge.storage import LocalBlobStorage

FIXED_EPOCH = 1700000000.0


class FakeDropboxAPI:
    """Scriptable stand-in for the Dropbox HTTP endpoints."""

    def __init__(self):
        self.valid_tokens = set()
        self.calls = []
        self.uploads = []
        self.refresh_calls = 0
        self.refresh_error = None
        self.upload_failures = 0
        self.check_status = None
        self.link_exists = False
        self.existing_links = ["https://www.dropbox.com/scl/fi/xyz/existing.pdf?rlkey=k1&dl=0"]

    def endpoint_calls(self, name: str):
        return [path for path in self.calls if path.endswith(name)]

    @staticmethod
    def _token(request: httpx.Request) -> str:
        return request.headers.get("Authorization", "").replace("Bearer ", "", 1)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.calls.append(path)

        if path == "/oauth2/token":
            self.refresh_calls += 1
            if self.refresh_error:
                return httpx.Response(400, json=self.refresh_error)
            token = f"fresh-token-{self.refresh_calls}"
            self.valid_tokens.add(token)
            return httpx.Response(200, json={"access_token": token, "expires_in": 14400})

        if path == "/2/users/get_current_account":
            if self.check_status is not None:
                return httpx.Response(self.check_status, text="unavailable")
            if self._token(request) in self.valid_tokens:
                return httpx.Response(200, json={"account_id": "dbid:test"})
            return httpx.Response(401, json={"error_summary": "expired_access_token/"})

        if path == "/2/files/upload":
            arg = json.loads(request.headers["Dropbox-API-Arg"])
            if self.upload_failures > 0:
                self.upload_failures -= 1
                return httpx.Response(401, json={"error_summary": "expired_access_token/"})
            if self._token(request) not in self.valid_tokens:
                return httpx.Response(401, json={"error_summary": "invalid_access_token/"})
            self.uploads.append((self._token(request), arg, request.content))
            return httpx.Response(200, json={
                "id": "id:abc",
                "path_lower": arg["path"].lower(),
                "path_display": arg["path"],
                "size": len(request.content),
            })

        if path == "/2/sharing/create_shared_link_with_settings":
            if self.link_exists:
                return httpx.Response(409, json={"error_summary": "shared_link_already_exists/"})
            name = json.loads(request.content)["path"].rsplit("/", 1)[-1]
            return httpx.Response(200, json={"url": f"https://www.dropbox.com/s/abc123/{name}?dl=0"})

        if path == "/2/sharing/list_shared_links":
            return httpx.Response(200, json={"links": [{"url": url} for url in self.existing_links]})

        return httpx.Response(404, text=f"unexpected path {path}")


@pytest.fixture
def dropbox_api():
    return FakeDropboxAPI()


@pytest_asyncio.fixture
async def dropbox_client(dropbox_api):
    client = DropboxClient(http_client=httpx.AsyncClient(transport=httpx.MockTransport(dropbox_api)))
    yield client
    await client.close()


@pytest.fixture
def tmpdir_path():
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest_asyncio.fixture
async def repositories(tmpdir_path):
    factory = RepositoryFactory("sqlite", db_path=str(tmpdir_path / "test.db"), pool_size=2)
    await factory.get_connection()
    yield factory
    await factory.close()


@pytest_asyncio.fixture
async def accounts(repositories):
    return await repositories.get_account_repository()


@pytest_asyncio.fixture
async def materials(repositories):
    return await repositories.get_material_repository()


@pytest.fixture
def storage(tmpdir_path):
    return LocalBlobStorage(tmpdir_path / "storage")


@pytest.fixture
def lifecycle(accounts, dropbox_client):
    return TokenLifecycle(
        accounts,
        TokenValidator(dropbox_client),
        TokenRefresher(dropbox_client),
        default_app_key="app-key",
        default_app_secret="app-secret",
    )


@pytest_asyncio.fixture
async def processor(repositories, accounts, materials, storage, dropbox_client, lifecycle):
    return MaterialProcessor(
        materials=materials,
        upload_records=await repositories.get_upload_record_repository(),
        rejection_logs=await repositories.get_rejection_log_repository(),
        accounts=accounts,
        storage=storage,
        dropbox=dropbox_client,
        selector=AccountSelector(accounts),
        lifecycle=lifecycle,
        accountant=UsageAccountant(accounts),
        clock=lambda: FIXED_EPOCH,
    )
