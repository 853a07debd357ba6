"""
Tests for the HTTP surface.
"""

import time

import httpx
import pytest
import pytest_asyncio
from jose import jwt

from campusbridge.api import BridgeServer
from campusbridge.config import AuthConfig, BridgeConfig
from campusbridge.models import HostingAccount, Material, ProcessingStatus

SECRET = "test-jwt-secret"


def make_token(is_admin=True, secret=SECRET, expires_in=3600, sub="admin-1"):
    claims = {
        "sub": sub,
        "aud": "authenticated",
        "exp": int(time.time()) + expires_in,
        "user_metadata": {"isAdmin": is_admin},
    }
    return jwt.encode(claims, secret, algorithm="HS256")


def auth_header(token=None):
    return {"Authorization": f"Bearer {token or make_token()}"}


@pytest.fixture
def config():
    return BridgeConfig(auth=AuthConfig(jwt_secret=SECRET))


@pytest_asyncio.fixture
async def client(config, processor, materials):
    server = BridgeServer(config, processor, materials)
    transport = httpx.ASGITransport(app=server.get_app())
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


async def seed_material(accounts, materials, storage, dropbox_api, attempts=0):
    dropbox_api.valid_tokens.add("tok")
    await accounts.save_account(HostingAccount(id="acc-1", access_token="tok"))
    await storage.upload("materials/x.pdf", b"abc")
    await materials.save_material(Material(id="m1", storage_path="materials/x.pdf", attempts=attempts))


class TestHealth:
    """Tests for health endpoints."""

    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"ok": True}

    @pytest.mark.asyncio
    async def test_wake(self, client):
        response = await client.get("/wake")
        assert response.status_code == 200
        body = response.json()
        assert body["ok"] is True
        assert "awakeAt" in body


class TestAdminAuth:
    """Tests for admin verification on protected routes."""

    @pytest.mark.asyncio
    async def test_missing_header(self, client):
        response = await client.post("/process-material/m1")
        assert response.status_code == 401
        assert response.json() == {"error": "Missing Authorization header"}

    @pytest.mark.asyncio
    async def test_missing_token(self, client):
        response = await client.post("/process-material/m1", headers={"Authorization": "Bearer"})
        assert response.status_code == 401
        assert response.json() == {"error": "Missing token"}

    @pytest.mark.asyncio
    async def test_bad_signature(self, client):
        token = make_token(secret="another-secret")
        response = await client.post("/process-material/m1", headers=auth_header(token))
        assert response.status_code == 401
        assert response.json() == {"error": "Invalid or expired token"}

    @pytest.mark.asyncio
    async def test_expired_token(self, client):
        token = make_token(expires_in=-60)
        response = await client.post("/process-material/m1", headers=auth_header(token))
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_non_admin(self, client, accounts, materials, storage, dropbox_api):
        await seed_material(accounts, materials, storage, dropbox_api)

        response = await client.post("/process-material/m1", headers=auth_header(make_token(is_admin=False)))

        assert response.status_code == 403
        assert response.json() == {"error": "Not an admin"}
        material = await materials.get_material("m1")
        assert material.attempts == 0
        assert dropbox_api.calls == []

    @pytest.mark.asyncio
    async def test_missing_secret(self, processor, materials):
        server = BridgeServer(BridgeConfig(), processor, materials)
        transport = httpx.ASGITransport(app=server.get_app())
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
            response = await http.post("/process-material/m1", headers=auth_header())

        assert response.status_code == 500
        assert "SUPABASE_JWT_SECRET" in response.json()["error"]


class TestProcessEndpoint:
    """Tests for POST /process-material/{id}."""

    @pytest.mark.asyncio
    async def test_success(self, client, accounts, materials, storage, dropbox_api):
        await seed_material(accounts, materials, storage, dropbox_api)

        response = await client.post("/process-material/m1", headers=auth_header())

        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Processing complete"
        assert body["dropboxUrl"].startswith("https://dl.dropboxusercontent.com/")
        assert "dl=0" not in body["dropboxUrl"]

    @pytest.mark.asyncio
    async def test_not_found(self, client):
        response = await client.post("/process-material/missing", headers=auth_header())
        assert response.status_code == 404
        assert response.json() == {"error": "Material not found"}

    @pytest.mark.asyncio
    async def test_max_retries(self, client, accounts, materials, storage, dropbox_api):
        await seed_material(accounts, materials, storage, dropbox_api, attempts=3)

        response = await client.post("/process-material/m1", headers=auth_header())

        assert response.status_code == 400
        assert response.json() == {"error": "Max retries reached"}

    @pytest.mark.asyncio
    async def test_processing_failure(self, client, materials, storage):
        await storage.upload("materials/x.pdf", b"abc")
        await materials.save_material(Material(id="m1", storage_path="materials/x.pdf"))

        response = await client.post("/process-material/m1", headers=auth_header())

        assert response.status_code == 500
        assert response.json() == {
            "error": "Processing failed",
            "details": "No suitable Dropbox account found",
        }
        material = await materials.get_material("m1")
        assert material.processing_status == ProcessingStatus.FAILED


class TestRejectEndpoint:
    """Tests for POST /reject-material/{id}."""

    @pytest.mark.asyncio
    async def test_reject_logs_caller(self, client, materials, repositories):
        await materials.save_material(Material(id="m1"))

        response = await client.post(
            "/reject-material/m1",
            headers=auth_header(make_token(sub="moderator-7")),
            json={"reason": "off-topic"},
        )

        assert response.status_code == 200
        assert response.json() == {"message": "Material rejected and deleted successfully"}
        [log] = await (await repositories.get_rejection_log_repository()).find_by_material("m1")
        assert log.rejected_by == "moderator-7"
        assert log.reason == "off-topic"

    @pytest.mark.asyncio
    async def test_reject_without_body(self, client, materials):
        await materials.save_material(Material(id="m1"))

        response = await client.post("/reject-material/m1", headers=auth_header())

        assert response.status_code == 200
        assert await materials.get_material("m1") is None

    @pytest.mark.asyncio
    async def test_reject_reason_too_long(self, client, materials):
        await materials.save_material(Material(id="m1"))

        response = await client.post(
            "/reject-material/m1", headers=auth_header(), json={"reason": "x" * 2001}
        )

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "Invalid request"
        assert "reason" in body["details"]
        assert await materials.get_material("m1") is not None

    @pytest.mark.asyncio
    async def test_reject_reason_not_a_string(self, client, materials):
        await materials.save_material(Material(id="m1"))

        response = await client.post(
            "/reject-material/m1", headers=auth_header(), json={"reason": ["spam"]}
        )

        assert response.status_code == 400
        assert response.json()["error"] == "Invalid request"

    @pytest.mark.asyncio
    async def test_reject_not_found(self, client):
        response = await client.post("/reject-material/missing", headers=auth_header(), json={"reason": "x"})
        assert response.status_code == 404
        assert response.json() == {"error": "Material not found"}

    @pytest.mark.asyncio
    async def test_reject_requires_admin(self, client, materials):
        await materials.save_material(Material(id="m1"))

        response = await client.post("/reject-material/m1", json={"reason": "x"})

        assert response.status_code == 401
        assert await materials.get_material("m1") is not None


class TestUploadEndpoint:
    """Tests for POST /test-upload."""

    @pytest.mark.asyncio
    async def test_no_file(self, client):
        response = await client.post("/test-upload")
        assert response.status_code == 400
        assert response.json() == {"success": False, "error": "No file uploaded"}

    @pytest.mark.asyncio
    async def test_upload_with_static_token(self, client, processor, dropbox_api):
        dropbox_api.valid_tokens.add("static")
        processor.use_db_tokens = False
        processor.static_access_token = "static"

        response = await client.post(
            "/test-upload", files={"file": ("my notes.pdf", b"%PDF-1.4", "application/pdf")}
        )

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["dropboxPath"].startswith("/campus-files/test/")
        assert body["dropboxPath"].endswith("_my_notes.pdf")
        assert body["dropboxUrl"].startswith("https://dl.dropboxusercontent.com/")

    @pytest.mark.asyncio
    async def test_upload_failure(self, client, processor):
        processor.use_db_tokens = False

        response = await client.post("/test-upload", files={"file": ("a.pdf", b"abc")})

        assert response.status_code == 500
        assert response.json() == {
            "success": False,
            "error": "Missing DROPBOX_ACCESS_TOKEN in environment",
        }
