"""
Tests for the SQLite repositories and token encryption.
"""

from datetime import datetime, timedelta, timezone

import pytest

from campusbridge.data import RepositoryFactory, TokenCipher
from campusbridge.models import (
    ApprovalStatus,
    HostingAccount,
    Material,
    ProcessingStatus,
    RejectionLog,
    UploadRecord,
)

T0 = datetime(2024, 1, 1, tzinfo=timezone.utc)


class TestAccountRepository:
    """Tests for eligibility, ordering and the atomic claim."""

    @pytest.mark.asyncio
    async def test_round_trip_account(self, accounts):
        await accounts.save_account(HostingAccount(
            id="acc-1", access_token="tok", refresh_token="ref", bytes_used=1.5, last_used=T0,
        ))
        account = await accounts.get_account("acc-1")
        assert account.access_token == "tok"
        assert account.refresh_token == "ref"
        assert account.bytes_used == 1.5
        assert account.last_used == T0

    @pytest.mark.asyncio
    async def test_missing_account_is_none(self, accounts):
        assert await accounts.get_account("nope") is None

    @pytest.mark.asyncio
    async def test_accounts_without_credentials_are_ineligible(self, accounts):
        await accounts.save_account(HostingAccount(id="empty"))
        await accounts.save_account(HostingAccount(id="blank", access_token="", refresh_token=""))
        await accounts.save_account(HostingAccount(id="refresh-only", refresh_token="ref"))

        eligible = await accounts.find_eligible()
        assert [a.id for a in eligible] == ["refresh-only"]

    @pytest.mark.asyncio
    async def test_inactive_accounts_are_ineligible(self, accounts):
        await accounts.save_account(HostingAccount(id="off", access_token="tok", active=False))
        assert await accounts.find_eligible() == []

    @pytest.mark.asyncio
    async def test_never_used_accounts_come_first(self, accounts):
        await accounts.save_account(HostingAccount(id="old", access_token="a", last_used=T0))
        await accounts.save_account(HostingAccount(id="new", access_token="b", last_used=T0 + timedelta(hours=1)))
        await accounts.save_account(HostingAccount(id="never", access_token="c"))

        eligible = await accounts.find_eligible()
        assert [a.id for a in eligible] == ["never", "old", "new"]

    @pytest.mark.asyncio
    async def test_quota_ceiling_excludes_full_accounts(self, accounts):
        await accounts.save_account(HostingAccount(id="full", access_token="a", bytes_used=100.0))
        await accounts.save_account(HostingAccount(id="room", access_token="b", bytes_used=10.0, last_used=T0))

        eligible = await accounts.find_eligible(quota_ceiling_mb=100.0)
        assert [a.id for a in eligible] == ["room"]

        unlimited = await accounts.find_eligible(quota_ceiling_mb=0)
        assert {a.id for a in unlimited} == {"full", "room"}

    @pytest.mark.asyncio
    async def test_claim_rotates_through_accounts(self, accounts):
        await accounts.save_account(HostingAccount(id="a", access_token="a", last_used=T0))
        await accounts.save_account(HostingAccount(id="b", access_token="b", last_used=T0 + timedelta(minutes=1)))

        first = await accounts.claim_least_recently_used(T0 + timedelta(hours=1))
        second = await accounts.claim_least_recently_used(T0 + timedelta(hours=2))
        third = await accounts.claim_least_recently_used(T0 + timedelta(hours=3))

        assert [first.id, second.id, third.id] == ["a", "b", "a"]
        assert first.last_used == T0 + timedelta(hours=1)

    @pytest.mark.asyncio
    async def test_claim_with_no_eligible_account(self, accounts):
        await accounts.save_account(HostingAccount(id="empty"))
        assert await accounts.claim_least_recently_used(T0) is None

    @pytest.mark.asyncio
    async def test_update_access_token(self, accounts):
        await accounts.save_account(HostingAccount(id="acc", access_token="old", refresh_token="ref"))

        assert await accounts.update_access_token("acc", "new", T0) is True
        assert await accounts.update_access_token("ghost", "new", T0) is False

        account = await accounts.get_account("acc")
        assert account.access_token == "new"
        assert account.refresh_token == "ref"
        assert account.last_used == T0

    @pytest.mark.asyncio
    async def test_usage_counters(self, accounts):
        await accounts.save_account(HostingAccount(id="acc", access_token="tok", bytes_used=1.0))

        await accounts.increment_usage("acc", 0.25)
        assert await accounts.get_usage("acc") == 1.25

        assert await accounts.set_usage("acc", 3.0) is True
        assert await accounts.get_usage("acc") == 3.0
        assert await accounts.get_usage("ghost") is None

        with pytest.raises(LookupError):
            await accounts.increment_usage("ghost", 1.0)


class TestMaterialRepository:
    """Tests for material persistence."""

    @pytest.mark.asyncio
    async def test_update_material_fields(self, materials):
        await materials.save_material(Material(id="m1", storage_path="materials/x.pdf"))

        updated = await materials.update_material("m1", {
            "attempts": 1,
            "processing_status": ProcessingStatus.DONE,
            "approval_status": ApprovalStatus.APPROVED,
            "processed_url": "https://dl.dropboxusercontent.com/s/a/x.pdf",
        })
        assert updated is True

        material = await materials.get_material("m1")
        assert material.attempts == 1
        assert material.processing_status == ProcessingStatus.DONE
        assert material.approval_status == ApprovalStatus.APPROVED
        assert material.filename == "x.pdf"

    @pytest.mark.asyncio
    async def test_update_rejects_unknown_columns(self, materials):
        await materials.save_material(Material(id="m1"))
        with pytest.raises(ValueError):
            await materials.update_material("m1", {"id": "m2"})

    @pytest.mark.asyncio
    async def test_delete_material(self, materials):
        await materials.save_material(Material(id="m1"))
        assert await materials.delete_material("m1") is True
        assert await materials.delete_material("m1") is False
        assert await materials.get_material("m1") is None

    @pytest.mark.asyncio
    async def test_records_and_logs(self, repositories):
        records = await repositories.get_upload_record_repository()
        logs = await repositories.get_rejection_log_repository()

        await records.insert_record(UploadRecord(
            material_id="m1", dropbox_path="/campus-files/1_x.pdf",
            dropbox_url="https://dl.dropboxusercontent.com/s/a/x.pdf", account_id="acc",
        ))
        await logs.insert_log(RejectionLog(material_id="m1", reason="spam", rejected_by="admin-1"))

        [record] = await records.find_by_material("m1")
        assert record.account_id == "acc"
        [log] = await logs.find_by_material("m1")
        assert log.reason == "spam"
        assert log.rejected_by == "admin-1"


class TestTokenCipher:
    """Tests for at-rest token encryption."""

    def test_encrypt_decrypt(self):
        cipher = TokenCipher("any passphrase")
        encrypted = cipher.encrypt("sl.secret-token")
        assert encrypted != "sl.secret-token"
        assert cipher.decrypt(encrypted) == "sl.secret-token"

    def test_plaintext_passes_through(self):
        cipher = TokenCipher("any passphrase")
        assert cipher.decrypt("sl.plain") == "sl.plain"
        assert cipher.decrypt(None) is None

    def test_wrong_key_yields_none(self):
        encrypted = TokenCipher("key one").encrypt("sl.secret")
        assert TokenCipher("key two").decrypt(encrypted) is None

    @pytest.mark.asyncio
    async def test_tokens_encrypted_in_database(self, tmpdir_path):
        factory = RepositoryFactory(
            "sqlite", db_path=str(tmpdir_path / "enc.db"), token_encryption_key="k"
        )
        try:
            repo = await factory.get_account_repository()
            await repo.save_account(HostingAccount(id="acc", access_token="sl.tok", refresh_token="ref"))

            connection = await factory.get_connection()
            row = await connection.fetch_one("SELECT access_token, refresh_token FROM dropbox_accounts")
            assert row["access_token"] != "sl.tok"
            assert row["refresh_token"] != "ref"

            account = await repo.get_account("acc")
            assert account.access_token == "sl.tok"
            assert account.refresh_token == "ref"
        finally:
            await factory.close()

    def test_unsupported_backend(self):
        with pytest.raises(ValueError):
            RepositoryFactory("postgres")
