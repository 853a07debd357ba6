"""
Material processing pipeline.

Drives a material through ``pending -> processing -> done | failed``:
download from intake storage, upload to a rotated Dropbox account (with one
refresh-and-retry), publish a direct-download link, record the upload and
account usage, then remove the intake copy.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from .compression import compress_material
from ..data.base import (
    AccountRepository,
    MaterialRepository,
    RejectionLogRepository,
    UploadRecordRepository,
)
from ..exceptions import (
    ConfigurationError,
    HostingError,
    MaxRetriesExceeded,
    NotFound,
    ProcessingFailed,
    StorageIOError,
    UploadFailed,
)
from ..hosting.dropbox import DropboxClient, UploadResult
from ..hosting.selector import AccountSelector
from ..hosting.tokens import TokenLease, TokenLifecycle
from ..hosting.usage import UsageAccountant
from ..models.material import (
    ApprovalStatus,
    Material,
    ProcessingStatus,
    RejectionLog,
    UploadRecord,
)
from ..storage.base import BlobStorage

logger = logging.getLogger(__name__)

MAX_RETRIES_MESSAGE = "Max retries reached"


@dataclass
class ProcessOutcome:
    """Result of a successful processing run."""
    material_id: str
    dropbox_path: str
    dropbox_url: str
    account_id: str


@dataclass
class AdHocUploadOutcome:
    dropbox_path: str
    dropbox_url: str


class MaterialProcessor:
    """Runs processing, rejection and ad-hoc test uploads."""

    def __init__(
        self,
        materials: MaterialRepository,
        upload_records: UploadRecordRepository,
        rejection_logs: RejectionLogRepository,
        accounts: AccountRepository,
        storage: BlobStorage,
        dropbox: DropboxClient,
        selector: AccountSelector,
        lifecycle: TokenLifecycle,
        accountant: UsageAccountant,
        upload_root: str = "/campus-files",
        max_attempts: int = 3,
        use_db_tokens: bool = True,
        static_access_token: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.materials = materials
        self.upload_records = upload_records
        self.rejection_logs = rejection_logs
        self.accounts = accounts
        self.storage = storage
        self.dropbox = dropbox
        self.selector = selector
        self.lifecycle = lifecycle
        self.accountant = accountant
        self.upload_root = upload_root.rstrip("/")
        self.max_attempts = max_attempts
        self.use_db_tokens = use_db_tokens
        self.static_access_token = static_access_token
        self._clock = clock

    def _timestamp_ms(self) -> int:
        return int(self._clock() * 1000)

    def build_remote_path(self, material: Material) -> str:
        return f"{self.upload_root}/{self._timestamp_ms()}_{material.filename}"

    # =========================================================================
    # Upload with single refresh-and-retry
    # =========================================================================

    async def upload_with_retry(
        self,
        lease: TokenLease,
        remote_path: str,
        content: bytes,
        autorename: bool = False,
    ) -> Tuple[TokenLease, UploadResult]:
        """Upload once; on failure force a token refresh and retry exactly once.

        Returns:
            The lease that performed the successful upload and its result

        Raises:
            UploadFailed: If the retry fails as well
        """
        try:
            return lease, await self.dropbox.upload(
                lease.access_token, remote_path, content, autorename=autorename
            )
        except HostingError as first_error:
            logger.warning(f"Dropbox upload to {remote_path} failed: {first_error}")

            account = await self.accounts.get_account(lease.account.id)
            if account is None:
                raise

            refreshed = await self.lifecycle.ensure_valid(account, force_refresh=True)
            try:
                result = await self.dropbox.upload(
                    refreshed.access_token, remote_path, content, autorename=autorename
                )
            except HostingError as second_error:
                raise UploadFailed(
                    f"Dropbox upload failed after token refresh: {second_error}",
                    status=second_error.status,
                    summary=second_error.summary,
                ) from second_error

            logger.info(f"Dropbox upload to {remote_path} succeeded after token refresh")
            return refreshed, result

    # =========================================================================
    # Processing state machine
    # =========================================================================

    async def process_material(self, material_id: str) -> ProcessOutcome:
        """Move one material to Dropbox.

        Raises:
            NotFound: Unknown material; nothing is written
            MaxRetriesExceeded: Attempt budget spent; the material is marked failed
            ProcessingFailed: Any failure after the material entered processing
        """
        material = await self.materials.get_material(material_id)
        if material is None:
            raise NotFound("Material not found")

        if material.attempts >= self.max_attempts:
            logger.warning(f"Material {material_id} reached max attempts ({material.attempts})")
            await self.materials.update_material(material_id, {
                "processing_status": ProcessingStatus.FAILED,
                "processing_error": MAX_RETRIES_MESSAGE,
            })
            raise MaxRetriesExceeded(MAX_RETRIES_MESSAGE)

        # Recorded before any I/O so an interrupted run stays retryable
        await self.materials.update_material(material_id, {
            "attempts": material.attempts + 1,
            "processing_status": ProcessingStatus.PROCESSING,
            "processing_error": None,
        })
        logger.info(f"Processing material {material_id} (attempt {material.attempts + 1})")

        try:
            outcome = await self._run_pipeline(material)
        except Exception as e:
            logger.error(f"Processing material {material_id} failed: {e}")
            try:
                await self.materials.update_material(material_id, {
                    "processing_status": ProcessingStatus.FAILED,
                    "processing_error": str(e),
                })
            except Exception as update_error:
                logger.warning(f"Failed to update material {material_id} with error: {update_error}")
            raise ProcessingFailed(str(e), cause=e) from e

        logger.info(f"Material {material_id} processed: {outcome.dropbox_url}")
        return outcome

    async def _run_pipeline(self, material: Material) -> ProcessOutcome:
        if not material.storage_path:
            raise StorageIOError(f"Material {material.id} has no storage path")

        source = await self.storage.download(material.storage_path)
        content = await compress_material(source, material.filename)

        account = await self.selector.claim_account()
        lease = await self.lifecycle.ensure_valid(account)

        remote_path = self.build_remote_path(material)
        lease, result = await self.upload_with_retry(lease, remote_path, content)

        dropbox_url = await self.dropbox.create_public_link(
            lease.access_token, result.path_lower or remote_path
        )

        await self.upload_records.insert_record(UploadRecord(
            material_id=material.id,
            dropbox_path=remote_path,
            dropbox_url=dropbox_url,
            account_id=account.id,
        ))

        await self.accountant.increment_usage(account.id, len(content))

        await self.materials.update_material(material.id, {
            "processed_url": dropbox_url,
            "file_url": dropbox_url,
            "processing_status": ProcessingStatus.DONE,
            "approval_status": ApprovalStatus.APPROVED,
        })
        try:
            await self.storage.remove([material.storage_path])
        except Exception as e:
            # Material is already done; a leftover intake file is only logged
            logger.warning(f"Failed to remove intake file {material.storage_path}: {e}")

        return ProcessOutcome(
            material_id=material.id,
            dropbox_path=remote_path,
            dropbox_url=dropbox_url,
            account_id=account.id,
        )

    # =========================================================================
    # Moderation
    # =========================================================================

    async def reject_material(
        self,
        material_id: str,
        reason: Optional[str],
        rejected_by: Optional[str],
    ) -> None:
        """Delete a material and its intake file, logging the reason if given.

        Raises:
            NotFound: Unknown material
        """
        material = await self.materials.get_material(material_id)
        if material is None:
            raise NotFound("Material not found")

        if material.storage_path:
            await self.storage.remove([material.storage_path])

        await self.materials.delete_material(material_id)

        if reason:
            await self.rejection_logs.insert_log(RejectionLog(
                material_id=material_id,
                reason=reason,
                rejected_by=rejected_by,
            ))
        logger.info(f"Material {material_id} rejected by {rejected_by}")

    # =========================================================================
    # Ad-hoc upload
    # =========================================================================

    async def test_upload(self, filename: str, content: bytes) -> AdHocUploadOutcome:
        """Upload arbitrary bytes under ``<root>/test`` and publish a link.

        Uses the rotated account pool when database tokens are enabled and the
        static access token otherwise.

        Raises:
            ConfigurationError: Static mode without a configured token
        """
        safe_name = re.sub(r"\s+", "_", filename or "file.pdf")
        dropbox_path = f"{self.upload_root}/test/{self._timestamp_ms()}_{safe_name}"

        if self.use_db_tokens:
            account = await self.selector.claim_account()
            lease = await self.lifecycle.ensure_valid(account)
            lease, result = await self.upload_with_retry(lease, dropbox_path, content, autorename=True)
            access_token = lease.access_token
            await self.accountant.increment_usage(account.id, len(content))
        else:
            if not self.static_access_token:
                raise ConfigurationError("Missing DROPBOX_ACCESS_TOKEN in environment")
            access_token = self.static_access_token
            result = await self.dropbox.upload(access_token, dropbox_path, content, autorename=True)

        # Autorename may have placed the file under a different name
        dropbox_path = result.path_display or dropbox_path
        dropbox_url = await self.dropbox.create_public_link(access_token, dropbox_path)
        return AdHocUploadOutcome(dropbox_path=dropbox_path, dropbox_url=dropbox_url)
