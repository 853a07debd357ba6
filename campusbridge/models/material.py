"""
Study material (processing job) and related records.
"""

import posixpath
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from .base import generate_id, parse_timestamp, utcnow


class ProcessingStatus(Enum):
    """Processing state of a material."""
    PENDING = "pending"
    PROCESSING = "processing"
    DONE = "done"
    FAILED = "failed"


class ApprovalStatus(Enum):
    """Moderation state of a material."""
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@dataclass
class Material:
    """A study material moving from intake storage to Dropbox."""
    id: str
    storage_path: Optional[str] = None
    title: str = ""
    attempts: int = 0
    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    processing_error: Optional[str] = None
    processed_url: Optional[str] = None
    file_url: Optional[str] = None
    approval_status: ApprovalStatus = ApprovalStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)

    @property
    def filename(self) -> str:
        """Last path segment of the intake storage path."""
        return posixpath.basename(self.storage_path or "")

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "Material":
        return cls(
            id=row["id"],
            storage_path=row.get("storage_path"),
            title=row.get("title") or "",
            attempts=int(row.get("attempts") or 0),
            processing_status=ProcessingStatus(row.get("processing_status") or "pending"),
            processing_error=row.get("processing_error"),
            processed_url=row.get("processed_url"),
            file_url=row.get("file_url"),
            approval_status=ApprovalStatus(row.get("approval_status") or "pending"),
            created_at=parse_timestamp(row.get("created_at")) or utcnow(),
        )


@dataclass
class UploadRecord:
    """Immutable record of one successful upload."""
    material_id: str
    dropbox_path: str
    dropbox_url: str
    account_id: Optional[str] = None
    id: str = field(default_factory=generate_id)
    uploaded_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "UploadRecord":
        return cls(
            id=row["id"],
            material_id=row["material_id"],
            dropbox_path=row["dropbox_path"],
            dropbox_url=row["dropbox_url"],
            account_id=row.get("account_id"),
            uploaded_at=parse_timestamp(row.get("uploaded_at")) or utcnow(),
        )


@dataclass
class RejectionLog:
    """Audit entry written when an admin rejects a material."""
    material_id: str
    reason: str
    rejected_by: Optional[str] = None
    id: str = field(default_factory=generate_id)
    rejected_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "RejectionLog":
        return cls(
            id=row["id"],
            material_id=row["material_id"],
            reason=row["reason"],
            rejected_by=row.get("rejected_by"),
            rejected_at=parse_timestamp(row.get("rejected_at")) or utcnow(),
        )
