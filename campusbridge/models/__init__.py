"""
Data models for Campus Bridge.
"""

from .base import generate_id, utcnow
from .account import HostingAccount, mask_secret
from .material import (
    ApprovalStatus,
    Material,
    ProcessingStatus,
    RejectionLog,
    UploadRecord,
)

__all__ = [
    "generate_id",
    "utcnow",
    "HostingAccount",
    "mask_secret",
    "ApprovalStatus",
    "Material",
    "ProcessingStatus",
    "RejectionLog",
    "UploadRecord",
]
