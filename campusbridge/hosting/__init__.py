"""
Dropbox hosting: API client, account rotation, token lifecycle and usage.
"""

from .dropbox import DropboxClient, UploadResult, to_direct_download
from .selector import AccountSelector
from .tokens import (
    MissingCapability,
    ResolvedCredentials,
    TokenLease,
    TokenLifecycle,
    TokenRefresher,
    TokenValidator,
    ValidationResult,
    ValidationStatus,
    resolve_app_credentials,
)
from .usage import UsageAccountant, bytes_to_mb

__all__ = [
    "DropboxClient",
    "UploadResult",
    "to_direct_download",
    "AccountSelector",
    "MissingCapability",
    "ResolvedCredentials",
    "TokenLease",
    "TokenLifecycle",
    "TokenRefresher",
    "TokenValidator",
    "ValidationResult",
    "ValidationStatus",
    "resolve_app_credentials",
    "UsageAccountant",
    "bytes_to_mb",
]
