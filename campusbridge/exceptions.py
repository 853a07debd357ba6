"""
Error taxonomy for Campus Bridge.

Every error carries a machine-readable ``error_code``, a ``user_message`` that
is safe to return in a JSON body, and the HTTP status the API layer maps it to.
"""

from typing import Optional


class BridgeError(Exception):
    """Base class for all Campus Bridge errors."""

    error_code = "BRIDGE_ERROR"
    status_code = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        user_message: Optional[str] = None,
    ):
        super().__init__(message)
        self.message = message
        if error_code:
            self.error_code = error_code
        self.user_message = user_message or message


class ConfigurationError(BridgeError):
    """Required configuration is missing or invalid."""
    error_code = "CONFIGURATION_ERROR"


# ---------------------------------------------------------------------------
# Account / token lifecycle
# ---------------------------------------------------------------------------

class NoAccountAvailable(BridgeError):
    """No hosting account matched the selection filter."""
    error_code = "NO_ACCOUNT_AVAILABLE"


class MissingRefreshCapability(BridgeError):
    """Access token is unusable and the account cannot mint a new one."""
    error_code = "MISSING_REFRESH_CAPABILITY"


class RefreshFailed(BridgeError):
    """The OAuth refresh-token exchange was rejected."""
    error_code = "REFRESH_FAILED"


class PersistFailed(BridgeError):
    """A refreshed access token could not be written back to the store."""
    error_code = "PERSIST_FAILED"


# ---------------------------------------------------------------------------
# Hosting provider / storage
# ---------------------------------------------------------------------------

class HostingError(BridgeError):
    """A call to the hosting provider failed."""
    error_code = "HOSTING_ERROR"

    def __init__(self, message: str, status: Optional[int] = None, summary: str = "", **kwargs):
        super().__init__(message, **kwargs)
        self.status = status
        self.summary = summary


class UploadFailed(HostingError):
    """Upload failed again after the single refresh-and-retry."""
    error_code = "UPLOAD_FAILED"


class StorageIOError(BridgeError):
    """The intake blob storage could not be read or written."""
    error_code = "STORAGE_IO_ERROR"


# ---------------------------------------------------------------------------
# Jobs / API
# ---------------------------------------------------------------------------

class NotFound(BridgeError):
    error_code = "NOT_FOUND"
    status_code = 404


class MaxRetriesExceeded(BridgeError):
    error_code = "MAX_RETRIES_EXCEEDED"
    status_code = 400


class ProcessingFailed(BridgeError):
    """A processing attempt failed after the job was marked as processing."""
    error_code = "PROCESSING_FAILED"

    def __init__(self, message: str, cause: Optional[BaseException] = None, **kwargs):
        super().__init__(message, **kwargs)
        self.cause = cause


class Unauthorized(BridgeError):
    error_code = "UNAUTHORIZED"
    status_code = 401


class Forbidden(BridgeError):
    error_code = "FORBIDDEN"
    status_code = 403
