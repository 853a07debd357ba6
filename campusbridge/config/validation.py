"""
Configuration validation for Campus Bridge.
"""

from typing import List

from .settings import BridgeConfig, StorageBackend


class ConfigValidator:
    """Validates configuration settings."""

    @staticmethod
    def validate_config(config: BridgeConfig) -> List[str]:
        """Validate the complete configuration.

        Returns:
            List of validation problems (empty if valid)
        """
        errors = []
        errors.extend(ConfigValidator._validate_auth(config))
        errors.extend(ConfigValidator._validate_storage(config))
        errors.extend(ConfigValidator._validate_dropbox(config))
        errors.extend(ConfigValidator._validate_numeric_ranges(config))
        return errors

    @staticmethod
    def _validate_auth(config: BridgeConfig) -> List[str]:
        if not config.auth.jwt_secret:
            return ["SUPABASE_JWT_SECRET is not set; admin endpoints will return 500"]
        return []

    @staticmethod
    def _validate_storage(config: BridgeConfig) -> List[str]:
        errors = []
        storage = config.storage
        if storage.backend == StorageBackend.SUPABASE:
            if not storage.supabase_url:
                errors.append("SUPABASE_URL is required for the supabase storage backend")
            if not storage.service_role_key:
                errors.append("SUPABASE_SERVICE_ROLE is required for the supabase storage backend")
        return errors

    @staticmethod
    def _validate_dropbox(config: BridgeConfig) -> List[str]:
        errors = []
        dropbox = config.dropbox
        if not dropbox.use_db_tokens and not dropbox.static_access_token:
            errors.append(
                "DROPBOX_ACCESS_TOKEN is not set and USE_DB_TOKENS is false; "
                "/test-upload will fail"
            )
        if bool(dropbox.client_id) != bool(dropbox.client_secret):
            errors.append("DROPBOX_CLIENT_ID and DROPBOX_CLIENT_SECRET must be set together")
        if not dropbox.upload_root.startswith("/"):
            errors.append("DROPBOX_UPLOAD_ROOT must be an absolute Dropbox path")
        return errors

    @staticmethod
    def _validate_numeric_ranges(config: BridgeConfig) -> List[str]:
        errors = []
        if not 1 <= config.server.port <= 65535:
            errors.append(f"PORT out of range: {config.server.port}")
        if config.processing.max_attempts < 1:
            errors.append("MAX_PROCESSING_ATTEMPTS must be at least 1")
        if config.dropbox.max_account_mb < 0:
            errors.append("MAX_DROPBOX_ACCOUNT_BYTES_MB cannot be negative")
        if config.database.pool_size < 1:
            errors.append("DB_POOL_SIZE must be at least 1")
        return errors

