"""
Environment variable handling for Campus Bridge configuration.
"""

import os
from typing import List

from dotenv import load_dotenv

from .settings import (
    AuthConfig,
    BridgeConfig,
    DatabaseConfig,
    DropboxConfig,
    LogLevel,
    ProcessingConfig,
    ServerConfig,
    StorageBackend,
    StorageConfig,
)


class EnvironmentLoader:
    """Loads configuration from environment variables."""

    @staticmethod
    def load_config(load_env_file: bool = True) -> BridgeConfig:
        """Load configuration from environment variables."""
        if load_env_file:
            load_dotenv()

        server_config = ServerConfig(
            host=os.getenv('HOST', '0.0.0.0'),
            port=int(os.getenv('PORT', '5000')),
            cors_origins=EnvironmentLoader._parse_list(
                os.getenv('CORS_ORIGIN', 'http://localhost:8080')
            ),
        )

        database_config = DatabaseConfig(
            path=os.getenv('DATABASE_PATH', 'data/campusbridge.db'),
            pool_size=int(os.getenv('DB_POOL_SIZE', '5')),
            token_encryption_key=os.getenv('TOKEN_ENCRYPTION_KEY') or None,
        )

        backend_str = os.getenv('STORAGE_BACKEND', '').lower()
        if not backend_str:
            # Supabase credentials imply the hosted bucket
            backend_str = 'supabase' if os.getenv('SUPABASE_URL') else 'local'
        try:
            backend = StorageBackend(backend_str)
        except ValueError:
            backend = StorageBackend.LOCAL

        storage_config = StorageConfig(
            backend=backend,
            bucket=os.getenv('STORAGE_BUCKET', 'study-materials'),
            root=os.getenv('STORAGE_ROOT', 'data/storage'),
            supabase_url=os.getenv('SUPABASE_URL'),
            service_role_key=os.getenv('SUPABASE_SERVICE_ROLE'),
        )

        dropbox_config = DropboxConfig(
            client_id=os.getenv('DROPBOX_CLIENT_ID') or None,
            client_secret=os.getenv('DROPBOX_CLIENT_SECRET') or None,
            static_access_token=os.getenv('DROPBOX_ACCESS_TOKEN') or None,
            use_db_tokens=os.getenv('USE_DB_TOKENS', 'false').lower() == 'true',
            max_account_mb=float(os.getenv('MAX_DROPBOX_ACCOUNT_BYTES_MB', '0') or 0),
            upload_root=os.getenv('DROPBOX_UPLOAD_ROOT', '/campus-files'),
            http_timeout=float(os.getenv('HTTP_TIMEOUT_SECONDS', '60')),
        )

        auth_config = AuthConfig(
            jwt_secret=os.getenv('SUPABASE_JWT_SECRET') or None,
        )

        processing_config = ProcessingConfig(
            max_attempts=int(os.getenv('MAX_PROCESSING_ATTEMPTS', '3')),
            require_atomic_accounting=os.getenv(
                'ACCOUNTING_REQUIRE_ATOMIC', 'false'
            ).lower() == 'true',
        )

        log_level = LogLevel.INFO
        try:
            log_level = LogLevel(os.getenv('LOG_LEVEL', 'INFO').upper())
        except ValueError:
            pass  # Use default

        return BridgeConfig(
            server=server_config,
            database=database_config,
            storage=storage_config,
            dropbox=dropbox_config,
            auth=auth_config,
            processing=processing_config,
            log_level=log_level,
        )

    @staticmethod
    def _parse_list(value: str, delimiter: str = ',') -> List[str]:
        """Parse a comma-separated string into a list."""
        if not value:
            return []
        return [item.strip() for item in value.split(delimiter) if item.strip()]
