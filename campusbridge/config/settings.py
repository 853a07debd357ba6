"""
Configuration dataclasses for Campus Bridge.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class LogLevel(Enum):
    """Logging levels."""
    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class StorageBackend(Enum):
    """Intake blob storage backends."""
    LOCAL = "local"
    SUPABASE = "supabase"


@dataclass
class ServerConfig:
    """HTTP server configuration."""
    host: str = "0.0.0.0"
    port: int = 5000
    cors_origins: List[str] = field(default_factory=lambda: ["http://localhost:8080"])


@dataclass
class DatabaseConfig:
    """Relational store configuration."""
    path: str = "data/campusbridge.db"
    pool_size: int = 5
    token_encryption_key: Optional[str] = None


@dataclass
class StorageConfig:
    """Intake storage configuration."""
    backend: StorageBackend = StorageBackend.LOCAL
    bucket: str = "study-materials"
    root: str = "data/storage"
    supabase_url: Optional[str] = None
    service_role_key: Optional[str] = None


@dataclass
class DropboxConfig:
    """Dropbox account pool configuration."""
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    static_access_token: Optional[str] = None
    use_db_tokens: bool = False
    max_account_mb: float = 0.0
    upload_root: str = "/campus-files"
    http_timeout: float = 60.0

    @property
    def quota_ceiling_mb(self) -> Optional[float]:
        """Usage ceiling for account selection, None when unlimited."""
        return self.max_account_mb if self.max_account_mb > 0 else None


@dataclass
class AuthConfig:
    """Admin caller verification."""
    jwt_secret: Optional[str] = None
    algorithm: str = "HS256"


@dataclass
class ProcessingConfig:
    """Processing job limits."""
    max_attempts: int = 3
    require_atomic_accounting: bool = False


@dataclass
class BridgeConfig:
    """Top-level Campus Bridge configuration."""
    server: ServerConfig = field(default_factory=ServerConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    dropbox: DropboxConfig = field(default_factory=DropboxConfig)
    auth: AuthConfig = field(default_factory=AuthConfig)
    processing: ProcessingConfig = field(default_factory=ProcessingConfig)
    log_level: LogLevel = LogLevel.INFO
