"""
Concrete repository implementations.

This module provides the repository factory used throughout the application.
"""

from typing import Optional

from ..base import (
    AccountRepository,
    MaterialRepository,
    RejectionLogRepository,
    UploadRecordRepository,
)
from ..migrations import run_migrations
from ..sqlite import (
    SQLiteAccountRepository,
    SQLiteConnection,
    SQLiteMaterialRepository,
    SQLiteRejectionLogRepository,
    SQLiteUploadRecordRepository,
)
from ..token_cipher import TokenCipher


class RepositoryFactory:
    """Factory for creating repository instances."""

    def __init__(self, backend: str = "sqlite", **config):
        """
        Initialize repository factory.

        Args:
            backend: Database backend to use (only 'sqlite' is supported)
            **config: Backend-specific configuration options
                (db_path, pool_size, token_encryption_key)
        """
        if backend != "sqlite":
            raise ValueError(f"Unsupported backend: {backend}")
        self.backend = backend
        self.config = config
        self._connection: Optional[SQLiteConnection] = None
        key = config.get("token_encryption_key")
        self._cipher = TokenCipher(key) if key else None

    async def get_connection(self) -> SQLiteConnection:
        """Get or create database connection, running migrations once."""
        if self._connection is None:
            db_path = self.config.get("db_path", "data/campusbridge.db")
            pool_size = self.config.get("pool_size", 5)
            connection = SQLiteConnection(db_path, pool_size)
            await connection.connect()
            await run_migrations(connection)
            self._connection = connection

        return self._connection

    async def get_account_repository(self) -> AccountRepository:
        connection = await self.get_connection()
        return SQLiteAccountRepository(connection, cipher=self._cipher)

    async def get_material_repository(self) -> MaterialRepository:
        connection = await self.get_connection()
        return SQLiteMaterialRepository(connection)

    async def get_upload_record_repository(self) -> UploadRecordRepository:
        connection = await self.get_connection()
        return SQLiteUploadRecordRepository(connection)

    async def get_rejection_log_repository(self) -> RejectionLogRepository:
        connection = await self.get_connection()
        return SQLiteRejectionLogRepository(connection)

    async def close(self) -> None:
        """Close database connections."""
        if self._connection:
            await self._connection.disconnect()
            self._connection = None
