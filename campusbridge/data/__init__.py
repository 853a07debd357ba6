"""
Data access layer for Campus Bridge.

Public Interface:
    - Repository interfaces for accounts, materials, upload records and
      rejection logs
    - SQLite implementations backed by aiosqlite
    - RepositoryFactory wiring connection, schema and repositories

Example Usage:
    ```python
    from campusbridge.data import RepositoryFactory

    factory = RepositoryFactory("sqlite", db_path="data/campusbridge.db")
    accounts = await factory.get_account_repository()
    account = await accounts.get_account("acc-1")
    ```
"""

from .base import (
    AccountRepository,
    DatabaseConnection,
    MaterialRepository,
    RejectionLogRepository,
    UploadRecordRepository,
)
from .sqlite import (
    SQLiteAccountRepository,
    SQLiteConnection,
    SQLiteMaterialRepository,
    SQLiteRejectionLogRepository,
    SQLiteUploadRecordRepository,
)
from .token_cipher import TokenCipher
from .migrations import run_migrations
from .repositories import RepositoryFactory

__all__ = [
    "AccountRepository",
    "DatabaseConnection",
    "MaterialRepository",
    "RejectionLogRepository",
    "UploadRecordRepository",
    "SQLiteAccountRepository",
    "SQLiteConnection",
    "SQLiteMaterialRepository",
    "SQLiteRejectionLogRepository",
    "SQLiteUploadRecordRepository",
    "TokenCipher",
    "run_migrations",
    "RepositoryFactory",
]
