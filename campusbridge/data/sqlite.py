"""
SQLite implementation of data repositories using aiosqlite.

This module provides SQLite support with a small connection pool and
async database operations.
"""

import asyncio
from contextlib import asynccontextmanager
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import aiosqlite

from .base import (
    AccountRepository,
    DatabaseConnection,
    MaterialRepository,
    RejectionLogRepository,
    UploadRecordRepository,
)
from .token_cipher import TokenCipher
from ..models.account import HostingAccount
from ..models.base import format_timestamp
from ..models.material import Material, RejectionLog, UploadRecord


class SQLiteConnection(DatabaseConnection):
    """SQLite database connection with connection pooling."""

    def __init__(self, db_path: str, pool_size: int = 5):
        self.db_path = db_path
        self.pool_size = pool_size
        self._connections: List[aiosqlite.Connection] = []
        self._available: asyncio.Queue = asyncio.Queue(maxsize=pool_size)
        self._lock = asyncio.Lock()
        self._initialized = False

    async def connect(self) -> None:
        """Establish database connection pool."""
        async with self._lock:
            if self._initialized:
                return

            Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)

            for _ in range(self.pool_size):
                conn = await aiosqlite.connect(self.db_path)
                conn.row_factory = aiosqlite.Row
                # WAL lets readers proceed while a job writes
                await conn.execute("PRAGMA journal_mode=WAL")
                await conn.execute("PRAGMA busy_timeout=5000")
                self._connections.append(conn)
                await self._available.put(conn)

            self._initialized = True

    async def disconnect(self) -> None:
        """Close all database connections."""
        async with self._lock:
            if not self._initialized:
                return

            for conn in self._connections:
                await conn.close()

            self._connections.clear()
            self._available = asyncio.Queue(maxsize=self.pool_size)
            self._initialized = False

    @asynccontextmanager
    async def _get_connection(self):
        """Get a connection from the pool."""
        if not self._initialized:
            await self.connect()

        conn = await self._available.get()
        try:
            yield conn
        finally:
            await self._available.put(conn)

    async def execute(self, query: str, params: Optional[tuple] = None) -> int:
        """Execute a write query and return the affected row count."""
        async with self._get_connection() as conn:
            cursor = await conn.execute(query, params or ())
            await conn.commit()
            return cursor.rowcount

    async def execute_returning(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        """Execute a write query with RETURNING, fetching rows before commit."""
        async with self._get_connection() as conn:
            cursor = await conn.execute(query, params or ())
            rows = await cursor.fetchall()
            await conn.commit()
            return [dict(row) for row in rows]

    async def execute_script(self, script: str) -> None:
        """Execute several statements (schema setup)."""
        async with self._get_connection() as conn:
            await conn.executescript(script)
            await conn.commit()

    async def fetch_one(self, query: str, params: Optional[tuple] = None) -> Optional[Dict[str, Any]]:
        """Fetch a single row from the database."""
        async with self._get_connection() as conn:
            cursor = await conn.execute(query, params or ())
            row = await cursor.fetchone()
            if row:
                return dict(row)
            return None

    async def fetch_all(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        """Fetch all rows from the database."""
        async with self._get_connection() as conn:
            cursor = await conn.execute(query, params or ())
            rows = await cursor.fetchall()
            return [dict(row) for row in rows]


def _sql_value(value: Any) -> Any:
    """Convert model values into SQLite-storable values."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, bool):
        return int(value)
    return value


class SQLiteAccountRepository(AccountRepository):
    """SQLite implementation of the hosting account repository."""

    # Accounts without any credential can never yield a token
    _ELIGIBLE = (
        "active = 1 AND ("
        "(access_token IS NOT NULL AND access_token != '') OR "
        "(refresh_token IS NOT NULL AND refresh_token != ''))"
    )

    def __init__(self, connection: SQLiteConnection, cipher: Optional[TokenCipher] = None):
        self.connection = connection
        self.cipher = cipher

    def _encrypt(self, value: Optional[str]) -> Optional[str]:
        return self.cipher.encrypt(value) if self.cipher else value

    def _row_to_account(self, row: Dict[str, Any]) -> HostingAccount:
        if self.cipher:
            row = dict(row)
            row["access_token"] = self.cipher.decrypt(row.get("access_token"))
            row["refresh_token"] = self.cipher.decrypt(row.get("refresh_token"))
        return HostingAccount.from_row(row)

    def _eligibility_filter(self, quota_ceiling_mb: Optional[float]) -> Tuple[str, tuple]:
        if quota_ceiling_mb is not None and quota_ceiling_mb > 0:
            return f"{self._ELIGIBLE} AND bytes_used < ?", (quota_ceiling_mb,)
        return self._ELIGIBLE, ()

    async def save_account(self, account: HostingAccount) -> str:
        query = """
        INSERT OR REPLACE INTO dropbox_accounts (
            id, access_token, refresh_token, app_key, app_secret,
            bytes_used, last_used, active, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """
        params = (
            account.id,
            self._encrypt(account.access_token),
            self._encrypt(account.refresh_token),
            account.app_key,
            account.app_secret,
            account.bytes_used,
            format_timestamp(account.last_used),
            int(account.active),
            format_timestamp(account.created_at),
        )
        await self.connection.execute(query, params)
        return account.id

    async def get_account(self, account_id: str) -> Optional[HostingAccount]:
        row = await self.connection.fetch_one(
            "SELECT * FROM dropbox_accounts WHERE id = ?", (account_id,)
        )
        return self._row_to_account(row) if row else None

    async def find_eligible(
        self,
        quota_ceiling_mb: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> List[HostingAccount]:
        where, params = self._eligibility_filter(quota_ceiling_mb)
        # NULL last_used sorts first: never-used accounts are picked first
        query = f"SELECT * FROM dropbox_accounts WHERE {where} ORDER BY last_used ASC, rowid ASC"
        if limit is not None:
            query += " LIMIT ?"
            params = params + (limit,)
        rows = await self.connection.fetch_all(query, params)
        return [self._row_to_account(row) for row in rows]

    async def claim_least_recently_used(
        self,
        claimed_at: datetime,
        quota_ceiling_mb: Optional[float] = None,
    ) -> Optional[HostingAccount]:
        where, params = self._eligibility_filter(quota_ceiling_mb)
        query = f"""
        UPDATE dropbox_accounts SET last_used = ?
        WHERE id = (
            SELECT id FROM dropbox_accounts WHERE {where}
            ORDER BY last_used ASC, rowid ASC LIMIT 1
        )
        RETURNING *
        """
        rows = await self.connection.execute_returning(
            query, (claimed_at.isoformat(),) + params
        )
        return self._row_to_account(rows[0]) if rows else None

    async def touch(self, account_id: str, last_used: datetime) -> bool:
        count = await self.connection.execute(
            "UPDATE dropbox_accounts SET last_used = ? WHERE id = ?",
            (last_used.isoformat(), account_id),
        )
        return count > 0

    async def update_access_token(
        self,
        account_id: str,
        access_token: str,
        last_used: datetime,
    ) -> bool:
        count = await self.connection.execute(
            "UPDATE dropbox_accounts SET access_token = ?, last_used = ? WHERE id = ?",
            (self._encrypt(access_token), last_used.isoformat(), account_id),
        )
        return count > 0

    async def increment_usage(self, account_id: str, amount_mb: float) -> None:
        count = await self.connection.execute(
            "UPDATE dropbox_accounts SET bytes_used = COALESCE(bytes_used, 0) + ? WHERE id = ?",
            (amount_mb, account_id),
        )
        if count == 0:
            raise LookupError(f"Dropbox account {account_id} not found")

    async def get_usage(self, account_id: str) -> Optional[float]:
        row = await self.connection.fetch_one(
            "SELECT bytes_used FROM dropbox_accounts WHERE id = ?", (account_id,)
        )
        if row is None:
            return None
        return float(row["bytes_used"] or 0)

    async def set_usage(self, account_id: str, value_mb: float) -> bool:
        count = await self.connection.execute(
            "UPDATE dropbox_accounts SET bytes_used = ? WHERE id = ?",
            (value_mb, account_id),
        )
        return count > 0


class SQLiteMaterialRepository(MaterialRepository):
    """SQLite implementation of the study material repository."""

    _UPDATABLE = frozenset({
        "title",
        "storage_path",
        "attempts",
        "processing_status",
        "processing_error",
        "processed_url",
        "file_url",
        "approval_status",
    })

    def __init__(self, connection: SQLiteConnection):
        self.connection = connection

    async def save_material(self, material: Material) -> str:
        query = """
        INSERT OR REPLACE INTO study_materials (
            id, title, storage_path, attempts, processing_status,
            processing_error, processed_url, file_url, approval_status, created_at
        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """
        params = (
            material.id,
            material.title,
            material.storage_path,
            material.attempts,
            material.processing_status.value,
            material.processing_error,
            material.processed_url,
            material.file_url,
            material.approval_status.value,
            format_timestamp(material.created_at),
        )
        await self.connection.execute(query, params)
        return material.id

    async def get_material(self, material_id: str) -> Optional[Material]:
        row = await self.connection.fetch_one(
            "SELECT * FROM study_materials WHERE id = ?", (material_id,)
        )
        return Material.from_row(row) if row else None

    async def update_material(self, material_id: str, fields: Dict[str, Any]) -> bool:
        if not fields:
            return False
        unknown = set(fields) - self._UPDATABLE
        if unknown:
            raise ValueError(f"Unknown material columns: {sorted(unknown)}")

        columns = sorted(fields)
        assignments = ", ".join(f"{column} = ?" for column in columns)
        params = tuple(_sql_value(fields[column]) for column in columns) + (material_id,)
        count = await self.connection.execute(
            f"UPDATE study_materials SET {assignments} WHERE id = ?", params
        )
        return count > 0

    async def delete_material(self, material_id: str) -> bool:
        count = await self.connection.execute(
            "DELETE FROM study_materials WHERE id = ?", (material_id,)
        )
        return count > 0

    async def ping(self) -> None:
        await self.connection.fetch_one("SELECT id FROM study_materials LIMIT 1")


class SQLiteUploadRecordRepository(UploadRecordRepository):
    """SQLite implementation of the upload record repository."""

    def __init__(self, connection: SQLiteConnection):
        self.connection = connection

    async def insert_record(self, record: UploadRecord) -> str:
        query = """
        INSERT INTO file_records (
            id, material_id, dropbox_path, dropbox_url, account_id, uploaded_at
        ) VALUES (?, ?, ?, ?, ?, ?)
        """
        params = (
            record.id,
            record.material_id,
            record.dropbox_path,
            record.dropbox_url,
            record.account_id,
            format_timestamp(record.uploaded_at),
        )
        await self.connection.execute(query, params)
        return record.id

    async def find_by_material(self, material_id: str) -> List[UploadRecord]:
        rows = await self.connection.fetch_all(
            "SELECT * FROM file_records WHERE material_id = ? ORDER BY uploaded_at ASC",
            (material_id,),
        )
        return [UploadRecord.from_row(row) for row in rows]


class SQLiteRejectionLogRepository(RejectionLogRepository):
    """SQLite implementation of the rejection log repository."""

    def __init__(self, connection: SQLiteConnection):
        self.connection = connection

    async def insert_log(self, log: RejectionLog) -> str:
        query = """
        INSERT INTO rejection_logs (id, material_id, reason, rejected_by, rejected_at)
        VALUES (?, ?, ?, ?, ?)
        """
        params = (
            log.id,
            log.material_id,
            log.reason,
            log.rejected_by,
            format_timestamp(log.rejected_at),
        )
        await self.connection.execute(query, params)
        return log.id

    async def find_by_material(self, material_id: str) -> List[RejectionLog]:
        rows = await self.connection.fetch_all(
            "SELECT * FROM rejection_logs WHERE material_id = ? ORDER BY rejected_at ASC",
            (material_id,),
        )
        return [RejectionLog.from_row(row) for row in rows]
