"""
Abstract repository interfaces for the data access layer.

The relational store is consumed through these interfaces only; concrete
implementations inherit from the abstract base classes below.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional

from ..models.account import HostingAccount
from ..models.material import Material, RejectionLog, UploadRecord


class DatabaseConnection(ABC):
    """Abstract database connection interface."""

    @abstractmethod
    async def connect(self) -> None:
        """Establish database connection."""
        pass

    @abstractmethod
    async def disconnect(self) -> None:
        """Close database connection."""
        pass

    @abstractmethod
    async def execute(self, query: str, params: Optional[tuple] = None) -> int:
        """
        Execute a write query.

        Args:
            query: SQL query to execute
            params: Query parameters

        Returns:
            Number of affected rows
        """
        pass

    @abstractmethod
    async def execute_returning(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        """
        Execute a write query with a RETURNING clause as one statement.

        Args:
            query: SQL query to execute
            params: Query parameters

        Returns:
            Returned rows as dictionaries
        """
        pass

    @abstractmethod
    async def fetch_one(self, query: str, params: Optional[tuple] = None) -> Optional[Dict[str, Any]]:
        """
        Fetch a single row from the database.

        Returns:
            Single row as a dictionary, or None if no results
        """
        pass

    @abstractmethod
    async def fetch_all(self, query: str, params: Optional[tuple] = None) -> List[Dict[str, Any]]:
        """
        Fetch all rows from the database.

        Returns:
            List of rows as dictionaries
        """
        pass


class AccountRepository(ABC):
    """Abstract repository for Dropbox hosting accounts."""

    @abstractmethod
    async def save_account(self, account: HostingAccount) -> str:
        """
        Insert or replace an account (administrative provisioning).

        Returns:
            The account ID
        """
        pass

    @abstractmethod
    async def get_account(self, account_id: str) -> Optional[HostingAccount]:
        """
        Fetch exactly one account by ID.

        Returns:
            The account if found, None otherwise
        """
        pass

    @abstractmethod
    async def find_eligible(
        self,
        quota_ceiling_mb: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> List[HostingAccount]:
        """
        List usable accounts, least recently used first.

        Args:
            quota_ceiling_mb: Only accounts with usage strictly below this value
            limit: Maximum number of accounts to return
        """
        pass

    @abstractmethod
    async def claim_least_recently_used(
        self,
        claimed_at: datetime,
        quota_ceiling_mb: Optional[float] = None,
    ) -> Optional[HostingAccount]:
        """
        Select the least recently used eligible account and stamp its
        ``last_used`` in a single statement.

        Returns:
            The claimed account, None when no account is eligible
        """
        pass

    @abstractmethod
    async def touch(self, account_id: str, last_used: datetime) -> bool:
        """Update ``last_used`` for an account."""
        pass

    @abstractmethod
    async def update_access_token(
        self,
        account_id: str,
        access_token: str,
        last_used: datetime,
    ) -> bool:
        """
        Persist a refreshed access token.

        Returns:
            True if a row was updated
        """
        pass

    @abstractmethod
    async def increment_usage(self, account_id: str, amount_mb: float) -> None:
        """Atomically add to an account's usage counter."""
        pass

    @abstractmethod
    async def get_usage(self, account_id: str) -> Optional[float]:
        """Current usage counter, None if the account does not exist."""
        pass

    @abstractmethod
    async def set_usage(self, account_id: str, value_mb: float) -> bool:
        """Overwrite an account's usage counter."""
        pass


class MaterialRepository(ABC):
    """Abstract repository for study materials."""

    @abstractmethod
    async def save_material(self, material: Material) -> str:
        """Insert or replace a material (upload intake)."""
        pass

    @abstractmethod
    async def get_material(self, material_id: str) -> Optional[Material]:
        """Fetch exactly one material by ID."""
        pass

    @abstractmethod
    async def update_material(self, material_id: str, fields: Dict[str, Any]) -> bool:
        """
        Update selected columns of a material.

        Args:
            material_id: Material ID
            fields: Column name to new value (enum values are unwrapped)

        Returns:
            True if a row was updated
        """
        pass

    @abstractmethod
    async def delete_material(self, material_id: str) -> bool:
        """Delete a material row."""
        pass

    @abstractmethod
    async def ping(self) -> None:
        """Run a minimal query to wake the store connection."""
        pass


class UploadRecordRepository(ABC):
    """Abstract repository for upload records (insert-only)."""

    @abstractmethod
    async def insert_record(self, record: UploadRecord) -> str:
        pass

    @abstractmethod
    async def find_by_material(self, material_id: str) -> List[UploadRecord]:
        pass


class RejectionLogRepository(ABC):
    """Abstract repository for rejection audit entries."""

    @abstractmethod
    async def insert_log(self, log: RejectionLog) -> str:
        pass

    @abstractmethod
    async def find_by_material(self, material_id: str) -> List[RejectionLog]:
        pass
