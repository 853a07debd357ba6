"""
Account rotation across the Dropbox account pool.

Rotation is round-robin by recency: the eligible account used longest ago is
chosen next. Accounts without any credential, inactive accounts and, when a
quota ceiling is configured, accounts at or above it are never eligible.
"""

import logging
from typing import Optional

from ..data.base import AccountRepository
from ..exceptions import NoAccountAvailable
from ..models.account import HostingAccount
from ..models.base import utcnow

logger = logging.getLogger(__name__)


class AccountSelector:
    """Chooses the next Dropbox account to upload with."""

    def __init__(self, accounts: AccountRepository, quota_ceiling_mb: Optional[float] = None):
        """
        Args:
            accounts: Account repository
            quota_ceiling_mb: Default usage ceiling; None or <= 0 means unlimited
        """
        self.accounts = accounts
        self.quota_ceiling_mb = quota_ceiling_mb

    def _ceiling(self, quota_ceiling_mb: Optional[float]) -> Optional[float]:
        ceiling = quota_ceiling_mb if quota_ceiling_mb is not None else self.quota_ceiling_mb
        return ceiling if ceiling and ceiling > 0 else None

    async def select_account(self, quota_ceiling_mb: Optional[float] = None) -> HostingAccount:
        """Return the least recently used eligible account without modifying it.

        Raises:
            NoAccountAvailable: If no account is eligible
        """
        ceiling = self._ceiling(quota_ceiling_mb)
        candidates = await self.accounts.find_eligible(quota_ceiling_mb=ceiling, limit=1)
        if not candidates:
            raise NoAccountAvailable("No suitable Dropbox account found")
        return candidates[0]

    async def claim_account(self, quota_ceiling_mb: Optional[float] = None) -> HostingAccount:
        """Select and stamp the least recently used eligible account atomically.

        Two concurrent claims never return the same account from a single
        selection because the stamp moves it to the back of the rotation.

        Raises:
            NoAccountAvailable: If no account is eligible
        """
        ceiling = self._ceiling(quota_ceiling_mb)
        account = await self.accounts.claim_least_recently_used(utcnow(), quota_ceiling_mb=ceiling)
        if account is None:
            raise NoAccountAvailable("No suitable Dropbox account found")
        logger.info(f"Claimed Dropbox account {account.id} (usage {account.bytes_used:.2f} MB)")
        return account
