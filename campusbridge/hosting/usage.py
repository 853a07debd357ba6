"""
Per-account usage accounting.

Usage is counted in megabytes. The atomic increment is preferred; when it is
unavailable the counter is updated with a read-modify-write that can lose
updates under concurrent uploads to the same account.
"""

import logging

from ..data.base import AccountRepository

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024


def bytes_to_mb(size_bytes: int) -> float:
    return round(size_bytes / BYTES_PER_MB, 4)


class UsageAccountant:
    """Best-effort usage counter updates; never raises."""

    def __init__(self, accounts: AccountRepository, require_atomic: bool = False):
        """
        Args:
            accounts: Account repository
            require_atomic: Disable the read-modify-write fallback and report
                atomic failures as errors instead
        """
        self.accounts = accounts
        self.require_atomic = require_atomic

    async def increment_usage(self, account_id: str, size_bytes: int) -> None:
        amount_mb = bytes_to_mb(size_bytes)
        try:
            try:
                await self.accounts.increment_usage(account_id, amount_mb)
                return
            except Exception as e:
                if self.require_atomic:
                    logger.error(f"Atomic usage increment failed for account {account_id}; counter not updated: {e}")
                    return
                logger.warning(f"Atomic usage increment failed for account {account_id}, falling back: {e}")

            current = await self.accounts.get_usage(account_id) or 0.0
            await self.accounts.set_usage(account_id, current + amount_mb)
        except Exception as e:
            logger.warning(f"Failed to increment bytes_used for account {account_id}: {e}")
