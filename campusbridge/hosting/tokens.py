"""
Access-token lifecycle for pooled Dropbox accounts.

Validation never raises: any failure to prove a token live degrades to
"needs refresh". Refresh happens at most once per ``ensure_valid`` call and is
reactive only; a token that passes validation is used even if close to expiry.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from .dropbox import DropboxClient
from ..data.base import AccountRepository
from ..exceptions import HostingError, MissingRefreshCapability, PersistFailed
from ..models.account import HostingAccount, mask_secret
from ..models.base import utcnow

logger = logging.getLogger(__name__)


class ValidationStatus(Enum):
    """Outcome of a token liveness check."""
    VALID = "valid"
    INVALID = "invalid"
    CHECK_FAILED = "check_failed"


@dataclass
class ValidationResult:
    status: ValidationStatus
    reason: str = ""

    @property
    def is_valid(self) -> bool:
        return self.status == ValidationStatus.VALID


class TokenValidator:
    """Checks access tokens with a cheap authenticated call."""

    # Dropbox answers 400 for malformed tokens and 401 for expired/revoked ones
    _INVALID_STATUSES = {400, 401}

    def __init__(self, client: DropboxClient):
        self.client = client

    async def check(self, access_token: Optional[str]) -> ValidationResult:
        if not access_token:
            return ValidationResult(ValidationStatus.INVALID, "no access token")

        try:
            await self.client.get_current_account(access_token)
        except HostingError as e:
            if e.status in self._INVALID_STATUSES:
                logger.info(f"Dropbox token {mask_secret(access_token)} rejected: {e.summary or e.status}")
                return ValidationResult(ValidationStatus.INVALID, str(e))
            logger.warning(f"Dropbox token check for {mask_secret(access_token)} could not complete: {e}")
            return ValidationResult(ValidationStatus.CHECK_FAILED, str(e))
        except Exception as e:
            logger.warning(f"Dropbox token check for {mask_secret(access_token)} errored: {e}")
            return ValidationResult(ValidationStatus.CHECK_FAILED, str(e))

        return ValidationResult(ValidationStatus.VALID)

    async def is_valid(self, access_token: Optional[str]) -> bool:
        return (await self.check(access_token)).is_valid


class TokenRefresher:
    """Mints new access tokens from refresh tokens. Failures are not retried."""

    def __init__(self, client: DropboxClient):
        self.client = client

    async def refresh(self, refresh_token: str, app_key: str, app_secret: str) -> str:
        return await self.client.exchange_refresh_token(refresh_token, app_key, app_secret)


@dataclass
class ResolvedCredentials:
    """Everything needed for a refresh-token exchange."""
    refresh_token: str
    app_key: str
    app_secret: str


@dataclass
class MissingCapability:
    """Why an account cannot refresh its access token."""
    reason: str


def resolve_app_credentials(
    account: HostingAccount,
    default_app_key: Optional[str],
    default_app_secret: Optional[str],
) -> Union[ResolvedCredentials, MissingCapability]:
    """Resolve refresh inputs; account-level app credentials win over defaults."""
    if not account.refresh_token:
        return MissingCapability(
            f"Dropbox access token invalid and no refresh token for account id={account.id}"
        )

    app_key = account.app_key or default_app_key
    app_secret = account.app_secret or default_app_secret
    if not app_key or not app_secret:
        return MissingCapability(
            f"Missing Dropbox client credentials for token refresh (account id={account.id})"
        )

    return ResolvedCredentials(
        refresh_token=account.refresh_token,
        app_key=app_key,
        app_secret=app_secret,
    )


@dataclass
class TokenLease:
    """A usable access token for one account.

    ``persisted`` is False when a refreshed token could not be written back;
    the token itself is still good to use.
    """
    account: HostingAccount
    access_token: str
    refreshed: bool = False
    persisted: bool = True


class TokenLifecycle:
    """Ensures a selected account carries a usable access token."""

    def __init__(
        self,
        accounts: AccountRepository,
        validator: TokenValidator,
        refresher: TokenRefresher,
        default_app_key: Optional[str] = None,
        default_app_secret: Optional[str] = None,
    ):
        self.accounts = accounts
        self.validator = validator
        self.refresher = refresher
        self.default_app_key = default_app_key
        self.default_app_secret = default_app_secret

    async def ensure_valid(self, account: HostingAccount, force_refresh: bool = False) -> TokenLease:
        """Return a usable token for ``account``, refreshing at most once.

        Args:
            account: Account row as read from the store
            force_refresh: Skip the liveness check and refresh directly

        Raises:
            MissingRefreshCapability: Token unusable and no way to refresh
            RefreshFailed: The provider rejected the refresh exchange
        """
        if account.access_token and not force_refresh:
            result = await self.validator.check(account.access_token)
            if result.is_valid:
                now = utcnow()
                try:
                    await self.accounts.touch(account.id, now)
                except Exception as e:
                    logger.warning(f"Failed to update last_used for account {account.id}: {e}")
                account.last_used = now
                return TokenLease(account=account, access_token=account.access_token)
            if result.status == ValidationStatus.CHECK_FAILED:
                logger.warning(f"Treating unverifiable token of account {account.id} as invalid")

        resolved = resolve_app_credentials(account, self.default_app_key, self.default_app_secret)
        if isinstance(resolved, MissingCapability):
            raise MissingRefreshCapability(resolved.reason)

        logger.info(f"Refreshing Dropbox access token for account {account.id}")
        new_token = await self.refresher.refresh(
            resolved.refresh_token, resolved.app_key, resolved.app_secret
        )

        now = utcnow()
        updated = account.with_access_token(new_token, now)
        persisted = True
        try:
            if not await self.accounts.update_access_token(account.id, new_token, now):
                raise PersistFailed(f"Dropbox account {account.id} no longer exists")
        except Exception as e:
            persisted = False
            logger.warning(
                f"Failed to update refreshed access token in DB for account {account.id}: {e}. "
                f"Continuing with the in-memory token."
            )

        return TokenLease(account=updated, access_token=new_token, refreshed=True, persisted=persisted)
