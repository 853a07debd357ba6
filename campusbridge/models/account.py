"""
Hosting account model.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Dict, Optional

from .base import format_timestamp, parse_timestamp, utcnow


def mask_secret(value: Optional[str]) -> str:
    """Short, log-safe rendering of a credential."""
    if not value:
        return "<none>"
    return f"{value[:6]}..." if len(value) > 6 else "***"


@dataclass
class HostingAccount:
    """One Dropbox account in the rotation pool.

    ``bytes_used`` is kept in megabytes, the unit the usage counter is
    accounted in.
    """
    id: str
    access_token: Optional[str] = None
    refresh_token: Optional[str] = None
    app_key: Optional[str] = None
    app_secret: Optional[str] = None
    bytes_used: float = 0.0
    last_used: Optional[datetime] = None
    active: bool = True
    created_at: datetime = field(default_factory=utcnow)

    def with_access_token(self, access_token: str, last_used: datetime) -> "HostingAccount":
        return replace(self, access_token=access_token, last_used=last_used)

    @classmethod
    def from_row(cls, row: Dict[str, Any]) -> "HostingAccount":
        return cls(
            id=row["id"],
            access_token=row.get("access_token"),
            refresh_token=row.get("refresh_token"),
            app_key=row.get("app_key"),
            app_secret=row.get("app_secret"),
            bytes_used=float(row.get("bytes_used") or 0),
            last_used=parse_timestamp(row.get("last_used")),
            active=bool(row.get("active", 1)),
            created_at=parse_timestamp(row.get("created_at")) or utcnow(),
        )

    def __repr__(self) -> str:
        return (
            f"HostingAccount(id={self.id!r}, access_token={mask_secret(self.access_token)}, "
            f"bytes_used={self.bytes_used}, last_used={format_timestamp(self.last_used)})"
        )
