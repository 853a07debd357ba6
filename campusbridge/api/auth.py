"""
Admin caller verification with HS256 JWTs.
"""

import logging
from typing import Any, Dict, Optional

from fastapi import Header
from jose import JWTError, jwt

from ..exceptions import ConfigurationError, Forbidden, Unauthorized

logger = logging.getLogger(__name__)


class AdminVerifier:
    """Verifies bearer tokens signed with the shared project secret."""

    def __init__(self, jwt_secret: Optional[str], algorithm: str = "HS256"):
        self.jwt_secret = jwt_secret
        self.algorithm = algorithm

    def verify(self, token: str) -> Dict[str, Any]:
        """Decode ``token`` and require the admin flag.

        Returns:
            Token claims

        Raises:
            ConfigurationError: No secret configured
            Unauthorized: Signature, expiry or format invalid
            Forbidden: Valid token without admin rights
        """
        if not self.jwt_secret:
            raise ConfigurationError("Server misconfiguration: missing SUPABASE_JWT_SECRET")

        try:
            # Audience is issuer-specific ("authenticated"); only the signature matters here
            claims = jwt.decode(
                token,
                self.jwt_secret,
                algorithms=[self.algorithm],
                options={"verify_aud": False},
            )
        except JWTError as e:
            logger.warning(f"JWT verification failed: {e}")
            raise Unauthorized("Invalid or expired token")

        metadata = claims.get("user_metadata") or {}
        if metadata.get("isAdmin") is not True:
            logger.warning(f"Admin check failed for subject {claims.get('sub')}")
            raise Forbidden("Not an admin")

        return claims


# Global verifier instance (set by the server)
_verifier: Optional[AdminVerifier] = None


def set_verifier(verifier: AdminVerifier) -> None:
    """Set the global verifier instance."""
    global _verifier
    _verifier = verifier


def get_verifier() -> AdminVerifier:
    """Get the verifier instance."""
    if _verifier is None:
        raise RuntimeError("Admin verifier not initialized")
    return _verifier


async def require_admin(
    authorization: Optional[str] = Header(None, alias="Authorization"),
) -> Dict[str, Any]:
    """FastAPI dependency returning the claims of an admin caller."""
    if not authorization:
        raise Unauthorized("Missing Authorization header")

    parts = authorization.split(" ", 1)
    token = parts[1].strip() if len(parts) == 2 else ""
    if not token:
        raise Unauthorized("Missing token")

    return get_verifier().verify(token)
