"""
At-rest encryption for hosting account credentials.

Tokens are encrypted with Fernet when ``TOKEN_ENCRYPTION_KEY`` is set.
Rows provisioned out-of-band with plaintext tokens keep working: values that
are not Fernet tokens are returned unchanged.
"""

import base64
import hashlib
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)

_FERNET_PREFIX = "gAAAAA"


class TokenCipher:
    """Symmetric cipher for access and refresh tokens."""

    def __init__(self, key: str):
        # Fernet keys are 44 chars base64; derive one from any other secret
        if len(key) != 44:
            key = base64.urlsafe_b64encode(hashlib.sha256(key.encode()).digest()).decode()
        self._fernet = Fernet(key.encode())

    def encrypt(self, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return self._fernet.encrypt(value.encode()).decode()

    def decrypt(self, value: Optional[str]) -> Optional[str]:
        if not value or not value.startswith(_FERNET_PREFIX):
            return value
        try:
            return self._fernet.decrypt(value.encode()).decode()
        except InvalidToken:
            logger.warning("Stored credential could not be decrypted with the configured key")
            return None
