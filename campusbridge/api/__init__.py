"""
HTTP API for Campus Bridge.
"""

from .auth import AdminVerifier, require_admin
from .server import BridgeServer

__all__ = [
    "AdminVerifier",
    "require_admin",
    "BridgeServer",
]
