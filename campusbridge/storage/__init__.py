"""
Intake blob storage backends.
"""

from .base import BlobStorage
from .local import LocalBlobStorage
from .supabase import SupabaseBlobStorage

__all__ = [
    "BlobStorage",
    "LocalBlobStorage",
    "SupabaseBlobStorage",
]
