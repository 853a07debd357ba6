"""
Material processing: upload pipeline, retry policy and moderation actions.
"""

from .compression import compress_material
from .processor import MaterialProcessor, ProcessOutcome, AdHocUploadOutcome

__all__ = [
    "compress_material",
    "MaterialProcessor",
    "ProcessOutcome",
    "AdHocUploadOutcome",
]
