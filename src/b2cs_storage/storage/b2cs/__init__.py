"""Backblaze B2 Cloud Storage backend."""

from .backend import BACKEND_NAME, B2CSStorage, new_b2cs_storage, register
from .client import B2S3Client

__all__ = [
    "BACKEND_NAME",
    "B2CSStorage",
    "B2S3Client",
    "new_b2cs_storage",
    "register",
]
