"""Storage backend contract, registry and shared listing machinery."""

from .base import BucketAccess, ListRefsItem, StorageBackend
from .exceptions import (
    StorageConnectionError,
    StorageError,
    StorageInvalidError,
    StorageIOError,
    StorageNotFoundError,
    StorageNotSupportedError,
    StoragePermissionError,
    StorageTransientError,
)
from .registry import StorageRegistry

__all__ = [
    "BucketAccess",
    "ListRefsItem",
    "StorageBackend",
    "StorageRegistry",
    "StorageError",
    "StorageInvalidError",
    "StorageNotFoundError",
    "StorageIOError",
    "StoragePermissionError",
    "StorageConnectionError",
    "StorageNotSupportedError",
    "StorageTransientError",
]
