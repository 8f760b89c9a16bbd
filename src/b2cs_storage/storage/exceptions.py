"""Common exception hierarchy for storage backends."""


class StorageError(Exception):
    """Base exception for all storage operations."""

    def __init__(
        self,
        message: str,
        key: str | None = None,
        op: str | None = None,
        cause: Exception | None = None,
    ):
        self.key = key
        self.op = op
        self.cause = cause
        super().__init__(f"{op}: {message}" if op else message)


class StorageInvalidError(StorageError):
    """Raised for bad or missing arguments. No network activity was attempted."""


class StorageNotFoundError(StorageError):
    """Raised when a requested key or resume token does not exist."""


class StorageIOError(StorageError):
    """Raised for transport, stream or remote service failures."""


class StoragePermissionError(StorageIOError):
    """Raised when credentials are invalid or access is denied."""


class StorageConnectionError(StorageIOError):
    """Raised when the storage backend is unreachable."""


class StorageNotSupportedError(StorageError):
    """Raised when the backend cannot answer a request, e.g. a link base for a private bucket."""


class StorageTransientError(StorageError):
    """Raised when an operation is attempted on an uninitialized or closed backend."""
