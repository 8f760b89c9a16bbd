"""Contract for the remote object-store client used by storage backends."""

from abc import ABC, abstractmethod

from .base import BucketAccess
from .cursor import ObjectCursor


class RemoteBucketClient(ABC):
    """Thin, single-bucket view of a remote object store.

    Implementations translate their library's failures into the
    StorageError hierarchy.
    """

    bucket_name: str

    @abstractmethod
    def open_bucket(self) -> None:
        """Look up the bucket, creating it if it does not exist."""

    @abstractmethod
    def list_objects(self, page_size: int) -> ObjectCursor:
        """Start a walk over every object in the bucket, fetching *page_size* per remote page."""

    @abstractmethod
    def get_object(self, key: str) -> bytes:
        """Download content by key. Raises StorageNotFoundError if missing."""

    @abstractmethod
    def put_object(self, key: str, content: bytes) -> None:
        """Upload content under key."""

    @abstractmethod
    def delete_object(self, key: str) -> None:
        """Delete the latest version of key. Raises StorageNotFoundError if missing."""

    @abstractmethod
    def bucket_access(self) -> BucketAccess:
        """Return the bucket's visibility."""

    @abstractmethod
    def base_url(self) -> str:
        """Return the URL under which public objects of the bucket are served."""

    @abstractmethod
    def delete_bucket(self) -> None:
        """Remove every object version and then the bucket itself."""

    @abstractmethod
    def close(self) -> None:
        """Close network resources. In-flight calls fail with a transport error."""
