"""Abstract base class for storage backends."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum


@dataclass(frozen=True)
class ListRefsItem:
    """A single entry returned by a listing call."""

    ref: str
    size: int


class BucketAccess(str, Enum):
    """Access visibility of the backing bucket."""

    PUBLIC = "public"
    PRIVATE = "private"


class StorageBackend(ABC):
    """Backend-agnostic interface for blob storage operations."""

    @abstractmethod
    def put(self, ref: str, contents: bytes) -> None:
        """Store *contents* under *ref*, overwriting any previous object."""

    @abstractmethod
    def download(self, ref: str) -> bytes:
        """Return the full content of *ref*. Raises StorageNotFoundError if missing."""

    @abstractmethod
    def delete(self, ref: str) -> None:
        """Remove *ref*. Raises StorageNotFoundError if missing."""

    @abstractmethod
    def list(self, token: str = "") -> tuple[list[ListRefsItem], str]:
        """Return one page of refs and the token for the next page.

        An empty *token* starts from the beginning. An empty returned token
        means the listing is complete. Tokens are single use.
        """

    @abstractmethod
    def link_base(self) -> str:
        """Return the public base URL. Raises StorageNotSupportedError if there is none."""

    @abstractmethod
    def close(self) -> None:
        """Release all resources. The backend must not be used afterwards."""
