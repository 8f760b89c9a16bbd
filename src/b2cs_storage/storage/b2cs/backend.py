"""Storage backend that saves data to Backblaze B2 Cloud Storage."""

import logging
import os
from collections.abc import Callable, Mapping

from ..base import BucketAccess, ListRefsItem, StorageBackend
from ..cursor import ObjectCursor
from ..cursor_cache import DEFAULT_CAPACITY, CursorCache
from ..exceptions import (
    StorageError,
    StorageInvalidError,
    StorageIOError,
    StorageNotSupportedError,
    StorageTransientError,
)
from ..pagination import DEFAULT_MAX_RESULTS, Paginator
from ..registry import StorageRegistry
from ..remote import RemoteBucketClient
from .client import DEFAULT_ENDPOINT_URL, B2S3Client

log = logging.getLogger(__name__)

BACKEND_NAME = "B2CS"

# Keys used for storing dial options.
ACCOUNT_ID = "b2csAccount"
APP_KEY = "b2csAppKey"
BUCKET_NAME = "b2csBucketName"
ENDPOINT = "b2csEndpoint"

ClientFactory = Callable[..., RemoteBucketClient]


class B2CSStorage(StorageBackend):
    """
    StorageBackend on a single B2 bucket.

    One instance serves concurrent callers. The cursor cache is locked;
    the bucket visibility is computed lazily and may be computed twice
    under a race, which is harmless.
    """

    def __init__(
        self,
        remote: RemoteBucketClient,
        max_results: int = DEFAULT_MAX_RESULTS,
        cursor_capacity: int = DEFAULT_CAPACITY,
    ):
        self._remote: RemoteBucketClient | None = remote
        self._access: BucketAccess | None = None
        self._cursors: CursorCache[ObjectCursor] = CursorCache(cursor_capacity)
        self._paginator = Paginator(
            self._open_cursor,
            self._cursors,
            max_results=max_results,
            op="b2cs.list",
        )

    @property
    def max_results(self) -> int:
        """Number of refs returned per list call."""
        return self._paginator.max_results

    @max_results.setter
    def max_results(self, value: int) -> None:
        if value < 1:
            raise ValueError(f"max_results must be at least 1, got {value}")
        self._paginator.max_results = value

    def _require_remote(self, op: str) -> RemoteBucketClient:
        remote = self._remote
        if remote is None:
            raise StorageTransientError("B2 implementation is not initialized", op=op)
        return remote

    def _open_cursor(self, page_size: int) -> ObjectCursor:
        return self._require_remote("b2cs.list").list_objects(page_size)

    def link_base(self) -> str:
        remote = self._require_remote("b2cs.link_base")
        if self._access is None:
            self._access = self._check_access(remote)
        if self._access is BucketAccess.PUBLIC:
            return remote.base_url()
        raise StorageNotSupportedError(
            f"bucket {remote.bucket_name!r} is not public", op="b2cs.link_base"
        )

    def _check_access(self, remote: RemoteBucketClient) -> BucketAccess:
        try:
            return remote.bucket_access()
        except StorageError as e:
            log.debug("Unable to classify bucket %s, assuming private: %s", remote.bucket_name, e)
            return BucketAccess.PRIVATE

    def download(self, ref: str) -> bytes:
        _check_ref(ref, "b2cs.download")
        return self._require_remote("b2cs.download").get_object(ref)

    def put(self, ref: str, contents: bytes) -> None:
        _check_ref(ref, "b2cs.put")
        self._require_remote("b2cs.put").put_object(ref, contents)

    def delete(self, ref: str) -> None:
        _check_ref(ref, "b2cs.delete")
        # B2 keeps object history; this removes the latest version only.
        self._require_remote("b2cs.delete").delete_object(ref)

    def list(self, token: str = "") -> tuple[list[ListRefsItem], str]:
        """Once a pagination token is used, it cannot be reused."""
        self._require_remote("b2cs.list")
        refs, next_token = self._paginator.list(token)
        # close() unsets _remote before it clears the cursor cache.
        if self._remote is None:
            if next_token:
                self._cursors.take(next_token)
            raise StorageIOError("listing interrupted by close", op="b2cs.list")
        return refs, next_token

    def close(self) -> None:
        remote, self._remote = self._remote, None
        self._cursors.clear()
        if remote is not None:
            remote.close()


def _check_ref(ref: str, op: str) -> None:
    if not ref:
        raise StorageInvalidError("ref must not be empty", op=op)


def new_b2cs_storage(
    opts: Mapping[str, str],
    client_factory: ClientFactory = B2S3Client,
) -> B2CSStorage:
    """
    Initializes a StorageBackend that stores data to B2 Cloud Storage.

    Raises:
        StorageInvalidError: If a required option is missing. Nothing is contacted.
        StorageIOError: If the bucket cannot be opened or created.
    """
    op = "b2cs.new"
    for name in (ACCOUNT_ID, APP_KEY, BUCKET_NAME):
        if not opts.get(name):
            raise StorageInvalidError(f"{name!r} option is required", op=op)

    endpoint = opts.get(ENDPOINT) or os.getenv("B2CS_ENDPOINT_URL") or DEFAULT_ENDPOINT_URL

    remote = client_factory(
        account_id=opts[ACCOUNT_ID],
        application_key=opts[APP_KEY],
        bucket_name=opts[BUCKET_NAME],
        endpoint_url=endpoint,
    )
    try:
        remote.open_bucket()
    except StorageError:
        remote.close()
        raise
    log.info("Opened B2 bucket %s at %s", opts[BUCKET_NAME], endpoint)
    return B2CSStorage(remote)


def register(registry: StorageRegistry) -> None:
    """Registers this backend under BACKEND_NAME."""
    registry.register(BACKEND_NAME, new_b2cs_storage)
