"""Shared fixtures for storage tests: an in-memory stand-in for the remote B2 client."""

from collections.abc import Callable

import pytest

from b2cs_storage.storage.b2cs.backend import B2CSStorage
from b2cs_storage.storage.base import BucketAccess
from b2cs_storage.storage.cursor import ObjectAttrs, ObjectCursor
from b2cs_storage.storage.exceptions import StorageIOError, StorageNotFoundError
from b2cs_storage.storage.remote import RemoteBucketClient


class InMemoryBucketClient(RemoteBucketClient):
    """Dict-backed RemoteBucketClient that walks its catalog in pages, in name order."""

    def __init__(
        self,
        account_id: str = "acct",
        application_key: str = "key",
        bucket_name: str = "test-bucket",
        endpoint_url: str = "https://s3.us-west-004.backblazeb2.com",
    ):
        self.bucket_name = bucket_name
        self.endpoint_url = endpoint_url
        self.objects: dict[str, bytes] = {}
        self.access = BucketAccess.PRIVATE
        self.access_error: Exception | None = None
        self.access_calls = 0
        self.page_fetches = 0
        self.fail_attrs_at: str | None = None
        self.fail_page_at: int | None = None
        self.on_attrs: Callable[[str], None] | None = None
        self.opened = False
        self.closed = False

    def open_bucket(self) -> None:
        self.opened = True

    def list_objects(self, page_size: int) -> ObjectCursor:
        return ObjectCursor(self._pages(page_size), self._attrs)

    def _pages(self, page_size: int):
        names = sorted(self.objects)
        # Like boto3 paginators, a walk already under way survives close().
        for page_number, start in enumerate(range(0, len(names), page_size)):
            if self.fail_page_at is not None and page_number == self.fail_page_at:
                raise StorageIOError("listing page failed")
            self.page_fetches += 1
            yield [{"Key": name, "Size": len(self.objects[name])} for name in names[start:start + page_size]]

    def _attrs(self, entry: dict) -> ObjectAttrs:
        if self.on_attrs is not None:
            self.on_attrs(entry["Key"])
        if entry["Key"] == self.fail_attrs_at:
            raise StorageIOError(f"unable to get object attributes {entry['Key']!r}")
        return ObjectAttrs(name=entry["Key"], size=entry["Size"])

    def get_object(self, key: str) -> bytes:
        if key not in self.objects:
            raise StorageNotFoundError(f"ref {key!r} not found", key=key)
        return self.objects[key]

    def put_object(self, key: str, content: bytes) -> None:
        self.objects[key] = bytes(content)

    def delete_object(self, key: str) -> None:
        if key not in self.objects:
            raise StorageNotFoundError(f"ref {key!r} not found", key=key)
        del self.objects[key]

    def bucket_access(self) -> BucketAccess:
        self.access_calls += 1
        if self.access_error is not None:
            raise self.access_error
        return self.access

    def base_url(self) -> str:
        return f"{self.endpoint_url}/{self.bucket_name}/"

    def delete_bucket(self) -> None:
        self.objects.clear()

    def close(self) -> None:
        self.closed = True


@pytest.fixture()
def remote() -> InMemoryBucketClient:
    return InMemoryBucketClient()


@pytest.fixture()
def storage(remote) -> B2CSStorage:
    return B2CSStorage(remote)


@pytest.fixture()
def fill(remote):
    """Returns a function that stores *count* objects named prefix0..prefixN-1."""

    def _fill(count: int, prefix: str = "ref") -> list[str]:
        refs = [f"{prefix}{i}" for i in range(count)]
        for ref in refs:
            remote.put_object(ref, ref.encode())
        return refs

    return _fill


@pytest.fixture()
def list_all():
    """Returns a function that walks every page, giving (items, number of list calls)."""

    def _list_all(lister, max_calls: int = 10_000) -> tuple[list, int]:
        items, token, calls = [], "", 0
        while calls < max_calls:
            page, token = lister.list(token)
            calls += 1
            items.extend(page)
            if not token:
                break
        return items, calls

    return _list_all


class RecordingFactory:
    """Client factory that records whether, and how, it was called."""

    def __init__(self):
        self.calls = []
        self.client = None

    def __call__(self, **kwargs):
        self.calls.append(kwargs)
        self.client = InMemoryBucketClient(**kwargs)
        return self.client


@pytest.fixture()
def recording_factory() -> RecordingFactory:
    return RecordingFactory()
