"""Unit tests for the B2CS storage backend facade."""

import threading
from unittest.mock import MagicMock

import pytest

from b2cs_storage.storage.b2cs.backend import (
    ACCOUNT_ID,
    APP_KEY,
    BACKEND_NAME,
    BUCKET_NAME,
    ENDPOINT,
    B2CSStorage,
    new_b2cs_storage,
    register,
)
from b2cs_storage.storage.b2cs.client import DEFAULT_ENDPOINT_URL
from b2cs_storage.storage.base import BucketAccess, ListRefsItem
from b2cs_storage.storage.exceptions import (
    StorageInvalidError,
    StorageIOError,
    StorageNotFoundError,
    StorageNotSupportedError,
    StoragePermissionError,
    StorageTransientError,
)
from b2cs_storage.storage.registry import StorageRegistry

VALID_OPTS = {ACCOUNT_ID: "acct-id", APP_KEY: "app-key", BUCKET_NAME: "my-bucket"}


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("B2CS_ENDPOINT_URL", raising=False)


class TestConstruction:
    @pytest.mark.parametrize("missing", [ACCOUNT_ID, APP_KEY, BUCKET_NAME])
    def test_missing_option_fails_before_contacting_remote(self, recording_factory, missing):
        factory = recording_factory
        opts = {k: v for k, v in VALID_OPTS.items() if k != missing}

        with pytest.raises(StorageInvalidError, match=missing):
            new_b2cs_storage(opts, client_factory=factory)

        assert factory.calls == []

    def test_empty_option_counts_as_missing(self, recording_factory):
        factory = recording_factory
        with pytest.raises(StorageInvalidError):
            new_b2cs_storage({**VALID_OPTS, APP_KEY: ""}, client_factory=factory)
        assert factory.calls == []

    def test_opens_bucket_with_options(self, recording_factory):
        factory = recording_factory

        storage = new_b2cs_storage(VALID_OPTS, client_factory=factory)

        assert isinstance(storage, B2CSStorage)
        assert factory.calls == [
            {
                "account_id": "acct-id",
                "application_key": "app-key",
                "bucket_name": "my-bucket",
                "endpoint_url": DEFAULT_ENDPOINT_URL,
            }
        ]
        assert factory.client.opened

    def test_endpoint_option_wins_over_env(self, monkeypatch, recording_factory):
        monkeypatch.setenv("B2CS_ENDPOINT_URL", "https://s3.eu-central-003.backblazeb2.com")
        factory = recording_factory

        new_b2cs_storage({**VALID_OPTS, ENDPOINT: "http://localhost:9000"}, client_factory=factory)

        assert factory.calls[0]["endpoint_url"] == "http://localhost:9000"

    def test_endpoint_from_env(self, monkeypatch, recording_factory):
        monkeypatch.setenv("B2CS_ENDPOINT_URL", "https://s3.eu-central-003.backblazeb2.com")
        factory = recording_factory

        new_b2cs_storage(VALID_OPTS, client_factory=factory)

        assert factory.calls[0]["endpoint_url"] == "https://s3.eu-central-003.backblazeb2.com"

    def test_open_failure_closes_client_and_propagates(self):
        client = MagicMock()
        client.open_bucket.side_effect = StoragePermissionError("denied")

        with pytest.raises(StoragePermissionError):
            new_b2cs_storage(VALID_OPTS, client_factory=lambda **kw: client)

        client.close.assert_called_once()

    def test_default_page_size(self, storage):
        assert storage.max_results == 1000


class TestRegister:
    def test_registers_under_backend_name(self):
        registry = StorageRegistry()

        register(registry)

        assert registry.names() == [BACKEND_NAME] == ["B2CS"]

    def test_dial_through_registry_validates_options(self):
        registry = StorageRegistry()
        register(registry)

        with pytest.raises(StorageInvalidError):
            registry.dial(BACKEND_NAME, {ACCOUNT_ID: "a"})


class TestPutDownloadDelete:
    @pytest.mark.parametrize("contents", [b"", b"hello", bytes(range(256)) * 10])
    def test_download_returns_stored_bytes(self, storage, contents):
        storage.put("some/ref", contents)

        assert storage.download("some/ref") == contents

    def test_put_overwrites(self, storage):
        storage.put("ref", b"one")
        storage.put("ref", b"two")

        assert storage.download("ref") == b"two"

    def test_download_missing_raises_not_found(self, storage):
        with pytest.raises(StorageNotFoundError):
            storage.download("nope")

    def test_delete_then_download_raises_not_found(self, storage):
        storage.put("ref", b"data")
        storage.delete("ref")

        with pytest.raises(StorageNotFoundError):
            storage.download("ref")

    def test_delete_missing_raises_not_found(self, storage):
        with pytest.raises(StorageNotFoundError):
            storage.delete("nope")

    @pytest.mark.parametrize(
        "call",
        [
            lambda s: s.put("", b"x"),
            lambda s: s.download(""),
            lambda s: s.delete(""),
        ],
    )
    def test_empty_ref_is_invalid(self, remote, storage, call):
        remote.put_object = MagicMock()

        with pytest.raises(StorageInvalidError, match="must not be empty"):
            call(storage)
        remote.put_object.assert_not_called()

    def test_transport_errors_propagate(self, remote, storage):
        remote.put_object = MagicMock(side_effect=StorageIOError("reset by peer"))

        with pytest.raises(StorageIOError):
            storage.put("ref", b"data")


class TestList:
    def test_empty_catalog(self, storage):
        assert storage.list("") == ([], "")

    def test_ten_refs_in_four_calls(self, storage, fill, list_all):
        refs = fill(10)
        storage.max_results = 3

        items, calls = list_all(storage)

        assert calls == 4
        assert sorted(item.ref for item in items) == sorted(refs)

    def test_listing_reflects_put_and_delete(self, storage, list_all):
        storage.put("a", b"1")
        storage.put("b", b"22")
        storage.delete("a")

        items, _ = list_all(storage)
        assert items == [ListRefsItem(ref="b", size=2)]

    def test_reused_token_fails(self, storage, fill):
        fill(5)
        storage.max_results = 2
        _, token = storage.list("")
        storage.list(token)

        with pytest.raises(StorageNotFoundError, match="unknown token"):
            storage.list(token)

    def test_rejects_zero_page_size(self, storage):
        with pytest.raises(ValueError):
            storage.max_results = 0

    def test_concurrent_walks(self, storage, fill, list_all):
        refs = fill(50)
        storage.max_results = 4
        results, errors = [], []

        def walk():
            try:
                items, _ = list_all(storage)
                results.append(sorted(item.ref for item in items))
            except Exception as e:  # surfaced below
                errors.append(e)

        threads = [threading.Thread(target=walk) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert results == [sorted(refs)] * 8


class TestLinkBase:
    def test_public_bucket_returns_base_url(self, remote, storage):
        remote.access = BucketAccess.PUBLIC

        assert storage.link_base() == f"{DEFAULT_ENDPOINT_URL}/test-bucket/"

    def test_private_bucket_is_not_supported(self, storage):
        with pytest.raises(StorageNotSupportedError):
            storage.link_base()

    def test_classification_is_memoized(self, remote, storage):
        remote.access = BucketAccess.PUBLIC
        storage.link_base()
        storage.link_base()

        assert remote.access_calls == 1

    def test_classification_failure_falls_back_to_private(self, remote, storage):
        remote.access = BucketAccess.PUBLIC
        remote.access_error = StoragePermissionError("denied")

        with pytest.raises(StorageNotSupportedError):
            storage.link_base()
        with pytest.raises(StorageNotSupportedError):
            storage.link_base()
        assert remote.access_calls == 1


class TestClose:
    def test_closes_remote(self, remote, storage):
        storage.close()
        assert remote.closed

    @pytest.mark.parametrize(
        "call",
        [
            lambda s: s.put("ref", b"x"),
            lambda s: s.download("ref"),
            lambda s: s.delete("ref"),
            lambda s: s.list(""),
            lambda s: s.link_base(),
        ],
    )
    def test_operations_fail_after_close(self, storage, call):
        storage.close()

        with pytest.raises(StorageTransientError, match="not initialized"):
            call(storage)

    def test_outstanding_tokens_are_dropped(self, storage, fill):
        fill(5)
        storage.max_results = 2
        _, token = storage.list("")

        storage.close()

        assert len(storage._cursors) == 0
        with pytest.raises(StorageTransientError):
            storage.list(token)

    def test_close_during_list_drops_checkpoint(self, remote, storage, fill):
        fill(9)
        storage.max_results = 3

        def close_on_third(key):
            if key == "ref2":
                storage.close()

        remote.on_attrs = close_on_third

        with pytest.raises(StorageIOError, match="interrupted by close"):
            storage.list("")
        assert len(storage._cursors) == 0

    def test_close_during_last_page_fails_the_call(self, remote, storage, fill):
        fill(2)
        storage.max_results = 3
        remote.on_attrs = lambda key: storage.close()

        with pytest.raises(StorageIOError):
            storage.list("")
        assert len(storage._cursors) == 0

    def test_close_twice_is_harmless(self, remote, storage):
        storage.close()
        storage.close()
        assert remote.closed
