"""Backblaze B2 Cloud Storage client, spoken to through B2's S3-compatible API."""

import logging
from urllib.parse import urlparse

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError, EndpointConnectionError

from ..base import BucketAccess
from ..cursor import ObjectAttrs, ObjectCursor
from ..exceptions import (
    StorageConnectionError,
    StorageError,
    StorageIOError,
    StorageNotFoundError,
    StoragePermissionError,
)
from ..remote import RemoteBucketClient

log = logging.getLogger(__name__)

DEFAULT_ENDPOINT_URL = "https://s3.us-west-004.backblazeb2.com"

_ALL_USERS_URI = "http://acs.amazonaws.com/groups/global/AllUsers"

_NOT_FOUND_CODES = {"NoSuchKey", "NoSuchBucket", "NoSuchVersion", "NotFound", "404"}

_ERROR_CODE_MAP = {
    **{code: StorageNotFoundError for code in _NOT_FOUND_CODES},
    "AccessDenied": StoragePermissionError,
    "403": StoragePermissionError,
    "InvalidAccessKeyId": StoragePermissionError,
    "SignatureDoesNotMatch": StoragePermissionError,
    "EndpointConnectionError": StorageConnectionError,
}


def region_from_endpoint(endpoint_url: str) -> str:
    """Extract the signing region from a B2 endpoint such as https://s3.us-west-004.backblazeb2.com."""
    host = urlparse(endpoint_url).hostname or ""
    parts = host.split(".")
    if len(parts) >= 3 and parts[0] == "s3" and host.endswith("backblazeb2.com"):
        return parts[1]
    return "us-east-1"


class B2S3Client(RemoteBucketClient):
    """Single-bucket B2 client. Requests are made once, without retries."""

    def __init__(
        self,
        account_id: str,
        application_key: str,
        bucket_name: str,
        endpoint_url: str = DEFAULT_ENDPOINT_URL,
    ):
        self.bucket_name = bucket_name
        self._endpoint_url = endpoint_url.rstrip("/")

        self._client = boto3.client(
            "s3",
            endpoint_url=self._endpoint_url,
            aws_access_key_id=account_id,
            aws_secret_access_key=application_key,
            config=Config(
                region_name=region_from_endpoint(self._endpoint_url),
                signature_version="s3v4",
                retries={"max_attempts": 1, "mode": "standard"},
            ),
        )

    def open_bucket(self) -> None:
        try:
            self._client.head_bucket(Bucket=self.bucket_name)
            return
        except ClientError as e:
            if _error_code(e) not in _NOT_FOUND_CODES:
                raise self._translate_error(e, "open_bucket") from e
        except BotoCoreError as e:
            raise self._translate_error(e, "open_bucket") from e

        log.info("Bucket %s does not exist, creating it", self.bucket_name)
        self.create_bucket()

    def create_bucket(self) -> None:
        try:
            self._client.create_bucket(Bucket=self.bucket_name)
        except (ClientError, BotoCoreError) as e:
            raise self._translate_error(e, "create_bucket") from e

    def list_objects(self, page_size: int) -> ObjectCursor:
        return ObjectCursor(self._pages(page_size), self._object_attrs)

    def _pages(self, page_size: int):
        paginator = self._client.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(
                Bucket=self.bucket_name,
                PaginationConfig={"PageSize": page_size},
            ):
                yield page.get("Contents", [])
        except (ClientError, BotoCoreError) as e:
            raise self._translate_error(e, "list_objects") from e

    def _object_attrs(self, entry: dict) -> ObjectAttrs:
        key = entry.get("Key")
        try:
            return ObjectAttrs(name=entry["Key"], size=int(entry["Size"]))
        except (KeyError, TypeError, ValueError) as e:
            raise StorageIOError(
                f"unable to get object attributes {key!r}: {e!r}",
                key=key,
                op="b2cs.list_objects",
                cause=e,
            ) from e

    def get_object(self, key: str) -> bytes:
        try:
            response = self._client.get_object(Bucket=self.bucket_name, Key=key)
            body = response["Body"]
            try:
                return body.read()
            finally:
                body.close()
        except (ClientError, BotoCoreError) as e:
            raise self._translate_error(e, "get_object", key) from e

    def put_object(self, key: str, content: bytes) -> None:
        try:
            self._client.put_object(Bucket=self.bucket_name, Key=key, Body=content)
        except (ClientError, BotoCoreError) as e:
            raise self._translate_error(e, "put_object", key) from e

    def delete_object(self, key: str) -> None:
        # S3 deletes are idempotent, so probe first to report a missing key.
        try:
            self._client.head_object(Bucket=self.bucket_name, Key=key)
            self._client.delete_object(Bucket=self.bucket_name, Key=key)
        except (ClientError, BotoCoreError) as e:
            raise self._translate_error(e, "delete_object", key) from e

    def bucket_access(self) -> BucketAccess:
        try:
            acl = self._client.get_bucket_acl(Bucket=self.bucket_name)
        except (ClientError, BotoCoreError) as e:
            raise self._translate_error(e, "bucket_access") from e

        for grant in acl.get("Grants", []):
            grantee = grant.get("Grantee", {})
            if grantee.get("URI") == _ALL_USERS_URI and grant.get("Permission") in ("READ", "FULL_CONTROL"):
                return BucketAccess.PUBLIC
        return BucketAccess.PRIVATE

    def base_url(self) -> str:
        return f"{self._endpoint_url}/{self.bucket_name}/"

    def delete_bucket(self) -> None:
        try:
            paginator = self._client.get_paginator("list_object_versions")
            for page in paginator.paginate(Bucket=self.bucket_name):
                versions = page.get("Versions", []) + page.get("DeleteMarkers", [])
                if versions:
                    self._client.delete_objects(
                        Bucket=self.bucket_name,
                        Delete={
                            "Objects": [
                                {"Key": v["Key"], "VersionId": v["VersionId"]} for v in versions
                            ]
                        },
                    )
            self._client.delete_bucket(Bucket=self.bucket_name)
        except (ClientError, BotoCoreError) as e:
            raise self._translate_error(e, "delete_bucket") from e
        log.info("Deleted bucket %s", self.bucket_name)

    def close(self) -> None:
        self._client.close()

    def _translate_error(self, error: Exception, op: str, key: str | None = None) -> StorageError:
        if isinstance(error, EndpointConnectionError):
            exc_cls = StorageConnectionError
        elif isinstance(error, ClientError):
            exc_cls = _ERROR_CODE_MAP.get(_error_code(error), StorageIOError)
        else:
            exc_cls = StorageIOError
        target = f"ref {key!r} in B2 bucket {self.bucket_name!r}" if key else f"B2 bucket {self.bucket_name!r}"
        return exc_cls(f"{target}: {error}", key=key, op=f"b2cs.{op}", cause=error)


def _error_code(error: ClientError) -> str:
    return str(error.response.get("Error", {}).get("Code", ""))
