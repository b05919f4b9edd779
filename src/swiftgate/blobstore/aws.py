"""AWS S3 blob store for swiftgate.

Maps containers one-to-one onto S3 buckets reached through aiobotocore.
The gateway identity is used as the AWS access key id and the login
credential as the secret access key, so opening the store doubles as
credential verification: ``init()`` issues a ``ListBuckets`` call and
reports rejected keys as ``BlobStoreAuthError``.
"""

import hashlib
import logging

from aiobotocore.session import AioSession
from botocore.exceptions import BotoCoreError, ClientError

from swiftgate.blobstore.errors import (
    BlobNotFoundError,
    BlobStoreAuthError,
    BlobStoreError,
    ContainerNotFoundError,
)

logger = logging.getLogger(__name__)

# Error codes meaning the key pair itself was refused
_AUTH_ERROR_CODES = {
    "InvalidAccessKeyId",
    "SignatureDoesNotMatch",
    "AccessDenied",
    "InvalidClientTokenId",
}

# S3 DeleteObjects accepts at most 1000 keys per call
_DELETE_BATCH = 1000


def _error_code(exc: ClientError) -> str:
    return exc.response.get("Error", {}).get("Code", "")


class AWSBlobStore:
    """Blob store backed by the S3 buckets of one AWS account.

    Attributes:
        access_key_id: The AWS access key id (the gateway identity).
        region: The AWS region for new clients.
        endpoint_url: Optional S3-compatible endpoint override.
        use_path_style: Use path-style addressing (for S3-compatible servers).
    """

    provider = "aws-s3"
    ordered_listing = True
    escape_names = False

    def __init__(
        self,
        access_key_id: str,
        secret_access_key: str,
        region: str = "us-east-1",
        endpoint_url: str = "",
        use_path_style: bool = False,
    ) -> None:
        self.access_key_id = access_key_id
        self.secret_access_key = secret_access_key
        self.region = region
        self.endpoint_url = endpoint_url
        self.use_path_style = use_path_style
        self._session = AioSession()
        self._client = None
        self._client_ctx = None

    async def init(self) -> None:
        """Create the aiobotocore S3 client and verify the key pair.

        Raises:
            BlobStoreAuthError: If AWS rejects the access key or signature.
            BlobStoreError: If the endpoint cannot be reached.
        """
        client_kwargs: dict = {"region_name": self.region}
        if self.endpoint_url:
            client_kwargs["endpoint_url"] = self.endpoint_url
        if self.use_path_style:
            from botocore.config import Config as BotoConfig

            client_kwargs["config"] = BotoConfig(s3={"addressing_style": "path"})

        self._session.set_credentials(self.access_key_id, self.secret_access_key)
        self._client_ctx = self._session.create_client("s3", **client_kwargs)
        self._client = await self._client_ctx.__aenter__()

        try:
            await self._client.list_buckets()
        except ClientError as e:
            code = _error_code(e)
            await self.close()
            if code in _AUTH_ERROR_CODES:
                raise BlobStoreAuthError(
                    f"AWS rejected credentials for {self.access_key_id}: {code}"
                ) from e
            raise BlobStoreError(f"Cannot list S3 buckets: {code}") from e
        except BotoCoreError as e:
            await self.close()
            raise BlobStoreError(f"Cannot reach S3 endpoint: {e}") from e

        logger.info(
            "AWS blob store opened: access_key=%s region=%s endpoint=%s",
            self.access_key_id,
            self.region,
            self.endpoint_url or "default",
        )

    async def close(self) -> None:
        """Close the aiobotocore client session."""
        if self._client_ctx is not None:
            await self._client_ctx.__aexit__(None, None, None)
            self._client = None
            self._client_ctx = None

    async def list_containers(self) -> list[str]:
        resp = await self._client.list_buckets()
        return [bucket["Name"] for bucket in resp.get("Buckets", [])]

    async def container_exists(self, container: str) -> bool:
        try:
            await self._client.head_bucket(Bucket=container)
            return True
        except ClientError as e:
            if _error_code(e) in ("404", "NoSuchBucket"):
                return False
            raise

    async def create_container(self, container: str) -> bool:
        kwargs: dict = {"Bucket": container}
        if self.region != "us-east-1":
            kwargs["CreateBucketConfiguration"] = {"LocationConstraint": self.region}
        try:
            await self._client.create_bucket(**kwargs)
        except ClientError as e:
            if _error_code(e) == "BucketAlreadyOwnedByYou":
                return False
            raise
        return True

    async def delete_container(self, container: str) -> None:
        """Empty a bucket in batches of 1000 keys, then delete it.

        Raises:
            ContainerNotFoundError: If the bucket does not exist.
        """
        paginator = self._client.get_paginator("list_objects_v2")
        try:
            async for page in paginator.paginate(Bucket=container):
                contents = page.get("Contents", [])
                for start in range(0, len(contents), _DELETE_BATCH):
                    objects = [
                        {"Key": obj["Key"]} for obj in contents[start : start + _DELETE_BATCH]
                    ]
                    await self._client.delete_objects(
                        Bucket=container,
                        Delete={"Objects": objects, "Quiet": True},
                    )
            await self._client.delete_bucket(Bucket=container)
        except ClientError as e:
            if _error_code(e) == "NoSuchBucket":
                raise ContainerNotFoundError(container) from e
            raise

    async def put_blob(self, container: str, key: str, data: bytes) -> str:
        """Upload a blob. Computes MD5 locally for a consistent ETag."""
        md5 = hashlib.md5(data).hexdigest()
        try:
            await self._client.put_object(Bucket=container, Key=key, Body=data)
        except ClientError as e:
            if _error_code(e) == "NoSuchBucket":
                raise ContainerNotFoundError(container) from e
            raise
        return md5

    async def get_blob(self, container: str, key: str) -> bytes:
        try:
            resp = await self._client.get_object(Bucket=container, Key=key)
        except ClientError as e:
            code = _error_code(e)
            if code == "NoSuchBucket":
                raise ContainerNotFoundError(container) from e
            if code in ("NoSuchKey", "404"):
                raise BlobNotFoundError(container, key) from e
            raise

        async with resp["Body"] as stream:
            return await stream.read()

    async def blob_exists(self, container: str, key: str) -> bool:
        """Check if a blob exists.

        HEAD responses carry no error body, so a missing bucket and a
        missing key both read as ``False``.
        """
        try:
            await self._client.head_object(Bucket=container, Key=key)
            return True
        except ClientError as e:
            code = _error_code(e)
            if code == "NoSuchBucket":
                raise ContainerNotFoundError(container) from e
            if code in ("404", "NoSuchKey"):
                return False
            raise

    async def remove_blob(self, container: str, key: str) -> None:
        """Delete a blob. S3 delete_object does not error on missing keys."""
        try:
            await self._client.delete_object(Bucket=container, Key=key)
        except ClientError as e:
            if _error_code(e) == "NoSuchBucket":
                raise ContainerNotFoundError(container) from e
            raise
