"""S3 storage utilities for interview video objects."""

import logging
from typing import AsyncIterator, Optional
from urllib.parse import quote, unquote

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError

from core.errors import NotFoundError, StorageError
from core.storage.base import BlobMetadata, STREAM_CHUNK_SIZE, key_from_public_url

logger = logging.getLogger(__name__)

# Service errors and client-side failures (credentials, endpoint, timeouts)
S3_ERRORS = (ClientError, BotoCoreError)

MISSING_CODES = ("404", "NoSuchKey", "NotFound")


def _is_missing(error: ClientError) -> bool:
    return error.response.get("Error", {}).get("Code") in MISSING_CODES


class S3Storage:
    """S3 storage handler for async operations."""

    def __init__(
        self,
        bucket_name: Optional[str],
        region: str = "us-east-1",
        access_key_id: Optional[str] = None,
        secret_access_key: Optional[str] = None,
        public_base_url: Optional[str] = None,
        make_public: bool = True,
    ):
        """
        Initialize S3 storage.

        Args:
            bucket_name: S3 bucket name
            region: AWS region of the bucket
            access_key_id: Explicit credentials (falls back to the default chain)
            secret_access_key: Explicit credentials (falls back to the default chain)
            public_base_url: Base URL objects are served from (CDN or bucket URL)
            make_public: Whether to grant public-read after uploads
        """
        if not bucket_name:
            raise ValueError("S3 bucket name not provided and AWS_S3_BUCKET not set")

        self.bucket_name = bucket_name
        self.make_public = make_public
        self.public_base_url = (
            public_base_url or f"https://{bucket_name}.s3.{region}.amazonaws.com"
        ).rstrip("/")

        self.credentials = {"region_name": region}
        if access_key_id and secret_access_key:
            self.credentials["aws_access_key_id"] = access_key_id
            self.credentials["aws_secret_access_key"] = secret_access_key

    def _session(self) -> aioboto3.Session:
        return aioboto3.Session(**self.credentials)

    def public_url(self, key: str) -> str:
        """Long-lived URL of an object."""
        return f"{self.public_base_url}/{quote(key)}"

    def key_from_url(self, url: str) -> Optional[str]:
        """
        Resolve a stored URL back to an object key.

        Args:
            url: URL returned by :meth:`put` or a bare key

        Returns:
            Object key, or None for URLs that do not belong to this bucket
        """
        key = key_from_public_url(url, self.public_base_url)
        return unquote(key) if key else key

    async def put(
        self,
        data: bytes,
        key: str,
        content_type: Optional[str] = None,
        cache_control: Optional[str] = None,
    ) -> str:
        """
        Upload bytes to S3.

        Args:
            data: Object contents
            key: S3 object key (path)
            content_type: MIME type of the object
            cache_control: Cache-Control header stored with the object

        Returns:
            Public URL of the object

        Raises:
            StorageError: S3 rejected the upload or could not be reached
        """
        upload_args = {
            "Bucket": self.bucket_name,
            "Key": key,
            "Body": data,
        }
        if content_type:
            upload_args["ContentType"] = content_type
        if cache_control:
            upload_args["CacheControl"] = cache_control

        try:
            async with self._session().client("s3") as client:
                await client.put_object(**upload_args)
                logger.info(f"Uploaded file to S3: {self.bucket_name}/{key}")

                if self.make_public:
                    try:
                        await client.put_object_acl(
                            Bucket=self.bucket_name, Key=key, ACL="public-read"
                        )
                    except S3_ERRORS as e:
                        logger.warning(f"Could not make {key} public: {e}")
        except S3_ERRORS as e:
            raise StorageError(f"Failed to upload {key}: {e}") from e

        return self.public_url(key)

    async def download(self, key: str) -> bytes:
        """
        Download an object from S3.

        Args:
            key: S3 object key

        Returns:
            File contents as bytes
        """
        try:
            async with self._session().client("s3") as client:
                response = await client.get_object(Bucket=self.bucket_name, Key=key)
                async with response["Body"] as stream:
                    data = await stream.read()
        except S3_ERRORS as e:
            raise StorageError(f"Failed to download {key}: {e}") from e

        logger.info(f"Downloaded file from S3: {self.bucket_name}/{key}")
        return data

    async def get_range(
        self, key: str, start: int, end: int
    ) -> AsyncIterator[bytes]:
        """
        Stream an inclusive byte range of an object.

        Args:
            key: S3 object key
            start: First byte offset
            end: Last byte offset (inclusive)

        Yields:
            Chunks of at most STREAM_CHUNK_SIZE bytes
        """
        try:
            async with self._session().client("s3") as client:
                response = await client.get_object(
                    Bucket=self.bucket_name, Key=key, Range=f"bytes={start}-{end}"
                )
                async with response["Body"] as stream:
                    while chunk := await stream.read(STREAM_CHUNK_SIZE):
                        yield chunk
        except S3_ERRORS as e:
            raise StorageError(f"Failed to stream {key}: {e}") from e

    async def exists(self, key: str) -> bool:
        """
        Check if an object exists in S3.

        Args:
            key: S3 object key

        Returns:
            True if the object exists
        """
        try:
            async with self._session().client("s3") as client:
                await client.head_object(Bucket=self.bucket_name, Key=key)
            return True
        except ClientError as e:
            if _is_missing(e):
                return False
            raise StorageError(f"Failed to check {key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to check {key}: {e}") from e

    async def metadata(self, key: str) -> BlobMetadata:
        """
        Size and content type of an object.

        Args:
            key: S3 object key

        Returns:
            BlobMetadata for the object
        """
        try:
            async with self._session().client("s3") as client:
                response = await client.head_object(Bucket=self.bucket_name, Key=key)
        except ClientError as e:
            if _is_missing(e):
                raise NotFoundError("Video not found") from e
            raise StorageError(f"Failed to read metadata of {key}: {e}") from e
        except BotoCoreError as e:
            raise StorageError(f"Failed to read metadata of {key}: {e}") from e

        return BlobMetadata(
            size=response["ContentLength"],
            content_type=response.get("ContentType") or "application/octet-stream",
        )
