"""Object storage backends for recorded and assembled interview videos."""

from typing import Optional, Union

from core.config import settings
from core.storage.base import BlobMetadata, parse_data_uri, to_data_uri
from core.storage.local import LocalStorage
from core.storage.s3 import S3Storage

BlobStorage = Union[S3Storage, LocalStorage]

_storage: Optional[BlobStorage] = None


def get_storage() -> BlobStorage:
    """Get or create the configured storage backend."""
    global _storage
    if _storage is None:
        if settings.storage_backend == "local":
            _storage = LocalStorage(
                settings.local_storage_path,
                public_base_url=settings.storage_public_base_url,
            )
        else:
            _storage = S3Storage(
                settings.aws_s3_bucket,
                region=settings.aws_region,
                access_key_id=settings.aws_access_key_id,
                secret_access_key=settings.aws_secret_access_key,
                public_base_url=settings.storage_public_base_url,
                make_public=settings.storage_make_public,
            )
    return _storage


__all__ = [
    "BlobMetadata",
    "BlobStorage",
    "LocalStorage",
    "S3Storage",
    "get_storage",
    "parse_data_uri",
    "to_data_uri",
]
