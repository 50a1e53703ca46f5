"""Local file storage backend, used for development and tests."""

import asyncio
import logging
import mimetypes
from pathlib import Path
from typing import AsyncIterator, Optional
from urllib.parse import quote, unquote

from core.errors import NotFoundError, ValidationError
from core.storage.base import BlobMetadata, STREAM_CHUNK_SIZE, key_from_public_url

logger = logging.getLogger(__name__)


class LocalStorage:
    """Local file storage handler with the same interface as S3Storage."""

    def __init__(self, base_path: str = "./storage", public_base_url: Optional[str] = None):
        """
        Initialize local storage.

        Args:
            base_path: Base directory for file storage
            public_base_url: Prefix of the URLs handed out for stored objects
        """
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)
        self.public_base_url = (public_base_url or "local://storage").rstrip("/")

    def _path(self, key: str) -> Path:
        path = (self.base_path / key).resolve()
        if self.base_path not in path.parents:
            raise ValidationError("Invalid storage key")
        return path

    def public_url(self, key: str) -> str:
        return f"{self.public_base_url}/{quote(key)}"

    def key_from_url(self, url: str) -> Optional[str]:
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
        Save bytes under ``key``.

        Args:
            data: Object contents
            key: Relative object key
            content_type: Ignored, the type is derived from the extension on read
            cache_control: Ignored

        Returns:
            URL of the stored object
        """
        path = self._path(key)
        await asyncio.to_thread(_write_bytes, path, data)
        logger.info(f"Saved file to {path}")
        return self.public_url(key)

    async def download(self, key: str) -> bytes:
        path = self._path(key)
        if not path.is_file():
            raise NotFoundError("Video not found")
        return await asyncio.to_thread(path.read_bytes)

    async def get_range(self, key: str, start: int, end: int) -> AsyncIterator[bytes]:
        """Stream the inclusive byte range ``start..end`` of an object."""
        path = self._path(key)
        remaining = end - start + 1
        with open(path, "rb") as f:
            f.seek(start)
            while remaining > 0:
                chunk = await asyncio.to_thread(f.read, min(STREAM_CHUNK_SIZE, remaining))
                if not chunk:
                    break
                remaining -= len(chunk)
                yield chunk

    async def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    async def metadata(self, key: str) -> BlobMetadata:
        path = self._path(key)
        if not path.is_file():
            raise NotFoundError("Video not found")
        content_type, _ = mimetypes.guess_type(path.name)
        return BlobMetadata(
            size=path.stat().st_size,
            content_type=content_type or "application/octet-stream",
        )


def _write_bytes(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)
