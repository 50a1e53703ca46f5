"""Shared pieces of the object storage backends."""

import base64
import binascii
import re
from dataclasses import dataclass
from typing import Optional

STREAM_CHUNK_SIZE = 256 * 1024

DATA_URI_PATTERN = re.compile(r'^data:(?P<mime>[\w/+.-]+);base64,(?P<payload>.*)$', re.DOTALL)


@dataclass(frozen=True)
class BlobMetadata:
    """Size and MIME type of a stored object."""

    size: int
    content_type: str


def key_from_public_url(url: str, public_base_url: str) -> Optional[str]:
    """
    Map a URL produced by a backend back to its object key.

    Args:
        url: Stored URL or bare key
        public_base_url: Base URL the backend serves objects from

    Returns:
        Object key; the input itself when it is not an http(s) URL;
        None for data URIs and foreign URLs
    """
    if not url:
        return None
    if url.startswith("data:"):
        return None

    prefix = public_base_url.rstrip("/") + "/"
    if url.startswith(prefix):
        key = url[len(prefix):].split("?", 1)[0]
        return key or None

    if not url.startswith(("http://", "https://")):
        return url.lstrip("/")

    return None


def to_data_uri(data: bytes, mime_type: str = "video/webm") -> str:
    """Encode bytes as a base64 data URI."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def parse_data_uri(url: str) -> Optional[tuple[str, bytes]]:
    """
    Decode a base64 data URI.

    Returns:
        (mime_type, payload) or None when ``url`` is not a valid data URI
    """
    match = DATA_URI_PATTERN.match(url or "")
    if not match:
        return None
    try:
        payload = base64.b64decode(match.group("payload"), validate=True)
    except (binascii.Error, ValueError):
        return None
    return match.group("mime"), payload
