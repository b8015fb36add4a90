"""Helpers for turning generated image sources into upload payloads."""

import re
import time
from pathlib import PurePosixPath
from typing import Optional

import httpx

from colca.models.asset import InlineAsset
from colca.services.exceptions import TransportError, UpstreamError

_JPEG_PATTERN = re.compile(r"(\.jpe?g(\?|$))|(^data:image/jpeg)", re.IGNORECASE)
_WEBP_PATTERN = re.compile(r"(\.webp(\?|$))|(^data:image/webp)", re.IGNORECASE)
_PNG_PATTERN = re.compile(r"(\.png(\?|$))|(^data:image/png)", re.IGNORECASE)

ALLOWED_EXTENSIONS = ("jpg", "jpeg", "png", "webp")


def guess_extension(src: str, mime_type: Optional[str] = None) -> str:
    """Infer a file extension from an image URL, data URL or mime type.

    The source itself wins; the mime type is only consulted when the source
    names no known image type. Returns ``jpg``, ``webp`` or ``png``.
    """
    if _JPEG_PATTERN.search(src):
        return "jpg"
    if _WEBP_PATTERN.search(src):
        return "webp"
    if _PNG_PATTERN.search(src):
        return "png"

    mime_type = (mime_type or "").lower()
    if mime_type == "image/jpeg":
        return "jpg"
    if mime_type == "image/webp":
        return "webp"
    return "png"


def now_ms() -> int:
    return int(time.time() * 1000)


def build_batch_filename(
    index: int, extension: str, timestamp_ms: int, prefix: str = "car-gen"
) -> str:
    """Filename for item ``index`` (0-based) of a generated batch."""
    return f"{prefix}-{timestamp_ms}-{index + 1}.{extension}"


def build_upload_filename(original_name: str, timestamp_ms: int) -> str:
    """Filename for a single user-picked file, keeping its stem and a known extension."""
    path = PurePosixPath(original_name or "")
    extension = path.suffix.lstrip(".").lower()
    if extension not in ALLOWED_EXTENSIONS:
        extension = "png"
    stem = path.stem if path.suffix else path.name
    return f"{stem or 'upload'}-{timestamp_ms}.{extension}"


async def fetch_asset(
    src: str, timeout: float = 60.0, transport: httpx.AsyncBaseTransport | None = None
) -> InlineAsset:
    """Load an image source into memory.

    ``data:`` URLs are decoded locally; http(s) URLs are downloaded.

    Raises:
        UpstreamError: Download answered non-2xx
        TransportError: Network failure or undecodable data URL
    """
    if src.startswith("data:"):
        try:
            return InlineAsset.from_data_url(src)
        except ValueError as e:
            raise TransportError(f"Failed to decode image: {e}") from e

    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(src, headers={"cache-control": "no-cache"})
            if response.is_error:
                raise UpstreamError(
                    response.status_code,
                    response.text,
                    f"Failed to fetch image: {response.status_code}",
                )
            mime_type = response.headers.get("content-type", "").split(";")[0].strip()
            return InlineAsset(data=response.content, mime_type=mime_type or "image/png")

    except httpx.HTTPError as e:
        raise TransportError(f"Failed to fetch image: {e}") from e
