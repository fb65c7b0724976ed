"""Image downloading and encoding utilities for moderation."""

from __future__ import annotations

import asyncio
import base64
import binascii
from io import BytesIO
from typing import Tuple

import requests
from PIL import Image
from pillow_heif import register_heif_opener

from modflow.util.logger import get_logger

logger = get_logger("image_utils")

register_heif_opener()

DOWNLOAD_TIMEOUT_SECONDS = 10
# Longest side of an image sent to the vision model
MAX_VISION_SIDE = 1024


class ImageFetchError(Exception):
    """The image at a URL could not be downloaded or decoded."""


def is_data_url(url: str) -> bool:
    return url.startswith("data:")


def decode_data_url(url: str) -> Tuple[bytes, str]:
    """Split a base64 ``data:`` URL into its bytes and mime type.

    Raises:
        ImageFetchError: If the URL is not a base64 data URL.
    """
    header, sep, payload = url.partition(",")
    if not sep or ";base64" not in header:
        raise ImageFetchError("unsupported data URL")
    mime_type = header[len("data:"):].split(";", 1)[0] or "application/octet-stream"
    try:
        return base64.b64decode(payload, validate=True), mime_type
    except (binascii.Error, ValueError) as exc:
        raise ImageFetchError(f"invalid base64 payload: {exc}") from exc


def encode_data_url(data: bytes, mime_type: str) -> str:
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def fetch_image_bytes(url: str, timeout: float = DOWNLOAD_TIMEOUT_SECONDS) -> Tuple[bytes, str]:
    """
    Fetch raw image bytes and their content type from an http(s) or data URL.

    This function blocks the calling thread, use `fetch_image_bytes_async`
    from coroutines.

    Raises:
        ImageFetchError: If the download fails.
    """
    if is_data_url(url):
        return decode_data_url(url)

    logger.debug("[DOWNLOAD] Downloading image from %s", url)
    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.RequestException as exc:
        raise ImageFetchError(f"request failed for {url}: {exc}") from exc

    content_type = response.headers.get("Content-Type", "").split(";", 1)[0].strip() or "image/png"
    return response.content, content_type


def to_vision_jpeg(data: bytes) -> bytes:
    """
    Decode image bytes and re-encode them as an RGB JPEG for the vision model.

    Images larger than MAX_VISION_SIDE on their longest side are scaled down,
    keeping the aspect ratio.

    Raises:
        ImageFetchError: If the bytes are not a decodable image.
    """
    try:
        img = Image.open(BytesIO(data)).convert("RGB")
    except Exception as exc:
        raise ImageFetchError(f"could not decode image: {exc}") from exc

    w, h = img.size
    longest = max(w, h)
    if longest > MAX_VISION_SIDE:
        scale = MAX_VISION_SIDE / longest
        img = img.resize((max(1, int(w * scale)), max(1, int(h * scale))))

    out = BytesIO()
    img.save(out, format="JPEG", quality=90)
    return out.getvalue()


async def fetch_image_bytes_async(url: str, timeout: float = DOWNLOAD_TIMEOUT_SECONDS) -> Tuple[bytes, str]:
    return await asyncio.to_thread(fetch_image_bytes, url, timeout)


async def download_image_as_data_url(url: str, timeout: float = DOWNLOAD_TIMEOUT_SECONDS) -> str:
    """Download an image and return it as a JPEG ``data:`` URL for inline vision input."""
    data, _ = await fetch_image_bytes_async(url, timeout)
    jpeg = await asyncio.to_thread(to_vision_jpeg, data)
    logger.debug("[DOWNLOAD] Encoded image from %s (%d bytes)", url[:80], len(jpeg))
    return encode_data_url(jpeg, "image/jpeg")
