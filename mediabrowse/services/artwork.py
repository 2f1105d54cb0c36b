"""
Artwork fetching.
- Downloads the image for one catalog entry and thumbnails it (Pillow).
- Any failure falls back to the placeholder artwork; never raises.
- Thumbnails go through the on-disk artwork cache when it is enabled.
"""
import asyncio
import logging
from functools import lru_cache
from io import BytesIO
from pathlib import Path
from typing import Optional

import aiohttp
from PIL import Image, UnidentifiedImageError

from mediabrowse.config.settings import settings
from mediabrowse.services import cache
from mediabrowse.utils.http_client import HttpError, fetch_bytes

logger = logging.getLogger(__name__)

_PLACEHOLDER_COLOR = (96, 96, 96)


class ArtworkError(Exception):
    pass


async def fetch_artwork(
    session: aiohttp.ClientSession,
    url: str,
    size_px: int = settings.ARTWORK_SIZE_PX,
) -> bytes:
    """Return PNG thumbnail bytes for `url`, or the placeholder on failure."""
    if not url:
        return await load_placeholder(size_px)

    cached = await cache.get_cached(url, size_px)
    if cached is not None:
        return cached

    try:
        raw = await fetch_bytes(session, url, timeout=settings.ARTWORK_TIMEOUT_SECONDS)
        thumb = await asyncio.to_thread(make_thumbnail, raw, size_px)
    except (HttpError, ArtworkError, aiohttp.ClientError, asyncio.TimeoutError) as exc:
        logger.warning(
            "Failed to fetch artwork, using placeholder",
            extra={"url": url[:80], "error": str(exc)},
        )
        return await load_placeholder(size_px)

    try:
        await cache.store_in_cache(thumb, url, size_px)
    except OSError as exc:
        logger.warning("Could not cache artwork", extra={"url": url[:80], "error": str(exc)})
    return thumb


def make_thumbnail(image_data: bytes, size_px: int) -> bytes:
    """Decode, shrink to fit `size_px` square and re-encode as PNG."""
    try:
        with Image.open(BytesIO(image_data)) as img:
            if img.mode not in ("RGB", "RGBA"):
                img = img.convert("RGBA")
            img.thumbnail((size_px, size_px), Image.Resampling.LANCZOS)
            output = BytesIO()
            img.save(output, format="PNG")
            return output.getvalue()
    except (UnidentifiedImageError, OSError, ValueError) as exc:
        raise ArtworkError(f"Undecodable image: {exc}") from exc


async def load_placeholder(size_px: int) -> bytes:
    """`placeholder_artwork` off the event loop; it may read PLACEHOLDER_ARTWORK_PATH."""
    return await asyncio.to_thread(placeholder_artwork, size_px)


@lru_cache(maxsize=8)
def placeholder_artwork(size_px: int, source: Optional[Path] = None) -> bytes:
    """Default artwork: the configured image, or a flat grey square."""
    source = source or settings.PLACEHOLDER_ARTWORK_PATH
    if source is not None:
        try:
            return make_thumbnail(source.read_bytes(), size_px)
        except (OSError, ArtworkError) as exc:
            logger.warning(
                "Placeholder artwork unreadable, generating one",
                extra={"path": str(source), "error": str(exc)},
            )
    img = Image.new("RGB", (size_px, size_px), _PLACEHOLDER_COLOR)
    output = BytesIO()
    img.save(output, format="PNG")
    return output.getvalue()
