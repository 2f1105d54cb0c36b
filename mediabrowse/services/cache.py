"""
On-disk cache for artwork thumbnails.
- Keyed by the resolved artwork URL and thumbnail size.
- Disabled when ARTWORK_CACHE_DIR is not configured.
"""
import asyncio
import hashlib
import logging
import uuid
from pathlib import Path
from typing import Optional

from mediabrowse.config.settings import settings

logger = logging.getLogger(__name__)


def cache_key(artwork_url: str, size_px: int) -> str:
    """Deterministic cache key."""
    raw = f"{size_px}:{artwork_url}"
    return hashlib.sha256(raw.encode()).hexdigest()


def cached_path(artwork_url: str, size_px: int, cache_dir: Optional[Path] = None) -> Optional[Path]:
    cache_dir = cache_dir or settings.ARTWORK_CACHE_DIR
    if cache_dir is None:
        return None
    return cache_dir / f"{cache_key(artwork_url, size_px)}.png"


async def get_cached(
    artwork_url: str,
    size_px: int,
    cache_dir: Optional[Path] = None,
) -> Optional[bytes]:
    path = cached_path(artwork_url, size_px, cache_dir)
    if path is None:
        return None
    try:
        data = await asyncio.to_thread(path.read_bytes)
    except FileNotFoundError:
        return None
    except OSError as exc:
        logger.warning("Unreadable artwork cache entry", extra={"path": str(path), "error": str(exc)})
        return None
    if not data:
        return None
    logger.debug("Artwork cache hit", extra={"url": artwork_url[:80]})
    return data


async def store_in_cache(
    data: bytes,
    artwork_url: str,
    size_px: int,
    cache_dir: Optional[Path] = None,
) -> Optional[Path]:
    """Write a processed thumbnail into the cache; no-op when caching is off."""
    dest = cached_path(artwork_url, size_px, cache_dir)
    if dest is None:
        return None
    # Write then rename so readers never see a partial file
    tmp = dest.with_name(f"{dest.stem}.{uuid.uuid4().hex}.tmp")
    await asyncio.to_thread(tmp.write_bytes, data)
    tmp.replace(dest)
    logger.debug(
        "Stored artwork in cache",
        extra={"url": artwork_url[:80], "size_kb": len(data) // 1024},
    )
    return dest
