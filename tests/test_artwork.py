"""Tests for artwork thumbnails, placeholder fallback and the artwork cache."""
import asyncio
from io import BytesIO
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from mediabrowse.services import cache
from mediabrowse.services.artwork import (
    ArtworkError,
    fetch_artwork,
    load_placeholder,
    make_thumbnail,
    placeholder_artwork,
)
from mediabrowse.utils.http_client import HttpError


def _png(width: int, height: int) -> bytes:
    output = BytesIO()
    Image.new("RGB", (width, height), (200, 10, 10)).save(output, format="PNG")
    return output.getvalue()


class TestThumbnail:
    def test_fits_within_size(self):
        with Image.open(BytesIO(make_thumbnail(_png(400, 200), 144))) as img:
            assert img.format == "PNG"
            assert img.size == (144, 72)

    def test_garbage_raises(self):
        with pytest.raises(ArtworkError):
            make_thumbnail(b"definitely not an image", 144)

    def test_placeholder_is_square_png(self):
        with Image.open(BytesIO(placeholder_artwork(64))) as img:
            assert img.size == (64, 64)


class TestFetchArtwork:
    @pytest.mark.asyncio
    async def test_empty_url_is_placeholder(self):
        assert await fetch_artwork(MagicMock(), "", 32) == placeholder_artwork(32)

    @pytest.mark.asyncio
    async def test_http_error_is_placeholder(self, monkeypatch):
        monkeypatch.setattr(
            "mediabrowse.services.artwork.fetch_bytes",
            AsyncMock(side_effect=HttpError(404, "missing")),
        )
        assert await fetch_artwork(MagicMock(), "https://h/a.png", 32) == placeholder_artwork(32)

    @pytest.mark.asyncio
    async def test_undecodable_body_is_placeholder(self, monkeypatch):
        monkeypatch.setattr(
            "mediabrowse.services.artwork.fetch_bytes",
            AsyncMock(return_value=b"<html>oops</html>"),
        )
        assert await fetch_artwork(MagicMock(), "https://h/a.png", 32) == placeholder_artwork(32)

    @pytest.mark.asyncio
    async def test_success_is_thumbnailed(self, monkeypatch):
        monkeypatch.setattr(
            "mediabrowse.services.artwork.fetch_bytes",
            AsyncMock(return_value=_png(300, 300)),
        )
        art = await fetch_artwork(MagicMock(), "https://h/a.png", 48)
        with Image.open(BytesIO(art)) as img:
            assert img.size == (48, 48)


class TestArtworkCache:
    @pytest.mark.asyncio
    async def test_disabled_without_dir(self, monkeypatch):
        monkeypatch.setattr(cache.settings, "ARTWORK_CACHE_DIR", None)
        assert cache.cached_path("https://h/a.png", 144) is None
        assert await cache.get_cached("https://h/a.png", 144) is None

    def test_key_depends_on_size(self):
        assert cache.cache_key("https://h/a.png", 144) != cache.cache_key("https://h/a.png", 64)

    @pytest.mark.asyncio
    async def test_store_then_get(self, tmp_path):
        stored = await cache.store_in_cache(b"png-bytes", "https://h/a.png", 144, cache_dir=tmp_path)
        assert stored is not None and stored.parent == tmp_path
        assert await cache.get_cached("https://h/a.png", 144, cache_dir=tmp_path) == b"png-bytes"
        assert list(tmp_path.glob("*.tmp")) == []

    @pytest.mark.asyncio
    async def test_missing_or_empty_entry_is_miss(self, tmp_path):
        assert await cache.get_cached("https://h/a.png", 144, cache_dir=tmp_path) is None
        cache.cached_path("https://h/a.png", 144, cache_dir=tmp_path).write_bytes(b"")
        assert await cache.get_cached("https://h/a.png", 144, cache_dir=tmp_path) is None

    @pytest.mark.asyncio
    async def test_cache_hit_skips_network(self, monkeypatch, tmp_path):
        monkeypatch.setattr(cache.settings, "ARTWORK_CACHE_DIR", tmp_path)
        await cache.store_in_cache(b"cached-png", "https://h/a.png", 48)
        fetch = AsyncMock()
        monkeypatch.setattr("mediabrowse.services.artwork.fetch_bytes", fetch)

        assert await fetch_artwork(MagicMock(), "https://h/a.png", 48) == b"cached-png"
        fetch.assert_not_awaited()


class TestPlaceholder:
    @pytest.mark.asyncio
    async def test_configured_image_loaded_off_loop(self, tmp_path):
        source = tmp_path / "placeholder.png"
        source.write_bytes(_png(200, 100))
        art = await asyncio.to_thread(placeholder_artwork, 40, source)
        with Image.open(BytesIO(art)) as img:
            assert img.size == (40, 20)

    @pytest.mark.asyncio
    async def test_load_placeholder_matches_sync(self):
        assert await load_placeholder(24) == placeholder_artwork(24)
