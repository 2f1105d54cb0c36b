"""Tests for catalog parsing and the readiness-gated loader."""
import asyncio
import threading
from unittest.mock import MagicMock

import pytest

from mediabrowse.services.artwork import placeholder_artwork
from mediabrowse.services.catalog import (
    CatalogLoader,
    CatalogParseError,
    LoaderState,
    parse_catalog,
    parse_entry,
)
from mediabrowse.services.models import UNKNOWN_DURATION
from mediabrowse.utils.http_client import HttpError
from tests.conftest import CATALOG_URL, catalog_entry, drain, fake_artwork, make_loader


class TestParseEntry:
    def test_duration_converted_to_ms(self):
        track = parse_entry(catalog_entry("a", "A", "X", duration=90), CATALOG_URL)
        assert track.duration_ms == 90_000

    def test_missing_duration_is_unknown(self):
        raw = catalog_entry("a", "A", "X")
        del raw["duration"]
        assert parse_entry(raw, CATALOG_URL).duration_ms == UNKNOWN_DURATION

    def test_relative_locators_resolved(self):
        track = parse_entry(catalog_entry("a", "A", "X"), CATALOG_URL)
        assert track.media_uri == "https://h/cat/audio/a.mp3"
        assert track.artwork_uri == "https://h/cat/art/a.png"

    def test_absolute_locators_untouched(self):
        raw = catalog_entry("a", "A", "X", image="https://cdn/a.jpg", source="https://cdn/a.mp3")
        track = parse_entry(raw, CATALOG_URL)
        assert track.artwork_uri == "https://cdn/a.jpg"
        assert track.media_uri == "https://cdn/a.mp3"

    def test_fields_copied(self):
        track = parse_entry(catalog_entry("a", "A", "X", trackNumber=3, totalTrackCount=9), CATALOG_URL)
        assert (track.id, track.title, track.album, track.artist) == ("a", "A", "X", "X Artist")
        assert (track.track_number, track.track_count) == (3, 9)
        assert track.playable and not track.browsable
        assert track.artwork is None

    def test_missing_id_rejected(self):
        with pytest.raises(CatalogParseError):
            parse_entry({"title": "no id"}, CATALOG_URL)

    def test_bad_number_rejected(self):
        with pytest.raises(CatalogParseError):
            parse_entry(catalog_entry("a", "A", "X", trackNumber="three"), CATALOG_URL)


class TestParseCatalog:
    def test_skips_malformed_and_duplicates(self):
        document = {
            "music": [
                catalog_entry("a", "A", "X"),
                "not an entry",
                {"title": "no id"},
                catalog_entry("a", "A again", "X"),
                catalog_entry("b", "B", "X"),
            ]
        }
        tracks, skipped = parse_catalog(document, CATALOG_URL)
        assert [t.id for t in tracks] == ["a", "b"]
        assert skipped == 3

    def test_missing_music_is_empty(self):
        assert parse_catalog({}, CATALOG_URL) == ([], 0)

    def test_non_object_document_rejected(self):
        with pytest.raises(CatalogParseError):
            parse_catalog(["a"], CATALOG_URL)


class TestCatalogLoader:
    @pytest.mark.asyncio
    async def test_loads_in_order_with_artwork(self, install_catalog):
        install_catalog()
        loader = make_loader()
        assert loader.state is LoaderState.INITIALIZING

        assert await loader.wait_ready() is True
        assert loader.state is LoaderState.INITIALIZED
        assert [t.id for t in loader] == ["a", "b", "c"]
        assert loader.tracks[0].artwork == b"art:https://h/cat/art/a.png"
        assert not loader.load_failed

    @pytest.mark.asyncio
    async def test_register_after_ready_is_synchronous(self, install_catalog):
        install_catalog()
        loader = make_loader()
        await loader.wait_ready()

        results = []
        assert loader.register_for_ready(results.append) is True
        assert results == [True]

    @pytest.mark.asyncio
    async def test_register_while_loading_is_deferred(self, install_catalog):
        stub = install_catalog(hold=True)
        loader = make_loader()
        results = []

        assert loader.register_for_ready(results.append) is False
        await drain()
        assert results == []

        stub.release()
        await loader.wait_ready()
        assert results == [True]

    @pytest.mark.asyncio
    async def test_fetch_failure_gives_empty_catalog(self, install_catalog):
        install_catalog(error=HttpError(503, "unavailable"))
        loader = make_loader()

        assert await loader.wait_ready() is True
        assert loader.state is LoaderState.INITIALIZED
        assert len(loader) == 0
        assert loader.load_failed

    @pytest.mark.asyncio
    async def test_bad_document_gives_empty_catalog(self, install_catalog):
        install_catalog(document=["not", "a", "catalog"])
        loader = make_loader()

        assert await loader.wait_ready() is True
        assert len(loader) == 0
        assert loader.load_failed

    @pytest.mark.asyncio
    async def test_artwork_failure_uses_placeholder(self, install_catalog):
        install_catalog()

        async def flaky_artwork(session, url):
            if url.endswith("b.png"):
                raise RuntimeError("boom")
            return await fake_artwork(session, url)

        loader = CatalogLoader(CATALOG_URL, MagicMock(), artwork_fetcher=flaky_artwork)
        await loader.wait_ready()

        by_id = {t.id: t for t in loader}
        assert by_id["b"].artwork == placeholder_artwork(144)
        assert by_id["a"].artwork == b"art:https://h/cat/art/a.png"

    @pytest.mark.asyncio
    async def test_skipped_entries_counted(self, install_catalog):
        install_catalog(document={"music": [catalog_entry("a", "A", "X"), 42]})
        loader = make_loader()
        await loader.wait_ready()
        assert len(loader) == 1
        assert loader.skipped_entries == 1

    @pytest.mark.asyncio
    async def test_concurrent_registration_fires_each_once(self, install_catalog):
        stub = install_catalog(hold=True)
        loader = make_loader()

        counts: dict[tuple[int, int], int] = {}
        counts_lock = threading.Lock()
        start = threading.Barrier(5)

        def register_many(worker: int) -> None:
            start.wait()
            for i in range(200):
                key = (worker, i)

                def _callback(success: bool, key=key) -> None:
                    with counts_lock:
                        counts[key] = counts.get(key, 0) + 1

                loader.register_for_ready(_callback)

        threads = [threading.Thread(target=register_many, args=(n,)) for n in range(4)]
        for thread in threads:
            thread.start()
        start.wait()
        stub.release()
        await loader.wait_ready()
        for thread in threads:
            await asyncio.to_thread(thread.join)

        assert len(counts) == 800
        assert set(counts.values()) == {1}

    def test_outside_event_loop_reports_failure(self):
        loader = CatalogLoader(CATALOG_URL, MagicMock(), artwork_fetcher=fake_artwork)
        assert loader.state is LoaderState.ERROR

        results = []
        assert loader.register_for_ready(results.append) is True
        assert results == [False]

    @pytest.mark.asyncio
    async def test_close_fails_pending_waiters(self, install_catalog):
        install_catalog(hold=True)
        loader = make_loader()
        results = []
        loader.register_for_ready(results.append)
        await drain()

        loader.close()
        await drain()
        assert loader.state is LoaderState.ERROR
        assert results == [False]

    @pytest.mark.asyncio
    async def test_close_before_load_starts_fails_waiters(self, install_catalog):
        install_catalog()
        loader = make_loader()
        results = []
        loader.register_for_ready(results.append)

        loader.close()
        assert loader.state is LoaderState.ERROR
        assert results == [False]

        await drain()
        assert loader.state is LoaderState.ERROR
        assert results == [False]
        assert await loader.wait_ready() is False
