"""Shared fixtures: catalog documents, a stubbed catalog fetch and a recording engine."""
import asyncio
from typing import Any, Optional
from unittest.mock import MagicMock

import pytest

from mediabrowse.services.browse_service import BrowseService
from mediabrowse.services.catalog import CatalogLoader
from mediabrowse.services.engine import BasePlaybackEngine
from mediabrowse.services.models import NowPlaying, PlaybackState

CATALOG_URL = "https://h/cat/list.json"


def catalog_entry(track_id: str, title: str, album: str, **overrides: Any) -> dict:
    entry = {
        "id": track_id,
        "title": title,
        "album": album,
        "artist": f"{album} Artist",
        "genre": "Electronic",
        "source": f"audio/{track_id}.mp3",
        "image": f"/art/{track_id}.png",
        "trackNumber": 1,
        "totalTrackCount": 2,
        "duration": 90,
        "site": "https://example.org",
    }
    entry.update(overrides)
    return entry


async def fake_artwork(session: Any, url: str) -> bytes:
    return b"art:" + url.encode()


async def drain(rounds: int = 20) -> None:
    """Let queued loop callbacks and short-lived tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class CatalogStub:
    """Stands in for `fetch_json`; can hold the response until released."""

    def __init__(self, document: Any = None, error: Optional[Exception] = None, hold: bool = False):
        self.document = document
        self.error = error
        self.gate = asyncio.Event()
        if not hold:
            self.gate.set()
        self.calls = 0

    def release(self) -> None:
        self.gate.set()

    async def __call__(self, session: Any, url: str, **kwargs: Any) -> Any:
        self.calls += 1
        await self.gate.wait()
        if self.error is not None:
            raise self.error
        return self.document


class RecordingEngine(BasePlaybackEngine):
    def __init__(self) -> None:
        super().__init__()
        self.calls: list[tuple] = []

    def play(self) -> None:
        self.calls.append(("play",))

    def pause(self) -> None:
        self.calls.append(("pause",))

    def play_from_id(self, media_id: str, extras: Optional[dict] = None) -> None:
        self.calls.append(("play_from_id", media_id))

    def emit_state(self, state: Optional[PlaybackState]) -> None:
        self._dispatch_state(state)

    def emit_metadata(self, metadata: Optional[NowPlaying]) -> None:
        self._dispatch_metadata(metadata)


@pytest.fixture
def sample_catalog() -> dict:
    return {
        "music": [
            catalog_entry("a", "Track A", "X", trackNumber=1),
            catalog_entry("b", "Track B", "X", trackNumber=2),
            catalog_entry("c", "Track C", "Y", duration=200),
        ]
    }


@pytest.fixture
def install_catalog(monkeypatch, sample_catalog):
    """Patch the catalog fetch; returns a factory taking document/error/hold."""

    def _install(document: Any = sample_catalog, error: Optional[Exception] = None, hold: bool = False) -> CatalogStub:
        stub = CatalogStub(document, error=error, hold=hold)
        monkeypatch.setattr("mediabrowse.services.catalog.fetch_json", stub)
        return stub

    return _install


def make_loader(url: str = CATALOG_URL) -> CatalogLoader:
    return CatalogLoader(url, MagicMock(), artwork_fetcher=fake_artwork)


def make_browse_service(url: str = CATALOG_URL) -> BrowseService:
    return BrowseService(
        url,
        MagicMock(),
        loader_factory=lambda source, session: CatalogLoader(
            source, session, artwork_fetcher=fake_artwork
        ),
    )


@pytest.fixture
def engine() -> RecordingEngine:
    return RecordingEngine()
