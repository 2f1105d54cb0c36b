"""
Catalog loader. Readiness-gated, loads once:
  catalog URL → JSON document → Track records → artwork → ready

Callers never wait on the network: `register_for_ready` either answers
immediately or queues the callback until the load finishes.
"""
import asyncio
import logging
import threading
from dataclasses import replace
from enum import Enum
from typing import Any, Awaitable, Callable, Iterator, Optional

import aiohttp

from mediabrowse.config.settings import settings
from mediabrowse.services.artwork import fetch_artwork, load_placeholder
from mediabrowse.services.models import UNKNOWN_DURATION, Track
from mediabrowse.utils.http_client import HttpError, SSRFAttemptError, fetch_json
from mediabrowse.utils.url_parser import resolve_locator

logger = logging.getLogger(__name__)

ReadyCallback = Callable[[bool], None]
ArtworkFetcher = Callable[[aiohttp.ClientSession, str], Awaitable[bytes]]


class LoaderState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    INITIALIZED = "initialized"
    ERROR = "error"


class CatalogParseError(ValueError):
    pass


class CatalogLoader:
    """
    Loads the remote catalog on construction (a running event loop is
    required) and holds it as an immutable, ordered snapshot.

    Whole-document failures leave an empty catalog and still reach
    INITIALIZED with `load_failed` set. ERROR is only reached when the
    loader itself breaks; waiters are then told `success=False`.
    """

    def __init__(
        self,
        source_url: str,
        session: aiohttp.ClientSession,
        *,
        artwork_fetcher: ArtworkFetcher = fetch_artwork,
        concurrency: int = settings.ARTWORK_CONCURRENCY,
    ):
        self._source_url = source_url
        self._session = session
        self._artwork_fetcher = artwork_fetcher
        self._concurrency = concurrency

        self._lock = threading.Lock()
        self._state = LoaderState.UNINITIALIZED
        self._waiters: list[ReadyCallback] = []
        self._catalog: tuple[Track, ...] = ()
        self._task: Optional[asyncio.Task] = None

        self.load_failed = False
        self.skipped_entries = 0

        self._state = LoaderState.INITIALIZING
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.error("CatalogLoader created outside a running event loop")
            self._finish(LoaderState.ERROR, ())
            return
        self._task = loop.create_task(self._update_catalog())

    # ── Readiness gate ───────────────────────────────────────────────────────

    @property
    def state(self) -> LoaderState:
        return self._state

    def register_for_ready(self, callback: ReadyCallback) -> bool:
        """
        Run `callback(success)` once the catalog is usable.

        Returns True when the callback already ran (synchronously), False
        when it was queued and will run when loading completes.
        """
        with self._lock:
            state = self._state
            if state in (LoaderState.UNINITIALIZED, LoaderState.INITIALIZING):
                self._waiters.append(callback)
                return False
        self._invoke(callback, state is LoaderState.INITIALIZED)
        return True

    async def wait_ready(self) -> bool:
        loop = asyncio.get_running_loop()
        future: asyncio.Future = loop.create_future()

        def _resolve(success: bool) -> None:
            if not future.done():
                future.set_result(success)

        def _on_ready(success: bool) -> None:
            if loop.is_closed():
                return
            loop.call_soon_threadsafe(_resolve, success)

        self.register_for_ready(_on_ready)
        return await future

    def close(self) -> None:
        """Abandon an in-flight load; pending waiters are told it failed."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
            # A task cancelled before its first step never reaches its handler
            self._finish(LoaderState.ERROR, ())

    # ── Catalog access ───────────────────────────────────────────────────────

    @property
    def tracks(self) -> tuple[Track, ...]:
        return self._catalog

    def __iter__(self) -> Iterator[Track]:
        return iter(self._catalog)

    def __len__(self) -> int:
        return len(self._catalog)

    # ── Loading ──────────────────────────────────────────────────────────────

    async def _update_catalog(self) -> None:
        try:
            tracks = await self._load_tracks()
        except asyncio.CancelledError:
            logger.info("Catalog load cancelled", extra={"url": self._source_url})
            self._finish(LoaderState.ERROR, ())
            raise
        except Exception:
            logger.exception("Catalog loader crashed", extra={"url": self._source_url})
            self._finish(LoaderState.ERROR, ())
            return
        self._finish(LoaderState.INITIALIZED, tracks)

    async def _load_tracks(self) -> tuple[Track, ...]:
        try:
            document = await fetch_json(self._session, self._source_url)
            tracks, skipped = parse_catalog(document, self._source_url)
        except (
            HttpError,
            SSRFAttemptError,
            CatalogParseError,
            aiohttp.ClientError,
            asyncio.TimeoutError,
            ValueError,
        ) as exc:
            logger.warning(
                "Catalog fetch failed, continuing with an empty catalog",
                extra={"url": self._source_url, "error": str(exc)},
            )
            self.load_failed = True
            return ()

        self.skipped_entries = skipped
        if skipped:
            logger.warning(
                "Skipped malformed catalog entries",
                extra={"url": self._source_url, "skipped": skipped},
            )

        semaphore = asyncio.Semaphore(self._concurrency)

        async def _with_artwork(track: Track) -> Track:
            async with semaphore:
                try:
                    art = await self._artwork_fetcher(self._session, track.artwork_uri)
                except Exception as exc:
                    logger.warning(
                        "Artwork fetch failed, using placeholder",
                        extra={"track_id": track.id, "error": str(exc)},
                    )
                    art = await load_placeholder(settings.ARTWORK_SIZE_PX)
            return replace(track, artwork=art)

        enriched = await asyncio.gather(*(_with_artwork(t) for t in tracks))
        logger.info(
            "Catalog loaded",
            extra={"url": self._source_url, "tracks": len(enriched)},
        )
        return tuple(enriched)

    def _finish(self, state: LoaderState, tracks: tuple[Track, ...]) -> None:
        with self._lock:
            if self._state in (LoaderState.INITIALIZED, LoaderState.ERROR):
                return
            self._catalog = tracks
            self._state = state
            waiters, self._waiters = self._waiters, []
        success = state is LoaderState.INITIALIZED
        for callback in waiters:
            self._invoke(callback, success)

    @staticmethod
    def _invoke(callback: ReadyCallback, success: bool) -> None:
        try:
            callback(success)
        except Exception:
            logger.exception("Ready callback raised")


def parse_catalog(document: Any, document_url: str) -> tuple[list[Track], int]:
    """
    Turn a catalog document into Tracks (without artwork).
    Returns (tracks, number_of_skipped_entries).
    """
    if not isinstance(document, dict):
        raise CatalogParseError("Catalog document is not a JSON object")
    entries = document.get("music", [])
    if not isinstance(entries, list):
        raise CatalogParseError("Catalog 'music' field is not a list")

    tracks: list[Track] = []
    seen_ids: set[str] = set()
    skipped = 0
    for raw in entries:
        try:
            track = parse_entry(raw, document_url)
            if track.id in seen_ids:
                raise CatalogParseError(f"Duplicate id {track.id!r}")
        except CatalogParseError as exc:
            skipped += 1
            logger.debug("Skipping catalog entry", extra={"error": str(exc)})
            continue
        seen_ids.add(track.id)
        tracks.append(track)
    return tracks, skipped


def parse_entry(raw: Any, document_url: str) -> Track:
    if not isinstance(raw, dict):
        raise CatalogParseError("Entry is not a JSON object")
    track_id = raw.get("id")
    if not isinstance(track_id, str) or not track_id:
        raise CatalogParseError("Entry has no id")

    try:
        track_number = int(raw.get("trackNumber", 0))
        track_count = int(raw.get("totalTrackCount", 0))
        duration_s = int(raw.get("duration", UNKNOWN_DURATION))
    except (TypeError, ValueError) as exc:
        raise CatalogParseError(f"Entry {track_id!r} has a bad number: {exc}") from exc

    # Seconds in the document, milliseconds everywhere else
    duration_ms = duration_s * 1000 if duration_s >= 0 else UNKNOWN_DURATION

    return Track(
        id=track_id,
        title=str(raw.get("title", "")),
        artist=str(raw.get("artist", "")),
        album=str(raw.get("album", "")),
        genre=str(raw.get("genre", "")),
        duration_ms=duration_ms,
        media_uri=resolve_locator(str(raw.get("source", "")), document_url),
        artwork_uri=resolve_locator(str(raw.get("image", "")), document_url),
        track_number=track_number,
        track_count=track_count,
    )
