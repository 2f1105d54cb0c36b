"""
Playback engine interface.

The engine itself (decoding, queueing, audio focus) lives outside this
package. It only has to accept transport commands and push playback-state
and metadata changes to registered callbacks, from any thread.
"""
import logging
import threading
from abc import ABC, abstractmethod
from typing import Optional

from mediabrowse.services.models import NowPlaying, PlaybackState

logger = logging.getLogger(__name__)


class PlaybackCallback:
    def on_playback_state_changed(self, state: Optional[PlaybackState]) -> None:
        pass

    def on_metadata_changed(self, metadata: Optional[NowPlaying]) -> None:
        pass


class PlaybackEngine(ABC):
    @abstractmethod
    def play(self) -> None: ...

    @abstractmethod
    def pause(self) -> None: ...

    @abstractmethod
    def play_from_id(self, media_id: str, extras: Optional[dict] = None) -> None: ...

    @abstractmethod
    def register_callback(self, callback: PlaybackCallback) -> None: ...

    @abstractmethod
    def unregister_callback(self, callback: PlaybackCallback) -> None: ...


class BasePlaybackEngine(PlaybackEngine):
    """Callback registry shared by concrete engines."""

    def __init__(self) -> None:
        self._callbacks: list[PlaybackCallback] = []
        self._callbacks_lock = threading.Lock()

    def register_callback(self, callback: PlaybackCallback) -> None:
        with self._callbacks_lock:
            if callback not in self._callbacks:
                self._callbacks.append(callback)

    def unregister_callback(self, callback: PlaybackCallback) -> None:
        with self._callbacks_lock:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

    def _dispatch_state(self, state: Optional[PlaybackState]) -> None:
        for callback in self._snapshot():
            try:
                callback.on_playback_state_changed(state)
            except Exception:
                logger.exception("Playback state callback raised")

    def _dispatch_metadata(self, metadata: Optional[NowPlaying]) -> None:
        for callback in self._snapshot():
            try:
                callback.on_metadata_changed(metadata)
            except Exception:
                logger.exception("Metadata callback raised")

    def _snapshot(self) -> list[PlaybackCallback]:
        with self._callbacks_lock:
            return list(self._callbacks)
