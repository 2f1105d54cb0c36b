from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Union

UNKNOWN_DURATION = -1


@dataclass(frozen=True)
class Track:
    id: str
    title: str
    artist: str
    album: str
    genre: str = ""
    duration_ms: int = UNKNOWN_DURATION
    media_uri: str = ""
    artwork_uri: str = ""
    track_number: int = 0
    track_count: int = 0
    artwork: Optional[bytes] = field(default=None, repr=False, compare=False)
    playable: bool = True

    @property
    def browsable(self) -> bool:
        return False

    @property
    def display_title(self) -> str:
        return self.title

    @property
    def display_subtitle(self) -> str:
        return self.artist

    @property
    def display_icon_uri(self) -> str:
        return self.artwork_uri

    @property
    def duration_seconds(self) -> float:
        return max(self.duration_ms, 0) / 1000


@dataclass(frozen=True)
class AlbumNode:
    id: str
    title: str
    artist: str
    artwork_uri: str = ""
    artwork: Optional[bytes] = field(default=None, repr=False, compare=False)

    @property
    def browsable(self) -> bool:
        return True

    @property
    def playable(self) -> bool:
        return False

    @property
    def display_title(self) -> str:
        return self.title

    @property
    def display_subtitle(self) -> str:
        return self.artist

    @property
    def display_icon_uri(self) -> str:
        return self.artwork_uri


BrowseItem = Union[Track, AlbumNode]


class TransportState(str, Enum):
    NONE = "none"
    BUFFERING = "buffering"
    PLAYING = "playing"
    PAUSED = "paused"
    STOPPED = "stopped"
    ERROR = "error"


class PlaybackAction(str, Enum):
    PLAY = "play"
    PAUSE = "pause"


@dataclass(frozen=True)
class PlaybackState:
    transport: TransportState = TransportState.NONE
    actions: frozenset = frozenset()
    position_ms: int = 0

    @property
    def is_prepared(self) -> bool:
        """A track is loaded into the engine."""
        return self.transport is not TransportState.NONE

    @property
    def is_playing(self) -> bool:
        return self.transport is TransportState.PLAYING

    @property
    def is_pause_enabled(self) -> bool:
        return PlaybackAction.PAUSE in self.actions

    @property
    def is_play_enabled(self) -> bool:
        return PlaybackAction.PLAY in self.actions


EMPTY_PLAYBACK_STATE = PlaybackState()


@dataclass(frozen=True)
class NowPlaying:
    id: str
    title: str = ""
    artist: str = ""
    album: str = ""
    duration_ms: int = UNKNOWN_DURATION
    artwork_uri: str = ""

    @property
    def is_nothing(self) -> bool:
        return not self.id

    @classmethod
    def from_track(cls, track: Track) -> "NowPlaying":
        return cls(
            id=track.id,
            title=track.title,
            artist=track.artist,
            album=track.album,
            duration_ms=track.duration_ms,
            artwork_uri=track.artwork_uri,
        )


NOTHING_PLAYING = NowPlaying(id="")


class PlaybackMarker(str, Enum):
    NONE = "none"
    PLAYING = "playing"
    PAUSED = "paused"


@dataclass(frozen=True)
class MediaItemData:
    media_id: str
    title: str
    subtitle: str
    artwork_uri: str
    browsable: bool
    marker: PlaybackMarker = PlaybackMarker.NONE
