"""
Playback-state projection: browse children + live playback state →
UI items, with exactly the active item carrying a playing/paused marker.
"""
from typing import Iterable

from mediabrowse.services.models import (
    BrowseItem,
    MediaItemData,
    NowPlaying,
    PlaybackMarker,
    PlaybackState,
)


def marker_for(media_id: str, playback_state: PlaybackState, now_playing: NowPlaying) -> PlaybackMarker:
    if now_playing.is_nothing or media_id != now_playing.id:
        return PlaybackMarker.NONE
    if not playback_state.is_prepared:
        return PlaybackMarker.NONE
    if playback_state.is_playing:
        return PlaybackMarker.PLAYING
    return PlaybackMarker.PAUSED


def to_media_item(child: BrowseItem, marker: PlaybackMarker = PlaybackMarker.NONE) -> MediaItemData:
    return MediaItemData(
        media_id=child.id,
        title=child.display_title,
        subtitle=child.display_subtitle,
        artwork_uri=child.display_icon_uri,
        browsable=child.browsable,
        marker=marker,
    )


def project(
    children: Iterable[BrowseItem],
    playback_state: PlaybackState,
    now_playing: NowPlaying,
) -> list[MediaItemData]:
    """Pure: same inputs always give an equal list."""
    return [
        to_media_item(child, marker_for(child.id, playback_state, now_playing))
        for child in children
    ]
