"""
Per-node view model: the children of one browse node, projected against
live playback state so the active item carries a playing/paused marker.
"""
import logging
from typing import Sequence

from mediabrowse.services.models import (
    EMPTY_PLAYBACK_STATE,
    NOTHING_PLAYING,
    BrowseItem,
    MediaItemData,
    NowPlaying,
    PlaybackState,
)
from mediabrowse.services.projector import project
from mediabrowse.services.session import SessionConnection, SubscriptionCallback
from mediabrowse.utils.observable import LiveValue

logger = logging.getLogger(__name__)


class MediaItemsViewModel(SubscriptionCallback):
    """
    Subscribes to `media_id` and keeps `media_items` current.

    The projection is recomputed whenever the children, the playback state
    or the now-playing metadata change. Recomputes are queued on the loop
    and coalesced: a burst of changes yields one projection of the latest
    inputs. Call `close()` when the view goes away.
    """

    def __init__(self, media_id: str, connection: SessionConnection):
        self.media_id = media_id
        self._connection = connection
        self._children: tuple[BrowseItem, ...] = ()
        self._refresh_scheduled = False
        self._closed = False

        self.media_items: LiveValue[list[MediaItemData]] = LiveValue([], loop=connection.loop)
        self.is_unavailable: LiveValue[bool] = LiveValue(False, loop=connection.loop)

        connection.subscribe(media_id, self)
        connection.playback_state.observe(self._on_playback_state)
        connection.now_playing.observe(self._on_now_playing)

    # ── SubscriptionCallback ─────────────────────────────────────────────────

    def on_children_loaded(self, parent_id: str, children: Sequence[BrowseItem]) -> None:
        self._children = tuple(children)
        self.is_unavailable.set_value(False)
        self._schedule_refresh()

    def on_error(self, parent_id: str) -> None:
        logger.warning("Could not load browse node", extra={"parent_id": parent_id})
        self._children = ()
        self.is_unavailable.set_value(True)
        self._schedule_refresh()

    # ── Playback observers ───────────────────────────────────────────────────

    def _on_playback_state(self, state: PlaybackState) -> None:
        self._schedule_refresh()

    def _on_now_playing(self, metadata: NowPlaying) -> None:
        self._schedule_refresh()

    def _schedule_refresh(self) -> None:
        if self._refresh_scheduled or self._closed:
            return
        self._refresh_scheduled = True
        self._connection.loop.call_soon_threadsafe(self._refresh)

    def _refresh(self) -> None:
        self._refresh_scheduled = False
        if self._closed:
            return
        items = project(
            self._children,
            self._connection.playback_state.value or EMPTY_PLAYBACK_STATE,
            self._connection.now_playing.value or NOTHING_PLAYING,
        )
        self.media_items.set_value(items)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._connection.playback_state.remove_observer(self._on_playback_state)
        self._connection.now_playing.remove_observer(self._on_now_playing)
        self._connection.unsubscribe(self.media_id, self)
