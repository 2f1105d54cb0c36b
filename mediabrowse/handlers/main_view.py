"""
Root view model: exposes the root media id once connected and routes item
selections to navigation or transport commands.
"""
import logging
from enum import Enum
from typing import Optional

from mediabrowse.services.models import EMPTY_PLAYBACK_STATE, NOTHING_PLAYING, MediaItemData
from mediabrowse.services.session import SessionConnection
from mediabrowse.utils.observable import Event, LiveValue

logger = logging.getLogger(__name__)


class SelectionOutcome(str, Enum):
    NAVIGATE = "navigate"
    PAUSE = "pause"
    PLAY = "play"
    PLAY_FROM_ID = "play_from_id"
    NO_ACTION = "no_action"


class MainViewModel:
    def __init__(self, connection: SessionConnection):
        self._connection = connection

        self.root_media_id: LiveValue[Optional[str]] = connection.is_connected.map(
            lambda connected: connection.root_media_id if connected else None
        )

        # An event rather than state: only one observer gets to read each id
        self.navigate_to_media_item: LiveValue[Event[str]] = LiveValue(loop=connection.loop)

    def on_item_selected(self, item: MediaItemData) -> SelectionOutcome:
        """Browse into browsable items, play (or toggle) playable ones."""
        if item.browsable:
            self._browse_to_item(item)
            return SelectionOutcome.NAVIGATE
        return self.play_media(item)

    def _browse_to_item(self, item: MediaItemData) -> None:
        self.navigate_to_media_item.post_value(Event(item.media_id))

    def play_media(self, item: MediaItemData) -> SelectionOutcome:
        """
        - Not the active item: play it.
        - The active item: pause if pausing is permitted, else resume if
          playing is permitted, else do nothing.
        """
        now_playing = self._connection.now_playing.value or NOTHING_PLAYING
        playback_state = self._connection.playback_state.value or EMPTY_PLAYBACK_STATE

        is_active = not now_playing.is_nothing and item.media_id == now_playing.id
        if not (playback_state.is_prepared and is_active):
            self._connection.play_from_id(item.media_id)
            return SelectionOutcome.PLAY_FROM_ID

        if playback_state.is_pause_enabled:
            self._connection.pause()
            return SelectionOutcome.PAUSE
        if playback_state.is_play_enabled:
            self._connection.play()
            return SelectionOutcome.PLAY

        logger.warning(
            "Playable item selected but neither play nor pause is enabled",
            extra={"media_id": item.media_id, "transport": playback_state.transport.value},
        )
        return SelectionOutcome.NO_ACTION
