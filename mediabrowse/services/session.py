"""
SessionConnection: the layer between the playback engine / browse service
and the UI.
- Observable connection status, playback state and now-playing.
- Per-node browse subscriptions, re-delivered whenever a node changes.
- Transport commands forwarded verbatim to the engine.

Every observer and subscription callback runs on the connection's event
loop, one at a time. Engine callbacks may arrive from any thread.
"""
import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Optional, Sequence

from mediabrowse.services.browse_service import (
    BrowseService,
    ChildrenResult,
    ChildrenStatus,
)
from mediabrowse.services.engine import PlaybackCallback, PlaybackEngine
from mediabrowse.services.models import (
    EMPTY_PLAYBACK_STATE,
    NOTHING_PLAYING,
    BrowseItem,
    MediaItemData,
    NowPlaying,
    PlaybackState,
)
from mediabrowse.services.projector import project
from mediabrowse.utils.observable import LiveValue

logger = logging.getLogger(__name__)


class SubscriptionCallback:
    """Receives the children of one subscribed browse node."""

    def on_children_loaded(self, parent_id: str, children: Sequence[BrowseItem]) -> None:
        pass

    def on_error(self, parent_id: str) -> None:
        pass


@dataclass(eq=False)
class _Subscription:
    node_id: str
    callback: SubscriptionCallback
    active: bool = True
    # A readiness-gated lookup is outstanding
    load_pending: bool = False


@dataclass(frozen=True)
class ChildrenView:
    """Answer to `get_children`: status plus the projected items when READY."""

    parent_id: str
    status: ChildrenStatus
    items: tuple[MediaItemData, ...] = ()


class SessionConnection(PlaybackCallback):
    def __init__(
        self,
        browse_service: BrowseService,
        engine: PlaybackEngine,
        *,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ):
        self._browse = browse_service
        self._engine = engine
        self._loop = loop or asyncio.get_running_loop()

        self.is_connected: LiveValue[bool] = LiveValue(False, loop=self._loop)
        self.playback_state: LiveValue[PlaybackState] = LiveValue(
            EMPTY_PLAYBACK_STATE, loop=self._loop
        )
        self.now_playing: LiveValue[NowPlaying] = LiveValue(NOTHING_PLAYING, loop=self._loop)
        self.root_media_id: Optional[str] = None

        self._lock = threading.Lock()
        self._subscriptions: dict[str, list[_Subscription]] = {}

        browse_service.add_children_listener(self._on_children_changed)

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        return self._loop

    # ── Connection ───────────────────────────────────────────────────────────

    def connect(self) -> None:
        self._engine.register_callback(self)
        self.root_media_id = self._browse.get_root()
        logger.info("Session connected", extra={"root": self.root_media_id})
        self.is_connected.post_value(True)

    def disconnect(self) -> None:
        self._engine.unregister_callback(self)
        logger.info("Session disconnected")
        self.is_connected.post_value(False)

    # ── Transport controls ───────────────────────────────────────────────────

    def play(self) -> None:
        self._engine.play()

    def pause(self) -> None:
        self._engine.pause()

    def play_from_id(self, media_id: str, extras: Optional[dict] = None) -> None:
        self._engine.play_from_id(media_id, extras)

    # ── Browse subscriptions ─────────────────────────────────────────────────

    def subscribe(self, node_id: str, callback: SubscriptionCallback) -> None:
        """
        Deliver the children of `node_id` to `callback` now (or once the
        catalog is ready) and again every time they change.
        """
        subscription = _Subscription(node_id, callback)
        with self._lock:
            subs = self._subscriptions.setdefault(node_id, [])
            for existing in subs:
                if existing.callback is callback:
                    existing.active = False
            subs[:] = [s for s in subs if s.callback is not callback]
            subs.append(subscription)
        self._load(subscription)

    def unsubscribe(self, node_id: str, callback: SubscriptionCallback) -> bool:
        """No delivery reaches `callback` for `node_id` after this returns."""
        with self._lock:
            subs = self._subscriptions.get(node_id, [])
            removed = [s for s in subs if s.callback is callback]
            for subscription in removed:
                subscription.active = False
            remaining = [s for s in subs if s.callback is not callback]
            if remaining:
                self._subscriptions[node_id] = remaining
            else:
                self._subscriptions.pop(node_id, None)
        return bool(removed)

    def subscriber_count(self, node_id: str) -> int:
        with self._lock:
            return len(self._subscriptions.get(node_id, []))

    def notify_children_changed(self, node_id: str) -> None:
        self._browse.notify_children_changed(node_id)

    def get_children(self, node_id: str) -> ChildrenView:
        """Immediate answer; PENDING while the catalog is still loading."""
        result = self._browse.children_now(node_id)
        if not result.ok:
            return ChildrenView(node_id, result.status)
        items = project(
            result.children,
            self.playback_state.value or EMPTY_PLAYBACK_STATE,
            self.now_playing.value or NOTHING_PLAYING,
        )
        return ChildrenView(node_id, result.status, tuple(items))

    def _load(self, subscription: _Subscription) -> None:
        with self._lock:
            if subscription.load_pending:
                return
            subscription.load_pending = True
        self._browse.load_children(
            subscription.node_id,
            lambda result: self._on_result(subscription, result),
        )

    def _on_result(self, subscription: _Subscription, result: ChildrenResult) -> None:
        with self._lock:
            subscription.load_pending = False
        self._schedule_delivery(subscription, result)

    def _schedule_delivery(self, subscription: _Subscription, result: ChildrenResult) -> None:
        if self._loop.is_closed():
            return
        self._loop.call_soon_threadsafe(self._deliver, subscription, result)

    def _deliver(self, subscription: _Subscription, result: ChildrenResult) -> None:
        if not subscription.active:
            return
        try:
            if result.ok:
                subscription.callback.on_children_loaded(result.parent_id, list(result.children))
            else:
                logger.warning(
                    "Browse node unavailable",
                    extra={"parent_id": result.parent_id, "status": result.status.value},
                )
                subscription.callback.on_error(result.parent_id)
        except Exception:
            logger.exception("Subscription callback raised", extra={"parent_id": result.parent_id})

    def _on_children_changed(self, node_id: Optional[str]) -> None:
        with self._lock:
            if node_id is None:
                targets = [s for subs in self._subscriptions.values() for s in subs]
            else:
                targets = list(self._subscriptions.get(node_id, []))
        for subscription in targets:
            self._load(subscription)

    # ── Engine callbacks (any thread) ────────────────────────────────────────

    def on_playback_state_changed(self, state: Optional[PlaybackState]) -> None:
        self.playback_state.post_value(state or EMPTY_PLAYBACK_STATE)

    def on_metadata_changed(self, metadata: Optional[NowPlaying]) -> None:
        self.now_playing.post_value(metadata or NOTHING_PLAYING)
