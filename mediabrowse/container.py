"""
Wiring: one SessionConnection per process, plus view-model factories.
"""
import threading
from typing import Optional

import aiohttp

from mediabrowse.config.settings import settings
from mediabrowse.handlers.main_view import MainViewModel
from mediabrowse.handlers.media_items import MediaItemsViewModel
from mediabrowse.services.browse_service import BrowseService
from mediabrowse.services.engine import PlaybackEngine
from mediabrowse.services.session import SessionConnection

_instance: Optional[SessionConnection] = None
_instance_lock = threading.Lock()


def get_session_connection(
    engine: PlaybackEngine,
    session: aiohttp.ClientSession,
    catalog_url: Optional[str] = None,
) -> SessionConnection:
    """Shared, already-connected SessionConnection (must be called inside the event loop)."""
    global _instance
    with _instance_lock:
        if _instance is None or _instance.loop.is_closed():
            browse_service = BrowseService(catalog_url or settings.CATALOG_URL, session)
            _instance = SessionConnection(browse_service, engine)
            _instance.connect()
        return _instance


def reset_session_connection() -> None:
    global _instance
    with _instance_lock:
        if _instance is not None:
            _instance.disconnect()
        _instance = None


def provide_main_view_model(
    engine: PlaybackEngine,
    session: aiohttp.ClientSession,
) -> MainViewModel:
    return MainViewModel(get_session_connection(engine, session))


def provide_media_items_view_model(
    media_id: str,
    engine: PlaybackEngine,
    session: aiohttp.ClientSession,
) -> MediaItemsViewModel:
    return MediaItemsViewModel(media_id, get_session_connection(engine, session))
