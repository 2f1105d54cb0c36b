from mediabrowse.utils.url_parser import resolve_locator, validate_url, encode_album_id, URLValidationError
from mediabrowse.utils.observable import LiveValue, Event
from mediabrowse.utils.logging import setup_logging

__all__ = ["resolve_locator", "validate_url", "encode_album_id", "URLValidationError", "LiveValue", "Event", "setup_logging"]
