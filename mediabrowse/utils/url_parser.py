"""
URL validation, relative locator resolution and browse id encoding.
"""
import re
from typing import Optional
from urllib.parse import ParseResult, quote, urlparse

# ── Private / loopback ranges to block on redirects (SSRF) ──────────────────
_PRIVATE_HOST_RE = re.compile(
    r"^(localhost|127\.|10\.|192\.168\.|172\.(1[6-9]|2[0-9]|3[01])\.|::1|0\.0\.0\.0)"
)

_MAX_URL_LENGTH = 2048


class URLValidationError(ValueError):
    pass


def validate_url(url: str, *, allow_private: bool = False) -> str:
    """
    Validate and sanitise a catalog URL.
    Returns the cleaned URL or raises URLValidationError.
    """
    if not isinstance(url, str):
        raise URLValidationError("URL must be a string")

    url = url.strip()
    if len(url) > _MAX_URL_LENGTH:
        raise URLValidationError("URL too long")

    parsed = _safe_parse(url)
    if parsed is None:
        raise URLValidationError("Malformed URL")

    if parsed.scheme not in ("http", "https"):
        raise URLValidationError("Only http/https URLs are accepted")

    host = parsed.hostname or ""
    if not allow_private and _PRIVATE_HOST_RE.match(host):
        raise URLValidationError("Private/loopback addresses are not allowed")

    return url


def document_base(document_url: str) -> str:
    """
    The document URL with its last path segment removed.

    "https://h/cat/list.json" -> "https://h/cat/"
    """
    parsed = _safe_parse(document_url)
    if parsed is None:
        raise URLValidationError(f"Malformed document URL: {document_url!r}")
    path = parsed.path
    base_path = path[: path.rfind("/") + 1] if "/" in path else "/"
    return parsed._replace(path=base_path, params="", query="", fragment="").geturl()


def resolve_locator(locator: str, document_url: str) -> str:
    """
    Resolve a catalog locator against the catalog document's location.

    Locators already carrying the document's scheme are returned as-is;
    anything else is treated as relative to the document's base path.
    Empty locators stay empty.
    """
    if not locator:
        return locator
    scheme = urlparse(document_url).scheme
    if scheme and locator.startswith(f"{scheme}:"):
        return locator
    base = document_base(document_url)
    return base.rstrip("/") + "/" + locator.lstrip("/")


def encode_album_id(album: str) -> str:
    """Distinct browse id per album name. Never contains "/" or "@"."""
    return quote(album, safe="")


def _safe_parse(url: str) -> Optional[ParseResult]:
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if not parsed.netloc:
        return None
    return parsed
