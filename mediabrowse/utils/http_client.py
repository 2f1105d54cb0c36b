"""
Async HTTP for the catalog document and artwork images.

The catalog GET retries transient failures with exponential backoff;
artwork GETs are single-shot by default and fall back to a placeholder
upstream. Redirects are capped and may not land on a private host.
"""
import asyncio
import logging
from typing import Any, Optional

import aiohttp
from aiohttp import ClientSession, TCPConnector

from mediabrowse.config.settings import settings
from mediabrowse.utils.url_parser import _PRIVATE_HOST_RE

logger = logging.getLogger(__name__)

_RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})
_TRANSIENT_ERRORS = (aiohttp.ClientConnectionError, asyncio.TimeoutError)


class HttpError(Exception):
    def __init__(self, status: int, message: str, url: str = ""):
        self.status = status
        self.url = url
        super().__init__(f"HTTP {status}: {message}")


class SSRFAttemptError(Exception):
    pass


async def _on_redirect(session, ctx, params):
    host = params.url.host or ""
    if _PRIVATE_HOST_RE.match(host):
        raise SSRFAttemptError(f"Redirect to private host blocked: {host}")


def build_session() -> ClientSession:
    """One session per process; shared by the catalog loader and artwork fetches."""
    trace = aiohttp.TraceConfig()
    trace.on_request_redirect.append(_on_redirect)  # type: ignore[arg-type]
    return ClientSession(
        connector=TCPConnector(limit=settings.ARTWORK_CONCURRENCY * 2),
        timeout=aiohttp.ClientTimeout(total=settings.HTTP_TIMEOUT_SECONDS),
        headers={"User-Agent": settings.HTTP_USER_AGENT},
        trust_env=False,
        trace_configs=[trace],
    )


async def fetch_json(session: ClientSession, url: str, **kwargs: Any) -> Any:
    """GET a JSON document, retrying transient failures."""
    return await _get(session, url, **kwargs)


async def fetch_bytes(
    session: ClientSession,
    url: str,
    *,
    timeout: Optional[float] = None,
    attempts: int = 1,
) -> bytes:
    """GET a raw body (artwork). Single attempt unless told otherwise."""
    return await _get(session, url, timeout=timeout, attempts=attempts, as_json=False)


def _backoff(attempt: int, base: float) -> float:
    return base ** attempt


async def _get(
    session: ClientSession,
    url: str,
    *,
    as_json: bool = True,
    timeout: Optional[float] = None,
    attempts: int = settings.HTTP_RETRY_ATTEMPTS,
    backoff: float = settings.HTTP_RETRY_BACKOFF,
) -> Any:
    request_kwargs: dict[str, Any] = {"max_redirects": settings.HTTP_MAX_REDIRECTS}
    if timeout:
        request_kwargs["timeout"] = aiohttp.ClientTimeout(total=timeout)

    last_exc: Exception = RuntimeError(f"No attempts made for {url}")
    for attempt in range(1, max(attempts, 1) + 1):
        final = attempt >= attempts
        try:
            async with session.get(url, **request_kwargs) as resp:
                if resp.status in _RETRYABLE_STATUSES and not final:
                    wait = _backoff(attempt, backoff)
                    logger.warning(
                        "Retryable HTTP status",
                        extra={"url": url, "status": resp.status, "attempt": attempt, "wait": wait},
                    )
                    await asyncio.sleep(wait)
                    continue
                if resp.status >= 400:
                    text = await resp.text(errors="replace")
                    raise HttpError(resp.status, text[:200], url)
                if as_json:
                    return await resp.json(content_type=None)
                return await resp.read()
        except _TRANSIENT_ERRORS as exc:
            last_exc = exc
            if final:
                break
            wait = _backoff(attempt, backoff)
            logger.warning(
                "Transient HTTP failure, retrying",
                extra={"url": url, "error": repr(exc), "attempt": attempt, "wait": wait},
            )
            await asyncio.sleep(wait)
    raise last_exc
