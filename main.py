"""
mediabrowse - Main Entrypoint
Loads the remote catalog and prints its browse tree (albums → tracks).
"""
import argparse
import asyncio
import logging
import sys
from typing import Optional

from mediabrowse.config.settings import settings
from mediabrowse.services.browse_service import BrowseService
from mediabrowse.utils.http_client import build_session
from mediabrowse.utils.logging import setup_logging
from mediabrowse.utils.url_parser import URLValidationError, validate_url


async def main(catalog_url: str, level: Optional[str] = None, json_logs: Optional[bool] = None) -> int:
    setup_logging(level, json_logs)
    logger = logging.getLogger(__name__)

    try:
        catalog_url = validate_url(catalog_url, allow_private=True)
    except URLValidationError as exc:
        logger.error("Invalid catalog URL", extra={"error": str(exc)})
        return 2

    session = build_session()
    try:
        browse_service = BrowseService(catalog_url, session)
        logger.info("Loading catalog", extra={"url": catalog_url, "env": settings.ENV})
        ready = await browse_service.loader.wait_ready()
        tree = browse_service.browse_tree()
        if not ready or tree is None or browse_service.loader.load_failed:
            logger.error("Catalog could not be loaded", extra={"url": catalog_url})
            return 1

        for album in tree.albums:
            print(f"{album.title}  ({album.artist})")
            for track in tree.lookup(album.id) or ():
                minutes, seconds = divmod(int(track.duration_seconds), 60)
                print(f"  {track.track_number:>2}. {track.title}  [{minutes}:{seconds:02d}]")
        logger.info(
            "Catalog printed",
            extra={
                "albums": len(tree.albums),
                "tracks": len(browse_service.loader),
                "skipped": browse_service.loader.skipped_entries,
            },
        )
        return 0
    finally:
        await session.close()


def _parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Print the browse tree of a media catalog.")
    parser.add_argument("--url", default=settings.CATALOG_URL, help="catalog JSON document URL")
    parser.add_argument("--level", default=None, help="log level (default: LOG_LEVEL setting)")
    parser.add_argument(
        "--json-logs",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="JSON log lines (default: on in production)",
    )
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = _parse_args()
    try:
        sys.exit(asyncio.run(main(args.url, args.level, args.json_logs)))
    except KeyboardInterrupt:
        sys.exit(0)
