"""
Service-side browse surface: root id, readiness-gated children lookup and
children-changed notifications. Owns the catalog loader and the BrowseTree
built from it.
"""
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

import aiohttp

from mediabrowse.services.browse_tree import BROWSABLE_ROOT, BrowseTree
from mediabrowse.services.catalog import CatalogLoader, LoaderState
from mediabrowse.services.models import BrowseItem

logger = logging.getLogger(__name__)


class ChildrenStatus(str, Enum):
    READY = "ready"
    PENDING = "pending"
    NOT_FOUND = "not_found"
    ERROR = "error"


@dataclass(frozen=True)
class ChildrenResult:
    parent_id: str
    status: ChildrenStatus
    children: tuple[BrowseItem, ...] = ()

    @property
    def ok(self) -> bool:
        return self.status is ChildrenStatus.READY


ResultCallback = Callable[[ChildrenResult], None]
# Receives the node whose children changed, or None for "every node"
ChildrenListener = Callable[[Optional[str]], None]
LoaderFactory = Callable[[str, aiohttp.ClientSession], CatalogLoader]


class BrowseService:
    def __init__(
        self,
        source_url: str,
        session: aiohttp.ClientSession,
        *,
        loader_factory: LoaderFactory = CatalogLoader,
    ):
        self._source_url = source_url
        self._session = session
        self._loader_factory = loader_factory
        self._lock = threading.Lock()
        self._tree: Optional[tuple[CatalogLoader, BrowseTree]] = None
        self._listeners: list[ChildrenListener] = []
        self._loader = loader_factory(source_url, session)

    @property
    def loader(self) -> CatalogLoader:
        return self._loader

    def get_root(self) -> str:
        # Caller allow-listing happens before this layer
        return BROWSABLE_ROOT

    def browse_tree(self) -> Optional[BrowseTree]:
        """The tree for the current catalog, or None while it is loading."""
        loader = self._loader
        if loader.state is not LoaderState.INITIALIZED:
            return None
        return self._tree_for(loader)

    def load_children(self, parent_id: str, on_result: ResultCallback) -> bool:
        """
        Resolve the children of `parent_id` once the catalog is ready.

        Returns True if `on_result` already ran, False if it is deferred.
        """
        loader = self._loader

        def _on_ready(success: bool) -> None:
            if loader is not self._loader:
                # Catalog was reloaded meanwhile; answer from the new snapshot
                self.load_children(parent_id, on_result)
                return
            on_result(self._resolve(loader, parent_id, success))

        return loader.register_for_ready(_on_ready)

    def children_now(self, parent_id: str) -> ChildrenResult:
        """Non-queuing lookup: PENDING while the catalog is still loading."""
        loader = self._loader
        state = loader.state
        if state in (LoaderState.UNINITIALIZED, LoaderState.INITIALIZING):
            return ChildrenResult(parent_id, ChildrenStatus.PENDING)
        return self._resolve(loader, parent_id, state is LoaderState.INITIALIZED)

    def add_children_listener(self, listener: ChildrenListener) -> None:
        with self._lock:
            if listener not in self._listeners:
                self._listeners.append(listener)

    def remove_children_listener(self, listener: ChildrenListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def notify_children_changed(self, parent_id: Optional[str]) -> None:
        with self._lock:
            listeners = list(self._listeners)
        for listener in listeners:
            try:
                listener(parent_id)
            except Exception:
                logger.exception("Children listener raised", extra={"parent_id": parent_id})

    def reload(self) -> CatalogLoader:
        """Replace the catalog with a fresh load; subscribers are re-notified once ready."""
        old = self._loader
        self._loader = self._loader_factory(self._source_url, self._session)
        with self._lock:
            self._tree = None
        old.close()
        logger.info("Catalog reload started", extra={"url": self._source_url})
        self._loader.register_for_ready(lambda success: self.notify_children_changed(None))
        return self._loader

    def close(self) -> None:
        self._loader.close()

    def _resolve(self, loader: CatalogLoader, parent_id: str, success: bool) -> ChildrenResult:
        if not success:
            return ChildrenResult(parent_id, ChildrenStatus.ERROR)
        children = self._tree_for(loader).lookup(parent_id)
        if children is None:
            logger.debug("No such browse node", extra={"parent_id": parent_id})
            return ChildrenResult(parent_id, ChildrenStatus.NOT_FOUND)
        return ChildrenResult(parent_id, ChildrenStatus.READY, children)

    def _tree_for(self, loader: CatalogLoader) -> BrowseTree:
        with self._lock:
            if self._tree is None or self._tree[0] is not loader:
                self._tree = (loader, BrowseTree.build(loader.tracks))
            return self._tree[1]
