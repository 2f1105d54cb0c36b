"""
Browse hierarchy derived from a loaded catalog:

    "/"  →  albums (first-occurrence order)  →  tracks (catalog order)
"""
from dataclasses import dataclass, field
from typing import Iterable, Optional

from mediabrowse.services.models import AlbumNode, BrowseItem, Track
from mediabrowse.utils.url_parser import encode_album_id

BROWSABLE_ROOT = "/"
EMPTY_ROOT = "@empty@"


@dataclass
class _AlbumGroup:
    node: AlbumNode
    tracks: list[Track] = field(default_factory=list)


class BrowseTree:
    """Immutable node id → children index. Build with `BrowseTree.build`."""

    def __init__(self, index: dict[str, tuple[BrowseItem, ...]]):
        self._index = index

    @classmethod
    def build(cls, tracks: Iterable[Track]) -> "BrowseTree":
        # Group: one bucket per album, created the first time the album is seen
        groups: dict[str, _AlbumGroup] = {}
        for track in tracks:
            album_id = encode_album_id(track.album)
            group = groups.get(album_id)
            if group is None:
                group = groups[album_id] = _AlbumGroup(node=_album_node(album_id, track))
            group.tracks.append(track)

        # Flatten: dicts keep insertion order, so albums stay in first-occurrence order
        index: dict[str, tuple[BrowseItem, ...]] = {
            BROWSABLE_ROOT: tuple(group.node for group in groups.values()),
        }
        for album_id, group in groups.items():
            index[album_id] = tuple(group.tracks)
        return cls(index)

    def lookup(self, node_id: str) -> Optional[tuple[BrowseItem, ...]]:
        """Children of `node_id`, or None when no such node exists."""
        return self._index.get(node_id)

    def __getitem__(self, node_id: str) -> Optional[tuple[BrowseItem, ...]]:
        return self.lookup(node_id)

    @property
    def albums(self) -> tuple[AlbumNode, ...]:
        return self._index[BROWSABLE_ROOT]  # type: ignore[return-value]

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._index

    def __len__(self) -> int:
        return len(self._index)


def _album_node(album_id: str, track: Track) -> AlbumNode:
    return AlbumNode(
        id=album_id,
        title=track.album,
        artist=track.artist,
        artwork_uri=track.artwork_uri,
        artwork=track.artwork,
    )
