"""Media catalog loading, browse indexing and playback-state synchronization."""

__version__ = "0.1.0"
