"""Tunables of a sync pass."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_HEARTBEAT_EVERY = 25
DEFAULT_INDEXER_TIMEOUT = 30.0
DEFAULT_INDEXER_RETRIES = 2
DEFAULT_INDEXER_BACKOFF = 1.0


@dataclass(frozen=True)
class SyncSettings:
    """
    Settings for one sync pass.

    Attributes:
        heartbeat_every: Emit a heartbeat every N tables visited.
        indexer_timeout: Seconds allowed for a single indexer call.
        indexer_retries: Extra attempts for a node whose indexer call timed out.
        indexer_backoff: Base of the exponential wait (seconds) between those
            attempts; 0 retries immediately.
    """

    heartbeat_every: int = DEFAULT_HEARTBEAT_EVERY
    indexer_timeout: float = DEFAULT_INDEXER_TIMEOUT
    indexer_retries: int = DEFAULT_INDEXER_RETRIES
    indexer_backoff: float = DEFAULT_INDEXER_BACKOFF

    def __post_init__(self) -> None:
        if self.heartbeat_every < 1:
            raise ValueError("heartbeat_every must be >= 1")
        if self.indexer_timeout <= 0:
            raise ValueError("indexer_timeout must be > 0")
        if self.indexer_retries < 0:
            raise ValueError("indexer_retries must be >= 0")
        if self.indexer_backoff < 0:
            raise ValueError("indexer_backoff must be >= 0")
