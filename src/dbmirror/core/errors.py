"""Domain exceptions raised by the mirror and reconciliation core."""

from __future__ import annotations


class DbMirrorError(Exception):
    """Base class for all dbmirror errors."""


class MalformedInternalIdError(DbMirrorError, ValueError):
    """Raised when a composite internal ID cannot be formatted or parsed."""


class MirrorStoreError(DbMirrorError):
    """Raised when the mirror store fails to read or write a node."""


class IndexerError(DbMirrorError):
    """Raised when the external indexer rejects or fails an operation."""


class IndexerTimeout(IndexerError):
    """Raised when an external indexer call exceeds its timeout."""


class SyncCancelled(DbMirrorError):
    """Raised through the heartbeat port when the running sync must stop."""


class SyncAlreadyRunning(DbMirrorError):
    """Raised when a sync for the same connector is already in progress."""
