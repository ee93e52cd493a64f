"""Per-connector exclusion for sync passes.

Two passes for the same connector must never overlap: the "used" accounting
of a pass assumes it owns the connector's mirror for its whole duration.
This lease enforces that within one process. Serializing runs across
processes remains the scheduler's job.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Iterator

from dbmirror.core.errors import SyncAlreadyRunning

_registry_lock = threading.Lock()
_held: set[str] = set()


@contextmanager
def connector_lease(connector_id: str) -> Iterator[None]:
    """
    Hold the sync lease of a connector for the duration of the block.

    Raises:
        SyncAlreadyRunning: If another sync already holds the lease.
    """
    with _registry_lock:
        if connector_id in _held:
            raise SyncAlreadyRunning(
                f"A sync for connector '{connector_id}' is already running."
            )
        _held.add(connector_id)
    try:
        yield
    finally:
        with _registry_lock:
            _held.discard(connector_id)
