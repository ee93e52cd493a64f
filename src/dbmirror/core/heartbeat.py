"""Heartbeat and cancellation for long-running sync passes."""

from __future__ import annotations

import threading
from typing import Callable, Protocol

from dbmirror.core.errors import SyncCancelled


class HeartbeatPort(Protocol):
    """Liveness signal emitted by the reconciler during long loops."""

    def heartbeat(self) -> None:
        """Signal liveness; raise ``SyncCancelled`` to stop the pass."""
        ...


class NullHeartbeat:
    """Heartbeat port that never cancels."""

    def heartbeat(self) -> None:
        return None


class CancellationToken:
    """
    Heartbeat port backed by a thread-safe cancellation flag.

    The supervising code (a signal handler, a scheduler thread) calls
    ``cancel()``; the reconciler observes it on its next heartbeat and aborts
    before the sweep phase.
    """

    def __init__(self, on_beat: Callable[[int], None] | None = None):
        """
        Args:
            on_beat: Optional callback receiving the running heartbeat count,
                e.g. to refresh a progress display.
        """
        self._event = threading.Event()
        self._reason: str | None = None
        self._on_beat = on_beat
        self.beats = 0

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    @property
    def reason(self) -> str | None:
        return self._reason

    def cancel(self, reason: str = "cancelled") -> None:
        """Request cancellation; the next heartbeat raises ``SyncCancelled``."""
        self._reason = reason
        self._event.set()

    def heartbeat(self) -> None:
        self.beats += 1
        if self._on_beat is not None:
            self._on_beat(self.beats)
        if self._event.is_set():
            raise SyncCancelled(self._reason or "cancelled")
