import threading

import pytest

from dbmirror.core.errors import SyncCancelled
from dbmirror.core.heartbeat import CancellationToken, NullHeartbeat


def test_null_heartbeat_never_cancels():
    beat = NullHeartbeat()
    for _ in range(3):
        beat.heartbeat()


def test_token_counts_beats_and_reports_progress():
    seen = []
    token = CancellationToken(on_beat=seen.append)

    token.heartbeat()
    token.heartbeat()

    assert token.beats == 2
    assert seen == [1, 2]
    assert not token.cancelled


def test_cancel_from_another_thread_is_seen_on_next_beat():
    token = CancellationToken()
    worker = threading.Thread(target=token.cancel, args=("scheduler timeout",))
    worker.start()
    worker.join()

    assert token.cancelled
    assert token.reason == "scheduler timeout"
    with pytest.raises(SyncCancelled, match="scheduler timeout"):
        token.heartbeat()
