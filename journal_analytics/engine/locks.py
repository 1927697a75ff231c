"""Per-user batch locks.

Grouping and orphan recovery are check-then-act loops over the database.
Two overlapping runs for the same user could both decide a group or trade
is missing and create it twice, so each batch kind takes a per-user lock
for the duration of the run. An overlapping run is refused, not queued.
"""

import logging
import threading
from contextlib import contextmanager

logger = logging.getLogger(__name__)

_user_locks: dict[tuple[str, int], threading.Lock] = {}
_user_locks_guard = threading.Lock()


class BatchInProgressError(RuntimeError):
    """Raised when the same batch is already running for this user."""

    def __init__(self, kind: str, user_id: int):
        super().__init__(f"{kind} is already running for user {user_id}")
        self.kind = kind
        self.user_id = user_id


def _get_user_lock(kind: str, user_id: int) -> threading.Lock:
    with _user_locks_guard:
        lock = _user_locks.get((kind, user_id))
        if lock is None:
            lock = threading.Lock()
            _user_locks[(kind, user_id)] = lock
        return lock


@contextmanager
def user_batch_lock(kind: str, user_id: int):
    """Hold the ``kind`` lock for ``user_id`` or raise BatchInProgressError."""
    lock = _get_user_lock(kind, user_id)
    if not lock.acquire(blocking=False):
        logger.warning(f"[{kind}] Skipping overlapping run for user {user_id}")
        raise BatchInProgressError(kind, user_id)
    try:
        yield
    finally:
        lock.release()
