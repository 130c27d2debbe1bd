import logging
import threading
from contextlib import contextmanager

from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from models import db
from reservations.errors import ConcurrencyConflict

logger = logging.getLogger(__name__)


class AreaLockTable:
    """
    One lock per parking area, created on first use and kept for the life of
    the process. Holding an area's lock serializes the scan and insert of
    every booking attempt against that area in this process.
    """

    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    def _lock_for(self, area_id):
        with self._guard:
            lock = self._locks.get(area_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[area_id] = lock
            return lock

    @contextmanager
    def hold(self, area_id, timeout: float):
        lock = self._lock_for(area_id)
        if not lock.acquire(timeout=timeout):
            logger.warning(f"Timed out after {timeout}s waiting for area {area_id}")
            raise ConcurrencyConflict("Parking area is busy, try again")
        try:
            yield
        finally:
            lock.release()

    def __len__(self):
        with self._guard:
            return len(self._locks)


area_locks = AreaLockTable()


LOCK_CONFLICT_MARKERS = (
    "deadlock detected",
    "could not serialize",
    "lock timeout",
    "could not obtain lock",
)


def is_lock_conflict(exc: OperationalError) -> bool:
    message = str(getattr(exc, "orig", exc)).lower()
    return any(marker in message for marker in LOCK_CONFLICT_MARKERS)


def bound_row_lock_wait(timeout: float):
    """
    Cap how long the current transaction may wait for row locks.

    Only PostgreSQL gets a `lock_timeout`; SQLite ignores FOR UPDATE and
    writers there are serialized by the area lock table. A wait that runs out
    raises an OperationalError that `is_lock_conflict` recognizes.
    """
    if db.session.get_bind().dialect.name != "postgresql":
        return
    millis = max(1, int(timeout * 1000))
    # SET does not take bind parameters
    db.session.execute(text(f"SET LOCAL lock_timeout = {millis}"))
