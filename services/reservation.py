"""
Serialises check-then-write sequences per lab.

Two layers guard a reservation:
- an in-process lock per lab id, for workers sharing one interpreter
- a SELECT ... FOR UPDATE on the lab row, for workers sharing one database

The whole block runs in a single transaction that is committed on success
and rolled back on any exception.
"""
import logging
import threading
from contextlib import contextmanager

logger = logging.getLogger(__name__)


class ReservationLocks:
    def __init__(self):
        self._guard = threading.Lock()
        self._locks = {}

    def for_resource(self, resource_id) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(resource_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[resource_id] = lock
            return lock


@contextmanager
def reserve_window(store, locks: ReservationLocks, lab_id):
    lock = locks.for_resource(lab_id)
    with lock:
        try:
            store.lock_lab(lab_id)
            yield
            store.commit()
        except Exception:
            logger.debug("Reservation on lab %s rolled back", lab_id)
            store.rollback()
            raise
