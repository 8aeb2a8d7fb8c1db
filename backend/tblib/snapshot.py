"""
Explicit cache of the records the dashboard aggregates over.

Report endpoints get a ``SnapshotCache`` injected and hand the snapshot's
lists to the pure functions in ``tblib.reporting``. Write endpoints call
``invalidate()``; a write from another process is picked up through the
store revision.
"""
import threading
from dataclasses import dataclass
from typing import Optional

from .types import ActivityList, EmployeeList, ProjectList


@dataclass(frozen=True)
class Snapshot:
    employees: EmployeeList
    projects: ProjectList
    activities: ActivityList
    revision: int


class SnapshotCache:
    def __init__(self):
        self._lock = threading.Lock()
        self._snapshot: Optional[Snapshot] = None
        self._db_path: Optional[str] = None
        self.fetches = 0

    def invalidate(self) -> None:
        with self._lock:
            self._snapshot = None

    def get(self, db) -> Snapshot:
        """Return the cached snapshot of ``db``, fetching a new one if stale."""
        revision = db.revision()
        with self._lock:
            snap = self._snapshot
            if snap is not None and self._db_path == db.db_path and snap.revision == revision:
                return snap

        data = db.snapshot()
        snap = Snapshot(
            employees=data['employees'],
            projects=data['projects'],
            activities=data['activities'],
            revision=data['revision'],
        )
        with self._lock:
            self._snapshot = snap
            self._db_path = db.db_path
            self.fetches += 1
        return snap
