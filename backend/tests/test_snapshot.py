"""SnapshotCache: re-fetch on invalidate, foreign writes and path changes."""
import shutil

from tblib.database import TimeboardDatabase
from tblib.snapshot import SnapshotCache


def test_second_get_is_cached(db):
    cache = SnapshotCache()
    first = cache.get(db)
    assert cache.get(db) is first
    assert cache.fetches == 1


def test_invalidate_forces_fetch(db):
    cache = SnapshotCache()
    cache.get(db)
    cache.invalidate()
    cache.get(db)
    assert cache.fetches == 2


def test_foreign_write_bumps_revision(db, db_path):
    cache = SnapshotCache()
    assert len(cache.get(db).employees) == 3
    TimeboardDatabase(db_path).store.insert('employee', {'name': 'Externa'})
    snap = cache.get(db)
    assert len(snap.employees) == 4
    assert snap.revision == 2


def test_other_database_not_served_from_cache(db, db_path, tmp_path):
    other_path = tmp_path / "other"
    shutil.copytree(db_path, str(other_path))
    other = TimeboardDatabase(str(other_path))
    other.store.delete('activity', id=1)
    db.store.update('employee', 1, {'team': 'Soporte'})
    assert other.revision() == db.revision()

    cache = SnapshotCache()
    cache.get(db)
    snap = cache.get(other)
    assert cache.fetches == 2
    assert [a['id'] for a in snap.activities] == [2, 3, 4, 5]


def test_snapshot_lists_are_sorted(db):
    snap = SnapshotCache().get(db)
    assert [p['id'] for p in snap.projects] == [1, 2, 3]
    assert [a['id'] for a in snap.activities] == [1, 2, 3, 4, 5]
