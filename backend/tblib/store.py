"""
JSON record store for Timeboard databases.

One database is one directory holding ``timeboard.json``::

    {
      "revision": 12,
      "sequences": {"employee": 4, "project": 2, "activity": 30},
      "tables": {"employee": [...], "project": [...], "activity": [...]}
    }

Write safety:
  • Exclusive fcntl.flock() on the sidecar ``timeboard.lock`` around every write.
  • The whole document is written to a temp file and renamed over the original,
    so a reader sees either the old or the new document, never half of one.
  • ``revision`` is bumped by every committed write; ``sequences`` hands out ids,
    which are never reused after a delete.
"""

import copy
import fcntl
import json
import os
import tempfile
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

TABLES = ('employee', 'project', 'activity')
DOCUMENT_NAME = 'timeboard.json'
LOCK_NAME = 'timeboard.lock'

# ── Global cross-request document cache ─────────────────────────
# Maps document path → (stat signature, document)
_GLOBAL_DOC_CACHE: Dict[str, tuple] = {}


class StoreError(Exception):
    """The record store could not be read or written."""


class RecordNotFound(LookupError):
    """No row with the requested id exists in the table."""

    def __init__(self, table: str, record_id: int):
        super().__init__(f"{table} {record_id} not found")
        self.table = table
        self.record_id = record_id


def _empty_document() -> Dict[str, Any]:
    return {
        'revision': 0,
        'sequences': {t: 0 for t in TABLES},
        'tables': {t: [] for t in TABLES},
    }


def _check_table(table: str) -> None:
    if table not in TABLES:
        raise ValueError(f"Unknown table '{table}'")


def _matches(record: Dict, filters: Dict) -> bool:
    return all(record.get(k) == v for k, v in filters.items())


def _signature(st: os.stat_result) -> tuple:
    return (st.st_ino, st.st_mtime_ns, st.st_size)


class Batch:
    """Writable view of the document inside one locked write.

    Changes are only persisted when the enclosing ``RecordStore.batch()``
    block exits without an exception.
    """

    def __init__(self, doc: Dict[str, Any]):
        self._doc = doc
        self.dirty = False

    def _rows(self, table: str) -> List[Dict]:
        _check_table(table)
        return self._doc['tables'].setdefault(table, [])

    def select(self, table: str, **filters) -> List[Dict]:
        return [dict(r) for r in self._rows(table) if _matches(r, filters)]

    def get(self, table: str, record_id: int) -> Optional[Dict]:
        for r in self._rows(table):
            if r.get('id') == record_id:
                return dict(r)
        return None

    def insert(self, table: str, record: Dict) -> Dict:
        rows = self._rows(table)
        sequences = self._doc.setdefault('sequences', {})
        existing_max = max((r.get('id', 0) or 0 for r in rows), default=0)
        new_id = max(sequences.get(table, 0), existing_max) + 1
        sequences[table] = new_id
        row = {**record, 'id': new_id}
        rows.append(row)
        self.dirty = True
        return dict(row)

    def update(self, table: str, record_id: int, data: Dict) -> Dict:
        for r in self._rows(table):
            if r.get('id') == record_id:
                r.update({k: v for k, v in data.items() if k != 'id'})
                self.dirty = True
                return dict(r)
        raise RecordNotFound(table, record_id)

    def delete(self, table: str, **filters) -> int:
        rows = self._rows(table)
        kept = [r for r in rows if not _matches(r, filters)]
        removed = len(rows) - len(kept)
        if removed:
            rows[:] = kept
            self.dirty = True
        return removed


class RecordStore:
    def __init__(self, db_path: str):
        self.db_path = db_path

    @property
    def document_path(self) -> str:
        return os.path.join(self.db_path, DOCUMENT_NAME)

    def _load(self) -> Dict[str, Any]:
        """Return the current document, using a global stat-based cache.

        A missing document reads as an empty database. The returned object is
        shared with the cache and must not be mutated.
        """
        path = self.document_path
        try:
            st = os.stat(path)
        except FileNotFoundError:
            return _empty_document()
        except OSError as e:
            raise StoreError(f"Cannot stat {path}: {e}") from e

        cached = _GLOBAL_DOC_CACHE.get(path)
        if cached is not None and cached[0] == _signature(st):
            return cached[1]

        try:
            with open(path, 'r', encoding='utf-8') as f:
                doc = json.load(f)
        except (OSError, ValueError) as e:
            raise StoreError(f"Cannot read {path}: {e}") from e
        if not isinstance(doc, dict) or not isinstance(doc.get('tables'), dict):
            raise StoreError(f"{path} is not a Timeboard document")
        _GLOBAL_DOC_CACHE[path] = (_signature(st), doc)
        return doc

    def _dump(self, doc: Dict[str, Any]) -> None:
        path = self.document_path
        fd, tmp_path = tempfile.mkstemp(prefix='.timeboard-', suffix='.tmp', dir=self.db_path)
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(doc, f, ensure_ascii=False, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except OSError as e:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
            raise StoreError(f"Cannot write {path}: {e}") from e
        _GLOBAL_DOC_CACHE[path] = (_signature(os.stat(path)), doc)

    @contextmanager
    def _exclusive_lock(self) -> Iterator[None]:
        try:
            os.makedirs(self.db_path, exist_ok=True)
            f = open(os.path.join(self.db_path, LOCK_NAME), 'a+')
        except OSError as e:
            raise StoreError(f"Cannot lock {self.db_path}: {e}") from e
        with f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)

    # ── Reads ──────────────────────────────────────────────────
    def select(self, table: str, **filters) -> List[Dict]:
        _check_table(table)
        rows = self._load()['tables'].get(table, [])
        return [dict(r) for r in rows if _matches(r, filters)]

    def get(self, table: str, record_id: int) -> Optional[Dict]:
        matches = self.select(table, id=record_id)
        return matches[0] if matches else None

    def revision(self) -> int:
        return self._load().get('revision', 0)

    def snapshot(self) -> Dict[str, Any]:
        """All tables plus the revision they belong to, read from one document."""
        doc = self._load()
        result: Dict[str, Any] = {'revision': doc.get('revision', 0)}
        for t in TABLES:
            result[t] = [dict(r) for r in doc['tables'].get(t, [])]
        return result

    # ── Writes ─────────────────────────────────────────────────
    @contextmanager
    def batch(self) -> Iterator[Batch]:
        """Run several changes as one atomic write.

        Everything done on the yielded ``Batch`` is committed together, or not
        at all if the block raises.
        """
        with self._exclusive_lock():
            doc = copy.deepcopy(self._load())
            batch = Batch(doc)
            yield batch
            if batch.dirty:
                doc['revision'] = doc.get('revision', 0) + 1
                self._dump(doc)

    def insert(self, table: str, record: Dict) -> Dict:
        with self.batch() as b:
            return b.insert(table, record)

    def update(self, table: str, record_id: int, data: Dict) -> Dict:
        with self.batch() as b:
            return b.update(table, record_id, data)

    def delete(self, table: str, **filters) -> int:
        with self.batch() as b:
            return b.delete(table, **filters)
