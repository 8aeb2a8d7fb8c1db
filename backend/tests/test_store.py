"""
Tests for the JSON record store:
- missing document reads as an empty database
- corrupt documents raise StoreError instead of returning garbage
- batches are all-or-nothing
- ids come from sequences and are never reused
"""
import json
import os
import pytest

from tblib.store import DOCUMENT_NAME, RecordNotFound, RecordStore, StoreError, TABLES


class TestReads:
    def test_missing_document_is_empty(self, tmp_path):
        store = RecordStore(str(tmp_path / "nowhere"))
        for table in TABLES:
            assert store.select(table) == []
        assert store.revision() == 0

    def test_select_with_filters(self, db_path):
        store = RecordStore(db_path)
        rows = store.select("activity", employee_id=2)
        assert sorted(r["id"] for r in rows) == [3, 4]

    def test_get(self, db_path):
        store = RecordStore(db_path)
        assert store.get("employee", 2)["name"] == "Luis Pérez"
        assert store.get("employee", 999) is None

    def test_unknown_table(self, db_path):
        with pytest.raises(ValueError):
            RecordStore(db_path).select("invoice")

    def test_returned_rows_are_copies(self, db_path):
        store = RecordStore(db_path)
        store.select("employee")[0]["name"] = "changed"
        assert store.get("employee", 1)["name"] == "Ana García"

    def test_corrupt_json(self, tmp_path):
        (tmp_path / DOCUMENT_NAME).write_text("{not json", encoding="utf-8")
        with pytest.raises(StoreError):
            RecordStore(str(tmp_path)).select("employee")

    def test_wrong_shape(self, tmp_path):
        (tmp_path / DOCUMENT_NAME).write_text("[1, 2, 3]", encoding="utf-8")
        with pytest.raises(StoreError):
            RecordStore(str(tmp_path)).revision()

    def test_snapshot_reads_all_tables(self, db_path):
        snap = RecordStore(db_path).snapshot()
        assert snap["revision"] == 1
        assert len(snap["employee"]) == 3
        assert len(snap["project"]) == 3
        assert len(snap["activity"]) == 5


class TestWrites:
    def test_insert_assigns_next_id(self, db_path):
        store = RecordStore(db_path)
        row = store.insert("employee", {"name": "Nuevo"})
        assert row["id"] == 4
        assert store.get("employee", 4)["name"] == "Nuevo"

    def test_ids_not_reused_after_delete(self, db_path):
        store = RecordStore(db_path)
        store.delete("activity", id=5)
        assert store.insert("activity", {"minutes": 1})["id"] == 6

    def test_insert_into_empty_store_creates_document(self, tmp_path):
        path = tmp_path / "fresh"
        store = RecordStore(str(path))
        assert store.insert("project", {"name": "P"})["id"] == 1
        with open(path / DOCUMENT_NAME, encoding="utf-8") as f:
            doc = json.load(f)
        assert doc["revision"] == 1
        assert doc["sequences"]["project"] == 1

    def test_revision_bumps_on_write(self, db_path):
        store = RecordStore(db_path)
        before = store.revision()
        store.update("employee", 1, {"team": "Backend"})
        assert store.revision() == before + 1

    def test_noop_delete_does_not_bump_revision(self, db_path):
        store = RecordStore(db_path)
        before = store.revision()
        assert store.delete("activity", employee_id=999) == 0
        assert store.revision() == before

    def test_update_missing(self, db_path):
        with pytest.raises(RecordNotFound) as excinfo:
            RecordStore(db_path).update("project", 999, {"name": "X"})
        assert excinfo.value.table == "project"
        assert excinfo.value.record_id == 999

    def test_update_cannot_change_id(self, db_path):
        store = RecordStore(db_path)
        row = store.update("employee", 1, {"id": 77, "team": "Ops"})
        assert row["id"] == 1
        assert store.get("employee", 77) is None

    def test_batch_rolls_back_on_error(self, db_path):
        store = RecordStore(db_path)
        with pytest.raises(RuntimeError):
            with store.batch() as b:
                b.delete("activity", project_id=1)
                b.delete("project", id=1)
                raise RuntimeError("boom")
        assert store.get("project", 1) is not None
        assert len(store.select("activity", project_id=1)) == 3
        assert store.revision() == 1

    def test_write_visible_to_other_instances(self, db_path):
        RecordStore(db_path).insert("employee", {"name": "Otro"})
        assert len(RecordStore(db_path).select("employee")) == 4

    def test_no_temp_files_left_behind(self, db_path):
        RecordStore(db_path).insert("employee", {"name": "Otro"})
        leftovers = [n for n in os.listdir(db_path) if n.endswith(".tmp")]
        assert leftovers == []
