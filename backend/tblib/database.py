"""
High-level database access for Timeboard record stores.
"""
from typing import Any, Dict, List, Optional

from .entities import (
    BrokenReferenceError,
    EntityKind,
    Rule,
    spec_for,
    validate_record,
)
from .store import Batch, RecordNotFound, RecordStore


def _by_id(rows: List[Dict]) -> List[Dict]:
    return sorted(rows, key=lambda r: r.get('id', 0) or 0)


def _join_activity_names(activities: List[Dict], employees: List[Dict], projects: List[Dict]) -> List[Dict]:
    emp_names = {e.get('id'): e.get('name') for e in employees}
    proj_names = {p.get('id'): p.get('name') for p in projects}
    for a in activities:
        a['employee_name'] = emp_names.get(a.get('employee_id'))
        a['project_name'] = proj_names.get(a.get('project_id'))
    return activities


class TimeboardDatabase:
    def __init__(self, db_path: str):
        self.db_path = db_path
        self.store = RecordStore(db_path)

    # ── Employees ──────────────────────────────────────────────
    def get_employees(self) -> List[Dict]:
        return _by_id(self.store.select('employee'))

    def get_employee(self, emp_id: int) -> Optional[Dict]:
        return self.store.get('employee', emp_id)

    # ── Projects ───────────────────────────────────────────────
    def get_projects(self) -> List[Dict]:
        return _by_id(self.store.select('project'))

    def get_project(self, project_id: int) -> Optional[Dict]:
        return self.store.get('project', project_id)

    # ── Activities ─────────────────────────────────────────────
    def get_activities(self, employee_id: Optional[int] = None,
                       project_id: Optional[int] = None) -> List[Dict]:
        """Activities with ``employee_name`` and ``project_name`` joined in."""
        snap = self.store.snapshot()
        rows = snap['activity']
        if employee_id is not None:
            rows = [a for a in rows if a.get('employee_id') == employee_id]
        if project_id is not None:
            rows = [a for a in rows if a.get('project_id') == project_id]
        return _join_activity_names(_by_id(rows), snap['employee'], snap['project'])

    def get_activity(self, activity_id: int) -> Optional[Dict]:
        snap = self.store.snapshot()
        for a in snap['activity']:
            if a.get('id') == activity_id:
                return _join_activity_names([a], snap['employee'], snap['project'])[0]
        return None

    # ── Snapshot ───────────────────────────────────────────────
    def revision(self) -> int:
        return self.store.revision()

    def snapshot(self) -> Dict[str, Any]:
        """Employees, projects and activities read together, plus the revision."""
        snap = self.store.snapshot()
        return {
            'revision': snap['revision'],
            'employees': _by_id(snap['employee']),
            'projects': _by_id(snap['project']),
            'activities': _by_id(snap['activity']),
        }

    def get_stats(self) -> Dict[str, int]:
        snap = self.store.snapshot()
        return {
            'employees': len(snap['employee']),
            'projects': len(snap['project']),
            'activities': len(snap['activity']),
            'revision': snap['revision'],
        }

    # ── Generic entity access ──────────────────────────────────
    def list_entities(self, kind: EntityKind) -> List[Dict]:
        match kind:
            case EntityKind.EMPLOYEE:
                return self.get_employees()
            case EntityKind.PROJECT:
                return self.get_projects()
            case EntityKind.ACTIVITY:
                return self.get_activities()
        raise ValueError(f"Unknown entity kind {kind!r}")

    def get_entity(self, kind: EntityKind, record_id: int) -> Optional[Dict]:
        if kind == EntityKind.ACTIVITY:
            return self.get_activity(record_id)
        return self.store.get(spec_for(kind).table, record_id)

    def _check_references(self, batch: Batch, kind: EntityKind, record: Dict) -> None:
        errors = {}
        for field in spec_for(kind).fields:
            if field.rule != Rule.REFERENCE:
                continue
            target = spec_for(field.references)
            if batch.get(target.table, record[field.name]) is None:
                errors[field.name] = f"{target.label} {record[field.name]} no existe"
        if errors:
            raise BrokenReferenceError(kind, errors)

    def create_entity(self, kind: EntityKind, data: Dict) -> Dict:
        """Validate and insert a new record. Returns it with its new id."""
        spec = spec_for(kind)
        record = validate_record(kind, data)
        with self.store.batch() as b:
            self._check_references(b, kind, record)
            return b.insert(spec.table, record)

    def update_entity(self, kind: EntityKind, record_id: int, data: Dict) -> Dict:
        """Apply the non-None fields of ``data`` to an existing record.

        The merged record is validated as a whole, so e.g. a new end_date is
        checked against the stored start_date.
        """
        spec = spec_for(kind)
        with self.store.batch() as b:
            existing = b.get(spec.table, record_id)
            if existing is None:
                raise RecordNotFound(spec.table, record_id)
            merged = {k: existing.get(k) for k in spec.field_names}
            merged.update({k: v for k, v in data.items() if v is not None and k in spec.field_names})
            record = validate_record(kind, merged)
            self._check_references(b, kind, record)
            return b.update(spec.table, record_id, record)

    def delete_entity(self, kind: EntityKind, record_id: int) -> Dict[str, Any]:
        """Delete a record together with every record that depends on it.

        Dependents and the record itself go in one atomic store write: if
        anything fails, nothing is deleted.
        """
        spec = spec_for(kind)
        with self.store.batch() as b:
            if b.get(spec.table, record_id) is None:
                raise RecordNotFound(spec.table, record_id)
            cascaded = {}
            for dep_kind, fk in spec.dependents:
                dep_table = spec_for(dep_kind).table
                cascaded[dep_table] = cascaded.get(dep_table, 0) + b.delete(dep_table, **{fk: record_id})
            deleted = b.delete(spec.table, id=record_id)
        return {'deleted': deleted, 'cascaded': cascaded}
