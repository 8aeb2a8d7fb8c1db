"""
Entity registry: the three record kinds and how each one is stored,
addressed and validated.

Every kind maps to an ``EntitySpec`` holding its store table, API endpoint,
form fields with their validation rule, and the dependent kinds that are
deleted along with it.
"""
import math
import re
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, Optional, Tuple

_EMAIL_RE = re.compile(r'^[^@\s]+@[^@\s]+\.[^@\s]+$')
_DATE_RE = re.compile(r'^\d{4}-\d{2}-\d{2}(?:[T ]|$)')

# Upper bounds for money amounts and activity minutes
MAX_AMOUNT = 1_000_000_000
MAX_MINUTES = 1_000_000


class EntityKind(str, Enum):
    EMPLOYEE = 'employee'
    PROJECT = 'project'
    ACTIVITY = 'activity'

    @classmethod
    def parse(cls, value: str) -> 'EntityKind':
        """Accept singular or plural names: 'project', 'projects', 'activities'."""
        key = (value or '').strip().lower()
        for kind in cls:
            if key in (kind.value, spec_for(kind).endpoint):
                return kind
        raise ValueError(f"Unknown entity type '{value}'")


class Rule(str, Enum):
    REQUIRED = 'required'
    EMAIL = 'email'
    NON_NEGATIVE = 'non_negative'
    POSITIVE_INT = 'positive_int'
    DATE = 'date'
    REFERENCE = 'reference'


@dataclass(frozen=True)
class FieldSpec:
    name: str
    label: str
    rule: Rule
    references: Optional[EntityKind] = None
    maximum: Optional[float] = None


@dataclass(frozen=True)
class EntitySpec:
    kind: EntityKind
    table: str
    endpoint: str
    label: str
    fields: Tuple[FieldSpec, ...]
    # (dependent kind, foreign key field) pairs removed before the record itself
    dependents: Tuple[Tuple[EntityKind, str], ...] = ()

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(f.name for f in self.fields)


class FieldValidationError(ValueError):
    """One or more fields failed validation. ``errors`` maps field → message."""

    def __init__(self, kind: EntityKind, errors: Dict[str, str]):
        self.kind = kind
        self.errors = dict(errors)
        super().__init__("; ".join(f"{k}: {v}" for k, v in self.errors.items()))


class BrokenReferenceError(FieldValidationError):
    """A foreign key points at a record that does not exist."""


_EMPLOYEE = EntitySpec(
    kind=EntityKind.EMPLOYEE,
    table='employee',
    endpoint='employees',
    label='Empleado',
    fields=(
        FieldSpec('name', 'El nombre', Rule.REQUIRED),
        FieldSpec('email', 'El correo electrónico', Rule.EMAIL),
        FieldSpec('team', 'El equipo', Rule.REQUIRED),
        FieldSpec('hourly_rate', 'El costo por hora', Rule.NON_NEGATIVE, maximum=MAX_AMOUNT),
    ),
    dependents=((EntityKind.ACTIVITY, 'employee_id'),),
)

_PROJECT = EntitySpec(
    kind=EntityKind.PROJECT,
    table='project',
    endpoint='projects',
    label='Proyecto',
    fields=(
        FieldSpec('name', 'El nombre', Rule.REQUIRED),
        FieldSpec('company', 'La compañía', Rule.REQUIRED),
        FieldSpec('budget', 'El presupuesto', Rule.NON_NEGATIVE, maximum=MAX_AMOUNT),
        FieldSpec('start_date', 'La fecha de inicio', Rule.DATE),
        FieldSpec('end_date', 'La fecha de fin', Rule.DATE),
    ),
    dependents=((EntityKind.ACTIVITY, 'project_id'),),
)

_ACTIVITY = EntitySpec(
    kind=EntityKind.ACTIVITY,
    table='activity',
    endpoint='activities',
    label='Actividad',
    fields=(
        FieldSpec('date', 'La fecha', Rule.DATE),
        FieldSpec('description', 'La descripción', Rule.REQUIRED),
        FieldSpec('type', 'El tipo', Rule.REQUIRED),
        FieldSpec('minutes', 'Los minutos', Rule.POSITIVE_INT, maximum=MAX_MINUTES),
        FieldSpec('employee_id', 'El empleado', Rule.REFERENCE, references=EntityKind.EMPLOYEE),
        FieldSpec('project_id', 'El proyecto', Rule.REFERENCE, references=EntityKind.PROJECT),
    ),
)


def spec_for(kind: EntityKind) -> EntitySpec:
    match kind:
        case EntityKind.EMPLOYEE:
            return _EMPLOYEE
        case EntityKind.PROJECT:
            return _PROJECT
        case EntityKind.ACTIVITY:
            return _ACTIVITY
    raise ValueError(f"Unknown entity kind {kind!r}")


def parse_iso_date(value: Any) -> date:
    """Parse 'YYYY-MM-DD' (or an ISO timestamp starting with it) into a date.

    Raises ValueError for anything else, including empty values and the
    compact or week-based ISO forms ('20240129', '2024-W05-1').
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not _DATE_RE.match(value.strip()):
        raise ValueError(f"Invalid date: {value!r}")
    text = value.strip()
    try:
        return date.fromisoformat(text)
    except ValueError:
        return datetime.fromisoformat(text).date()


def _is_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return True
    return isinstance(value, float) and math.isfinite(value)


def _too_large(field: FieldSpec, value: Any) -> bool:
    return field.maximum is not None and value > field.maximum


def _check_field(field: FieldSpec, value: Any) -> Optional[str]:
    """Return an error message for value, or None when it passes."""
    match field.rule:
        case Rule.REQUIRED:
            if not isinstance(value, str) or not value.strip():
                return f"{field.label} es requerido"
        case Rule.EMAIL:
            if not isinstance(value, str) or not _EMAIL_RE.match(value.strip()):
                return "Correo electrónico inválido"
        case Rule.NON_NEGATIVE:
            if not _is_number(value) or value < 0:
                return f"{field.label} debe ser un número positivo"
            if _too_large(field, value):
                return f"{field.label} no puede ser mayor que {field.maximum}"
        case Rule.POSITIVE_INT:
            if not _is_number(value) or int(value) != value or value <= 0:
                return f"{field.label} debe ser un número positivo"
            if _too_large(field, value):
                return f"{field.label} no puede ser mayor que {field.maximum}"
        case Rule.DATE:
            try:
                parse_iso_date(value)
            except ValueError:
                return f"{field.label} debe tener el formato AAAA-MM-DD"
        case Rule.REFERENCE:
            if not _is_number(value) or int(value) != value:
                return f"{field.label} es requerido"
    return None


def validate_record(kind: EntityKind, data: Dict[str, Any]) -> Dict[str, Any]:
    """Validate a complete record of the given kind.

    Returns a cleaned copy holding only the kind's fields: strings stripped,
    integer fields as int, dates as 'YYYY-MM-DD'. Raises FieldValidationError
    listing every failing field. Reference existence is not checked here.
    """
    spec = spec_for(kind)
    errors: Dict[str, str] = {}
    cleaned: Dict[str, Any] = {}
    for field in spec.fields:
        value = data.get(field.name)
        msg = _check_field(field, value)
        if msg:
            errors[field.name] = msg
            continue
        if isinstance(value, str):
            value = value.strip()
        if field.rule in (Rule.POSITIVE_INT, Rule.REFERENCE):
            value = int(value)
        elif field.rule == Rule.NON_NEGATIVE:
            value = float(value)
        elif field.rule == Rule.DATE:
            value = parse_iso_date(value).isoformat()
        cleaned[field.name] = value

    if kind == EntityKind.PROJECT and 'start_date' in cleaned and 'end_date' in cleaned:
        if parse_iso_date(cleaned['end_date']) < parse_iso_date(cleaned['start_date']):
            errors['end_date'] = "La fecha de fin debe ser posterior a la fecha de inicio"

    if errors:
        raise FieldValidationError(kind, errors)
    return cleaned
