"""
Cost, profitability and workload aggregation for the dashboard charts.

All functions here are pure: they take record lists (one snapshot of the
store) and build new structures from them. Money and hours are accumulated
unrounded; rounding to two decimals happens only in the ``*_chart``
builders, which are the presentation boundary.
"""
import math
from dataclasses import asdict, dataclass
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Dict, List, Optional, Tuple

from .entities import parse_iso_date
from .types import ActivityList, ActivityRecord, EmployeeList, ProjectList

WEEK_LABEL_PREFIX = 'Semana'
_CENTS = Decimal('0.01')


class InvalidDateError(ValueError):
    """An activity date could not be turned into a week number."""

    def __init__(self, value: Any, activity_id: Optional[int] = None):
        self.value = value
        self.activity_id = activity_id
        where = f" (activity {activity_id})" if activity_id is not None else ''
        super().__init__(f"Invalid activity date {value!r}{where}")


class NonFiniteAmountError(ValueError):
    """An aggregate grew past what a float can hold."""

    def __init__(self, value: float):
        self.value = value
        super().__init__(f"Aggregate out of range: {value!r}")


# ── Cost ───────────────────────────────────────────────────────
def _hourly_rates(employees: EmployeeList) -> Dict[Any, float]:
    rates: Dict[Any, float] = {}
    for e in employees:
        rates.setdefault(e.get('id'), e.get('hourly_rate', 0) or 0)
    return rates


def _hours(activity: ActivityRecord) -> float:
    return (activity.get('minutes', 0) or 0) / 60


def calculate_cost(activities: ActivityList, employees: EmployeeList) -> float:
    """Sum of (minutes / 60) * hourly_rate over all activities.

    Activities whose employee is not in ``employees`` add nothing.
    """
    rates = _hourly_rates(employees)
    total = 0.0
    for a in activities:
        rate = rates.get(a.get('employee_id'))
        if rate is None:
            continue
        total += _hours(a) * rate
    return total


# ── Projects ───────────────────────────────────────────────────
@dataclass(frozen=True)
class ProjectSummary:
    project_id: Any
    name: str
    budget: float
    cost: float
    hours: float
    profitability: float
    activity_count: int

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _group_by(activities: ActivityList, key: str) -> Dict[Any, ActivityList]:
    groups: Dict[Any, ActivityList] = {}
    for a in activities:
        groups.setdefault(a.get(key), []).append(a)
    return groups


def summarize_projects(
    projects: ProjectList,
    activities: ActivityList,
    employees: EmployeeList,
) -> List[ProjectSummary]:
    """One summary per project, in the order the projects were given."""
    by_project = _group_by(activities, 'project_id')
    result = []
    for p in projects:
        subset = by_project.get(p.get('id'), [])
        budget = p.get('budget', 0) or 0
        cost = calculate_cost(subset, employees)
        result.append(ProjectSummary(
            project_id=p.get('id'),
            name=p.get('name', ''),
            budget=budget,
            cost=cost,
            hours=sum(a.get('minutes', 0) or 0 for a in subset) / 60,
            profitability=budget - cost,
            activity_count=len(subset),
        ))
    return result


# ── Employees ──────────────────────────────────────────────────
def summarize_employees(employees: EmployeeList, activities: ActivityList) -> List[Dict[str, Any]]:
    """Per-employee totals: hours, cost, activity count, distinct projects."""
    by_employee = _group_by(activities, 'employee_id')
    result = []
    for e in employees:
        subset = by_employee.get(e.get('id'), [])
        rate = e.get('hourly_rate', 0) or 0
        hours = sum(_hours(a) for a in subset)
        result.append({
            'employee_id': e.get('id'),
            'name': e.get('name', ''),
            'team': e.get('team', ''),
            'total_hours': hours,
            'cost': hours * rate,
            'activity_count': len(subset),
            'project_count': len({a.get('project_id') for a in subset}),
        })
    return result


# ── Weeks ──────────────────────────────────────────────────────
def week_number(value: Any) -> int:
    """Week of the year, counted by the week's Thursday.

    The date is moved to the Thursday of its Monday-based week; the week
    number is ceil((days since Jan 1 of that Thursday's year + 1) / 7).
    """
    try:
        d = parse_iso_date(value)
    except ValueError as e:
        raise InvalidDateError(value) from e
    thursday = d + timedelta(days=4 - d.isoweekday())
    year_start = date(thursday.year, 1, 1)
    return math.ceil(((thursday - year_start).days + 1) / 7)


def week_label(value: Any) -> str:
    return f"{WEEK_LABEL_PREFIX} {week_number(value)}"


def week_sort_key(label: str) -> int:
    return int(label.split(' ')[1])


def _labelled(activities: ActivityList) -> List[Tuple[ActivityRecord, str]]:
    pairs = []
    for a in activities:
        try:
            pairs.append((a, week_label(a.get('date'))))
        except InvalidDateError as e:
            raise InvalidDateError(a.get('date'), a.get('id')) from e
    return pairs


def summarize_workload(employees: EmployeeList, activities: ActivityList) -> Dict[str, Any]:
    """Hours per employee per week.

    Returns ``{"data": rows, "weeks": labels}``. ``weeks`` holds every week
    label seen in ``activities``, sorted by week number. Each row carries
    ``employee_id``, ``name``, one key per week the employee worked in and
    ``total``. Weeks without activities are left out of the row, so readers
    must treat a missing week as zero.

    Raises InvalidDateError naming the activity whose date cannot be parsed.
    """
    pairs = _labelled(activities)
    weeks = sorted({label for _, label in pairs}, key=week_sort_key)

    per_employee: Dict[Any, Dict[str, float]] = {}
    for a, label in pairs:
        hours = per_employee.setdefault(a.get('employee_id'), {})
        hours[label] = hours.get(label, 0.0) + _hours(a)

    rows = []
    for e in employees:
        hours = per_employee.get(e.get('id'), {})
        row: Dict[str, Any] = {'employee_id': e.get('id'), 'name': e.get('name', '')}
        for w in weeks:
            if w in hours:
                row[w] = hours[w]
        row['total'] = sum(hours.values())
        rows.append(row)
    return {'data': rows, 'weeks': weeks}


# ── Chart datasets (presentation boundary) ─────────────────────
def _money(value: float) -> float:
    """Two decimals, ties rounded away from zero (12.125 → 12.13)."""
    if not math.isfinite(value):
        raise NonFiniteAmountError(value)
    return float(Decimal(value).quantize(_CENTS, rounding=ROUND_HALF_UP))


def project_costs_chart(summaries: List[ProjectSummary]) -> List[Dict[str, Any]]:
    return [{'name': s.name, 'value': _money(s.cost)} for s in summaries]


def project_profitability_chart(summaries: List[ProjectSummary]) -> List[Dict[str, Any]]:
    return [
        {
            'name': s.name,
            'budget': _money(s.budget),
            'cost': _money(s.cost),
            'profitability': _money(s.profitability),
        }
        for s in summaries
    ]


def project_hours_chart(summaries: List[ProjectSummary]) -> List[Dict[str, Any]]:
    return [{'name': s.name, 'value': _money(s.hours)} for s in summaries]


def employee_workload_chart(workload: Dict[str, Any]) -> Dict[str, Any]:
    weeks = workload['weeks']
    data = []
    for row in workload['data']:
        out = {'employee_id': row['employee_id'], 'name': row['name']}
        for w in weeks:
            if w in row:
                out[w] = _money(row[w])
        out['total'] = _money(row['total'])
        data.append(out)
    return {'data': data, 'weeks': list(weeks)}


def dashboard_charts(
    employees: EmployeeList,
    projects: ProjectList,
    activities: ActivityList,
) -> Dict[str, Any]:
    """All four chart datasets computed from one snapshot."""
    summaries = summarize_projects(projects, activities, employees)
    return {
        'project_costs': project_costs_chart(summaries),
        'project_profitability': project_profitability_chart(summaries),
        'project_hours': project_hours_chart(summaries),
        'employee_workload': employee_workload_chart(summarize_workload(employees, activities)),
    }
