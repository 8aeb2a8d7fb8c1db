"""Reports router: chart datasets and summary statistics for the dashboard."""
from fastapi import APIRouter, Depends, Request
from tblib import reporting
from tblib.snapshot import Snapshot, SnapshotCache
from ..dependencies import get_db, get_snapshot_cache, limiter, DASHBOARD_RATE_LIMIT

router = APIRouter(prefix="/api/reports", tags=["Reports"])


def current_snapshot(cache: SnapshotCache = Depends(get_snapshot_cache)) -> Snapshot:
    """Dependency: the latest snapshot of employees, projects and activities."""
    return cache.get(get_db())


@router.get(
    "/dashboard",
    summary="All dashboard charts",
    description="The four chart datasets computed from a single snapshot.",
)
@limiter.limit(DASHBOARD_RATE_LIMIT)
def get_dashboard(request: Request, snap: Snapshot = Depends(current_snapshot)):
    charts = reporting.dashboard_charts(snap.employees, snap.projects, snap.activities)
    return {"data": charts, "revision": snap.revision}


@router.get(
    "/project-costs",
    summary="Cost per project",
    description="Cost = Σ minutes / 60 × hourly rate of the employee who logged the activity.",
)
def get_project_costs(snap: Snapshot = Depends(current_snapshot)):
    summaries = reporting.summarize_projects(snap.projects, snap.activities, snap.employees)
    return {"data": reporting.project_costs_chart(summaries)}


@router.get(
    "/project-profitability",
    summary="Budget vs. cost per project",
    description="Profitability = budget − cost. Negative values mean the project is over budget.",
)
def get_project_profitability(snap: Snapshot = Depends(current_snapshot)):
    summaries = reporting.summarize_projects(snap.projects, snap.activities, snap.employees)
    return {"data": reporting.project_profitability_chart(summaries)}


@router.get("/project-hours", summary="Hours per project")
def get_project_hours(snap: Snapshot = Depends(current_snapshot)):
    summaries = reporting.summarize_projects(snap.projects, snap.activities, snap.employees)
    return {"data": reporting.project_hours_chart(summaries)}


@router.get(
    "/employee-workload",
    summary="Hours per employee per week",
    description=(
        "`data.data` rows hold one key per week label (`Semana N`) the employee worked in, plus `total`. "
        "`data.weeks` lists every label, sorted by week number; a missing key means zero hours."
    ),
)
def get_employee_workload(snap: Snapshot = Depends(current_snapshot)):
    workload = reporting.summarize_workload(snap.employees, snap.activities)
    return {"data": reporting.employee_workload_chart(workload)}


@router.get("/projects", summary="Project summaries (unrounded)")
def get_project_summaries(snap: Snapshot = Depends(current_snapshot)):
    summaries = reporting.summarize_projects(snap.projects, snap.activities, snap.employees)
    return {"data": [s.as_dict() for s in summaries]}


@router.get("/employees", summary="Employee summaries (unrounded)")
def get_employee_summaries(snap: Snapshot = Depends(current_snapshot)):
    return {"data": reporting.summarize_employees(snap.employees, snap.activities)}
