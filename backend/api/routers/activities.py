"""Activities (time entries) router."""
from fastapi import APIRouter, Query
from pydantic import BaseModel
from typing import Optional
from tblib.entities import EntityKind
from ..dependencies import get_db
from .. import crud

router = APIRouter()

_KIND = EntityKind.ACTIVITY


@router.get(
    "/api/activities",
    tags=["Activities"],
    summary="List activities",
    description=(
        "Return all activities with `employee_name` and `project_name` joined in. "
        "Optionally filter by `employee_id` and/or `project_id`."
    ),
)
def get_activities(
    employee_id: Optional[int] = Query(None, description="Only this employee's activities"),
    project_id: Optional[int] = Query(None, description="Only activities of this project"),
):
    return {"data": get_db().get_activities(employee_id=employee_id, project_id=project_id)}


@router.get("/api/activities/{activity_id}", tags=["Activities"], summary="Get activity by ID")
def get_activity(activity_id: int):
    return crud.get_record(_KIND, activity_id)


class ActivityCreate(BaseModel):
    description: str
    type: str
    minutes: int
    employee_id: int
    project_id: int
    date: str


class ActivityUpdate(BaseModel):
    description: Optional[str] = None
    type: Optional[str] = None
    minutes: Optional[int] = None
    employee_id: Optional[int] = None
    project_id: Optional[int] = None
    date: Optional[str] = None


@router.post("/api/activities", tags=["Activities"], summary="Log activity")
def create_activity(body: ActivityCreate):
    return crud.create_record(_KIND, body.model_dump())


@router.put("/api/activities/{activity_id}", tags=["Activities"], summary="Update activity")
def update_activity(activity_id: int, body: ActivityUpdate):
    return crud.update_record(_KIND, activity_id, body.model_dump(exclude_none=True))


@router.delete("/api/activities/{activity_id}", tags=["Activities"], summary="Delete activity")
def delete_activity(activity_id: int):
    return crud.delete_record(_KIND, activity_id)
