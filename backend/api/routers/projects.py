"""Projects router."""
from fastapi import APIRouter
from pydantic import BaseModel
from typing import Optional
from tblib.entities import EntityKind
from .. import crud

router = APIRouter()

_KIND = EntityKind.PROJECT


@router.get("/api/projects", tags=["Projects"], summary="List projects")
def get_projects():
    return crud.list_records(_KIND)


@router.get("/api/projects/{project_id}", tags=["Projects"], summary="Get project by ID")
def get_project(project_id: int):
    return crud.get_record(_KIND, project_id)


class ProjectCreate(BaseModel):
    name: str
    company: str
    budget: float = 0.0
    start_date: str
    end_date: str


class ProjectUpdate(BaseModel):
    name: Optional[str] = None
    company: Optional[str] = None
    budget: Optional[float] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None


@router.post("/api/projects", tags=["Projects"], summary="Create project",
             description="Dates are `YYYY-MM-DD`; `end_date` may not precede `start_date`.")
def create_project(body: ProjectCreate):
    return crud.create_record(_KIND, body.model_dump())


@router.put("/api/projects/{project_id}", tags=["Projects"], summary="Update project")
def update_project(project_id: int, body: ProjectUpdate):
    return crud.update_record(_KIND, project_id, body.model_dump(exclude_none=True))


@router.delete(
    "/api/projects/{project_id}",
    tags=["Projects"],
    summary="Delete project",
    description="Deletes the project and all of its activities, in one atomic write.",
)
def delete_project(project_id: int):
    return crud.delete_record(_KIND, project_id)
