"""Employees router."""
from fastapi import APIRouter
from pydantic import BaseModel
from typing import Optional
from tblib.entities import EntityKind
from .. import crud

router = APIRouter()

_KIND = EntityKind.EMPLOYEE


@router.get("/api/employees", tags=["Employees"], summary="List employees")
def get_employees():
    return crud.list_records(_KIND)


@router.get("/api/employees/{emp_id}", tags=["Employees"], summary="Get employee by ID")
def get_employee(emp_id: int):
    return crud.get_record(_KIND, emp_id)


# ── Write ─────────────────────────────────────────────────────

class EmployeeCreate(BaseModel):
    name: str
    email: str
    team: str
    hourly_rate: float = 0.0


class EmployeeUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    team: Optional[str] = None
    hourly_rate: Optional[float] = None


@router.post("/api/employees", tags=["Employees"], summary="Create employee")
def create_employee(body: EmployeeCreate):
    return crud.create_record(_KIND, body.model_dump())


@router.put("/api/employees/{emp_id}", tags=["Employees"], summary="Update employee",
            description="Only the fields sent are changed.")
def update_employee(emp_id: int, body: EmployeeUpdate):
    return crud.update_record(_KIND, emp_id, body.model_dump(exclude_none=True))


@router.delete(
    "/api/employees/{emp_id}",
    tags=["Employees"],
    summary="Delete employee",
    description="Deletes the employee and every activity logged by them, in one atomic write.",
)
def delete_employee(emp_id: int):
    return crud.delete_record(_KIND, emp_id)
