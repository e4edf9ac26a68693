from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional

from ...core.database import get_db
from ...api.deps import get_admin_user
from ...models.doctor import Specialization
from ...models.user import User
from ...schemas.department import (
    DepartmentCreate, DepartmentResponse, DepartmentUpdate, OfferedService
)
from ...schemas.doctor import DoctorResponse
from ...services.department_service import DepartmentService

router = APIRouter(prefix="/departments", tags=["Departments"])

def _many(departments):
    return {"departments": [DepartmentResponse.model_validate(item) for item in departments]}

@router.get("")
async def list_departments(
    active: Optional[bool] = None,
    emergency: Optional[bool] = None,
    floor: Optional[str] = None,
    db: Session = Depends(get_db)
):
    return _many(DepartmentService(db).list_departments(active, emergency, floor))

@router.get("/active")
async def active_departments(db: Session = Depends(get_db)):
    return _many(DepartmentService(db).active_departments())

@router.get("/emergency")
async def emergency_departments(db: Session = Depends(get_db)):
    return _many(DepartmentService(db).emergency_departments())

@router.get("/code/{code}", response_model=DepartmentResponse)
async def get_department_by_code(code: str, db: Session = Depends(get_db)):
    return DepartmentService(db).get_by_code(code)

@router.get("/{department_id}", response_model=DepartmentResponse)
async def get_department(department_id: int, db: Session = Depends(get_db)):
    return DepartmentService(db).get(department_id)

@router.post("", response_model=DepartmentResponse, status_code=201)
async def create_department(
    department_data: DepartmentCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return DepartmentService(db).create_department(department_data)

@router.put("/{department_id}", response_model=DepartmentResponse)
async def update_department(
    department_id: int,
    department_data: DepartmentUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    department_service = DepartmentService(db)
    return department_service.update_department(department_service.get(department_id), department_data)

@router.delete("/{department_id}")
async def delete_department(
    department_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """Deactivate a department; its doctors keep their assignment."""
    department_service = DepartmentService(db)
    department_service.deactivate(department_service.get(department_id))
    return {"message": "Department deactivated successfully"}

@router.get("/{department_id}/doctors")
async def department_doctors(
    department_id: int,
    available: Optional[bool] = None,
    specialization: Optional[Specialization] = None,
    db: Session = Depends(get_db)
):
    department_service = DepartmentService(db)
    doctors = department_service.doctors(department_service.get(department_id), available, specialization)
    return {"doctors": [DoctorResponse.model_validate(doctor) for doctor in doctors]}

@router.post("/{department_id}/services", response_model=DepartmentResponse)
async def add_department_service(
    department_id: int,
    service: OfferedService,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    department_service = DepartmentService(db)
    return department_service.add_service(department_service.get(department_id), service)

@router.get("/{department_id}/availability")
async def department_availability(department_id: int, db: Session = Depends(get_db)):
    department_service = DepartmentService(db)
    return department_service.availability(department_service.get(department_id), datetime.now())
