from sqlalchemy.orm import Session
from sqlalchemy import func
from fastapi import HTTPException, status
from datetime import datetime
from typing import List, Optional
import logging

from ..models.department import Department, DepartmentStatus
from ..models.doctor import Doctor, DoctorStatus, Specialization
from ..schemas.department import DepartmentCreate, DepartmentUpdate, OfferedService

logger = logging.getLogger(__name__)

class DepartmentService:
    def __init__(self, db: Session):
        self.db = db

    def list_departments(
        self,
        active: Optional[bool] = None,
        emergency: Optional[bool] = None,
        floor: Optional[str] = None
    ) -> List[Department]:
        query = self.db.query(Department)
        if active is not None:
            query = query.filter(Department.is_active == active)
        if emergency is not None:
            query = query.filter(Department.emergency == emergency)
        if floor:
            query = query.filter(Department.floor == floor)
        return query.order_by(Department.name).all()

    def active_departments(self) -> List[Department]:
        return self.db.query(Department).filter(
            Department.is_active.is_(True),
            Department.status == DepartmentStatus.ACTIVE
        ).order_by(Department.name).all()

    def emergency_departments(self) -> List[Department]:
        return self.db.query(Department).filter(
            Department.is_active.is_(True),
            Department.emergency.is_(True)
        ).order_by(Department.name).all()

    def get(self, department_id: int) -> Department:
        department = self.db.query(Department).filter(Department.id == department_id).first()
        if not department:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Department not found"
            )
        return department

    def get_by_code(self, code: str) -> Department:
        department = self.db.query(Department).filter(
            func.upper(Department.department_code) == code.strip().upper()
        ).first()
        if not department:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Department not found"
            )
        return department

    def _ensure_name_free(self, name: str, exclude_id: Optional[int] = None):
        query = self.db.query(Department).filter(func.lower(Department.name) == name.strip().lower())
        if exclude_id is not None:
            query = query.filter(Department.id != exclude_id)
        if query.first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Department with this name already exists"
            )

    def _ensure_head_doctor(self, doctor_id: Optional[int]):
        if doctor_id is not None and not self.db.query(Doctor).filter(Doctor.id == doctor_id).first():
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Head doctor not found"
            )

    def create_department(self, data: DepartmentCreate) -> Department:
        self._ensure_name_free(data.name)
        self._ensure_head_doctor(data.head_doctor_id)

        values = data.model_dump(exclude_none=True)
        department = Department(**values)
        # Column defaults are not applied until flush
        if department.is_active is None:
            department.is_active = True
        if department.status is None:
            department.status = DepartmentStatus.ACTIVE
        department.prepare_for_save()

        self.db.add(department)
        self.db.commit()
        self.db.refresh(department)
        logger.info(f"Created department {department.name} ({department.department_code})")
        return department

    def update_department(self, department: Department, data: DepartmentUpdate) -> Department:
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if changes.get("name"):
            self._ensure_name_free(changes["name"], exclude_id=department.id)
        if "head_doctor_id" in changes:
            self._ensure_head_doctor(changes["head_doctor_id"])

        for field, value in changes.items():
            setattr(department, field, value)
        if "services" in changes:
            department.service_list = [service.get("name") for service in department.services or []]
        department.prepare_for_save()

        self.db.commit()
        self.db.refresh(department)
        logger.info(f"Updated department {department.name}: {sorted(changes)}")
        return department

    def deactivate(self, department: Department) -> Department:
        department.is_active = False
        department.prepare_for_save()
        self.db.commit()
        self.db.refresh(department)
        logger.info(f"Deactivated department {department.name}")
        return department

    def doctors(
        self,
        department: Department,
        available: Optional[bool] = None,
        specialization: Optional[Specialization] = None
    ) -> List[Doctor]:
        query = self.db.query(Doctor).filter(
            Doctor.department_id == department.id,
            Doctor.status == DoctorStatus.ACTIVE
        )
        if available is not None:
            query = query.filter(Doctor.is_available == available)
        if specialization:
            query = query.filter(Doctor.specialization == specialization)
        return query.order_by(Doctor.rating_average.desc(), Doctor.name).all()

    def add_service(self, department: Department, service: OfferedService) -> Department:
        department.add_service(service.model_dump())
        self.db.commit()
        self.db.refresh(department)
        logger.info(f"Added service {service.name} to {department.name}")
        return department

    def availability(self, department: Department, now: datetime) -> dict:
        available_doctors = self.db.query(Doctor).filter(
            Doctor.department_id == department.id,
            Doctor.status == DoctorStatus.ACTIVE,
            Doctor.is_available.is_(True)
        ).count()
        return {
            "department_id": department.id,
            "name": department.name,
            "is_open": department.is_open_now(now),
            "current_status": department.current_status,
            "emergency": department.emergency,
            "operating_hours": department.formatted_hours,
            "available_doctors": available_doctors
        }
