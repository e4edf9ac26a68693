from sqlalchemy.orm import Session
from sqlalchemy import String, cast, func, or_
from fastapi import HTTPException, status
from datetime import date
from typing import List, Optional, Tuple
import logging

from ..models.doctor import Doctor, DoctorStatus, Specialization, specialty_label
from ..models.department import Department
from ..models.user import User
from ..core.security import UserRole, get_password_hash
from ..schemas.doctor import AvailabilityUpdate, DoctorCreate, DoctorUpdate, Qualification
from .appointment_service import find_conflicts
from .scheduling import format_time_for_display, parse_time

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "rating": Doctor.rating_average,
    "experience": Doctor.years_of_experience,
    "name": Doctor.name,
    "fee": Doctor.consultation_fee,
}

# Fields only an admin may change
ADMIN_ONLY_FIELDS = {"verified", "status", "license_number"}

def check_hours(doctor: Doctor, changes: dict):
    """Validate the working day that results from applying changes to a doctor."""
    start = parse_time(changes.get("start_time") or doctor.start_time)
    end = parse_time(changes.get("end_time") or doctor.end_time)
    break_start = parse_time(changes.get("break_start") or doctor.break_start)
    break_end = parse_time(changes.get("break_end") or doctor.break_end)

    if start >= end:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="End time must be after start time"
        )
    if not start <= break_start < break_end <= end:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Break must fall within working hours"
        )

class DoctorService:
    def __init__(self, db: Session):
        self.db = db

    def list_doctors(
        self,
        specialization: Optional[Specialization] = None,
        department_id: Optional[int] = None,
        search: Optional[str] = None,
        min_experience: Optional[int] = None,
        min_rating: Optional[float] = None,
        language: Optional[str] = None,
        available: Optional[bool] = None,
        verified: Optional[bool] = None,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "rating",
        order: str = "desc"
    ) -> Tuple[List[Doctor], int]:
        query = self.db.query(Doctor).filter(Doctor.status == DoctorStatus.ACTIVE)

        if specialization:
            query = query.filter(Doctor.specialization == specialization)
        if department_id:
            query = query.filter(Doctor.department_id == department_id)
        if min_experience is not None:
            query = query.filter(Doctor.years_of_experience >= min_experience)
        if min_rating is not None:
            query = query.filter(Doctor.rating_average >= min_rating)
        if language:
            query = query.filter(cast(Doctor.languages, String).ilike(f"%{language}%"))
        if available is not None:
            query = query.filter(Doctor.is_available == available)
        if verified is not None:
            query = query.filter(Doctor.verified == verified)
        if search:
            pattern = f"%{search}%"
            matching_specialties = [
                item for item in Specialization if search.lower() in item.value
            ]
            conditions = [
                Doctor.name.ilike(pattern),
                Doctor.bio.ilike(pattern),
                cast(Doctor.qualifications, String).ilike(pattern),
            ]
            if matching_specialties:
                conditions.append(Doctor.specialization.in_(matching_specialties))
            query = query.filter(or_(*conditions))

        total = query.count()
        column = SORT_FIELDS.get(sort_by, Doctor.rating_average)
        query = query.order_by(column.asc() if order == "asc" else column.desc(), Doctor.id)
        return query.offset((page - 1) * limit).limit(limit).all(), total

    def available_doctors(self) -> List[Doctor]:
        return self.db.query(Doctor).filter(
            Doctor.status == DoctorStatus.ACTIVE,
            Doctor.is_available.is_(True),
            Doctor.verified.is_(True)
        ).order_by(Doctor.rating_average.desc(), Doctor.years_of_experience.desc()).all()

    def specialties(self) -> List[dict]:
        rows = self.db.query(Doctor.specialization, func.count(Doctor.id)).filter(
            Doctor.status == DoctorStatus.ACTIVE
        ).group_by(Doctor.specialization).all()

        result = []
        for specialization, count in rows:
            specialization = Specialization(specialization)
            result.append({
                "value": specialization.value,
                "label": specialty_label(specialization),
                "count": count
            })
        return sorted(result, key=lambda item: (-item["count"], item["value"]))

    def stats(self) -> dict:
        total = self.db.query(Doctor).count()
        active = self.db.query(Doctor).filter(Doctor.status == DoctorStatus.ACTIVE).count()
        available = self.db.query(Doctor).filter(
            Doctor.status == DoctorStatus.ACTIVE, Doctor.is_available.is_(True)
        ).count()
        verified = self.db.query(Doctor).filter(Doctor.verified.is_(True)).count()
        average = self.db.query(func.avg(Doctor.rating_average)).filter(
            Doctor.rating_total_reviews > 0
        ).scalar()

        by_specialization = {
            Specialization(specialization).value: count
            for specialization, count in self.db.query(
                Doctor.specialization, func.count(Doctor.id)
            ).group_by(Doctor.specialization).all()
        }

        return {
            "total": total,
            "active": active,
            "available": available,
            "verified": verified,
            "average_rating": round(average, 1) if average else 0,
            "by_specialization": by_specialization
        }

    def by_department(self, department_id: int) -> List[Doctor]:
        return self.db.query(Doctor).filter(
            Doctor.department_id == department_id,
            Doctor.status == DoctorStatus.ACTIVE
        ).order_by(Doctor.rating_average.desc(), Doctor.name).all()

    def get(self, doctor_id: int) -> Doctor:
        doctor = self.db.query(Doctor).filter(Doctor.id == doctor_id).first()
        if not doctor:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Doctor not found"
            )
        return doctor

    def get_by_code(self, doctor_code: str) -> Doctor:
        doctor = self.db.query(Doctor).filter(Doctor.doctor_code == doctor_code).first()
        if not doctor:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Doctor not found"
            )
        return doctor

    def _ensure_unique(self, license_number: Optional[str] = None, email: Optional[str] = None, exclude_id: Optional[int] = None):
        conditions = []
        if license_number:
            conditions.append(Doctor.license_number == license_number)
        if email:
            conditions.append(Doctor.email == email)
        if not conditions:
            return

        query = self.db.query(Doctor).filter(or_(*conditions))
        if exclude_id is not None:
            query = query.filter(Doctor.id != exclude_id)
        if query.first():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Doctor with this license number or email already exists"
            )

    def _ensure_department(self, department_id: int):
        if not self.db.query(Department).filter(Department.id == department_id).first():
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Department not found"
            )

    def create_doctor(self, data: DoctorCreate) -> Doctor:
        self._ensure_unique(data.license_number, data.email)
        self._ensure_department(data.department_id)

        user_id = None
        if data.password:
            if self.db.query(User).filter(User.email == data.email).first():
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail="Email already registered"
                )
            first_name, _, last_name = data.name.replace("Dr. ", "").partition(" ")
            user = User(
                email=data.email,
                password_hash=get_password_hash(data.password),
                role=UserRole.DOCTOR,
                first_name=first_name,
                last_name=last_name or None,
                phone=data.phone,
                is_active=True
            )
            self.db.add(user)
            self.db.flush()
            user_id = user.id

        values = data.model_dump(exclude={"password"}, exclude_none=True)

        doctor = Doctor(user_id=user_id, **values)
        self.db.add(doctor)
        self.db.commit()
        self.db.refresh(doctor)

        logger.info(f"Created doctor {doctor.doctor_code} ({doctor.specialization.value})")
        return doctor

    def update_doctor(self, doctor: Doctor, data: DoctorUpdate, is_admin: bool) -> Doctor:
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not is_admin:
            blocked = ADMIN_ONLY_FIELDS & changes.keys()
            if blocked:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail=f"Only an admin can change: {', '.join(sorted(blocked))}"
                )

        if changes.get("license_number"):
            self._ensure_unique(license_number=changes["license_number"], exclude_id=doctor.id)
        if changes.get("department_id"):
            self._ensure_department(changes["department_id"])
        check_hours(doctor, changes)

        for field, value in changes.items():
            setattr(doctor, field, value)

        self.db.commit()
        self.db.refresh(doctor)
        logger.info(f"Updated doctor {doctor.doctor_code}: {sorted(changes)}")
        return doctor

    def availability(self, doctor: Doctor, on_date: date) -> dict:
        """Open slots for a date; slots that overlap a booking are left out."""
        slots = []
        for slot in doctor.generate_time_slots(on_date):
            if find_conflicts(self.db, doctor.id, on_date, slot, doctor.slot_duration):
                continue
            slots.append({"time": slot, "display": format_time_for_display(slot)})

        return {
            "doctor_id": doctor.id,
            "date": on_date,
            "available": bool(slots) and doctor.is_available,
            "slots": slots if doctor.is_available else [],
            "working_hours": {"start": doctor.start_time, "end": doctor.end_time},
            "break_time": {"start": doctor.break_start, "end": doctor.break_end},
            "slot_duration": doctor.slot_duration
        }

    def check_slot(self, doctor: Doctor, on_date: date, time: str) -> dict:
        available, reason = doctor.check_availability(on_date, time)
        if available and find_conflicts(self.db, doctor.id, on_date, time, doctor.slot_duration):
            available, reason = False, "Time slot already booked"
        return {
            "available": available,
            "reason": reason,
            "date": on_date,
            "time": time,
            "display": format_time_for_display(time)
        }

    def add_qualification(self, doctor: Doctor, qualification: Qualification) -> Doctor:
        doctor.qualifications = list(doctor.qualifications or []) + [qualification.model_dump()]
        self.db.commit()
        self.db.refresh(doctor)
        logger.info(f"Added qualification {qualification.degree} to {doctor.doctor_code}")
        return doctor

    def rate(self, doctor: Doctor, stars: int) -> Doctor:
        try:
            doctor.update_rating(stars)
        except ValueError as exc:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=str(exc)
            )
        self.db.commit()
        self.db.refresh(doctor)
        logger.info(
            f"Doctor {doctor.doctor_code} rated {stars}; average {doctor.rating_average} "
            f"over {doctor.rating_total_reviews} reviews"
        )
        return doctor

    def update_availability(self, doctor: Doctor, data: AvailabilityUpdate) -> Doctor:
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        check_hours(doctor, changes)

        for field, value in changes.items():
            setattr(doctor, field, value)

        self.db.commit()
        self.db.refresh(doctor)
        logger.info(f"Availability updated for {doctor.doctor_code}: {sorted(changes)}")
        return doctor

    def deactivate(self, doctor: Doctor) -> Doctor:
        doctor.status = DoctorStatus.INACTIVE
        doctor.is_available = False
        self.db.commit()
        logger.info(f"Deactivated doctor {doctor.doctor_code}")
        return doctor
