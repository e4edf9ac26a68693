from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date, datetime
from typing import Optional

from ...core.database import get_db
from ...core.security import UserRole
from ...api.deps import get_admin_user, get_current_user, ensure_own_doctor_or_admin
from ...models.doctor import Specialization
from ...models.user import User
from ...schemas.common import Pagination
from ...schemas.doctor import (
    AvailabilityUpdate, DoctorCreate, DoctorResponse, DoctorUpdate,
    Qualification, RatingCreate
)
from ...services.doctor_service import DoctorService

router = APIRouter(prefix="/doctors", tags=["Doctors"])

@router.get("")
async def list_doctors(
    specialization: Optional[Specialization] = None,
    department: Optional[int] = None,
    search: Optional[str] = None,
    min_experience: Optional[int] = Query(None, ge=0),
    min_rating: Optional[float] = Query(None, ge=0, le=5),
    language: Optional[str] = None,
    available: Optional[bool] = None,
    verified: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: str = Query("rating", pattern="^(rating|experience|name|fee)$"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db)
):
    """Search active doctors."""
    doctors, total = DoctorService(db).list_doctors(
        specialization=specialization,
        department_id=department,
        search=search,
        min_experience=min_experience,
        min_rating=min_rating,
        language=language,
        available=available,
        verified=verified,
        page=page,
        limit=limit,
        sort_by=sort_by,
        order=order
    )
    return {
        "doctors": [DoctorResponse.model_validate(doctor) for doctor in doctors],
        "pagination": Pagination.build(page, limit, total)
    }

@router.get("/available")
async def available_doctors(db: Session = Depends(get_db)):
    doctors = DoctorService(db).available_doctors()
    return {"doctors": [DoctorResponse.model_validate(doctor) for doctor in doctors]}

@router.get("/meta/specialties")
async def list_specialties(db: Session = Depends(get_db)):
    return {"specialties": DoctorService(db).specialties()}

@router.get("/meta/stats")
async def doctor_stats(
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return DoctorService(db).stats()

@router.get("/department/{department_id}")
async def doctors_by_department(department_id: int, db: Session = Depends(get_db)):
    doctors = DoctorService(db).by_department(department_id)
    return {"doctors": [DoctorResponse.model_validate(doctor) for doctor in doctors]}

@router.get("/by-doctor-id/{doctor_code}", response_model=DoctorResponse)
async def get_doctor_by_code(doctor_code: str, db: Session = Depends(get_db)):
    return DoctorService(db).get_by_code(doctor_code)

@router.get("/{doctor_id}")
async def get_doctor(doctor_id: int, db: Session = Depends(get_db)):
    doctor = DoctorService(db).get(doctor_id)
    return {
        "doctor": DoctorResponse.model_validate(doctor),
        "next_available": doctor.next_available(datetime.now())
    }

@router.post("", response_model=DoctorResponse, status_code=201)
async def create_doctor(
    doctor_data: DoctorCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """Add a doctor, optionally with a login account (admin only)."""
    return DoctorService(db).create_doctor(doctor_data)

@router.put("/{doctor_id}", response_model=DoctorResponse)
async def update_doctor(
    doctor_id: int,
    doctor_data: DoctorUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Update a doctor (admin, or the doctor on their own profile)."""
    doctor_service = DoctorService(db)
    doctor = doctor_service.get(doctor_id)
    ensure_own_doctor_or_admin(doctor, current_user)
    return doctor_service.update_doctor(doctor, doctor_data, is_admin=current_user.role == UserRole.ADMIN)

@router.delete("/{doctor_id}")
async def delete_doctor(
    doctor_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """Deactivate a doctor; appointments history is kept (admin only)."""
    doctor_service = DoctorService(db)
    doctor_service.deactivate(doctor_service.get(doctor_id))
    return {"message": "Doctor deactivated successfully"}

@router.get("/{doctor_id}/availability")
async def doctor_availability(
    doctor_id: int,
    on_date: date = Query(..., alias="date"),
    db: Session = Depends(get_db)
):
    """Bookable slots for a date."""
    doctor_service = DoctorService(db)
    return doctor_service.availability(doctor_service.get(doctor_id), on_date)

@router.get("/{doctor_id}/availability/check")
async def check_availability(
    doctor_id: int,
    on_date: date = Query(..., alias="date"),
    time: str = Query(..., pattern=r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$"),
    db: Session = Depends(get_db)
):
    doctor_service = DoctorService(db)
    return doctor_service.check_slot(doctor_service.get(doctor_id), on_date, time)

@router.post("/{doctor_id}/qualifications", response_model=DoctorResponse)
async def add_qualification(
    doctor_id: int,
    qualification: Qualification,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    doctor_service = DoctorService(db)
    doctor = doctor_service.get(doctor_id)
    ensure_own_doctor_or_admin(doctor, current_user)
    return doctor_service.add_qualification(doctor, qualification)

@router.post("/{doctor_id}/rating")
async def rate_doctor(
    doctor_id: int,
    rating_data: RatingCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Record a 1-5 star rating."""
    doctor_service = DoctorService(db)
    doctor = doctor_service.rate(doctor_service.get(doctor_id), rating_data.rating)
    return {
        "message": "Rating submitted successfully",
        "rating": {
            "average": doctor.rating_average,
            "total_reviews": doctor.rating_total_reviews,
            "breakdown": doctor.rating_breakdown
        }
    }

@router.patch("/{doctor_id}/availability", response_model=DoctorResponse)
async def update_availability(
    doctor_id: int,
    availability: AvailabilityUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    doctor_service = DoctorService(db)
    doctor = doctor_service.get(doctor_id)
    ensure_own_doctor_or_admin(doctor, current_user)
    return doctor_service.update_availability(doctor, availability)
