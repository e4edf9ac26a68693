from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from datetime import date
from typing import Optional

from ...core.database import get_db
from ...core.security import UserRole, AuthorizationError, MEDICAL_STAFF_ROLES
from ...api.deps import get_clinical_staff, get_current_user, get_patient_for_user, require_role
from ...models.appointment import AppointmentStatus, AppointmentType
from ...models.patient import Patient
from ...models.user import User
from ...schemas.appointment import (
    AppointmentCreate, AppointmentResponse, AppointmentUpdate,
    Cancellation, Reschedule, StatusUpdate, VitalSigns
)
from ...schemas.common import Pagination
from ...services.appointment_service import AppointmentService

router = APIRouter(prefix="/appointments", tags=["Appointments"])

def _many(appointments):
    return {"appointments": [AppointmentResponse.model_validate(item) for item in appointments]}

@router.get("")
async def list_appointments(
    patient: Optional[str] = Query(None, description="Patient code"),
    doctor: Optional[int] = None,
    status: Optional[AppointmentStatus] = None,
    on_date: Optional[date] = Query(None, alias="date"),
    type: Optional[AppointmentType] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    sort_by: str = Query("date", pattern="^(date|created|status|priority)$"),
    order: str = Query("desc", pattern="^(asc|desc)$"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """List appointments; patients only ever see their own."""
    restrict_to_patient = None
    if current_user.role == UserRole.PATIENT:
        restrict_to_patient = current_user.patient.id if current_user.patient else -1

    appointments, total = AppointmentService(db).list_appointments(
        patient_code=patient,
        doctor_id=doctor,
        status_filter=status,
        on_date=on_date,
        appointment_type=type,
        page=page,
        limit=limit,
        sort_by=sort_by,
        order=order,
        restrict_to_patient=restrict_to_patient
    )
    result = _many(appointments)
    result["pagination"] = Pagination.build(page, limit, total)
    return result

@router.get("/stats/overview")
async def appointment_stats(
    db: Session = Depends(get_db),
    staff: User = Depends(get_clinical_staff)
):
    restrict_to_doctor = None
    if staff.role == UserRole.DOCTOR and staff.doctor:
        restrict_to_doctor = staff.doctor.id
    return AppointmentService(db).stats(restrict_to_doctor)

@router.get("/patient/{patient_code}")
async def patient_appointments(
    upcoming: str = Query("all", pattern="^(true|false|all)$"),
    patient: Patient = Depends(get_patient_for_user),
    db: Session = Depends(get_db)
):
    return _many(AppointmentService(db).for_patient(patient.patient_code, upcoming))

@router.get("/doctor/{doctor_id}")
async def doctor_appointments(
    doctor_id: int,
    on_date: Optional[date] = Query(None, alias="date"),
    status: Optional[AppointmentStatus] = None,
    db: Session = Depends(get_db),
    staff: User = Depends(get_clinical_staff)
):
    return _many(AppointmentService(db).for_doctor(doctor_id, on_date, status))

@router.get("/{appointment_id}", response_model=AppointmentResponse)
async def get_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    appointment_service = AppointmentService(db)
    appointment = appointment_service.get(appointment_id)
    appointment_service.ensure_access(appointment, current_user)
    return appointment

@router.post("", response_model=AppointmentResponse, status_code=201)
async def create_appointment(
    appointment_data: AppointmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Book an appointment. 404 for unknown patient or doctor, 400 outside hours, 409 on overlap."""
    if current_user.role == UserRole.PATIENT:
        own = current_user.patient
        if not own or own.patient_code != appointment_data.patient_code:
            raise AuthorizationError("You can only book appointments for yourself")
    return AppointmentService(db).create_appointment(appointment_data)

@router.put("/{appointment_id}", response_model=AppointmentResponse)
async def update_appointment(
    appointment_id: int,
    appointment_data: AppointmentUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    appointment_service = AppointmentService(db)
    appointment = appointment_service.get(appointment_id)
    appointment_service.ensure_access(appointment, current_user)
    return appointment_service.update_appointment(appointment, appointment_data)

@router.delete("/{appointment_id}")
async def delete_appointment(
    appointment_id: int,
    db: Session = Depends(get_db),
    staff: User = Depends(get_clinical_staff)
):
    appointment_service = AppointmentService(db)
    appointment_service.delete_appointment(appointment_service.get(appointment_id))
    return {"message": "Appointment deleted successfully"}

@router.patch("/{appointment_id}/status", response_model=AppointmentResponse)
async def update_status(
    appointment_id: int,
    status_data: StatusUpdate,
    db: Session = Depends(get_db),
    staff: User = Depends(get_clinical_staff)
):
    appointment_service = AppointmentService(db)
    return appointment_service.set_status(appointment_service.get(appointment_id), status_data)

@router.put("/{appointment_id}/reschedule", response_model=AppointmentResponse)
async def reschedule_appointment(
    appointment_id: int,
    reschedule_data: Reschedule,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    appointment_service = AppointmentService(db)
    appointment = appointment_service.get(appointment_id)
    appointment_service.ensure_access(appointment, current_user)
    return appointment_service.reschedule(appointment, reschedule_data)

@router.put("/{appointment_id}/cancel", response_model=AppointmentResponse)
async def cancel_appointment(
    appointment_id: int,
    cancellation: Cancellation,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    appointment_service = AppointmentService(db)
    appointment = appointment_service.get(appointment_id)
    appointment_service.ensure_access(appointment, current_user)
    return appointment_service.cancel(appointment, cancellation.reason, current_user)

@router.put("/{appointment_id}/vitals", response_model=AppointmentResponse)
async def record_vitals(
    appointment_id: int,
    vitals: VitalSigns,
    db: Session = Depends(get_db),
    staff: User = Depends(require_role(MEDICAL_STAFF_ROLES))
):
    """Record vital signs; BMI is derived from weight and height."""
    appointment_service = AppointmentService(db)
    return appointment_service.record_vitals(appointment_service.get(appointment_id), vitals)
