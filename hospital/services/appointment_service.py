"""
Appointment booking.

Every write that places an appointment on a doctor's calendar goes through
``AppointmentService._place`` so the working-hours check and the conflict
check run in the same order everywhere. The doctor row is locked with
``SELECT ... FOR UPDATE`` for the duration of the check on databases that
support it; SQLite ignores the lock.
"""
from sqlalchemy.orm import Session
from sqlalchemy import func
from fastapi import HTTPException, status
from datetime import date
from typing import List, Optional, Tuple
import logging

from ..models.appointment import Appointment, AppointmentStatus, BLOCKING_STATUSES
from ..models.doctor import Doctor
from ..models.patient import Patient
from ..models.user import User
from ..core.security import UserRole
from ..schemas.appointment import (
    AppointmentBook, AppointmentCreate, AppointmentUpdate,
    Reschedule, StatusUpdate, VitalSigns
)
from .scheduling import DEFAULT_APPOINTMENT_MINUTES, overlapping

logger = logging.getLogger(__name__)

SORT_FIELDS = {
    "date": Appointment.appointment_date,
    "created": Appointment.created_at,
    "status": Appointment.status,
    "priority": Appointment.priority,
}

def find_conflicts(
    db: Session,
    doctor_id: int,
    on_date: date,
    time: str,
    duration: int = DEFAULT_APPOINTMENT_MINUTES,
    exclude_id: Optional[int] = None
) -> List[Appointment]:
    """Blocking appointments of a doctor that overlap [time, time + duration) on a date."""
    query = db.query(Appointment).filter(
        Appointment.doctor_id == doctor_id,
        Appointment.appointment_date == on_date,
        Appointment.status.in_(BLOCKING_STATUSES)
    )
    if exclude_id is not None:
        query = query.filter(Appointment.id != exclude_id)

    booked = query.order_by(Appointment.appointment_time).all()
    hits = overlapping(
        time,
        duration or DEFAULT_APPOINTMENT_MINUTES,
        [(appointment.appointment_time, appointment.duration) for appointment in booked]
    )
    return [booked[index] for index in hits]

def conflict_detail(conflicts: List[Appointment]) -> dict:
    return {
        "message": "Doctor already has an appointment at this time",
        "conflicts": [
            {
                "appointment_code": appointment.appointment_code,
                "time": appointment.appointment_time,
                "duration": appointment.duration or DEFAULT_APPOINTMENT_MINUTES
            }
            for appointment in conflicts
        ]
    }

class AppointmentService:
    def __init__(self, db: Session):
        self.db = db

    def _lock_doctor(self, doctor_id: int) -> Doctor:
        doctor = self.db.query(Doctor).filter(Doctor.id == doctor_id).with_for_update().first()
        if not doctor:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Doctor not found"
            )
        return doctor

    def _place(
        self,
        doctor: Doctor,
        on_date: date,
        time: str,
        duration: int,
        exclude_id: Optional[int] = None
    ):
        """Raise unless the doctor can take [time, time + duration) on the date."""
        available, reason = doctor.check_availability(on_date, time)
        if not available:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=reason
            )

        conflicts = find_conflicts(self.db, doctor.id, on_date, time, duration, exclude_id)
        if conflicts:
            logger.info(
                f"Booking conflict for doctor {doctor.doctor_code} on {on_date} at {time}: "
                f"{[appointment.appointment_code for appointment in conflicts]}"
            )
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=conflict_detail(conflicts)
            )

    def _get_patient(self, patient_code: str) -> Patient:
        patient = self.db.query(Patient).filter(Patient.patient_code == patient_code).first()
        if not patient:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Patient not found"
            )
        return patient

    def create_appointment(self, data: AppointmentCreate) -> Appointment:
        patient = self._get_patient(data.patient_code)
        return self.book(patient, data)

    def book(self, patient: Patient, data: AppointmentBook) -> Appointment:
        """Book an appointment for a patient after the availability and conflict checks."""
        doctor = self._lock_doctor(data.doctor_id)
        self._place(doctor, data.appointment_date, data.appointment_time, data.duration)

        appointment = Appointment(
            patient_id=patient.id,
            doctor_id=doctor.id,
            department_id=doctor.department_id,
            status=AppointmentStatus.SCHEDULED,
            **data.model_dump(exclude={"patient_code", "doctor_id"}, exclude_none=True)
        )
        self.db.add(appointment)
        doctor.total_patients = (doctor.total_patients or 0) + 1
        self.db.commit()
        self.db.refresh(appointment)

        logger.info(
            f"Booked {appointment.appointment_code}: patient {patient.patient_code} with "
            f"doctor {doctor.doctor_code} on {appointment.appointment_date} at {appointment.appointment_time}"
        )
        return appointment

    def get(self, appointment_id: int) -> Appointment:
        appointment = self.db.query(Appointment).filter(Appointment.id == appointment_id).first()
        if not appointment:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Appointment not found"
            )
        return appointment

    def ensure_access(self, appointment: Appointment, user: User):
        """Patients may only touch their own appointments."""
        if user.role == UserRole.PATIENT:
            if not user.patient or appointment.patient_id != user.patient.id:
                raise HTTPException(
                    status_code=status.HTTP_403_FORBIDDEN,
                    detail="You can only access your own appointments"
                )

    def list_appointments(
        self,
        patient_code: Optional[str] = None,
        doctor_id: Optional[int] = None,
        status_filter: Optional[AppointmentStatus] = None,
        on_date: Optional[date] = None,
        appointment_type=None,
        page: int = 1,
        limit: int = 10,
        sort_by: str = "date",
        order: str = "desc",
        restrict_to_patient: Optional[int] = None
    ) -> Tuple[List[Appointment], int]:
        query = self.db.query(Appointment)
        if restrict_to_patient is not None:
            query = query.filter(Appointment.patient_id == restrict_to_patient)
        if patient_code:
            query = query.join(Patient, Appointment.patient_id == Patient.id) \
                .filter(Patient.patient_code == patient_code)
        if doctor_id:
            query = query.filter(Appointment.doctor_id == doctor_id)
        if status_filter:
            query = query.filter(Appointment.status == status_filter)
        if on_date:
            query = query.filter(Appointment.appointment_date == on_date)
        if appointment_type:
            query = query.filter(Appointment.type == appointment_type)

        total = query.count()
        column = SORT_FIELDS.get(sort_by, Appointment.appointment_date)
        if order == "asc":
            query = query.order_by(column.asc(), Appointment.appointment_time.asc())
        else:
            query = query.order_by(column.desc(), Appointment.appointment_time.desc())

        return query.offset((page - 1) * limit).limit(limit).all(), total

    def stats(self, restrict_to_doctor: Optional[int] = None) -> dict:
        today = date.today()
        query = self.db.query(Appointment)
        if restrict_to_doctor is not None:
            query = query.filter(Appointment.doctor_id == restrict_to_doctor)

        by_status = {item.value: 0 for item in AppointmentStatus}
        grouped = query.with_entities(Appointment.status, func.count(Appointment.id)) \
            .group_by(Appointment.status).all()
        for appointment_status, count in grouped:
            by_status[appointment_status.value] = count

        return {
            "total": query.count(),
            "today": query.filter(Appointment.appointment_date == today).count(),
            "upcoming": query.filter(
                Appointment.appointment_date >= today,
                Appointment.status.in_([AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED])
            ).count(),
            "by_status": by_status
        }

    def for_patient(self, patient_code: str, upcoming: str = "all") -> List[Appointment]:
        patient = self._get_patient(patient_code)
        query = self.db.query(Appointment).filter(Appointment.patient_id == patient.id)

        today = date.today()
        if upcoming == "true":
            query = query.filter(
                Appointment.appointment_date >= today,
                Appointment.status.in_(BLOCKING_STATUSES)
            ).order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc())
        else:
            if upcoming == "false":
                query = query.filter(Appointment.appointment_date < today)
            query = query.order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
        return query.all()

    def for_doctor(self, doctor_id: int, on_date: Optional[date] = None, status_filter: Optional[AppointmentStatus] = None) -> List[Appointment]:
        query = self.db.query(Appointment).filter(Appointment.doctor_id == doctor_id)
        if on_date:
            query = query.filter(Appointment.appointment_date == on_date)
        if status_filter:
            query = query.filter(Appointment.status == status_filter)
        return query.order_by(Appointment.appointment_date.asc(), Appointment.appointment_time.asc()).all()

    def update_appointment(self, appointment: Appointment, data: AppointmentUpdate) -> Appointment:
        changes = data.model_dump(exclude_unset=True, exclude_none=True)

        if {"appointment_date", "appointment_time", "duration"} & changes.keys():
            doctor = self._lock_doctor(appointment.doctor_id)
            self._place(
                doctor,
                changes.get("appointment_date") or appointment.appointment_date,
                changes.get("appointment_time") or appointment.appointment_time,
                changes.get("duration") or appointment.duration,
                exclude_id=appointment.id
            )

        for field, value in changes.items():
            setattr(appointment, field, value)

        self.db.commit()
        self.db.refresh(appointment)
        logger.info(f"Updated appointment {appointment.appointment_code}: {sorted(changes)}")
        return appointment

    def delete_appointment(self, appointment: Appointment):
        code = appointment.appointment_code
        self.db.delete(appointment)
        self.db.commit()
        logger.info(f"Deleted appointment {code}")

    def set_status(self, appointment: Appointment, data: StatusUpdate) -> Appointment:
        previous = appointment.status
        appointment.status = data.status
        if data.notes:
            appointment.notes = data.notes

        self.db.commit()
        self.db.refresh(appointment)
        logger.info(f"Appointment {appointment.appointment_code} status {previous.value} -> {data.status.value}")
        return appointment

    def reschedule(self, appointment: Appointment, data: Reschedule) -> Appointment:
        if appointment.status in (AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Cannot reschedule a {appointment.status.value} appointment"
            )
        if data.appointment_date < date.today():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Appointment date cannot be in the past"
            )

        duration = data.duration or appointment.duration
        doctor = self._lock_doctor(appointment.doctor_id)
        self._place(doctor, data.appointment_date, data.appointment_time, duration, exclude_id=appointment.id)

        previous = f"{appointment.appointment_date} {appointment.appointment_time}"
        appointment.appointment_date = data.appointment_date
        appointment.appointment_time = data.appointment_time
        appointment.duration = duration
        appointment.status = AppointmentStatus.RESCHEDULED
        if data.reason:
            appointment.notes = data.reason

        self.db.commit()
        self.db.refresh(appointment)
        logger.info(
            f"Rescheduled {appointment.appointment_code} from {previous} to "
            f"{appointment.appointment_date} {appointment.appointment_time}"
        )
        return appointment

    def cancel(self, appointment: Appointment, reason: str, user: User) -> Appointment:
        if appointment.status in (AppointmentStatus.CANCELLED, AppointmentStatus.COMPLETED):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Appointment is already {appointment.status.value}"
            )

        appointment.cancel(reason, user.role.value)
        self.db.commit()
        self.db.refresh(appointment)
        logger.info(f"Cancelled {appointment.appointment_code} by {user.role.value}: {reason}")
        return appointment

    def record_vitals(self, appointment: Appointment, vitals: VitalSigns) -> Appointment:
        appointment.set_vitals(vitals.model_dump(exclude_none=True))
        self.db.commit()
        self.db.refresh(appointment)
        logger.info(f"Recorded vitals for {appointment.appointment_code}")
        return appointment
