from pydantic import BaseModel, ConfigDict, Field, field_validator
from datetime import date, datetime
from typing import Dict, List, Optional

from ..models.appointment import AppointmentStatus, AppointmentType, ConsultationType, Priority
from ..services.scheduling import is_valid_time
from .doctor import DoctorSummary
from .patient import PatientSummary

def _check_time(value):
    if value is not None and not is_valid_time(value):
        raise ValueError("Time must be in HH:MM format")
    return value

class AppointmentBook(BaseModel):
    doctor_id: int
    appointment_date: date
    appointment_time: str
    duration: int = Field(30, ge=15, le=120)
    type: AppointmentType = AppointmentType.CONSULTATION
    consultation_type: ConsultationType = ConsultationType.IN_PERSON
    reason: str = Field(..., min_length=1, max_length=500)
    symptoms: List[str] = []
    priority: Priority = Priority.MEDIUM
    notes: Optional[str] = None

    @field_validator("appointment_time")
    @classmethod
    def clock_time(cls, value):
        return _check_time(value)

    @field_validator("reason")
    @classmethod
    def strip_reason(cls, value):
        value = value.strip()
        if not value:
            raise ValueError("Reason is required")
        return value

    @field_validator("appointment_date")
    @classmethod
    def not_in_past(cls, value):
        if value < date.today():
            raise ValueError("Appointment date cannot be in the past")
        return value

class AppointmentCreate(AppointmentBook):
    patient_code: str = Field(..., min_length=1)

class AppointmentUpdate(BaseModel):
    appointment_date: Optional[date] = None
    appointment_time: Optional[str] = None
    duration: Optional[int] = Field(None, ge=15, le=120)
    type: Optional[AppointmentType] = None
    consultation_type: Optional[ConsultationType] = None
    reason: Optional[str] = Field(None, min_length=1, max_length=500)
    symptoms: Optional[List[str]] = None
    diagnosis: Optional[str] = None
    priority: Optional[Priority] = None
    notes: Optional[str] = None
    doctor_notes: Optional[str] = None
    follow_up_required: Optional[bool] = None
    follow_up_date: Optional[date] = None
    follow_up_notes: Optional[str] = None

    @field_validator("appointment_time")
    @classmethod
    def clock_time(cls, value):
        return _check_time(value)

class StatusUpdate(BaseModel):
    status: AppointmentStatus
    notes: Optional[str] = None

class Reschedule(BaseModel):
    appointment_date: date
    appointment_time: str
    duration: Optional[int] = Field(None, ge=15, le=120)
    reason: Optional[str] = None

    @field_validator("appointment_time")
    @classmethod
    def clock_time(cls, value):
        return _check_time(value)

class Cancellation(BaseModel):
    reason: str = Field(..., min_length=1, max_length=255)

class VitalSigns(BaseModel):
    blood_pressure: Optional[str] = None
    heart_rate: Optional[int] = Field(None, gt=0)
    temperature: Optional[float] = None
    weight: Optional[float] = Field(None, gt=0)
    height: Optional[float] = Field(None, gt=0)
    respiratory_rate: Optional[int] = Field(None, gt=0)
    oxygen_saturation: Optional[float] = Field(None, ge=0, le=100)
    blood_sugar: Optional[float] = Field(None, gt=0)

class AppointmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    appointment_code: str
    patient_id: int
    doctor_id: int
    department_id: Optional[int] = None
    patient: Optional[PatientSummary] = None
    doctor: Optional[DoctorSummary] = None
    appointment_date: date
    appointment_time: str
    duration: int
    duration_hours: float
    type: AppointmentType
    consultation_type: ConsultationType
    reason: str
    symptoms: List[str] = []
    diagnosis: Optional[str] = None
    priority: Priority
    status: AppointmentStatus
    notes: Optional[str] = None
    doctor_notes: Optional[str] = None
    follow_up_required: Optional[bool] = None
    follow_up_date: Optional[date] = None
    follow_up_notes: Optional[str] = None
    vital_signs: Dict = {}
    cancellation_reason: Optional[str] = None
    cancelled_by: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    is_upcoming: bool
    is_past: bool
    created_at: Optional[datetime] = None
