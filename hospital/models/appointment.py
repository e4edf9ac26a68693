from sqlalchemy import Column, Integer, String, ForeignKey, Date, DateTime, Boolean, Text, JSON, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from datetime import date, datetime
import enum
import random
import string

from ..core.database import Base
from ..services.scheduling import bmi, parse_time

class AppointmentStatus(str, enum.Enum):
    SCHEDULED = "scheduled"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked-in"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    NO_SHOW = "no-show"
    RESCHEDULED = "rescheduled"

class AppointmentType(str, enum.Enum):
    CONSULTATION = "consultation"
    FOLLOW_UP = "follow-up"
    CHECKUP = "checkup"
    EMERGENCY = "emergency"
    SURGERY = "surgery"
    THERAPY = "therapy"

class ConsultationType(str, enum.Enum):
    IN_PERSON = "in-person"
    ONLINE = "online"
    PHONE = "phone"

class Priority(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    EMERGENCY = "emergency"

# Statuses that hold the doctor's time
BLOCKING_STATUSES = [
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.CHECKED_IN,
    AppointmentStatus.IN_PROGRESS,
    AppointmentStatus.RESCHEDULED,
]

UPCOMING_STATUSES = [
    AppointmentStatus.SCHEDULED,
    AppointmentStatus.CONFIRMED,
    AppointmentStatus.CHECKED_IN,
]

def generate_appointment_code() -> str:
    timestamp = str(int(datetime.utcnow().timestamp() * 1000))[-8:]
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=4))
    return f"APT{timestamp}{suffix}"

class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    appointment_code = Column(String(20), unique=True, index=True, nullable=False, default=generate_appointment_code)

    # Relationships
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=False, index=True)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=True)

    # Appointment details
    appointment_date = Column(Date, nullable=False, index=True)
    appointment_time = Column(String(5), nullable=False)
    duration = Column(Integer, default=30)
    type = Column(SQLEnum(AppointmentType), default=AppointmentType.CONSULTATION)
    consultation_type = Column(SQLEnum(ConsultationType), default=ConsultationType.IN_PERSON)
    reason = Column(Text, nullable=False)
    symptoms = Column(JSON, default=list)
    diagnosis = Column(Text, nullable=True)
    priority = Column(SQLEnum(Priority), default=Priority.MEDIUM)
    status = Column(SQLEnum(AppointmentStatus), default=AppointmentStatus.SCHEDULED, index=True)

    notes = Column(Text, nullable=True)
    doctor_notes = Column(Text, nullable=True)

    # Follow-up
    follow_up_required = Column(Boolean, default=False)
    follow_up_date = Column(Date, nullable=True)
    follow_up_notes = Column(Text, nullable=True)

    # {"blood_pressure", "heart_rate", "temperature", "weight", "height", "bmi"}
    vital_signs = Column(JSON, default=dict)

    # Cancellation
    cancellation_reason = Column(String(255), nullable=True)
    cancelled_by = Column(String(20), nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    # Tracking
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    patient = relationship("Patient", back_populates="appointments")
    doctor = relationship("Doctor", back_populates="appointments")
    department = relationship("Department")

    @property
    def starts_at(self) -> datetime:
        minutes = parse_time(self.appointment_time)
        return datetime.combine(self.appointment_date, datetime.min.time()).replace(
            hour=minutes // 60, minute=minutes % 60
        )

    @property
    def is_upcoming(self) -> bool:
        return self.starts_at > datetime.now() and self.status in UPCOMING_STATUSES

    @property
    def is_past(self) -> bool:
        return self.appointment_date < date.today()

    @property
    def duration_hours(self) -> float:
        return round((self.duration or 30) / 60, 2)

    def set_vitals(self, vitals: dict):
        """Merge vital signs and recompute BMI when weight and height are known."""
        merged = dict(self.vital_signs or {})
        merged.update({key: value for key, value in vitals.items() if value is not None})
        computed = bmi(merged.get("weight"), merged.get("height"))
        if computed is not None:
            merged["bmi"] = computed
        self.vital_signs = merged

    def cancel(self, reason: str, cancelled_by: str):
        self.status = AppointmentStatus.CANCELLED
        self.cancellation_reason = reason
        self.cancelled_by = cancelled_by
        self.cancelled_at = datetime.utcnow()

    def __repr__(self):
        return f"<Appointment(id={self.id}, patient_id={self.patient_id}, doctor_id={self.doctor_id}, date='{self.appointment_date}', time='{self.appointment_time}')>"
