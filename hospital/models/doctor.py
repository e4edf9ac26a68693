from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Boolean, Text, Float, JSON, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from datetime import date, datetime
import enum
import random
import string

from ..core.database import Base
from ..services.scheduling import (
    DEFAULT_WORKING_DAYS, WorkingHours, check_working_time,
    generate_time_slots, next_available,
)

class Specialization(str, enum.Enum):
    CARDIOLOGY = "cardiology"
    NEUROLOGY = "neurology"
    PEDIATRICS = "pediatrics"
    ORTHOPEDICS = "orthopedics"
    OPHTHALMOLOGY = "ophthalmology"
    ENT = "ent"
    PULMONOLOGY = "pulmonology"
    ONCOLOGY = "oncology"
    HEMATOLOGY = "hematology"
    GASTROENTEROLOGY = "gastroenterology"
    DERMATOLOGY = "dermatology"
    DENTISTRY = "dentistry"
    PSYCHIATRY = "psychiatry"
    OBGYN = "obgyn"
    UROLOGY = "urology"
    PHYSICAL_THERAPY = "physical-therapy"
    GENERAL_MEDICINE = "general-medicine"
    SURGERY = "surgery"
    EMERGENCY_MEDICINE = "emergency-medicine"

SPECIALTY_DISPLAY = {
    Specialization.ENT: "ENT (Ear, Nose & Throat)",
    Specialization.OBGYN: "Obstetrics & Gynecology",
    Specialization.PHYSICAL_THERAPY: "Physical Therapy",
    Specialization.GENERAL_MEDICINE: "General Medicine",
    Specialization.EMERGENCY_MEDICINE: "Emergency Medicine",
}

class DoctorStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ON_LEAVE = "on-leave"
    SUSPENDED = "suspended"

def generate_doctor_code() -> str:
    timestamp = str(int(datetime.utcnow().timestamp() * 1000))[-8:]
    suffix = "".join(random.choices(string.ascii_uppercase + string.digits, k=4))
    return f"DOC{timestamp}{suffix}"

def specialty_label(value) -> str:
    specialization = Specialization(value)
    return SPECIALTY_DISPLAY.get(specialization, specialization.value.capitalize())

def empty_breakdown() -> dict:
    return {str(stars): 0 for stars in range(1, 6)}

class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, index=True)
    doctor_code = Column(String(20), unique=True, index=True, nullable=False, default=generate_doctor_code)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=True)
    department_id = Column(Integer, ForeignKey("departments.id"), nullable=False, index=True)

    # Professional information
    name = Column(String(100), nullable=False)
    specialization = Column(SQLEnum(Specialization), nullable=False, index=True)
    license_number = Column(String(15), nullable=False, unique=True)
    years_of_experience = Column(Integer, nullable=False, default=0)
    qualifications = Column(JSON, default=list)
    bio = Column(Text, nullable=False)
    consultation_fee = Column(Float, nullable=False, default=0)
    languages = Column(JSON, default=lambda: ["English"])

    # Contact information
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(30), nullable=False)
    address = Column(JSON, default=dict)
    profile_image = Column(String(255), default="default-doctor.jpg")

    # Weekly availability template
    working_days = Column(JSON, default=lambda: list(DEFAULT_WORKING_DAYS))
    start_time = Column(String(5), default="09:00")
    end_time = Column(String(5), default="17:00")
    break_start = Column(String(5), default="13:00")
    break_end = Column(String(5), default="14:00")
    slot_duration = Column(Integer, default=30)
    is_available = Column(Boolean, default=True)

    # Ratings
    rating_average = Column(Float, default=0)
    rating_total_reviews = Column(Integer, default=0)
    rating_breakdown = Column(JSON, default=empty_breakdown)

    # Statistics and preferences
    total_patients = Column(Integer, default=0)
    monthly_patients = Column(Integer, default=0)
    max_patients_per_day = Column(Integer, default=20)
    allow_emergency = Column(Boolean, default=True)

    status = Column(SQLEnum(DoctorStatus), default=DoctorStatus.ACTIVE, index=True)
    verified = Column(Boolean, default=False)
    last_active = Column(DateTime, default=datetime.utcnow)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="doctor")
    department = relationship("Department", back_populates="doctors", foreign_keys=[department_id])
    appointments = relationship("Appointment", back_populates="doctor")

    @property
    def working_hours(self) -> WorkingHours:
        return WorkingHours(
            working_days=list(self.working_days or []),
            start_time=self.start_time,
            end_time=self.end_time,
            break_start=self.break_start,
            break_end=self.break_end,
            slot_duration=self.slot_duration,
        )

    @property
    def specialty_display(self) -> str:
        return specialty_label(self.specialization)

    @property
    def experience_level(self) -> str:
        years = self.years_of_experience or 0
        if years >= 20:
            return "Senior Consultant"
        if years >= 10:
            return "Consultant"
        if years >= 5:
            return "Specialist"
        return "Junior Doctor"

    @property
    def formatted_fee(self) -> str:
        if not self.consultation_fee:
            return "Free Consultation"
        return f"KES {self.consultation_fee:,.0f}"

    def next_available(self, now: datetime):
        if not self.is_available:
            return None
        return next_available(self.working_hours, now)

    def check_availability(self, on_date: date, time: str):
        """Return (available, reason) for a requested start time."""
        if not self.is_available or self.status != DoctorStatus.ACTIVE:
            return False, "Doctor is not available"
        return check_working_time(self.working_hours, on_date, time)

    def generate_time_slots(self, on_date: date):
        return generate_time_slots(self.working_hours, on_date)

    def update_rating(self, stars: int):
        if stars < 1 or stars > 5:
            raise ValueError("Rating must be between 1 and 5")

        breakdown = dict(self.rating_breakdown or empty_breakdown())
        breakdown[str(stars)] = breakdown.get(str(stars), 0) + 1

        total = sum(breakdown.values())
        score = sum(int(key) * count for key, count in breakdown.items())

        self.rating_breakdown = breakdown
        self.rating_total_reviews = total
        self.rating_average = round(score / total, 1)

    def __repr__(self):
        return f"<Doctor(id={self.id}, name='{self.name}', specialization='{self.specialization}')>"
