from sqlalchemy import Column, Integer, String, ForeignKey, Date, DateTime, Boolean, Text, JSON, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from datetime import date, datetime
import enum
import random

from ..core.database import Base
from ..services.scheduling import age_on

class Gender(str, enum.Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"
    PREFER_NOT_TO_SAY = "prefer-not-to-say"

class PatientStatus(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"

class PaymentPreference(str, enum.Enum):
    INSURANCE = "insurance"
    SHA = "sha"
    CASH = "cash"
    BANK = "bank"
    MOBILE = "mobile"
    CREDIT = "credit"
    DEBIT = "debit"
    OTHER = "other"

class MaritalStatus(str, enum.Enum):
    SINGLE = "single"
    MARRIED = "married"
    DIVORCED = "divorced"
    WIDOWED = "widowed"

BLOOD_TYPES = ["A+", "A-", "B+", "B-", "AB+", "AB-", "O+", "O-", "Unknown"]

def normalize_blood_type(value):
    """Upper-case a blood group; blank or unrecognised input becomes "Unknown"."""
    if not value or value.strip().lower() == "unknown":
        return "Unknown"
    normalized = value.strip().upper()
    return normalized if normalized in BLOOD_TYPES else "Unknown"

def generate_patient_code() -> str:
    timestamp = str(int(datetime.utcnow().timestamp() * 1000))[-6:]
    return f"PAT{timestamp}{random.randint(0, 999):03d}"

def _split_text(text):
    return [item.strip() for item in (text or "").split(",") if item.strip()]

class Patient(Base):
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, index=True)
    patient_code = Column(String(20), unique=True, index=True, nullable=False, default=generate_patient_code)
    user_id = Column(Integer, ForeignKey("users.id"), unique=True, nullable=True)

    # Personal information
    first_name = Column(String(100), nullable=False)
    last_name = Column(String(100), nullable=False)
    date_of_birth = Column(Date, nullable=False)
    gender = Column(SQLEnum(Gender), nullable=False)
    id_number = Column(String(50), unique=True, index=True, nullable=False)

    # Contact information
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(30), nullable=False)
    alternate_phone = Column(String(30), nullable=True)
    address = Column(String(255), nullable=False)
    city = Column(String(100), nullable=False)
    postal_code = Column(String(20), nullable=True)

    # Medical information
    blood_type = Column(String(10), default="Unknown")
    medical_history = Column(JSON, default=list)
    allergies = Column(JSON, default=list)
    current_medications = Column(JSON, default=list)
    family_history = Column(Text, nullable=True)

    # Emergency contact
    emergency_contact_name = Column(String(150), default="Not provided")
    emergency_contact_phone = Column(String(30), default="Not provided")
    emergency_contact_relationship = Column(String(50), default="Not provided")

    # Insurance
    payment_method = Column(SQLEnum(PaymentPreference), default=PaymentPreference.CASH)
    insurance_provider = Column(String(100), nullable=True)
    policy_number = Column(String(100), nullable=True)

    # Additional
    marital_status = Column(SQLEnum(MaritalStatus), nullable=True)
    nationality = Column(String(100), nullable=True)
    occupation = Column(String(100), nullable=True)
    preferred_language = Column(String(50), default="English")

    consent_to_treat = Column(Boolean, default=False)

    status = Column(SQLEnum(PatientStatus), default=PatientStatus.ACTIVE, index=True)
    registration_date = Column(DateTime, default=datetime.utcnow)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    user = relationship("User", back_populates="patient")
    appointments = relationship("Appointment", back_populates="patient", cascade="all, delete-orphan")
    prescriptions = relationship("Prescription", back_populates="patient", cascade="all, delete-orphan")
    lab_requests = relationship("LabRequest", back_populates="patient", cascade="all, delete-orphan")
    medical_records = relationship("MedicalRecord", back_populates="patient", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    @property
    def age(self):
        if not self.date_of_birth:
            return None
        return age_on(self.date_of_birth, date.today())

    @property
    def is_minor(self) -> bool:
        return self.age is not None and self.age < 18

    @property
    def active_conditions(self):
        return [
            condition for condition in (self.medical_history or [])
            if condition.get("status") in ("active", "chronic")
        ]

    def apply_text_fields(self, allergies_text=None, medications_text=None, conditions_text=None):
        """Fill the structured medical lists from comma-separated form input.

        A list that already has entries is left untouched.
        """
        if allergies_text and not self.allergies:
            self.allergies = [
                {"allergen": item, "severity": "moderate", "reaction": "Not specified"}
                for item in _split_text(allergies_text)
            ]
        if conditions_text and not self.medical_history:
            self.medical_history = [
                {"condition": item, "status": "active", "diagnosed_date": date.today().isoformat()}
                for item in _split_text(conditions_text)
            ]
        if medications_text and not self.current_medications:
            self.current_medications = [
                {"name": item, "dosage": "As prescribed", "frequency": "Daily"}
                for item in _split_text(medications_text)
            ]

    def __repr__(self):
        return f"<Patient(id={self.id}, patient_code='{self.patient_code}', name='{self.first_name} {self.last_name}')>"
