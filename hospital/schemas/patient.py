from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from ..models.patient import Gender, MaritalStatus, PatientStatus, PaymentPreference, normalize_blood_type

class PatientBase(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    date_of_birth: date
    gender: Gender
    id_number: str = Field(..., min_length=1, max_length=50)
    email: EmailStr
    phone: str = Field(..., min_length=1, max_length=30)
    alternate_phone: Optional[str] = None
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    postal_code: Optional[str] = None

    blood_type: Optional[str] = "Unknown"
    family_history: Optional[str] = None

    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    emergency_contact_relationship: Optional[str] = None

    payment_method: Optional[PaymentPreference] = PaymentPreference.CASH
    insurance_provider: Optional[str] = None
    policy_number: Optional[str] = None

    marital_status: Optional[MaritalStatus] = None
    nationality: Optional[str] = None
    occupation: Optional[str] = None
    preferred_language: Optional[str] = "English"
    consent_to_treat: bool = False

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value):
        return value.lower()

    @field_validator("first_name", "last_name", "id_number", "address", "city")
    @classmethod
    def strip_text(cls, value):
        return value.strip()

    @field_validator("blood_type")
    @classmethod
    def normalize_blood(cls, value):
        return normalize_blood_type(value)

    @field_validator("date_of_birth")
    @classmethod
    def born_in_past(cls, value):
        if value >= date.today():
            raise ValueError("Date of birth must be in the past")
        return value

class PatientCreate(PatientBase):
    # Comma separated, e.g. "Penicillin, Peanuts"
    allergies_text: Optional[str] = None
    medications_text: Optional[str] = None
    conditions_text: Optional[str] = None

class PatientUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Gender] = None
    phone: Optional[str] = None
    alternate_phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    blood_type: Optional[str] = None
    medical_history: Optional[List[Dict[str, Any]]] = None
    allergies: Optional[List[Dict[str, Any]]] = None
    current_medications: Optional[List[Dict[str, Any]]] = None
    family_history: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    emergency_contact_relationship: Optional[str] = None
    payment_method: Optional[PaymentPreference] = None
    insurance_provider: Optional[str] = None
    policy_number: Optional[str] = None
    marital_status: Optional[MaritalStatus] = None
    nationality: Optional[str] = None
    occupation: Optional[str] = None
    preferred_language: Optional[str] = None
    consent_to_treat: Optional[bool] = None
    status: Optional[PatientStatus] = None

    @field_validator("blood_type")
    @classmethod
    def normalize_blood(cls, value):
        return None if value is None else normalize_blood_type(value)

class ProfileUpdate(BaseModel):
    """Fields a patient may change on their own profile."""
    phone: Optional[str] = None
    alternate_phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    emergency_contact_relationship: Optional[str] = None
    insurance_provider: Optional[str] = None
    policy_number: Optional[str] = None
    marital_status: Optional[MaritalStatus] = None
    occupation: Optional[str] = None
    preferred_language: Optional[str] = None

class PatientSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_code: str
    full_name: str
    email: str
    phone: str

class PatientResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_code: str
    user_id: Optional[int] = None
    first_name: str
    last_name: str
    full_name: str
    date_of_birth: date
    age: Optional[int] = None
    is_minor: bool
    gender: Gender
    id_number: str
    email: str
    phone: str
    alternate_phone: Optional[str] = None
    address: str
    city: str
    postal_code: Optional[str] = None
    blood_type: Optional[str] = None
    medical_history: List[Dict[str, Any]] = []
    allergies: List[Dict[str, Any]] = []
    current_medications: List[Dict[str, Any]] = []
    active_conditions: List[Dict[str, Any]] = []
    family_history: Optional[str] = None
    emergency_contact_name: Optional[str] = None
    emergency_contact_phone: Optional[str] = None
    emergency_contact_relationship: Optional[str] = None
    payment_method: Optional[PaymentPreference] = None
    insurance_provider: Optional[str] = None
    policy_number: Optional[str] = None
    marital_status: Optional[MaritalStatus] = None
    nationality: Optional[str] = None
    occupation: Optional[str] = None
    preferred_language: Optional[str] = None
    consent_to_treat: Optional[bool] = None
    status: PatientStatus
    registration_date: Optional[datetime] = None
    created_at: Optional[datetime] = None
