from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator, model_validator
from datetime import date, datetime
from typing import Dict, List, Optional
import re

from ..models.doctor import DoctorStatus, Specialization
from ..services.scheduling import SLOT_DURATIONS, WEEKDAYS, is_valid_time, parse_time

LICENSE_PATTERN = re.compile(r"^[A-Z0-9]{6,15}$")

def _check_license(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip().upper()
    if not LICENSE_PATTERN.match(value):
        raise ValueError("License number must be 6-15 letters or digits")
    return value

def _check_time(value: Optional[str]) -> Optional[str]:
    if value is not None and not is_valid_time(value):
        raise ValueError("Time must be in HH:MM format")
    return value

def _check_days(value: Optional[List[str]]) -> Optional[List[str]]:
    if value is None:
        return value
    days = [day.lower() for day in value]
    unknown = [day for day in days if day not in WEEKDAYS]
    if unknown:
        raise ValueError(f"Unknown working days: {', '.join(unknown)}")
    return days

class Qualification(BaseModel):
    degree: str = Field(..., min_length=1)
    institution: str = Field(..., min_length=1)
    year: Optional[int] = Field(None, ge=1950)

    @field_validator("year")
    @classmethod
    def not_in_future(cls, value):
        if value is not None and value > date.today().year:
            raise ValueError("Year cannot be in future")
        return value

class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip_code: Optional[str] = None
    country: str = "Kenya"

class AvailabilityUpdate(BaseModel):
    working_days: Optional[List[str]] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    break_start: Optional[str] = None
    break_end: Optional[str] = None
    slot_duration: Optional[int] = None
    is_available: Optional[bool] = None

    @field_validator("working_days")
    @classmethod
    def known_days(cls, value):
        return _check_days(value)

    @field_validator("start_time", "end_time", "break_start", "break_end")
    @classmethod
    def clock_times(cls, value):
        return _check_time(value)

    @field_validator("slot_duration")
    @classmethod
    def known_slot(cls, value):
        if value is not None and value not in SLOT_DURATIONS:
            raise ValueError(f"Slot duration must be one of {list(SLOT_DURATIONS)}")
        return value

    @model_validator(mode="after")
    def ordered_hours(self):
        if self.start_time and self.end_time and parse_time(self.start_time) >= parse_time(self.end_time):
            raise ValueError("End time must be after start time")
        return self

class DoctorCreate(AvailabilityUpdate):
    name: str = Field(..., min_length=1, max_length=100)
    specialization: Specialization
    department_id: int
    license_number: str
    years_of_experience: int = Field(0, ge=0, le=60)
    qualifications: List[Qualification] = []
    bio: str = Field(..., min_length=1, max_length=1000)
    consultation_fee: float = Field(0, ge=0)
    languages: List[str] = ["English"]
    email: EmailStr
    phone: str = Field(..., min_length=1)
    address: Optional[Address] = None
    profile_image: Optional[str] = None
    max_patients_per_day: int = Field(20, ge=1)
    allow_emergency: bool = True
    verified: bool = False
    # Optional login account created with the profile
    password: Optional[str] = Field(None, min_length=6, max_length=128)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value):
        return value.lower()

    @field_validator("license_number")
    @classmethod
    def license_format(cls, value):
        return _check_license(value)

class DoctorUpdate(AvailabilityUpdate):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    specialization: Optional[Specialization] = None
    department_id: Optional[int] = None
    license_number: Optional[str] = None
    years_of_experience: Optional[int] = Field(None, ge=0, le=60)
    bio: Optional[str] = Field(None, max_length=1000)
    consultation_fee: Optional[float] = Field(None, ge=0)
    languages: Optional[List[str]] = None
    phone: Optional[str] = None
    address: Optional[Address] = None
    profile_image: Optional[str] = None
    max_patients_per_day: Optional[int] = Field(None, ge=1)
    allow_emergency: Optional[bool] = None
    verified: Optional[bool] = None
    status: Optional[DoctorStatus] = None

    @field_validator("license_number")
    @classmethod
    def license_format(cls, value):
        return _check_license(value)

class RatingCreate(BaseModel):
    rating: int

class DoctorSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    doctor_code: str
    name: str
    specialization: Specialization
    specialty_display: str
    consultation_fee: float

class DoctorResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    doctor_code: str
    user_id: Optional[int] = None
    department_id: int
    name: str
    specialization: Specialization
    specialty_display: str
    license_number: str
    years_of_experience: int
    experience_level: str
    qualifications: List[Dict] = []
    bio: str
    consultation_fee: float
    formatted_fee: str
    languages: List[str] = []
    email: str
    phone: str
    address: Optional[Dict] = None
    profile_image: Optional[str] = None
    working_days: List[str] = []
    start_time: str
    end_time: str
    break_start: str
    break_end: str
    slot_duration: int
    is_available: bool
    rating_average: float
    rating_total_reviews: int
    rating_breakdown: Dict[str, int] = {}
    total_patients: int
    monthly_patients: int
    max_patients_per_day: int
    allow_emergency: bool
    status: DoctorStatus
    verified: bool
    last_active: Optional[datetime] = None
    created_at: Optional[datetime] = None
