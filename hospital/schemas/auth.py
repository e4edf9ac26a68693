from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from datetime import datetime
from typing import Optional

from ..core.security import STAFF_ROLES, UserRole
from .patient import PatientCreate, PatientSummary

class UserLogin(BaseModel):
    email: EmailStr
    password: str

class PatientLogin(BaseModel):
    email: EmailStr
    id_number: str = Field(..., min_length=1)

class PatientRegister(PatientCreate):
    password: str = Field(..., min_length=6, max_length=128)

class StaffRegister(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    role: UserRole
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value):
        return value.lower()

    @field_validator("role")
    @classmethod
    def not_patient(cls, value):
        if value == UserRole.PATIENT:
            raise ValueError("Patients register through /auth/patient/register")
        if value != UserRole.DOCTOR and value not in STAFF_ROLES:
            raise ValueError("Only staff or doctor accounts can be registered")
        return value

class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    role: UserRole
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: Optional[datetime] = None

class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse
    patient: Optional[PatientSummary] = None

class CurrentUserResponse(UserResponse):
    patient_code: Optional[str] = None
    doctor_code: Optional[str] = None

class ChangePassword(BaseModel):
    current_password: str
    new_password: str = Field(..., min_length=6, max_length=128)

class ForgotId(BaseModel):
    email: EmailStr

class UserStatusUpdate(BaseModel):
    is_active: bool
