from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from datetime import datetime
from typing import List, Optional

from ..models.department import DepartmentStatus, Wing
from ..services.scheduling import is_valid_time

class OfferedService(BaseModel):
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    duration: Optional[str] = None
    requirements: List[str] = []

class DepartmentFields(BaseModel):
    description: Optional[str] = None
    icon: Optional[str] = None
    department_code: Optional[str] = None
    head_doctor_id: Optional[int] = None
    phone: Optional[str] = None
    contact_email: Optional[EmailStr] = None
    location: Optional[str] = None
    floor: Optional[str] = None
    wing: Optional[Wing] = None
    services: Optional[List[OfferedService]] = None
    specializations: Optional[List[str]] = None
    weekday_open: Optional[str] = None
    weekday_close: Optional[str] = None
    weekend_open: Optional[str] = None
    weekend_close: Optional[str] = None
    emergency: Optional[bool] = None
    hours_notes: Optional[str] = None
    status: Optional[DepartmentStatus] = None
    is_active: Optional[bool] = None
    capacity_doctors: Optional[int] = Field(None, ge=0)
    capacity_patients_per_day: Optional[int] = Field(None, ge=0)
    capacity_beds: Optional[int] = Field(None, ge=0)
    color_code: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("weekday_open", "weekday_close", "weekend_open", "weekend_close")
    @classmethod
    def clock_times(cls, value):
        if value is not None and not is_valid_time(value):
            raise ValueError("Time must be in HH:MM format")
        return value

class DepartmentCreate(DepartmentFields):
    name: str = Field(..., min_length=1, max_length=100)
    description: str = Field(..., min_length=1)

    @field_validator("name")
    @classmethod
    def strip_name(cls, value):
        return value.strip()

class DepartmentUpdate(DepartmentFields):
    name: Optional[str] = Field(None, min_length=1, max_length=100)

class DepartmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str
    icon: Optional[str] = None
    department_code: Optional[str] = None
    head_doctor_id: Optional[int] = None
    phone: Optional[str] = None
    contact_email: Optional[str] = None
    location: Optional[str] = None
    floor: Optional[str] = None
    wing: Optional[Wing] = None
    services: List[dict] = []
    service_list: List[str] = []
    specializations: List[str] = []
    weekday_open: Optional[str] = None
    weekday_close: Optional[str] = None
    weekend_open: Optional[str] = None
    weekend_close: Optional[str] = None
    emergency: bool
    hours_notes: Optional[str] = None
    formatted_hours: str
    status: DepartmentStatus
    current_status: str
    is_active: bool
    capacity_doctors: Optional[int] = None
    capacity_patients_per_day: Optional[int] = None
    capacity_beds: Optional[int] = None
    monthly_patients: Optional[int] = None
    success_rate: Optional[str] = None
    average_wait_time: Optional[str] = None
    color_code: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
