from pydantic import BaseModel, ConfigDict, EmailStr, Field
from datetime import datetime
from typing import Optional

from ..models.contact import SubmissionStatus

class ContactInfoData(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    phone: str
    email: str
    address: str
    operating_hours: str
    emergency_phone: str
    whatsapp: Optional[str] = None
    facebook: Optional[str] = None
    twitter: Optional[str] = None

class ContactInfoUpdate(BaseModel):
    phone: Optional[str] = None
    email: Optional[EmailStr] = None
    address: Optional[str] = None
    operating_hours: Optional[str] = None
    emergency_phone: Optional[str] = None
    whatsapp: Optional[str] = None
    facebook: Optional[str] = None
    twitter: Optional[str] = None

class ContactSubmit(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    email: EmailStr
    phone: Optional[str] = None
    subject: str = Field(..., min_length=1, max_length=255)
    department: Optional[str] = None
    message: str = Field(..., min_length=1)
    source: str = "website"

class SubmissionStatusUpdate(BaseModel):
    status: SubmissionStatus

class ContactSubmissionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    email: str
    phone: Optional[str] = None
    subject: str
    department: Optional[str] = None
    message: str
    source: Optional[str] = None
    status: SubmissionStatus
    ip_address: Optional[str] = None
    created_at: Optional[datetime] = None

class ChatMessage(BaseModel):
    message: str = Field(..., min_length=1, max_length=1000)
    user_name: Optional[str] = None
