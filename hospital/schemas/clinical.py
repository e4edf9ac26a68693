from pydantic import BaseModel, ConfigDict, Field, model_validator
from datetime import date, datetime
from typing import Dict, List, Optional

from ..models.lab_request import LabStatus, LabUrgency
from ..models.prescription import PrescriptionStatus
from .appointment import VitalSigns

class PrescriptionCreate(BaseModel):
    patient_code: str
    medication: str = Field(..., min_length=1, max_length=200)
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    reason: Optional[str] = None
    instructions: Optional[str] = None
    expiry_date: Optional[date] = None
    refills_remaining: int = Field(0, ge=0, le=12)

class PrescriptionRequest(BaseModel):
    medication: str = Field(..., min_length=1, max_length=200)
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    reason: Optional[str] = None

class RefillRequest(BaseModel):
    prescription_id: Optional[int] = None
    medication: Optional[str] = None

    @model_validator(mode="after")
    def identifies_prescription(self):
        if self.prescription_id is None and not self.medication:
            raise ValueError("Provide a prescription_id or medication name")
        return self

class PrescriptionStatusUpdate(BaseModel):
    status: PrescriptionStatus

class PrescriptionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    doctor_id: Optional[int] = None
    medication: str
    dosage: Optional[str] = None
    frequency: Optional[str] = None
    reason: Optional[str] = None
    instructions: Optional[str] = None
    prescribed_date: Optional[date] = None
    expiry_date: Optional[date] = None
    status: PrescriptionStatus
    refills_remaining: int
    refills_requested: int
    last_refill_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

class LabRequestCreate(BaseModel):
    test_type: str = Field(..., min_length=1, max_length=150)
    reason: Optional[str] = None
    urgency: LabUrgency = LabUrgency.ROUTINE
    notes: Optional[str] = None

class LabRequestUpdate(BaseModel):
    status: Optional[LabStatus] = None
    results: Optional[str] = None
    notes: Optional[str] = None

class LabRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    doctor_id: Optional[int] = None
    test_type: str
    reason: Optional[str] = None
    urgency: LabUrgency
    status: LabStatus
    results: Optional[str] = None
    notes: Optional[str] = None
    requested_date: Optional[datetime] = None
    completed_date: Optional[datetime] = None

class MedicalRecordCreate(BaseModel):
    patient_code: str
    doctor_id: Optional[int] = None
    visit_date: date
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None
    medications: List[str] = []
    notes: Optional[str] = None
    vital_signs: Optional[VitalSigns] = None

class MedicalRecordResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    patient_id: int
    doctor_id: Optional[int] = None
    visit_date: date
    diagnosis: Optional[str] = None
    treatment: Optional[str] = None
    medications: List[str] = []
    notes: Optional[str] = None
    attachments: List[str] = []
    vital_signs: Dict = {}
    created_at: Optional[datetime] = None
