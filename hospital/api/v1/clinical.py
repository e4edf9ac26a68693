from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...core.security import UserRole
from ...api.deps import get_doctor_user, require_role
from ...models.doctor import Doctor
from ...models.user import User
from ...schemas.clinical import (
    LabRequestResponse, LabRequestUpdate, MedicalRecordCreate, MedicalRecordResponse,
    PrescriptionCreate, PrescriptionResponse, PrescriptionStatusUpdate
)
from ...services.clinical_service import ClinicalService

router = APIRouter(tags=["Clinical"])

def _doctor_profile(db: Session, user: User):
    return db.query(Doctor).filter(Doctor.user_id == user.id).first()

@router.post("/prescriptions", response_model=PrescriptionResponse, status_code=201)
async def issue_prescription(
    prescription_data: PrescriptionCreate,
    db: Session = Depends(get_db),
    doctor_user: User = Depends(get_doctor_user)
):
    """Issue an active prescription (doctor)."""
    return ClinicalService(db).issue_prescription(prescription_data, _doctor_profile(db, doctor_user))

@router.patch("/prescriptions/{prescription_id}/status", response_model=PrescriptionResponse)
async def update_prescription_status(
    prescription_id: int,
    status_data: PrescriptionStatusUpdate,
    db: Session = Depends(get_db),
    doctor_user: User = Depends(get_doctor_user)
):
    return ClinicalService(db).set_prescription_status(prescription_id, status_data.status)

@router.patch("/lab-requests/{lab_request_id}", response_model=LabRequestResponse)
async def update_lab_request(
    lab_request_id: int,
    lab_data: LabRequestUpdate,
    db: Session = Depends(get_db),
    staff: User = Depends(require_role([UserRole.LAB_TECHNICIAN, UserRole.DOCTOR, UserRole.NURSE]))
):
    """Move a lab request along and attach results."""
    return ClinicalService(db).update_lab_request(lab_request_id, lab_data)

@router.post("/medical-records", response_model=MedicalRecordResponse, status_code=201)
async def create_medical_record(
    record_data: MedicalRecordCreate,
    db: Session = Depends(get_db),
    staff: User = Depends(require_role([UserRole.DOCTOR, UserRole.NURSE]))
):
    return ClinicalService(db).create_medical_record(record_data, _doctor_profile(db, staff))
