from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from typing import Optional

from ...core.database import get_db
from ...core.security import UserRole
from ...api.deps import get_admin_user, get_clinical_staff, get_current_user, get_patient_for_user
from ...models.patient import Patient, PatientStatus
from ...models.user import User
from ...schemas.appointment import AppointmentBook, AppointmentResponse
from ...schemas.clinical import (
    LabRequestCreate, LabRequestResponse, MedicalRecordResponse,
    PrescriptionRequest, PrescriptionResponse, RefillRequest
)
from ...schemas.common import Pagination
from ...schemas.patient import PatientCreate, PatientResponse, PatientUpdate, ProfileUpdate
from ...services.appointment_service import AppointmentService
from ...services.clinical_service import ClinicalService
from ...services.patient_service import PatientService

router = APIRouter(prefix="/patients", tags=["Patients"])

@router.get("")
async def list_patients(
    search: Optional[str] = None,
    status: Optional[PatientStatus] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    staff: User = Depends(get_clinical_staff)
):
    """List patients (clinical staff)."""
    patients, total = PatientService(db).list_patients(search, status, page, limit)
    return {
        "patients": [PatientResponse.model_validate(patient) for patient in patients],
        "pagination": Pagination.build(page, limit, total)
    }

@router.post("", response_model=PatientResponse, status_code=201)
async def create_patient(
    patient_data: PatientCreate,
    db: Session = Depends(get_db),
    staff: User = Depends(get_clinical_staff)
):
    """Register a patient without a login (clinical staff)."""
    return PatientService(db).create_patient(patient_data)

@router.get("/{patient_code}", response_model=PatientResponse)
async def get_patient(patient: Patient = Depends(get_patient_for_user)):
    return patient

@router.put("/{patient_code}", response_model=PatientResponse)
async def update_patient(
    patient_data: PatientUpdate,
    patient: Patient = Depends(get_patient_for_user),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update a patient; only staff may change the account status."""
    allow_status = current_user.role != UserRole.PATIENT
    return PatientService(db).update_patient(patient, patient_data, allow_status=allow_status)

@router.delete("/{patient_code}")
async def delete_patient(
    patient_code: str,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """Delete a patient and their records (admin only)."""
    patient_service = PatientService(db)
    patient_service.delete_patient(patient_service.get_by_code(patient_code))
    return {"message": "Patient deleted successfully"}

# Patient dashboard
@router.get("/{patient_code}/overview")
async def patient_overview(
    patient: Patient = Depends(get_patient_for_user),
    db: Session = Depends(get_db)
):
    return PatientService(db).overview(patient)

@router.get("/{patient_code}/profile", response_model=PatientResponse)
async def get_profile(patient: Patient = Depends(get_patient_for_user)):
    return patient

@router.put("/{patient_code}/profile", response_model=PatientResponse)
async def update_profile(
    profile_data: ProfileUpdate,
    patient: Patient = Depends(get_patient_for_user),
    db: Session = Depends(get_db)
):
    return PatientService(db).update_profile(patient, profile_data)

@router.get("/{patient_code}/medical-records")
async def get_medical_records(
    patient: Patient = Depends(get_patient_for_user),
    db: Session = Depends(get_db)
):
    records = PatientService(db).medical_records(patient)
    return {"records": [MedicalRecordResponse.model_validate(record) for record in records]}

@router.get("/{patient_code}/lab-results")
async def get_lab_results(
    patient: Patient = Depends(get_patient_for_user),
    db: Session = Depends(get_db)
):
    results = PatientService(db).lab_results(patient)
    return {"results": [LabRequestResponse.model_validate(result) for result in results]}

@router.get("/{patient_code}/prescriptions")
async def get_prescriptions(
    patient: Patient = Depends(get_patient_for_user),
    db: Session = Depends(get_db)
):
    prescriptions = PatientService(db).prescriptions(patient)
    return {"prescriptions": [PrescriptionResponse.model_validate(item) for item in prescriptions]}

@router.get("/{patient_code}/health-metrics")
async def get_health_metrics(
    patient: Patient = Depends(get_patient_for_user),
    db: Session = Depends(get_db)
):
    return PatientService(db).health_metrics(patient)

@router.get("/{patient_code}/appointments")
async def get_patient_appointments(
    status: Optional[str] = Query(None, description="Comma separated statuses"),
    limit: Optional[int] = Query(None, ge=1, le=100),
    patient: Patient = Depends(get_patient_for_user),
    db: Session = Depends(get_db)
):
    appointments = PatientService(db).appointments(patient, status, limit)
    return {"appointments": [AppointmentResponse.model_validate(item) for item in appointments]}

@router.post("/{patient_code}/appointments/book", response_model=AppointmentResponse, status_code=201)
async def book_appointment(
    booking: AppointmentBook,
    patient: Patient = Depends(get_patient_for_user),
    db: Session = Depends(get_db)
):
    """Book an appointment; the doctor's hours and calendar are checked first."""
    return AppointmentService(db).book(patient, booking)

@router.post("/{patient_code}/lab-requests", response_model=LabRequestResponse, status_code=201)
async def request_lab_work(
    lab_data: LabRequestCreate,
    patient: Patient = Depends(get_patient_for_user),
    db: Session = Depends(get_db)
):
    return ClinicalService(db).create_lab_request(patient, lab_data)

@router.post("/{patient_code}/prescriptions/request", response_model=PrescriptionResponse, status_code=201)
async def request_prescription(
    request_data: PrescriptionRequest,
    patient: Patient = Depends(get_patient_for_user),
    db: Session = Depends(get_db)
):
    return ClinicalService(db).request_prescription(patient, request_data)

@router.post("/{patient_code}/prescriptions/refill", response_model=PrescriptionResponse)
async def request_refill(
    refill_data: RefillRequest,
    patient: Patient = Depends(get_patient_for_user),
    db: Session = Depends(get_db)
):
    return ClinicalService(db).request_refill(patient, refill_data)

@router.get("/{patient_code}/records/download")
async def download_records(
    patient: Patient = Depends(get_patient_for_user),
    db: Session = Depends(get_db)
):
    """Everything on file for the patient as one JSON document."""
    bundle = PatientService(db).download_bundle(patient)
    bundle["medical_records"] = [
        MedicalRecordResponse.model_validate(record) for record in bundle["medical_records"]
    ]
    bundle["prescriptions"] = [
        PrescriptionResponse.model_validate(item) for item in bundle["prescriptions"]
    ]
    return {"message": "Medical records prepared for download", "data": bundle}
