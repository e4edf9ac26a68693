from sqlalchemy.orm import Session
from sqlalchemy import func
from fastapi import HTTPException, status
from datetime import datetime
import logging

from ..models.patient import Patient
from ..models.doctor import Doctor
from ..models.prescription import Prescription, PrescriptionStatus
from ..models.lab_request import LabRequest, LabStatus
from ..models.medical_record import MedicalRecord
from ..schemas.clinical import (
    PrescriptionCreate, PrescriptionRequest, RefillRequest,
    LabRequestCreate, LabRequestUpdate, MedicalRecordCreate
)
from .patient_service import PatientService
from .scheduling import bmi

logger = logging.getLogger(__name__)

class ClinicalService:
    """Prescriptions, lab requests and medical records."""

    def __init__(self, db: Session):
        self.db = db

    def issue_prescription(self, data: PrescriptionCreate, doctor: Doctor = None) -> Prescription:
        patient = PatientService(self.db).get_by_code(data.patient_code)
        prescription = Prescription(
            patient_id=patient.id,
            doctor_id=doctor.id if doctor else None,
            status=PrescriptionStatus.ACTIVE,
            **data.model_dump(exclude={"patient_code"}, exclude_none=True)
        )
        self.db.add(prescription)
        self.db.commit()
        self.db.refresh(prescription)
        logger.info(
            f"Prescription {prescription.id} issued for {patient.patient_code}: "
            f"{prescription.medication} ({prescription.refills_remaining} refills)"
        )
        return prescription

    def request_prescription(self, patient: Patient, data: PrescriptionRequest) -> Prescription:
        prescription = Prescription(
            patient_id=patient.id,
            status=PrescriptionStatus.REQUESTED,
            **data.model_dump(exclude_none=True)
        )
        self.db.add(prescription)
        self.db.commit()
        self.db.refresh(prescription)
        logger.info(f"Prescription requested by {patient.patient_code}: {prescription.medication}")
        return prescription

    def request_refill(self, patient: Patient, data: RefillRequest) -> Prescription:
        """Use one refill of an active prescription found by id or medication name."""
        query = self.db.query(Prescription).filter(
            Prescription.patient_id == patient.id,
            Prescription.status == PrescriptionStatus.ACTIVE
        )
        if data.prescription_id is not None:
            query = query.filter(Prescription.id == data.prescription_id)
        else:
            query = query.filter(func.lower(Prescription.medication) == data.medication.strip().lower())

        prescription = query.first()
        if not prescription:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Active prescription not found"
            )

        if (prescription.refills_remaining or 0) <= 0:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="No refills remaining for this prescription"
            )

        prescription.refills_remaining -= 1
        prescription.refills_requested = (prescription.refills_requested or 0) + 1
        prescription.last_refill_date = datetime.utcnow()
        prescription.status = PrescriptionStatus.REFILL_REQUESTED

        self.db.commit()
        self.db.refresh(prescription)
        logger.info(
            f"Refill requested for prescription {prescription.id}, "
            f"{prescription.refills_remaining} remaining"
        )
        return prescription

    def get_prescription(self, prescription_id: int) -> Prescription:
        prescription = self.db.query(Prescription).filter(Prescription.id == prescription_id).first()
        if not prescription:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Prescription not found"
            )
        return prescription

    def set_prescription_status(self, prescription_id: int, new_status: PrescriptionStatus) -> Prescription:
        prescription = self.get_prescription(prescription_id)
        previous = prescription.status
        prescription.status = new_status
        self.db.commit()
        self.db.refresh(prescription)
        logger.info(f"Prescription {prescription.id} status {previous.value} -> {new_status.value}")
        return prescription

    def create_lab_request(self, patient: Patient, data: LabRequestCreate, doctor: Doctor = None) -> LabRequest:
        lab_request = LabRequest(
            patient_id=patient.id,
            doctor_id=doctor.id if doctor else None,
            status=LabStatus.REQUESTED,
            requested_date=datetime.utcnow(),
            **data.model_dump(exclude_none=True)
        )
        self.db.add(lab_request)
        self.db.commit()
        self.db.refresh(lab_request)
        logger.info(f"Lab request {lab_request.id} ({lab_request.test_type}) for {patient.patient_code}")
        return lab_request

    def update_lab_request(self, lab_request_id: int, data: LabRequestUpdate) -> LabRequest:
        lab_request = self.db.query(LabRequest).filter(LabRequest.id == lab_request_id).first()
        if not lab_request:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Lab request not found"
            )

        for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
            setattr(lab_request, field, value)
        if lab_request.status == LabStatus.COMPLETED and lab_request.completed_date is None:
            lab_request.completed_date = datetime.utcnow()

        self.db.commit()
        self.db.refresh(lab_request)
        logger.info(f"Lab request {lab_request.id} is now {lab_request.status.value}")
        return lab_request

    def create_medical_record(self, data: MedicalRecordCreate, doctor: Doctor = None) -> MedicalRecord:
        patient = PatientService(self.db).get_by_code(data.patient_code)

        vitals = data.vital_signs.model_dump(exclude_none=True) if data.vital_signs else {}
        computed = bmi(vitals.get("weight"), vitals.get("height"))
        if computed is not None:
            vitals["bmi"] = computed

        doctor_id = data.doctor_id
        if doctor_id is None and doctor is not None:
            doctor_id = doctor.id

        record = MedicalRecord(
            patient_id=patient.id,
            doctor_id=doctor_id,
            visit_date=data.visit_date,
            diagnosis=data.diagnosis,
            treatment=data.treatment,
            medications=data.medications,
            notes=data.notes,
            vital_signs=vitals
        )
        self.db.add(record)
        self.db.commit()
        self.db.refresh(record)
        logger.info(f"Medical record {record.id} added for {patient.patient_code}")
        return record
