from sqlalchemy.orm import Session
from sqlalchemy import or_
from fastapi import HTTPException, status
from datetime import date
from typing import List, Optional, Tuple
import logging

from ..models.patient import Patient, PatientStatus
from ..models.appointment import Appointment, AppointmentStatus
from ..models.lab_request import LabRequest, PENDING_LAB_STATUSES
from ..models.medical_record import MedicalRecord
from ..models.prescription import Prescription, PrescriptionStatus
from ..schemas.patient import PatientCreate, PatientUpdate, ProfileUpdate

logger = logging.getLogger(__name__)

TEXT_FIELDS = {"allergies_text", "medications_text", "conditions_text", "password"}

class PatientService:
    def __init__(self, db: Session):
        self.db = db

    def create_patient(self, data: PatientCreate, user_id: Optional[int] = None, commit: bool = True) -> Patient:
        """Create a patient record, filling the medical lists from comma text."""
        existing = self.db.query(Patient).filter(
            or_(Patient.email == data.email, Patient.id_number == data.id_number)
        ).first()
        if existing:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Patient with this email or ID number already exists"
            )

        # Unset optional fields keep their column defaults
        values = data.model_dump(exclude=TEXT_FIELDS, exclude_none=True)
        patient = Patient(user_id=user_id, **values)
        patient.apply_text_fields(
            allergies_text=data.allergies_text,
            medications_text=data.medications_text,
            conditions_text=data.conditions_text
        )

        self.db.add(patient)
        if commit:
            self.db.commit()
            self.db.refresh(patient)
            logger.info(f"Created patient {patient.patient_code}")
        else:
            self.db.flush()
        return patient

    def list_patients(
        self,
        search: Optional[str] = None,
        status_filter: Optional[PatientStatus] = None,
        page: int = 1,
        limit: int = 10
    ) -> Tuple[List[Patient], int]:
        query = self.db.query(Patient)
        if status_filter:
            query = query.filter(Patient.status == status_filter)
        if search:
            pattern = f"%{search}%"
            query = query.filter(or_(
                Patient.first_name.ilike(pattern),
                Patient.last_name.ilike(pattern),
                Patient.email.ilike(pattern),
                Patient.patient_code.ilike(pattern),
                Patient.phone.ilike(pattern)
            ))

        total = query.count()
        patients = query.order_by(Patient.created_at.desc(), Patient.id.desc()) \
            .offset((page - 1) * limit).limit(limit).all()
        return patients, total

    def get_by_code(self, patient_code: str) -> Patient:
        patient = self.db.query(Patient).filter(Patient.patient_code == patient_code).first()
        if not patient:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Patient not found"
            )
        return patient

    def update_patient(self, patient: Patient, data, allow_status: bool = True) -> Patient:
        """Apply a PatientUpdate or ProfileUpdate; only staff may change status."""
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        if not allow_status:
            changes.pop("status", None)

        for field, value in changes.items():
            setattr(patient, field, value)

        self.db.commit()
        self.db.refresh(patient)
        logger.info(f"Updated patient {patient.patient_code}: {sorted(changes)}")
        return patient

    def update_profile(self, patient: Patient, data: ProfileUpdate) -> Patient:
        return self.update_patient(patient, data, allow_status=False)

    def delete_patient(self, patient: Patient):
        code = patient.patient_code
        self.db.delete(patient)
        self.db.commit()
        logger.info(f"Deleted patient {code}")

    def overview(self, patient: Patient) -> dict:
        """Dashboard counters and the three most recent appointments."""
        upcoming = self.db.query(Appointment).filter(
            Appointment.patient_id == patient.id,
            Appointment.status.in_([AppointmentStatus.SCHEDULED, AppointmentStatus.CONFIRMED]),
            Appointment.appointment_date >= date.today()
        ).count()

        pending_results = self.db.query(LabRequest).filter(
            LabRequest.patient_id == patient.id,
            LabRequest.status.in_(PENDING_LAB_STATUSES)
        ).count()

        active_prescriptions = self.db.query(Prescription).filter(
            Prescription.patient_id == patient.id,
            Prescription.status == PrescriptionStatus.ACTIVE
        ).count()

        recent = self.db.query(Appointment).filter(
            Appointment.patient_id == patient.id
        ).order_by(
            Appointment.appointment_date.desc(), Appointment.appointment_time.desc()
        ).limit(3).all()

        return {
            "upcoming_appointments": upcoming,
            "pending_results": pending_results,
            "active_prescriptions": active_prescriptions,
            "recent_appointments": [
                {
                    "id": appointment.id,
                    "appointment_code": appointment.appointment_code,
                    "type": appointment.type,
                    "consultation_type": appointment.consultation_type,
                    "date": appointment.appointment_date,
                    "time": appointment.appointment_time,
                    "status": appointment.status,
                    "reason": appointment.reason,
                    "doctor": {
                        "name": appointment.doctor.name if appointment.doctor else "Doctor",
                        "specialization": appointment.doctor.specialty_display if appointment.doctor else "General Medicine"
                    }
                }
                for appointment in recent
            ]
        }

    def medical_records(self, patient: Patient) -> List[MedicalRecord]:
        return self.db.query(MedicalRecord).filter(
            MedicalRecord.patient_id == patient.id
        ).order_by(MedicalRecord.visit_date.desc(), MedicalRecord.id.desc()).all()

    def lab_results(self, patient: Patient) -> List[LabRequest]:
        return self.db.query(LabRequest).filter(
            LabRequest.patient_id == patient.id
        ).order_by(LabRequest.requested_date.desc(), LabRequest.id.desc()).all()

    def prescriptions(self, patient: Patient) -> List[Prescription]:
        return self.db.query(Prescription).filter(
            Prescription.patient_id == patient.id
        ).order_by(Prescription.prescribed_date.desc(), Prescription.id.desc()).all()

    def health_metrics(self, patient: Patient) -> dict:
        """Vitals from the latest medical record, with placeholders for gaps."""
        records = self.medical_records(patient)
        vitals = (records[0].vital_signs or {}) if records else {}
        return {
            "blood_pressure": vitals.get("blood_pressure") or "--/--",
            "heart_rate": vitals.get("heart_rate") or "--",
            "temperature": vitals.get("temperature") or "--",
            "bmi": vitals.get("bmi") or "--",
            "recorded_on": records[0].visit_date if records else None
        }

    def appointments(self, patient: Patient, statuses: Optional[str] = None, limit: Optional[int] = None) -> List[Appointment]:
        query = self.db.query(Appointment).filter(Appointment.patient_id == patient.id)
        if statuses:
            try:
                wanted = [AppointmentStatus(value.strip()) for value in statuses.split(",") if value.strip()]
            except ValueError:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Unknown appointment status in '{statuses}'"
                )
            query = query.filter(Appointment.status.in_(wanted))

        query = query.order_by(Appointment.appointment_date.desc(), Appointment.appointment_time.desc())
        if limit:
            query = query.limit(limit)
        return query.all()

    def download_bundle(self, patient: Patient) -> dict:
        appointments = self.appointments(patient)
        return {
            "patient": {
                "name": patient.full_name,
                "patient_code": patient.patient_code,
                "date_of_birth": patient.date_of_birth,
                "blood_type": patient.blood_type,
                "gender": patient.gender,
                "phone": patient.phone,
                "email": patient.email
            },
            "medical_records": self.medical_records(patient),
            "appointments": [
                {
                    "date": appointment.appointment_date,
                    "time": appointment.appointment_time,
                    "doctor": appointment.doctor.name if appointment.doctor else None,
                    "reason": appointment.reason,
                    "diagnosis": appointment.diagnosis,
                    "notes": appointment.notes
                }
                for appointment in appointments
            ],
            "prescriptions": self.prescriptions(patient)
        }
