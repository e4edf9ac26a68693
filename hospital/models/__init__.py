from .user import User
from .department import Department
from .doctor import Doctor
from .patient import Patient
from .appointment import Appointment
from .prescription import Prescription
from .lab_request import LabRequest
from .medical_record import MedicalRecord
from .contact import ContactInfo, ContactSubmission
from .service import Service

__all__ = [
    "User",
    "Department",
    "Doctor",
    "Patient",
    "Appointment",
    "Prescription",
    "LabRequest",
    "MedicalRecord",
    "ContactInfo",
    "ContactSubmission",
    "Service",
]
