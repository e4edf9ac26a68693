from sqlalchemy import Column, Integer, ForeignKey, Date, DateTime, Text, JSON
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship

from ..core.database import Base

class MedicalRecord(Base):
    __tablename__ = "medical_records"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=True)

    visit_date = Column(Date, nullable=False, index=True)
    diagnosis = Column(Text, nullable=True)
    treatment = Column(Text, nullable=True)
    medications = Column(JSON, default=list)
    notes = Column(Text, nullable=True)
    attachments = Column(JSON, default=list)

    # {"blood_pressure", "heart_rate", "temperature", "weight", "height", "bmi", "blood_sugar"}
    vital_signs = Column(JSON, default=dict)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    patient = relationship("Patient", back_populates="medical_records")
    doctor = relationship("Doctor")

    def __repr__(self):
        return f"<MedicalRecord(id={self.id}, patient_id={self.patient_id}, visit_date='{self.visit_date}')>"
