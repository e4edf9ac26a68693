from sqlalchemy import Column, Integer, String, ForeignKey, Date, DateTime, Text, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from datetime import date
import enum

from ..core.database import Base

class PrescriptionStatus(str, enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    REQUESTED = "requested"
    REFILL_REQUESTED = "refill-requested"

class Prescription(Base):
    __tablename__ = "prescriptions"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=True)

    medication = Column(String(200), nullable=False)
    dosage = Column(String(100), nullable=True)
    frequency = Column(String(100), nullable=True)
    reason = Column(Text, nullable=True)
    instructions = Column(Text, nullable=True)

    prescribed_date = Column(Date, default=date.today)
    expiry_date = Column(Date, nullable=True)

    status = Column(SQLEnum(PrescriptionStatus), default=PrescriptionStatus.ACTIVE, index=True)
    refills_remaining = Column(Integer, default=0)
    refills_requested = Column(Integer, default=0)
    last_refill_date = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    patient = relationship("Patient", back_populates="prescriptions")
    doctor = relationship("Doctor")

    def __repr__(self):
        return f"<Prescription(id={self.id}, medication='{self.medication}', status='{self.status}')>"
