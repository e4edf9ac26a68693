from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, Enum as SQLEnum
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from datetime import datetime
import enum

from ..core.database import Base

class LabUrgency(str, enum.Enum):
    ROUTINE = "routine"
    URGENT = "urgent"
    EMERGENCY = "emergency"

class LabStatus(str, enum.Enum):
    REQUESTED = "requested"
    SCHEDULED = "scheduled"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

# Results still outstanding for the patient
PENDING_LAB_STATUSES = [LabStatus.REQUESTED, LabStatus.SCHEDULED, LabStatus.IN_PROGRESS]

class LabRequest(Base):
    __tablename__ = "lab_requests"

    id = Column(Integer, primary_key=True, index=True)
    patient_id = Column(Integer, ForeignKey("patients.id"), nullable=False, index=True)
    doctor_id = Column(Integer, ForeignKey("doctors.id"), nullable=True)

    test_type = Column(String(150), nullable=False)
    reason = Column(Text, nullable=True)
    urgency = Column(SQLEnum(LabUrgency), default=LabUrgency.ROUTINE)
    status = Column(SQLEnum(LabStatus), default=LabStatus.REQUESTED, index=True)
    results = Column(Text, nullable=True)
    notes = Column(Text, nullable=True)

    requested_date = Column(DateTime, default=datetime.utcnow)
    completed_date = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    # Relationships
    patient = relationship("Patient", back_populates="lab_requests")
    doctor = relationship("Doctor")

    def __repr__(self):
        return f"<LabRequest(id={self.id}, test_type='{self.test_type}', status='{self.status}')>"
