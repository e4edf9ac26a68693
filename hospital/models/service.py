from sqlalchemy import Column, Integer, String, DateTime, Boolean, Text, JSON
from sqlalchemy.sql import func

from ..core.database import Base

class Service(Base):
    """An entry in the public catalogue of hospital services."""
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False, index=True)
    category = Column(String(100), nullable=False, index=True)
    description = Column(Text, nullable=False)
    detailed_description = Column(Text, nullable=False)
    duration = Column(String(50), nullable=False)
    price = Column(String(50), nullable=False)
    specialists_count = Column(Integer, default=1)
    success_rate = Column(String(10), default="95%")
    features = Column(JSON, default=list)
    icon = Column(String(20), default="🏥")
    # [{"step", "title", "description", "duration"}]
    procedures = Column(JSON, default=list)
    requirements = Column(JSON, default=list)
    consultation_fee = Column(String(50), default="Free Consultation")
    insurance_covered = Column(Boolean, default=True)
    active = Column(Boolean, default=True, index=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<Service(id={self.id}, name='{self.name}', category='{self.category}')>"
