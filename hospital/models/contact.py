from sqlalchemy import Column, Integer, String, DateTime, Text, Enum as SQLEnum
from sqlalchemy.sql import func
import enum

from ..core.database import Base

class SubmissionStatus(str, enum.Enum):
    NEW = "new"
    READ = "read"
    REPLIED = "replied"
    CLOSED = "closed"

class ContactInfo(Base):
    """Public contact details. A single row is kept."""
    __tablename__ = "contact_info"

    id = Column(Integer, primary_key=True, index=True)
    phone = Column(String(30), nullable=False)
    email = Column(String(255), nullable=False)
    address = Column(String(255), nullable=False)
    operating_hours = Column(String(255), nullable=False)
    emergency_phone = Column(String(30), nullable=False)
    whatsapp = Column(String(30), nullable=True)
    facebook = Column(String(100), nullable=True)
    twitter = Column(String(100), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

class ContactSubmission(Base):
    __tablename__ = "contact_submissions"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(150), nullable=False)
    email = Column(String(255), nullable=False)
    phone = Column(String(30), nullable=True)
    subject = Column(String(255), nullable=False)
    department = Column(String(100), nullable=True)
    message = Column(Text, nullable=False)
    source = Column(String(50), default="website")
    status = Column(SQLEnum(SubmissionStatus), default=SubmissionStatus.NEW, index=True)
    ip_address = Column(String(64), nullable=True)

    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<ContactSubmission(id={self.id}, subject='{self.subject}', status='{self.status}')>"
