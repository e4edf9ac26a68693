from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from datetime import datetime
from typing import List, Optional
import logging

from ..core.config import settings
from ..models.contact import ContactInfo, ContactSubmission, SubmissionStatus
from ..schemas.contact import ContactInfoData, ContactInfoUpdate, ContactSubmit

logger = logging.getLogger(__name__)

def default_contact_info() -> ContactInfoData:
    return ContactInfoData(
        phone=settings.HOSPITAL_PHONE,
        email=settings.HOSPITAL_EMAIL,
        address=settings.HOSPITAL_ADDRESS,
        operating_hours=settings.HOSPITAL_HOURS,
        emergency_phone=settings.HOSPITAL_EMERGENCY_PHONE,
        whatsapp=settings.HOSPITAL_WHATSAPP,
        facebook=settings.HOSPITAL_FACEBOOK,
        twitter=settings.HOSPITAL_TWITTER
    )

def chat_available(now: datetime) -> bool:
    return settings.CHAT_OPEN_HOUR <= now.hour < settings.CHAT_CLOSE_HOUR

def chat_reply(message: str, info: ContactInfoData) -> str:
    """Canned answer for a chat message; the first matching keyword group wins."""
    text = message.lower()
    if "emergency" in text or "urgent" in text:
        return f"For emergencies, please call our emergency line immediately: {info.emergency_phone}"
    if "appointment" in text or "book" in text:
        return f"To book an appointment, please visit our patient portal or call our reception at {info.phone}"
    if "hours" in text or "open" in text:
        return f"Our operating hours are {info.operating_hours}. Emergency services are available 24/7."
    if "location" in text or "address" in text:
        return f"We are located at {info.address}. You can get directions on Google Maps."
    return "Thank you for your message. Our support team will get back to you soon."

class ContactService:
    def __init__(self, db: Session):
        self.db = db

    def get_info(self) -> ContactInfoData:
        stored = self.db.query(ContactInfo).order_by(ContactInfo.id).first()
        if not stored:
            return default_contact_info()
        return ContactInfoData.model_validate(stored)

    def update_info(self, data: ContactInfoUpdate) -> ContactInfoData:
        stored = self.db.query(ContactInfo).order_by(ContactInfo.id).first()
        if not stored:
            stored = ContactInfo(**default_contact_info().model_dump())
            self.db.add(stored)

        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        for field, value in changes.items():
            setattr(stored, field, value)

        self.db.commit()
        self.db.refresh(stored)
        logger.info(f"Contact information updated: {sorted(changes)}")
        return ContactInfoData.model_validate(stored)

    def submit(self, data: ContactSubmit, ip_address: Optional[str]) -> ContactSubmission:
        submission = ContactSubmission(
            status=SubmissionStatus.NEW,
            ip_address=ip_address,
            **data.model_dump(exclude_none=True)
        )
        self.db.add(submission)
        self.db.commit()
        self.db.refresh(submission)
        logger.info(f"Contact submission {submission.id} received: {submission.subject}")
        return submission

    def submissions(self, status_filter: Optional[SubmissionStatus] = None) -> List[ContactSubmission]:
        query = self.db.query(ContactSubmission)
        if status_filter:
            query = query.filter(ContactSubmission.status == status_filter)
        return query.order_by(ContactSubmission.created_at.desc(), ContactSubmission.id.desc()).all()

    def set_submission_status(self, submission_id: int, new_status: SubmissionStatus) -> ContactSubmission:
        submission = self.db.query(ContactSubmission).filter(ContactSubmission.id == submission_id).first()
        if not submission:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Submission not found"
            )

        submission.status = new_status
        self.db.commit()
        self.db.refresh(submission)
        logger.info(f"Contact submission {submission.id} marked {new_status.value}")
        return submission
