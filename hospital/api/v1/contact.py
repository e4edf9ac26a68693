from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session
from datetime import datetime
from typing import Optional

from ...core.config import settings
from ...core.database import get_db
from ...api.deps import get_admin_user, get_clinical_staff, rate_limit_check
from ...models.contact import SubmissionStatus
from ...models.user import User
from ...schemas.contact import (
    ChatMessage, ContactInfoData, ContactInfoUpdate, ContactSubmissionResponse,
    ContactSubmit, SubmissionStatusUpdate
)
from ...services.contact_service import ContactService, chat_available, chat_reply

router = APIRouter(prefix="/contact", tags=["Contact"])

@router.get("/info", response_model=ContactInfoData)
async def get_contact_info(db: Session = Depends(get_db)):
    return ContactService(db).get_info()

@router.put("/info", response_model=ContactInfoData)
async def update_contact_info(
    info_data: ContactInfoUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    return ContactService(db).update_info(info_data)

@router.post("/submit", status_code=201)
async def submit_contact_form(
    request: Request,
    form: ContactSubmit,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    client_ip = request.client.host if request.client else None
    submission = ContactService(db).submit(form, client_ip)
    return {
        "message": "Contact form submitted successfully",
        "submission_id": submission.id
    }

@router.get("/submissions")
async def list_submissions(
    status: Optional[SubmissionStatus] = None,
    db: Session = Depends(get_db),
    staff: User = Depends(get_clinical_staff)
):
    submissions = ContactService(db).submissions(status)
    return {"submissions": [ContactSubmissionResponse.model_validate(item) for item in submissions]}

@router.patch("/submissions/{submission_id}", response_model=ContactSubmissionResponse)
async def update_submission(
    submission_id: int,
    status_data: SubmissionStatusUpdate,
    db: Session = Depends(get_db),
    staff: User = Depends(get_clinical_staff)
):
    return ContactService(db).set_submission_status(submission_id, status_data.status)

@router.get("/chat/status")
async def chat_status():
    available = chat_available(datetime.now())
    return {
        "chat_available": available,
        "message": "Chat is available" if available else (
            f"Chat is available during business hours "
            f"({settings.CHAT_OPEN_HOUR:02d}:00 - {settings.CHAT_CLOSE_HOUR:02d}:00)"
        )
    }

@router.post("/chat/message")
async def chat_message(
    chat: ChatMessage,
    db: Session = Depends(get_db)
):
    info = ContactService(db).get_info()
    return {"response": chat_reply(chat.message, info)}
