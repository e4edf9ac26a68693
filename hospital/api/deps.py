from fastapi import Depends, HTTPException, status, Request
from fastapi.security import HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import List
from datetime import datetime
import logging

from ..core.config import settings
from ..core.database import get_db, get_redis
from ..core.security import (
    security, verify_token, AuthenticationError,
    AuthorizationError, UserRole, TokenPayload, CLINICAL_STAFF_ROLES
)
from ..models.user import User
from ..models.doctor import Doctor
from ..models.patient import Patient
from ..services.patient_service import PatientService

logger = logging.getLogger(__name__)

async def get_current_user_token(
    credentials: HTTPAuthorizationCredentials = Depends(security)
) -> TokenPayload:
    """Extract and verify JWT token from Authorization header."""
    if credentials is None:
        raise AuthenticationError("Not authenticated")

    token_payload = verify_token(credentials.credentials)
    if not token_payload:
        raise AuthenticationError("Invalid or expired token")

    if token_payload.token_type != "access":
        raise AuthenticationError("Invalid token type")

    return token_payload

async def get_current_user(
    token_payload: TokenPayload = Depends(get_current_user_token),
    db: Session = Depends(get_db)
) -> User:
    """Get current authenticated user from database."""
    if token_payload.user_id is None:
        raise AuthenticationError("Invalid token payload")

    user = db.query(User).filter(User.id == token_payload.user_id).first()
    if not user:
        raise AuthenticationError("User not found")

    if not user.is_active:
        raise AuthenticationError("User account is deactivated")

    return user

# Role-based access control dependencies
def require_role(allowed_roles: List[UserRole]):
    """Create a dependency that requires one of the given roles; admin always passes."""
    async def role_checker(
        current_user: User = Depends(get_current_user)
    ) -> User:
        if current_user.role != UserRole.ADMIN and current_user.role not in allowed_roles:
            raise AuthorizationError(
                f"Access denied. Required roles: {[role.value for role in allowed_roles]}"
            )
        return current_user

    return role_checker

get_admin_user = require_role([UserRole.ADMIN])
get_clinical_staff = require_role(CLINICAL_STAFF_ROLES)

async def get_doctor_user(
    current_user: User = Depends(require_role([UserRole.DOCTOR])),
    db: Session = Depends(get_db)
) -> User:
    """Require a doctor (or admin) and stamp the doctor's last activity."""
    doctor = db.query(Doctor).filter(Doctor.user_id == current_user.id).first()
    if doctor:
        doctor.last_active = datetime.utcnow()
        db.commit()
    return current_user

def get_patient_for_user(
    patient_code: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
) -> Patient:
    """Resolve the path's patient; patients may only reach their own record."""
    patient = PatientService(db).get_by_code(patient_code)

    if current_user.role == UserRole.PATIENT:
        if patient.user_id != current_user.id:
            raise AuthorizationError("You can only access your own records")
    elif current_user.role not in CLINICAL_STAFF_ROLES:
        raise AuthorizationError()

    return patient

def ensure_own_doctor_or_admin(doctor: Doctor, current_user: User):
    if current_user.role == UserRole.ADMIN:
        return
    if current_user.role == UserRole.DOCTOR and doctor.user_id == current_user.id:
        return
    raise AuthorizationError("You can only modify your own profile")

# Rate limiting dependency
async def rate_limit_check(
    request: Request,
    redis_client = Depends(get_redis)
) -> None:
    """Fixed-window request limit per client IP."""
    client_ip = request.client.host if request.client else "unknown"
    key = f"rate_limit:{client_ip}"

    current_requests = redis_client.get(key)
    if current_requests is None:
        redis_client.setex(key, settings.RATE_LIMIT_WINDOW_SECONDS, 1)
    else:
        if int(current_requests) >= settings.RATE_LIMIT_REQUESTS:
            logger.warning(f"Rate limit exceeded for {client_ip}")
            raise HTTPException(
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                detail="Too many requests from this IP, please try again later."
            )
        redis_client.incr(key)
