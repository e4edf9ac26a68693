from sqlalchemy.orm import Session
from fastapi import HTTPException, status
from datetime import datetime
from typing import List
import logging

from ..models.user import User
from ..models.patient import Patient, PatientStatus
from ..core.security import (
    verify_password, get_password_hash, issue_token, UserRole
)
from ..schemas.auth import (
    UserLogin, PatientLogin, PatientRegister, StaffRegister,
    TokenResponse, UserResponse, CurrentUserResponse, ChangePassword
)
from ..schemas.patient import PatientSummary
from .patient_service import PatientService

logger = logging.getLogger(__name__)

class AuthService:
    def __init__(self, db: Session):
        self.db = db

    def _ensure_email_free(self, email: str):
        existing_user = self.db.query(User).filter(User.email == email).first()
        if existing_user:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Email already registered"
            )

    def _token_response(self, user: User, patient: Patient = None) -> TokenResponse:
        token = issue_token(user.id, user.email, user.role)
        return TokenResponse(
            access_token=token.access_token,
            token_type=token.token_type,
            expires_in=token.expires_in,
            user=UserResponse.model_validate(user),
            patient=PatientSummary.model_validate(patient) if patient else None
        )

    def register_patient(self, data: PatientRegister) -> TokenResponse:
        """Create a patient login and its linked patient record."""
        self._ensure_email_free(data.email)

        user = User(
            email=data.email,
            password_hash=get_password_hash(data.password),
            role=UserRole.PATIENT,
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
            is_active=True
        )
        self.db.add(user)
        self.db.flush()

        patient = PatientService(self.db).create_patient(
            data, user_id=user.id, commit=False
        )
        user.last_login = datetime.utcnow()

        self.db.commit()
        self.db.refresh(user)
        self.db.refresh(patient)

        logger.info(f"Registered patient {patient.patient_code} for {user.email}")
        return self._token_response(user, patient)

    def register_staff(self, data: StaffRegister) -> User:
        """Create a staff or doctor account (admin only)."""
        self._ensure_email_free(data.email)

        user = User(
            email=data.email,
            password_hash=get_password_hash(data.password),
            role=data.role,
            first_name=data.first_name,
            last_name=data.last_name,
            phone=data.phone,
            is_active=True
        )
        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"Registered {user.role.value} account {user.email}")
        return user

    def authenticate_user(self, login_data: UserLogin) -> TokenResponse:
        """Authenticate by email and password."""
        user = self.db.query(User).filter(
            User.email == login_data.email.lower()
        ).first()

        if not user or not verify_password(login_data.password, user.password_hash):
            logger.warning(f"Failed login for {login_data.email}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or password"
            )

        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Account is deactivated"
            )

        user.last_login = datetime.utcnow()
        self.db.commit()

        return self._token_response(user, user.patient)

    def authenticate_patient(self, login_data: PatientLogin) -> TokenResponse:
        """Authenticate a patient by email and national ID number."""
        patient = self.db.query(Patient).filter(
            Patient.email == login_data.email.lower(),
            Patient.id_number == login_data.id_number.strip()
        ).first()

        if not patient:
            logger.warning(f"Failed patient login for {login_data.email}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid email or ID number"
            )

        if patient.status != PatientStatus.ACTIVE:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Patient account is not active"
            )

        user = patient.user
        if user is None:
            # Records created by staff get a login on first patient sign-in
            user = User(
                email=patient.email,
                password_hash=get_password_hash(patient.id_number),
                role=UserRole.PATIENT,
                first_name=patient.first_name,
                last_name=patient.last_name,
                phone=patient.phone,
                is_active=True
            )
            self.db.add(user)
            self.db.flush()
            patient.user_id = user.id
        elif not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Account is deactivated"
            )

        user.last_login = datetime.utcnow()
        self.db.commit()
        self.db.refresh(user)

        return self._token_response(user, patient)

    def describe_user(self, user: User) -> CurrentUserResponse:
        response = CurrentUserResponse.model_validate(user)
        if user.patient:
            response.patient_code = user.patient.patient_code
        if user.doctor:
            response.doctor_code = user.doctor.doctor_code
        return response

    def change_password(self, user: User, data: ChangePassword):
        if not verify_password(data.current_password, user.password_hash):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Current password is incorrect"
            )

        user.password_hash = get_password_hash(data.new_password)
        self.db.commit()
        logger.info(f"Password changed for user {user.id}")

    def find_patient_id(self, email: str) -> Patient:
        patient = self.db.query(Patient).filter(Patient.email == email.lower()).first()
        if not patient:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="No patient found with this email"
            )
        return patient

    def list_users(self, skip: int = 0, limit: int = 10) -> List[User]:
        return self.db.query(User).order_by(User.id).offset(skip).limit(limit).all()

    def set_user_status(self, user_id: int, is_active: bool) -> User:
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found"
            )

        user.is_active = is_active
        self.db.commit()
        logger.info(f"User {user.id} {'activated' if is_active else 'deactivated'}")
        return user
