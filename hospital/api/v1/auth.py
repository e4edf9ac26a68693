from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...core.database import get_db
from ...api.deps import (
    get_current_user, get_current_user_token, get_admin_user, rate_limit_check
)
from ...services.auth_service import AuthService
from ...schemas.auth import (
    UserLogin, PatientLogin, PatientRegister, StaffRegister, TokenResponse,
    UserResponse, CurrentUserResponse, ChangePassword, ForgotId, UserStatusUpdate
)
from ...models.user import User

router = APIRouter(prefix="/auth", tags=["Authentication"])

@router.post("/patient/register", response_model=TokenResponse, status_code=201)
async def register_patient(
    patient_data: PatientRegister,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Register a patient account with its medical record."""
    auth_service = AuthService(db)
    return auth_service.register_patient(patient_data)

@router.post("/login", response_model=TokenResponse)
async def login(
    login_data: UserLogin,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Authenticate with email and password."""
    auth_service = AuthService(db)
    return auth_service.authenticate_user(login_data)

@router.post("/patient/login", response_model=TokenResponse)
async def patient_login(
    login_data: PatientLogin,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Authenticate a patient with email and national ID number."""
    auth_service = AuthService(db)
    return auth_service.authenticate_patient(login_data)

@router.get("/me", response_model=CurrentUserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get current user information."""
    return AuthService(db).describe_user(current_user)

@router.post("/verify")
async def verify_token_endpoint(
    token_payload = Depends(get_current_user_token)
):
    """Verify if token is valid."""
    return {
        "valid": True,
        "user_id": token_payload.user_id,
        "email": token_payload.email,
        "role": token_payload.role,
        "expires": token_payload.exp
    }

@router.post("/logout")
async def logout(
    current_user: User = Depends(get_current_user)
):
    """Tokens are stateless; the client discards its copy."""
    return {"message": "Successfully logged out"}

@router.post("/change-password")
async def change_password(
    password_data: ChangePassword,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Change user password."""
    AuthService(db).change_password(current_user, password_data)
    return {"message": "Password changed successfully"}

@router.post("/forgot-id")
async def forgot_id(
    request_data: ForgotId,
    db: Session = Depends(get_db),
    _: None = Depends(rate_limit_check)
):
    """Look up a patient ID by email."""
    patient = AuthService(db).find_patient_id(request_data.email)
    return {
        "message": "Patient ID found",
        "patient_code": patient.patient_code,
        "name": patient.full_name
    }

# Admin routes
@router.post("/register", response_model=UserResponse, status_code=201)
async def register_staff(
    user_data: StaffRegister,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """Create a staff or doctor account (admin only)."""
    user = AuthService(db).register_staff(user_data)
    return UserResponse.model_validate(user)

@router.get("/users")
async def list_users(
    skip: int = 0,
    limit: int = 10,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """List all users (admin only)."""
    users = AuthService(db).list_users(skip, limit)
    return [UserResponse.model_validate(user) for user in users]

@router.patch("/users/{user_id}/status")
async def update_user_status(
    user_id: int,
    status_data: UserStatusUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_admin_user)
):
    """Update user active status (admin only)."""
    AuthService(db).set_user_status(user_id, status_data.is_active)
    return {"message": f"User {'activated' if status_data.is_active else 'deactivated'} successfully"}
