from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from database import get_db
from deps import get_identity_provider
from errors import ValidationError
from models.schemas import Credentials, EmailExistsResponse, MessageResponse, PasswordReset, TokenResponse
from services.identity import IdentityProvider

router = APIRouter(prefix="/api/auth", tags=["auth"])

@router.post("/signup", response_model=MessageResponse)
def signup(
    data: Credentials,
    db: Session = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    identity.sign_up(db, data.email, data.password)
    return MessageResponse(message="User created successfully")

@router.post("/login", response_model=TokenResponse)
def login(
    data: Credentials,
    db: Session = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    return TokenResponse(token=identity.log_in(db, data.email, data.password))

@router.get("/verify-email", response_model=EmailExistsResponse)
def verify_email(
    email: str | None = None,
    db: Session = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    if not email:
        raise ValidationError("Email is required")
    return EmailExistsResponse(exists=identity.email_exists(db, email))

@router.post("/reset-password", response_model=MessageResponse)
def reset_password(
    data: PasswordReset,
    db: Session = Depends(get_db),
    identity: IdentityProvider = Depends(get_identity_provider),
):
    identity.reset_password(db, data.email, data.newPassword)
    return MessageResponse(message="Password reset successfully")
