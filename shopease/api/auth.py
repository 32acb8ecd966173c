from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from shopease.api.deps import get_current_user
from shopease.config import settings
from shopease.models import User
from shopease.schemas import (
    DevLoginRequest, FirebaseLoginRequest, LoginRequest, RegisterRequest, TokenResponse, UserOut,
)
from shopease.services import firebase_service, users_service
from shopease.utils.database import get_db
from shopease.utils.exceptions import ForbiddenError

router = APIRouter()


@router.post("/api/auth/register", response_model=TokenResponse, status_code=201)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    """Create an account and return a token"""
    return users_service.register_user(db, payload.email, payload.password)


@router.post("/api/auth/login", response_model=TokenResponse)
@router.post("/auth/login", response_model=TokenResponse, include_in_schema=False)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    """Login with email and password"""
    return users_service.login_user(db, payload.email, payload.password)


@router.post("/api/auth/firebase-login", response_model=TokenResponse)
def firebase_login(payload: FirebaseLoginRequest, db: Session = Depends(get_db)):
    """Login with a Firebase phone ID token"""
    verified = firebase_service.verify_phone_token(payload.id_token)
    return users_service.phone_login(db, verified["phone_number"])


@router.post("/api/auth/dev-login", response_model=TokenResponse)
def dev_login(payload: DevLoginRequest, db: Session = Depends(get_db)):
    """Phone login without Firebase, for development"""
    if not settings.dev_login_enabled:
        raise ForbiddenError("Dev login is disabled in production")
    return users_service.phone_login(db, users_service.normalize_phone(payload.phone))


@router.get("/api/auth/profile", response_model=UserOut)
def profile(user: User = Depends(get_current_user)):
    """Get the current user's profile"""
    return user


@router.get("/me")
def me(user: User = Depends(get_current_user)):
    """Get the current token's identity"""
    return {"user_id": user.user_id, "role": user.role, "email": user.email}
