from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from shopease.models import User
from shopease.services.bakong_service import BakongService, bakong_service
from shopease.utils.database import get_db
from shopease.utils.exceptions import AuthError, ForbiddenError
from shopease.utils.security import decode_token

oauth2 = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def _load_user(db: Session, payload: dict) -> User:
    try:
        user_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        raise AuthError("Invalid or expired token")
    user = db.query(User).filter(User.user_id == user_id).first()
    if not user:
        raise AuthError("User not found")
    if not user.is_active:
        raise ForbiddenError("Account is deactivated")
    return user


def get_current_user(token: Optional[str] = Depends(oauth2), db: Session = Depends(get_db)) -> User:
    if not token:
        raise AuthError("Authentication required")
    return _load_user(db, decode_token(token))


def get_admin_user(user: User = Depends(get_current_user)) -> User:
    if not user.is_admin:
        raise ForbiddenError("Admin role required")
    return user


def get_optional_user(token: Optional[str] = Depends(oauth2), db: Session = Depends(get_db)) -> Optional[User]:
    """Current user when a valid token is sent, None for guests and bad tokens"""
    if not token:
        return None
    try:
        return _load_user(db, decode_token(token))
    except AuthError:
        return None


def get_payment_provider() -> BakongService:
    return bakong_service
