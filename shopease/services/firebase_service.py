"""
Firebase Admin wrapper used by phone-number login
"""
import firebase_admin
from firebase_admin import auth as firebase_auth, credentials
from loguru import logger

from shopease.config import settings
from shopease.utils.exceptions import AuthError, ServiceUnavailableError

_app = None


def get_firebase_app():
    global _app
    if _app is not None:
        return _app
    try:
        cred = credentials.Certificate(settings.FIREBASE_CREDENTIALS_PATH)
        _app = firebase_admin.initialize_app(cred)
    except (IOError, ValueError) as e:
        logger.error(f"Firebase Admin initialization failed: {e}")
        raise ServiceUnavailableError("Phone authentication is not configured")
    logger.info("Firebase Admin initialized")
    return _app


def verify_phone_token(id_token: str) -> dict:
    """
    Verify a Firebase ID token issued by phone sign-in.
    Returns {"uid", "phone_number"}; raises AuthError for bad tokens.
    """
    app = get_firebase_app()
    try:
        decoded = firebase_auth.verify_id_token(id_token, app=app)
    except (ValueError, firebase_auth.InvalidIdTokenError, firebase_auth.ExpiredIdTokenError,
            firebase_auth.RevokedIdTokenError, firebase_auth.CertificateFetchError) as e:
        logger.warning(f"Firebase token rejected: {e}")
        raise AuthError("Invalid token")

    phone_number = decoded.get("phone_number")
    if not phone_number:
        raise AuthError("Phone number not found in token")
    return {"uid": decoded.get("uid"), "phone_number": phone_number}
