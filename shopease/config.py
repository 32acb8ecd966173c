"""
Application settings loaded from environment variables
"""
import os
from dotenv import load_dotenv
from loguru import logger

load_dotenv()

WEAK_SECRETS = {"secret", "changeme", "change-me", "password", "jwt_secret", "your-secret-key", "supersecretkey"}

RECOMMENDED_VARS = [
    "ALLOWED_ORIGINS",
    "BAKONG_ACCESS_TOKEN",
    "BAKONG_MERCHANT_ID",
    "FIREBASE_CREDENTIALS_PATH",
]


def _get_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    APP_NAME: str = os.getenv("APP_NAME", "ShopEase API")
    APP_VERSION: str = os.getenv("APP_VERSION", "1.0.0")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite:///./shopease.db")

    JWT_SECRET: str = os.getenv("JWT_SECRET", "")
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 60 * 24 * 7))  # 7 days
    ALLOW_DEV_LOGIN: bool = _get_bool("ALLOW_DEV_LOGIN")
    FIREBASE_CREDENTIALS_PATH: str = os.getenv("FIREBASE_CREDENTIALS_PATH", "serviceAccountKey.json")
    ADMIN_EMAIL: str = os.getenv("ADMIN_EMAIL", "admin@example.com")
    ADMIN_PASSWORD: str = os.getenv("ADMIN_PASSWORD", "Admin123!")

    ALLOWED_ORIGINS: list = [o.strip() for o in os.getenv("ALLOWED_ORIGINS", "http://localhost:3000").split(",") if o.strip()]

    ORDER_EXPIRY_MINUTES: int = int(os.getenv("ORDER_EXPIRY_MINUTES", 15))
    CLEANUP_INTERVAL_MINUTES: int = int(os.getenv("CLEANUP_INTERVAL_MINUTES", 5))
    CLEANUP_INITIAL_DELAY_SECONDS: int = int(os.getenv("CLEANUP_INITIAL_DELAY_SECONDS", 30))
    ORDER_SWEEP_ENABLED: bool = _get_bool("ORDER_SWEEP_ENABLED", True)

    BAKONG_ACCESS_TOKEN: str = os.getenv("BAKONG_ACCESS_TOKEN", "")
    BAKONG_MERCHANT_ID: str = os.getenv("BAKONG_MERCHANT_ID", "")
    BAKONG_MERCHANT_NAME: str = os.getenv("BAKONG_MERCHANT_NAME", "ShopEase")
    BAKONG_MERCHANT_CITY: str = os.getenv("BAKONG_MERCHANT_CITY", "Phnom Penh")
    BAKONG_BASE_URL: str = os.getenv("BAKONG_BASE_URL", "https://api-bakong.nbc.gov.kh/v1")
    BAKONG_API_SECRET: str = os.getenv("BAKONG_API_SECRET", "")
    BAKONG_TIMEOUT_SECONDS: int = int(os.getenv("BAKONG_TIMEOUT_SECONDS", 30))
    USD_TO_KHR_RATE: float = float(os.getenv("USD_TO_KHR_RATE", 4000))
    QR_EXPIRY_MINUTES: int = int(os.getenv("QR_EXPIRY_MINUTES", 15))

    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_TO_FILE: bool = _get_bool("LOG_TO_FILE")
    LOG_DIR: str = os.getenv("LOG_DIR", "logs")
    UPLOAD_DIR: str = os.getenv("UPLOAD_DIR", "uploads")

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def dev_login_enabled(self) -> bool:
        return not self.is_production or self.ALLOW_DEV_LOGIN


settings = Settings()


def validate_settings(config: Settings = settings):
    """
    Check required settings before the app starts serving.
    Raises RuntimeError on fatal problems, logs warnings for the rest.
    """
    errors = []

    if not os.getenv("DATABASE_URL"):
        logger.warning(f"DATABASE_URL not set, falling back to {config.DATABASE_URL}")

    if not config.JWT_SECRET:
        errors.append("JWT_SECRET is required")
    elif config.is_production:
        if len(config.JWT_SECRET) < 32:
            errors.append("JWT_SECRET must be at least 32 characters in production")
        if config.JWT_SECRET.lower() in WEAK_SECRETS:
            errors.append("JWT_SECRET is a well-known weak value")

    if config.is_production and not config.DATABASE_URL.startswith("mysql"):
        errors.append("DATABASE_URL must point to a MySQL database in production")

    for name in RECOMMENDED_VARS:
        if not os.getenv(name):
            logger.warning(f"Recommended environment variable {name} is not set")

    if errors:
        for error in errors:
            logger.error(error)
        raise RuntimeError("Invalid configuration: " + "; ".join(errors))

    logger.info(f"Configuration OK (environment={config.ENVIRONMENT})")
