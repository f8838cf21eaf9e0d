import os
from pathlib import Path
from dotenv import load_dotenv
from fastapi.security import HTTPBearer

BASE_DIR = Path(__file__).resolve().parent.parent  # -> project root

# Load .env explicitly from project root
load_dotenv(BASE_DIR / ".env")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


class Settings:
    PROJECT_NAME = "Template Market Backend"

    def __init__(self):
        self.DATABASE_URL = os.getenv("DATABASE_URL") or f"sqlite:///{BASE_DIR / 'template_market.db'}"
        self.API_PREFIX = os.getenv("API_PREFIX", "").rstrip("/")
        self.LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

        self.JWT_SECRET = os.getenv("JWT_SECRET")
        self.ALGORITHM = os.getenv("ALGORITHM", "HS256")
        # Session tokens live for 24 hours
        self.ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", 1440))
        self.BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", 12))

        self.OTP_EXPIRE_MINUTES = int(os.getenv("OTP_EXPIRE_MINUTES", 5))
        self.OTP_LENGTH = 6
        self.OTP_TEST_MODE = _env_bool("OTP_TEST_MODE", "false")
        self.OTP_FIXED_CODE = os.getenv("OTP_FIXED_CODE")

        self.SMTP_HOST = os.getenv("SMTP_HOST")
        self.SMTP_PORT = int(os.getenv("SMTP_PORT", 587))
        self.SMTP_USER = os.getenv("SMTP_USER")
        self.SMTP_PASS = os.getenv("SMTP_PASS")
        self.SMTP_TIMEOUT = int(os.getenv("SMTP_TIMEOUT", 15))
        self.FROM_EMAIL = os.getenv("FROM_EMAIL") or self.SMTP_USER

        self.FIREBASE_CREDENTIALS_FILE = os.getenv("FIREBASE_CREDENTIALS_FILE")
        self.FIREBASE_STORAGE_BUCKET = os.getenv("FIREBASE_STORAGE_BUCKET")

        self.DEFAULT_FREE_DOWNLOADS = int(os.getenv("DEFAULT_FREE_DOWNLOADS", 3))
        self.FREE_DOWNLOADS_PER_DAY = int(os.getenv("FREE_DOWNLOADS_PER_DAY", 3))
        self.FREE_DOWNLOAD_RESET_ENABLED = _env_bool("FREE_DOWNLOAD_RESET_ENABLED", "true")

        self.TEMPLATE_FILE_MAX_BYTES = int(os.getenv("TEMPLATE_FILE_MAX_BYTES", 10 * 1024 * 1024))
        self.TEMPLATE_FILES_PER_FIELD = int(os.getenv("TEMPLATE_FILES_PER_FIELD", 10))
        self.PROFILE_IMAGE_MAX_BYTES = int(os.getenv("PROFILE_IMAGE_MAX_BYTES", 2 * 1024 * 1024))

        self.cors_origins = [
            origin.strip()
            for origin in os.getenv("CORS_ORIGINS", "*").split(",")
            if origin.strip()
        ]

    @property
    def otp_fixed_code(self) -> str | None:
        """Fixed OTP for local testing; honoured only in test mode."""
        if self.OTP_TEST_MODE and self.OTP_FIXED_CODE:
            return self.OTP_FIXED_CODE
        return None


bearer_scheme = HTTPBearer(auto_error=False)

settings = Settings()

if not settings.JWT_SECRET:
    raise ValueError("JWT_SECRET environment variable is required")
