import os

from dotenv import load_dotenv

load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if value is None:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./student_platform.db")
DATABASE_ECHO = _get_bool(os.getenv("DATABASE_ECHO"), default=False)

API_PREFIX = os.getenv("API_PREFIX", "/api")
CORS_ALLOW_ORIGINS = _get_list(os.getenv("CORS_ALLOW_ORIGINS"), default=["*"])

JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "")
JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
JWT_EXPIRES_DAYS = int(os.getenv("JWT_EXPIRES_DAYS", "7"))

BCRYPT_ROUNDS = int(os.getenv("BCRYPT_ROUNDS", "12"))

# Seed administrator. The password has no default and is only needed when
# no admin account exists yet.
ADMIN_PHONE = os.getenv("ADMIN_PHONE", "500000000")
ADMIN_FULL_NAME = os.getenv("ADMIN_FULL_NAME", "System Administrator")
ADMIN_UNIVERSITY = os.getenv("ADMIN_UNIVERSITY", "Administration")
ADMIN_MAJOR = os.getenv("ADMIN_MAJOR", "Administration")
ADMIN_BATCH = os.getenv("ADMIN_BATCH", "2020")
ADMIN_PASSWORD = os.getenv("ADMIN_PASSWORD", "")

MEDIA_BACKEND = os.getenv("MEDIA_BACKEND", "memory").strip().lower()
MEDIA_BUCKET = os.getenv("MEDIA_BUCKET", "")
MEDIA_REGION = os.getenv("MEDIA_REGION", "")
MEDIA_ENDPOINT_URL = os.getenv("MEDIA_ENDPOINT_URL", "")
MEDIA_ACCESS_KEY_ID = os.getenv("MEDIA_ACCESS_KEY_ID", "")
MEDIA_SECRET_ACCESS_KEY = os.getenv("MEDIA_SECRET_ACCESS_KEY", "")
MEDIA_PUBLIC_BASE_URL = os.getenv("MEDIA_PUBLIC_BASE_URL", "")
MEDIA_FOLDER = os.getenv("MEDIA_FOLDER", "student-platform")

SUPPORTED_MEDIA_BACKENDS = {"memory", "s3"}


def validate_runtime_config() -> None:
    if not JWT_SECRET_KEY:
        raise RuntimeError("JWT_SECRET_KEY must be set.")
    if MEDIA_BACKEND not in SUPPORTED_MEDIA_BACKENDS:
        raise RuntimeError(f"Unsupported MEDIA_BACKEND: {MEDIA_BACKEND!r}.")
    if MEDIA_BACKEND == "s3" and not MEDIA_BUCKET:
        raise RuntimeError("MEDIA_BUCKET must be set when MEDIA_BACKEND is 's3'.")
    if APP_ENV.lower() == "production" and MEDIA_BACKEND == "memory":
        raise RuntimeError("MEDIA_BACKEND must be 's3' in production.")
