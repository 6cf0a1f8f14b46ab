import os

from dotenv import load_dotenv


load_dotenv()


def _get_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _get_list(value: str | None, default: list[str]) -> list[str]:
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]

APP_ENV = os.getenv("APP_ENV", "development")
DEBUG = _get_bool(os.getenv("DEBUG"), default=False)
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

DATABASE_URL = os.getenv("DATABASE_URL")

CORS_ALLOW_ORIGINS = _get_list(os.getenv("CORS_ALLOW_ORIGINS"), ["http://localhost:3000"])

APPOINTMENTS_API_URL = os.getenv("APPOINTMENTS_API_URL", "http://localhost:8000")
APPOINTMENTS_API_TIMEOUT_SECONDS = float(os.getenv("APPOINTMENTS_API_TIMEOUT_SECONDS", "10"))

DEFAULT_SESSION_MINUTES = int(os.getenv("DEFAULT_SESSION_MINUTES", "60"))
CLOCK_TICK_SECONDS = float(os.getenv("CLOCK_TICK_SECONDS", "1"))
MAX_APPOINTMENT_NOTES_LENGTH = int(os.getenv("MAX_APPOINTMENT_NOTES_LENGTH", "2000"))

def validate_runtime_config() -> None:
    if APP_ENV.lower() == "production" and (DATABASE_URL or "").startswith("sqlite"):
        raise RuntimeError("DATABASE_URL must point at Postgres in production.")
