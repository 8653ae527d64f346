import os

from dotenv import load_dotenv

load_dotenv()

TRUTHY = ("1", "true", "yes", "on")


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in TRUTHY


def secret_key() -> str:
    secret = os.getenv("SECRET_KEY")
    if not secret:
        raise RuntimeError("SECRET_KEY is not set")
    return secret


def algorithm() -> str:
    return os.getenv("ALGORITHM", "HS256")


def token_expire_minutes() -> int:
    return int(os.getenv("TOKEN_EXPIRE_MINUTES", str(7 * 24 * 60)))


def admin_signup_secret():
    return os.getenv("ADMIN_SIGNUP_SECRET") or None


def cors_origins() -> list:
    raw = os.getenv("CORS_ORIGIN", "*")
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def port() -> int:
    return int(os.getenv("PORT", "8000"))


def log_level() -> str:
    return os.getenv("LOG_LEVEL", "INFO").upper()


def enforce_status_transitions() -> bool:
    return _flag("ENFORCE_STATUS_TRANSITIONS", "true")


def notify_via_sms() -> bool:
    return _flag("NOTIFY_VIA_SMS", "false")
