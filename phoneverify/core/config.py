# phoneverify/core/config.py
import json
from typing import Annotated, List, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode


def _parse_list(s: str) -> List[str]:
    """Parse a list setting from a comma-separated or JSON array string."""
    s = (s or "").strip()
    if not s:
        return []
    if s.startswith("["):
        try:
            out = json.loads(s)
            return [str(x).strip() for x in out if x]
        except ValueError:
            pass
    return [x.strip() for x in s.split(",") if x.strip()]


class Settings(BaseSettings):
    """Application settings from env."""

    # Database
    DATABASE_URL: str = "sqlite:///./phoneverify.db"
    AUTO_CREATE_TABLES: bool = True

    # Flood control storage; in-process when unset
    REDIS_URL: Optional[str] = None

    # Security
    SECRET_KEY: str = "change-me-in-production"
    VERIFICATION_SECRET: str = "change-me-in-production"
    ADMIN_USER: str = "admin"
    ADMIN_PASS: str = "change-me-in-production"

    CORS_ORIGINS: Annotated[List[str], NoDecode] = ["http://localhost:3000", "http://127.0.0.1:3000"]

    SITE_NAME: str = "Phone Verify"

    # SMS delivery: "" disables sending, "log" only logs, "twofactor" uses 2factor.in
    SMS_PROVIDER: str = "log"
    # Support both env var names for the 2factor key
    PHONE_SMS: str = ""
    TWOFACTOR_API_KEY: str = ""
    SMS_SENDER_ID: str = "VERIFY"

    # Two-factor authentication
    TFA_ENABLED: bool = False
    TFA_MESSAGE: str = ""

    # Verification defaults; intervals in seconds, -1 count means no limit
    VERIFICATION_CODE_LENGTH: int = 4
    VERIFY_ATTEMPTS_INTERVAL: int = 3600
    VERIFY_ATTEMPTS_COUNT: int = 5
    SMS_ATTEMPTS_INTERVAL: int = 60
    SMS_ATTEMPTS_COUNT: int = 1
    VERIFICATION_CODE_LIFETIME: int = 60 * 60 * 24

    # Global validation rules: "E164" or "NATIONAL"; empty country list allows all
    VALIDATION_FORMAT: str = "E164"
    VALIDATION_COUNTRIES: Annotated[List[str], NoDecode] = []

    LOG_LEVEL: str = "INFO"
    # Log generated codes in dev when SMS does not arrive; never enable in production
    OTP_DEBUG_LOG: bool = False

    @field_validator("CORS_ORIGINS", "VALIDATION_COUNTRIES", mode="before")
    @classmethod
    def list_from_env(cls, v: object) -> List[str]:
        if isinstance(v, list):
            return [str(x).strip() for x in v if x]
        return _parse_list(str(v) if v else "")

    @field_validator("VALIDATION_COUNTRIES")
    @classmethod
    def upper_countries(cls, v: List[str]) -> List[str]:
        return [c.upper() for c in v]

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
