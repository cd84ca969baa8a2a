# phoneverify/core/deps.py
import logging
import secrets

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from sqlmodel import Session

from phoneverify.core.config import settings
from phoneverify.db.session import get_session
from phoneverify.services.phone.field_service import PhoneFieldService
from phoneverify.services.rate_limit.flood_service import FloodService
from phoneverify.services.sms.sms_service import SmsService
from phoneverify.services.validation.phone_validator import PhoneValidator
from phoneverify.services.verification.phone_verifier import PhoneVerifier

logger = logging.getLogger(__name__)

# Process-wide services (singletons)
phone_validator = PhoneValidator()
flood_service = FloodService()
sms_service = SmsService()

# HTTP Basic Auth for admin endpoints
security = HTTPBasic()
optional_security = HTTPBasic(auto_error=False)


def get_client_ip(request: Request) -> str:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def get_validator() -> PhoneValidator:
    return phone_validator


def get_flood_service() -> FloodService:
    return flood_service


def get_sms_service() -> SmsService:
    return sms_service


def get_verifier(
    request: Request,
    session: Session = Depends(get_session),
    validator: PhoneValidator = Depends(get_validator),
    flood: FloodService = Depends(get_flood_service),
    sms: SmsService = Depends(get_sms_service),
) -> PhoneVerifier:
    """Dependency to get a verifier bound to the caller's session cookie"""
    return PhoneVerifier(session, validator, flood, sms_service=sms, session_state=request.session)


def get_field_service(
    session: Session = Depends(get_session),
    verifier: PhoneVerifier = Depends(get_verifier),
) -> PhoneFieldService:
    return PhoneFieldService(session, verifier)


def _is_admin(credentials: HTTPBasicCredentials) -> bool:
    correct_username = secrets.compare_digest(credentials.username, settings.ADMIN_USER)
    correct_password = secrets.compare_digest(credentials.password, settings.ADMIN_PASS)
    return correct_username and correct_password


def admin_auth(credentials: HTTPBasicCredentials = Depends(security)) -> bool:
    """Admin authentication dependency"""
    if not _is_admin(credentials):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid admin credentials",
            headers={"WWW-Authenticate": "Basic"},
        )
    return True


def optional_admin(credentials: HTTPBasicCredentials = Depends(optional_security)) -> bool:
    """True for valid admin credentials, False when none were sent; wrong credentials are rejected"""
    if credentials is None:
        return False
    return admin_auth(credentials)
