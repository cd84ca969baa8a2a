# phoneverify/routers/verification_router.py
from typing import Dict, Optional, Tuple
import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from phoneverify.core.deps import get_client_ip, get_field_service, get_verifier
from phoneverify.schemas.verification import (
    RequestCodeResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
    VerificationStatusResponse,
)
from phoneverify.services.phone.field_service import PhoneFieldService
from phoneverify.services.verification.phone_verifier import PhoneVerifier

logger = logging.getLogger(__name__)

router = APIRouter()

FLOOD_VERIFICATION_MESSAGE = "Too many verification attempts, please try again in a few hours."
FLOOD_SMS_MESSAGE = "Too many verification code requests, please try again shortly."


def _field_settings(
    field_service: PhoneFieldService,
    entity_type: Optional[str],
    field_name: Optional[str],
) -> Tuple[Optional[Dict[str, int]], str, int]:
    """Flood queue, SMS message and code length of a field, or the defaults"""
    if not (entity_type and field_name):
        return None, PhoneVerifier.DEFAULT_SMS_MESSAGE, PhoneVerifier.VERIFICATION_CODE_LENGTH

    field = field_service.get_field(entity_type, field_name)
    if not field:
        raise HTTPException(status_code=404, detail=f"Phone field {entity_type}.{field_name} not found")
    return field.queue(), field.message or PhoneVerifier.DEFAULT_SMS_MESSAGE, field.length


@router.get("/request-code", include_in_schema=False)
def request_code_without_number():
    raise HTTPException(status_code=400, detail="Phone number not provided.")


@router.get("/request-code/{number}", response_model=RequestCodeResponse)
def request_code(
    number: str,
    request: Request,
    entity_type: Optional[str] = Query(None, description="Entity type of the field whose settings apply"),
    field_name: Optional[str] = Query(None, description="Field whose flood settings and message apply"),
    verifier: PhoneVerifier = Depends(get_verifier),
    field_service: PhoneFieldService = Depends(get_field_service),
):
    """
    Send a verification code by SMS

    The number is given in international format without the leading '+'.
    Returns the token to submit together with the received code.
    """
    if not number or not number.strip():
        raise HTTPException(status_code=400, detail="Phone number not provided.")

    # Invalid numbers raise PhoneNumberException, answered with 422
    phone_number = verifier.validator.check_phone_number(f"+{number.strip().lstrip('+')}")
    queue, message, length = _field_settings(field_service, entity_type, field_name)
    client_ip = get_client_ip(request)

    if not verifier.check_flood(phone_number, "verification", queue):
        raise HTTPException(status_code=403, detail=FLOOD_VERIFICATION_MESSAGE)

    if not verifier.check_flood(phone_number, "sms", queue, client_ip):
        raise HTTPException(status_code=403, detail=FLOOD_SMS_MESSAGE)

    code = verifier.generate_verification_code(length)
    token = verifier.send_verification(phone_number, message, code, queue=queue, client_ip=client_ip)

    if not token:
        raise HTTPException(status_code=500, detail="An error occurred while sending SMS.")

    return RequestCodeResponse(verification_token=token)


@router.post("/verify", response_model=VerifyCodeResponse)
def verify_code(
    body: VerifyCodeRequest,
    verifier: PhoneVerifier = Depends(get_verifier),
    field_service: PhoneFieldService = Depends(get_field_service),
):
    """Check a received code; a verified number is remembered in the session"""
    phone_number = verifier.validator.check_phone_number(body.phone_number)
    queue, _, _ = _field_settings(field_service, body.entity_type, body.field_name)

    if verifier.is_verified(phone_number):
        return VerifyCodeResponse(verified=True)

    if not verifier.check_flood(phone_number, "verification", queue):
        raise HTTPException(status_code=403, detail=FLOOD_VERIFICATION_MESSAGE)

    verified = verifier.verify_code(phone_number, body.code, body.verification_token, queue)
    return VerifyCodeResponse(verified=verified)


@router.get("/status/{number}", response_model=VerificationStatusResponse)
def verification_status(
    number: str,
    verifier: PhoneVerifier = Depends(get_verifier),
):
    """Whether the number was verified in the caller's session"""
    phone_number = verifier.validator.check_phone_number(f"+{number.strip().lstrip('+')}")
    return VerificationStatusResponse(
        phone_number=verifier.validator.get_callable_number(phone_number),
        verified=verifier.is_verified(phone_number),
    )
