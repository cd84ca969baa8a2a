# phoneverify/routers/admin_router.py
import logging

from fastapi import APIRouter, Depends, HTTPException

from phoneverify.core.deps import admin_auth, get_field_service, get_verifier
from phoneverify.schemas.verification import (
    CronResponse,
    FloodClearRequest,
    FloodClearResponse,
    TfaFieldRequest,
    TfaFieldResponse,
)
from phoneverify.services.phone.field_service import PhoneFieldService
from phoneverify.services.verification.phone_verifier import PhoneVerifier

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(admin_auth)])


@router.post("/flood/clear", response_model=FloodClearResponse)
def clear_flood(
    body: FloodClearRequest,
    verifier: PhoneVerifier = Depends(get_verifier),
):
    """Clear verification and SMS flood events of a number (and optionally an IP)"""
    phone_number = verifier.validator.check_phone_number(body.phone_number)
    number = verifier.validator.get_callable_number(phone_number)

    verifier.flood.clear(PhoneVerifier.FLOOD_VERIFY, number)
    verifier.flood.clear(PhoneVerifier.FLOOD_SMS, number)
    if body.ip_address:
        verifier.flood.clear(PhoneVerifier.FLOOD_SMS_IP, body.ip_address)

    logger.info(f"Flood events cleared for number ending {number[-4:]}")
    return FloodClearResponse(success=True, message=f"Flood events cleared for {number}")


@router.post("/cron", response_model=CronResponse)
def run_cron(verifier: PhoneVerifier = Depends(get_verifier)):
    """Purge expired verification codes and flood events"""
    return CronResponse(purged_codes=verifier.purge_expired())


@router.get("/tfa-field", response_model=TfaFieldResponse)
def get_tfa_field(verifier: PhoneVerifier = Depends(get_verifier)):
    return TfaFieldResponse(field_name=verifier.get_tfa_field())


@router.put("/tfa-field", response_model=TfaFieldResponse)
def set_tfa_field(
    body: TfaFieldRequest,
    verifier: PhoneVerifier = Depends(get_verifier),
    field_service: PhoneFieldService = Depends(get_field_service),
):
    """Select the user phone field used for two factor authentication"""
    if body.field_name:
        if not verifier.is_tfa_enabled():
            raise HTTPException(status_code=400, detail="Two factor authentication is not enabled")
        field = field_service.get_field("user", body.field_name)
        if not field:
            raise HTTPException(status_code=404, detail="User phone field not found")
        if field.cardinality != 1:
            raise HTTPException(status_code=400, detail="The TFA field must hold a single value")

    verifier.set_tfa_field(body.field_name)
    return TfaFieldResponse(field_name=verifier.get_tfa_field())
