# phoneverify/routers/tfa_router.py
import logging

from fastapi import APIRouter, Depends, HTTPException, Request

from phoneverify.core.deps import get_client_ip, get_verifier
from phoneverify.schemas.verification import (
    TfaBeginResponse,
    TfaResendResponse,
    TfaValidateRequest,
    TfaValidateResponse,
)
from phoneverify.services.verification.phone_verifier import PhoneVerifier
from phoneverify.services.verification.tfa_service import PhoneTfa, ResendResult, TfaException

logger = logging.getLogger(__name__)

router = APIRouter()

SESSION_KEY = "phonenumber_tfa"


def _load_tfa(uid: str, request: Request, verifier: PhoneVerifier) -> PhoneTfa:
    # Only the token is kept in the (client readable) session cookie, never the code
    stored = request.session.get(SESSION_KEY, {}).get(uid, {})
    context = {"uid": uid, "validate_context": {"verification_token": stored.get("verification_token")}}
    try:
        tfa = PhoneTfa(verifier, uid, context, client_ip=get_client_ip(request))
    except TfaException as e:
        logger.error(f"TFA unavailable for user {uid}: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    if not tfa.ready():
        raise HTTPException(status_code=404, detail="No two factor phone number for this user")
    return tfa


def _store_context(uid: str, request: Request, tfa: PhoneTfa) -> None:
    numbers = dict(request.session.get(SESSION_KEY, {}))
    numbers[uid] = {"verification_token": tfa.get_plugin_context()["verification_token"]}
    request.session[SESSION_KEY] = numbers


def _clear_context(uid: str, request: Request) -> None:
    numbers = dict(request.session.get(SESSION_KEY, {}))
    numbers.pop(uid, None)
    request.session[SESSION_KEY] = numbers


@router.post("/{uid}/begin", response_model=TfaBeginResponse)
def begin(
    uid: str,
    request: Request,
    verifier: PhoneVerifier = Depends(get_verifier),
):
    """Send the login code to the user's TFA number unless one was already sent"""
    tfa = _load_tfa(uid, request, verifier)
    if not tfa.begin():
        raise HTTPException(status_code=500, detail="Unable to deliver the code. Please contact support.")

    _store_context(uid, request, tfa)
    return TfaBeginResponse(
        success=True,
        message=f"A verification code was sent to {tfa.number_clue()}. "
                f"Enter the {tfa.CODE_LENGTH}-character code sent to your device.",
        number_clue=tfa.number_clue(),
        code_length=tfa.CODE_LENGTH,
    )


@router.post("/{uid}/validate", response_model=TfaValidateResponse)
def validate(
    uid: str,
    body: TfaValidateRequest,
    request: Request,
    verifier: PhoneVerifier = Depends(get_verifier),
):
    tfa = _load_tfa(uid, request, verifier)
    if not verifier.check_flood(tfa.phone_number, "verification"):
        raise HTTPException(status_code=403, detail="Too many verification attempts, please try again in a few hours.")
    if not tfa.validate(body.code):
        return TfaValidateResponse(valid=False)

    _clear_context(uid, request)
    return TfaValidateResponse(valid=True)


@router.post("/{uid}/resend", response_model=TfaResendResponse)
def resend(
    uid: str,
    request: Request,
    verifier: PhoneVerifier = Depends(get_verifier),
):
    tfa = _load_tfa(uid, request, verifier)
    result = tfa.resend()

    if result == ResendResult.FLOOD:
        raise HTTPException(status_code=403, detail="Too many verification code requests, please try again shortly.")
    if result == ResendResult.FAILED:
        raise HTTPException(status_code=500, detail="Unable to deliver the code. Please contact support.")

    _store_context(uid, request, tfa)
    return TfaResendResponse(success=True, message="Code resent")
