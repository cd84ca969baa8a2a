# Verification and TFA schemas
from .verification import (
    RequestCodeResponse,
    VerifyCodeRequest,
    VerifyCodeResponse,
    VerificationStatusResponse,
    TfaBeginResponse,
    TfaValidateRequest,
    TfaValidateResponse,
    TfaResendResponse,
    FloodClearRequest,
    FloodClearResponse,
    CronResponse,
    TfaFieldRequest,
    TfaFieldResponse
)

__all__ = [
    "RequestCodeResponse",
    "VerifyCodeRequest",
    "VerifyCodeResponse",
    "VerificationStatusResponse",
    "TfaBeginResponse",
    "TfaValidateRequest",
    "TfaValidateResponse",
    "TfaResendResponse",
    "FloodClearRequest",
    "FloodClearResponse",
    "CronResponse",
    "TfaFieldRequest",
    "TfaFieldResponse"
]
