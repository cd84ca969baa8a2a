# phoneverify/schemas/verification/verification.py
from typing import Optional

from pydantic import BaseModel, Field


class RequestCodeResponse(BaseModel):
    verification_token: str


class VerifyCodeRequest(BaseModel):
    phone_number: str = Field(..., description="International number, e.g. +12015550123")
    code: str = Field(..., description="Code received by SMS")
    verification_token: Optional[str] = Field(None, description="Token from request-code; defaults to the session's")
    entity_type: Optional[str] = Field(None, description="Use this field's flood settings")
    field_name: Optional[str] = None


class VerifyCodeResponse(BaseModel):
    verified: bool


class VerificationStatusResponse(BaseModel):
    phone_number: str
    verified: bool


class TfaBeginResponse(BaseModel):
    success: bool
    message: str
    number_clue: Optional[str] = None
    code_length: int = 4


class TfaValidateRequest(BaseModel):
    code: str


class TfaValidateResponse(BaseModel):
    valid: bool


class TfaResendResponse(BaseModel):
    success: bool
    message: str


class FloodClearRequest(BaseModel):
    phone_number: str = Field(..., description="International number whose flood events are cleared")
    ip_address: Optional[str] = Field(None, description="Also clear the per-IP SMS events of this address")


class FloodClearResponse(BaseModel):
    success: bool
    message: str


class CronResponse(BaseModel):
    purged_codes: int


class TfaFieldRequest(BaseModel):
    field_name: str = Field("", description="User phone field used for TFA; empty to unset")


class TfaFieldResponse(BaseModel):
    field_name: str
