# phoneverify/schemas/phone/phone.py
from typing import Any, Dict, List, Optional
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field


class AllowedCountries(str, Enum):
    ALL = "all"
    INCLUDE = "include"
    EXCLUDE = "exclude"


class VerifyMode(str, Enum):
    NONE = "none"
    OPTIONAL = "optional"
    REQUIRED = "required"


class ValidationFormat(str, Enum):
    E164 = "E164"
    NATIONAL = "NATIONAL"


class PhoneFieldBase(BaseModel):
    label: str = Field("Phone number", max_length=255)
    required: bool = False
    cardinality: int = Field(1, ge=-1, description="Number of values, -1 for unlimited")
    unique: int = Field(0, ge=0, le=2, description="0 no, 1 unique, 2 unique among verified numbers")
    allowed: AllowedCountries = AllowedCountries.ALL
    countries: List[str] = Field(default_factory=list, description="ISO2 codes for include/exclude")
    validation_number_type: str = "MOBILE"
    extension_field: bool = False
    verify: VerifyMode = VerifyMode.NONE
    message: str = Field("Your verification code from !site_name:\n!code", max_length=500)
    length: int = Field(4, ge=1, le=10, description="Verification code length")
    verify_interval: int = Field(3600, ge=1, description="Seconds")
    verify_count: int = Field(5, ge=-1, description="-1 for unlimited")
    sms_interval: int = Field(60, ge=1, description="Seconds")
    sms_count: int = Field(1, ge=-1, description="-1 for unlimited")
    tfa: bool = False
    validation_format: Optional[ValidationFormat] = None
    validation_countries: List[str] = Field(default_factory=list)


class PhoneFieldCreate(PhoneFieldBase):
    entity_type: str = Field(..., max_length=64, description="e.g. 'user'")
    name: str = Field(..., max_length=64, description="Machine name of the field")


class PhoneFieldUpdate(BaseModel):
    """Partial update; only fields that are set are changed"""
    label: Optional[str] = None
    required: Optional[bool] = None
    cardinality: Optional[int] = Field(None, ge=-1)
    unique: Optional[int] = Field(None, ge=0, le=2)
    allowed: Optional[AllowedCountries] = None
    countries: Optional[List[str]] = None
    validation_number_type: Optional[str] = None
    extension_field: Optional[bool] = None
    verify: Optional[VerifyMode] = None
    message: Optional[str] = None
    length: Optional[int] = Field(None, ge=1, le=10)
    verify_interval: Optional[int] = Field(None, ge=1)
    verify_count: Optional[int] = Field(None, ge=-1)
    sms_interval: Optional[int] = Field(None, ge=1)
    sms_count: Optional[int] = Field(None, ge=-1)
    tfa: Optional[bool] = None
    validation_format: Optional[ValidationFormat] = None
    validation_countries: Optional[List[str]] = None


class PhoneFieldResponse(PhoneFieldBase):
    id: int
    entity_type: str
    name: str
    validation_format: Optional[str] = None
    allowed: str
    verify: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class PhoneItemInput(BaseModel):
    """One submitted value: an international number, or a local number with its country"""
    phone_number: Optional[str] = None
    local_number: Optional[str] = None
    country_iso2: Optional[str] = Field(None, max_length=2)
    country_code: Optional[str] = None
    extension: Optional[str] = Field(None, max_length=40)
    verified: Optional[bool] = None
    tfa: bool = False
    verification_token: Optional[str] = None
    verification_code: Optional[str] = None


class PhoneEntitySaveRequest(BaseModel):
    items: List[PhoneItemInput]


class PhoneEntryResponse(BaseModel):
    delta: int
    phone_number: Optional[str] = None
    local_number: Optional[str] = None
    country_code: Optional[str] = None
    country_iso2: Optional[str] = None
    extension: Optional[str] = None
    verified: bool = False
    tfa: bool = False

    model_config = {"from_attributes": True}


class PhoneEntitySaveResponse(BaseModel):
    success: bool
    message: str
    items: List[PhoneEntryResponse] = []


class PhoneEntityResponse(BaseModel):
    entity_type: str
    entity_id: str
    field_name: str
    items: List[PhoneEntryResponse] = []
    formatted: Optional[List[Dict[str, Any]]] = None


class ValidateRequest(BaseModel):
    number: str = Field(..., description="Number as entered")
    country: Optional[str] = Field(None, max_length=2, description="ISO2 the number must belong to")
    extension: Optional[str] = None
    types: Optional[List[str]] = Field(None, description="Allowed number types, e.g. ['MOBILE']")
    format: Optional[ValidationFormat] = None
    countries: List[str] = Field(default_factory=list, description="Countries for the format check")


class ValidateResponse(BaseModel):
    valid: bool
    phone_number: str
    local_number: str
    national: str
    international: str
    country_iso2: Optional[str] = None
    country_code: int
    country_name: Optional[str] = None
    type: str
