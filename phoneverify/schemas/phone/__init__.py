# Phone field schemas
from .phone import (
    PhoneFieldCreate,
    PhoneFieldUpdate,
    PhoneFieldResponse,
    PhoneItemInput,
    PhoneEntitySaveRequest,
    PhoneEntitySaveResponse,
    PhoneEntityResponse,
    PhoneEntryResponse,
    ValidateRequest,
    ValidateResponse
)

__all__ = [
    "PhoneFieldCreate",
    "PhoneFieldUpdate",
    "PhoneFieldResponse",
    "PhoneItemInput",
    "PhoneEntitySaveRequest",
    "PhoneEntitySaveResponse",
    "PhoneEntityResponse",
    "PhoneEntryResponse",
    "ValidateRequest",
    "ValidateResponse"
]
