from .phone.phone import PhoneField, PhoneEntry
from .verification.verification import PhoneVerificationCode, PhonenumberSetting

__all__ = [
    "PhoneField",
    "PhoneEntry",
    "PhoneVerificationCode",
    "PhonenumberSetting",
]
