# phoneverify/services/phone/constraints.py
"""
Validation of phone items before they are stored.

Each validate_* function returns a list of Violation; an empty list means the
item passed.
"""
import logging
from dataclasses import dataclass
from typing import List

from phoneverify.services.phone.phone_item import PhoneItem, PhoneVerificationItem
from phoneverify.services.validation.exceptions import PhoneNumberException
from phoneverify.services.verification.phone_verifier import PhoneVerifier, VerifyResult

logger = logging.getLogger(__name__)

REQUIRED = "{field_name} field is required."
UNIQUE = "A {entity_type} with {field_name} {value} already exists."
VALIDITY = "The {field_name} {value} is invalid for the following reason: {message}."
ALLOWED_COUNTRY = "The country of {value} provided for {field_name} is not allowed in the list of countries."
FLOOD = "Too many verification attempts for {field_name} {value}, please try again in a few hours."
VERIFICATION = "Invalid verification code for {field_name} {value}."
VERIFY_REQUIRED = "The {field_name} {value} must be verified."
NOT_VALID = "{number} is not a valid phone number."


@dataclass
class Violation:
    constraint: str
    message: str
    delta: int = 0

    def to_dict(self) -> dict:
        return {"constraint": self.constraint, "message": self.message, "delta": self.delta}


def validate_phone(item: PhoneItem) -> List[Violation]:
    """Required, allowed country and uniqueness checks of a plain phone field"""
    field = item.field
    label = field.label.lower()

    if item.is_blank() or (not field.required and item.has_blank_local_number()):
        if field.required:
            return [Violation("phone", REQUIRED.format(field_name=field.label), item.delta)]
        return []

    restricted = field.allowed != "all" and bool(field.countries)
    allowed = item.validator.allowed_countries(field.allowed, field.countries) if restricted else []
    try:
        phone_number = item.get_phone_number(throw_exception=True)
        country = item.get_country_iso2() or item.validator.get_country(phone_number)
        display_number = item.validator.format_national(phone_number)

        if not country or (restricted and country.upper() not in allowed):
            name = item.validator.get_country_name(country) if country else "Unknown"
            return [Violation("phone", ALLOWED_COUNTRY.format(value=name, field_name=label), item.delta)]

        if field.unique and not item.is_unique(item.validator.get_callable_number(phone_number)):
            return [Violation("phone", UNIQUE.format(
                entity_type=field.entity_type, field_name=label, value=display_number), item.delta)]
    except PhoneNumberException as e:
        value = item.get("local_number") or item.get("phone_number")
        return [Violation("phone", VALIDITY.format(
            field_name=label, value=value,
            message=f"Unexpected error for {label}: {e.message}"), item.delta)]

    return []


def validate_verification(item: PhoneVerificationItem, bypass_verification: bool = False) -> List[Violation]:
    """
    Country, flood, code, verification requirement and uniqueness checks of a
    verifiable phone field.

    ``bypass_verification`` lets administrators store unverified numbers on
    fields that require verification.
    """
    field = item.field
    label = field.label.lower()

    if item.is_blank():
        return []

    validator = item.validator
    try:
        phone_number = item.get_phone_number(throw_exception=True)
        country = validator.get_country(phone_number)
        display_number = validator.format_national(phone_number)

        if field.validation_countries and country not in field.validation_countries:
            return [Violation("verification", ALLOWED_COUNTRY.format(
                value=validator.get_country_name(country), field_name=label), item.delta)]

        verification = item.verify()
        if verification == VerifyResult.FLOOD:
            message = FLOOD.format(field_name=label, value=display_number)
        elif verification == VerifyResult.FAILED:
            message = VERIFICATION.format(field_name=label, value=display_number)
        elif (verification == VerifyResult.NOT_ATTEMPTED and not bypass_verification
              and (item.get("tfa") or field.verify == PhoneVerifier.VERIFY_REQUIRED)):
            message = VERIFY_REQUIRED.format(field_name=label, value=display_number)
        elif field.unique and not item.is_unique_verify(field.unique):
            message = UNIQUE.format(entity_type=field.entity_type, field_name=label, value=display_number)
        else:
            return []
        return [Violation("verification", message, item.delta)]

    except PhoneNumberException as e:
        value = item.get("local_number") or item.get("phone_number")
        return [Violation("verification", VALIDITY.format(
            field_name=label, value=value, message=e.message), item.delta)]


def validate_validation(item: PhoneItem) -> List[Violation]:
    """Format and country rules configured for the field's validation settings"""
    field = item.field
    if item.is_blank() or (not field.required and item.has_blank_local_number()):
        return []
    if not field.validation_format:
        return []

    entered = item.get("phone_number") or item.get("local_number", "")
    # Local numbers are only meaningful with their country
    number = item.validator.get_callable_number(item.get_phone_number()) or entered
    if not item.validator.is_valid(str(number), field.validation_format, field.validation_countries):
        return [Violation("validation", NOT_VALID.format(number=entered), item.delta)]
    return []
