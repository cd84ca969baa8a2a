# phoneverify/services/phone/phone_item.py
import logging
from typing import Any, Dict, Optional

from phonenumbers import PhoneNumber
from sqlmodel import Session, select

from phoneverify.db.models import PhoneEntry, PhoneField
from phoneverify.services.validation.phone_validator import PhoneValidator
from phoneverify.services.verification.phone_verifier import PhoneVerifier, VerifyResult

logger = logging.getLogger(__name__)

PHONE_COLUMNS = ("phone_number", "local_number", "country_code", "country_iso2", "extension")


class PhoneItem:
    """
    One value of a phone field on an entity, before or after normalisation.

    ``values`` holds the stored columns (see PHONE_COLUMNS) as submitted or
    loaded; ``entity_id`` is None for an entity that was not saved yet.
    """

    MAX_LENGTH = 16

    def __init__(self, field: PhoneField, values: Dict[str, Any], session: Session,
                 validator: PhoneValidator, entity_id: Optional[str] = None, delta: int = 0):
        self.field = field
        self.values = dict(values)
        self.session = session
        self.validator = validator
        self.entity_id = str(entity_id) if entity_id is not None else None
        self.delta = delta

    def get(self, key: str, default=None):
        value = self.values.get(key)
        return default if value is None or value == "" else value

    def is_empty(self) -> bool:
        return not self.get("phone_number")

    def is_blank(self) -> bool:
        """Neither an international nor a local number was given"""
        return not self.get("phone_number") and not str(self.get("local_number", "")).strip()

    def has_blank_local_number(self) -> bool:
        """A local number was submitted but holds only whitespace"""
        local_number = self.values.get("local_number")
        return isinstance(local_number, str) and not local_number.strip()

    def get_phone_number(self, throw_exception: bool = False) -> Optional[PhoneNumber]:
        """
        Parse the item into a phone number.

        The local number is read against ``country_iso2`` when both are set,
        otherwise the international ``phone_number`` is used.
        """
        number = ""
        country = None
        if self.get("country_iso2"):
            number = self.get("local_number", "")
            country = self.get("country_iso2").upper()

        if not number:
            number = self.get("phone_number", "")

        extension = self.get("extension")

        if throw_exception:
            return self.validator.check_phone_number(number, country, extension)
        return self.validator.get_phone_number(number, country, extension)

    def get_country_iso2(self) -> Optional[str]:
        return self.get("country_iso2")

    def get_country_code(self) -> Optional[str]:
        return self.get("country_code")

    def get_country_name(self) -> Optional[str]:
        country = self.get("country_iso2")
        return self.validator.get_country_name(country.upper()) if country else None

    def _others_with_number(self, number: str):
        query = select(PhoneEntry).where(
            PhoneEntry.entity_type == self.field.entity_type,
            PhoneEntry.field_name == self.field.name,
            PhoneEntry.phone_number == number,
        )
        if self.entity_id is not None:
            query = query.where(PhoneEntry.entity_id != self.entity_id)
        return query

    def is_unique(self, number: Optional[str] = None) -> Optional[bool]:
        """No other entity stores this number in the same field; None without a number"""
        number = number or self.get("phone_number")
        if not number:
            return None
        return self.session.exec(self._others_with_number(number)).first() is None

    def pre_save(self) -> Dict[str, Any]:
        """Normalise the values for storage and return them"""
        if not self.field.required and self.has_blank_local_number():
            self.values.update(phone_number="", country_code="", country_iso2="")
            return self.values

        phone_number = self.get_phone_number()
        if phone_number:
            self.values.update(
                phone_number=self.validator.get_callable_number(phone_number),
                local_number=self.validator.get_local_number(phone_number),
                country_code=str(self.validator.get_country_code(phone_number)),
                country_iso2=self.validator.get_country(phone_number),
            )
        else:
            self.values.update(phone_number=None, local_number=None)
        return self.values


class PhoneVerificationItem(PhoneItem):
    """
    Phone item that can be verified by SMS code and flagged for TFA.

    Besides the stored columns, ``values`` may carry ``verification_token``
    and ``verification_code`` submitted along with the number.
    """

    def __init__(self, field: PhoneField, values: Dict[str, Any], verifier: PhoneVerifier,
                 entity_id: Optional[str] = None, delta: int = 0):
        super().__init__(field, values, verifier.session, verifier.validator, entity_id, delta)
        self.verifier = verifier

    def tfa_allowed(self) -> bool:
        return self.verifier.is_tfa_enabled() and self.field.cardinality == 1

    def is_verified(self) -> bool:
        """Stored as verified on this entity, or verified during the current session"""
        phone_number = self.get_phone_number()
        if not phone_number:
            return False

        verified = False
        if self.entity_id is not None:
            entry = self.session.exec(
                select(PhoneEntry).where(
                    PhoneEntry.entity_type == self.field.entity_type,
                    PhoneEntry.entity_id == self.entity_id,
                    PhoneEntry.field_name == self.field.name,
                    PhoneEntry.phone_number == self.validator.get_callable_number(phone_number),
                    PhoneEntry.verified == True,  # noqa: E712
                )
            ).first()
            verified = entry is not None

        return verified or self.verifier.is_verified(phone_number)

    def verify(self) -> VerifyResult:
        token = self.get("verification_token")
        code = self.get("verification_code")

        if self.is_verified():
            return VerifyResult.VERIFIED

        phone_number = self.get_phone_number()
        if not (token and code and phone_number):
            return VerifyResult.NOT_ATTEMPTED

        queue = self.field.queue()
        if not self.verifier.check_flood(phone_number, "verification", queue):
            return VerifyResult.FLOOD

        if self.verifier.verify_code(phone_number, code, token, queue):
            return VerifyResult.VERIFIED
        return VerifyResult.FAILED

    def is_unique_verify(self, unique_type: int = PhoneVerifier.UNIQUE_YES) -> Optional[bool]:
        """
        Uniqueness check honouring the field's unique mode.

        With UNIQUE_YES_VERIFIED only verified numbers of other entities
        conflict, and only once this item is itself verified.
        """
        phone_number = self.get_phone_number()
        if not phone_number:
            return None

        query = self._others_with_number(self.validator.get_callable_number(phone_number))
        if unique_type == PhoneVerifier.UNIQUE_YES_VERIFIED:
            if not self.is_verified():
                return True
            query = query.where(PhoneEntry.verified == True)  # noqa: E712

        return self.session.exec(query).first() is None

    def pre_save(self) -> Dict[str, Any]:
        if not self.field.required and self.has_blank_local_number():
            self.values.update(phone_number="", country_code="", country_iso2="", verified=False)
            return self.values

        phone_number = self.get_phone_number()
        if not phone_number:
            self.values.update(phone_number=None, local_number=None)
            return self.values

        self.values.update(
            phone_number=self.validator.get_callable_number(phone_number),
            local_number=self.validator.get_local_number(phone_number),
            country_code=str(self.validator.get_country_code(phone_number)),
            country_iso2=self.validator.get_country(phone_number),
            tfa=bool(self.values.get("tfa")),
        )
        if self.values.get("verified") is not None:
            self.values["verified"] = bool(self.values["verified"])
        else:
            self.values["verified"] = self.verify() == VerifyResult.VERIFIED
        return self.values
