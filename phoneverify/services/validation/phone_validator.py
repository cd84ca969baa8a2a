# phoneverify/services/validation/phone_validator.py
import logging
import re
from typing import Dict, Iterable, List, Optional, Union

import phonenumbers
import pycountry
from phonenumbers import NumberParseException, PhoneNumber, PhoneNumberFormat, PhoneNumberType

from phoneverify.services.validation.exceptions import (
    CountryException,
    ParseException,
    PhoneNumberException,
    TypeException,
)

logger = logging.getLogger(__name__)

TYPE_LABELS = {
    "FIXED_LINE": "Fixed line",
    "MOBILE": "Mobile",
    "FIXED_LINE_OR_MOBILE": "Fixed line or mobile",
    "TOLL_FREE": "Toll-free",
    "PREMIUM_RATE": "Premium rate",
    "SHARED_COST": "Shared cost",
    "VOIP": "VOIP",
    "PERSONAL_NUMBER": "Personal number",
    "PAGER": "Pager",
    "UAN": "UAN",
    "VOICEMAIL": "Voicemail",
    "UNKNOWN": "Unknown",
}

FORMAT_E164 = "E164"
FORMAT_NATIONAL = "NATIONAL"


def type_value(number_type: Union[int, str]) -> int:
    """Resolve a number type given by name ("MOBILE") or PhoneNumberType value"""
    if isinstance(number_type, int):
        return number_type
    value = getattr(PhoneNumberType, str(number_type).strip().upper(), None)
    if not isinstance(value, int):
        raise ValueError(f"Unknown phone number type: {number_type}")
    return value


def type_name(number_type: int) -> str:
    for name in TYPE_LABELS:
        if getattr(PhoneNumberType, name) == number_type:
            return name
    return "UNKNOWN"


class PhoneValidator:
    """
    Phone number parsing, validation and formatting on top of phonenumbers.

    Countries are handled as upper-case ISO 3166-1 alpha-2 region codes.
    """

    def _strip_non_digits(self, value: str) -> str:
        return re.sub(r"\D", "", value)

    def is_valid(self, value: str, fmt: Optional[str] = FORMAT_E164, countries: Optional[Iterable[str]] = None) -> bool:
        """
        Check a number against a format and an optional list of allowed countries.

        In NATIONAL format the first country is used as the default region for
        parsing, so the country check always applies.
        """
        countries = [c.upper() for c in (countries or [])]
        default_region = countries[0] if (fmt == FORMAT_NATIONAL and countries) else None
        try:
            number = phonenumbers.parse(value, default_region)
        except NumberParseException:
            # Unparsable is as good a reason as any to call it invalid
            return False

        if not phonenumbers.is_valid_number(number):
            return False

        if countries:
            region = phonenumbers.region_code_for_number(number)
            if region and region not in countries:
                return False

        return True

    def check_phone_number(
        self,
        number: Optional[str],
        country: Optional[str] = None,
        extension: Optional[str] = None,
        types: Optional[Iterable[Union[int, str]]] = None,
    ) -> PhoneNumber:
        """
        Parse and check a number, raising a PhoneNumberException subclass on failure.

        Args:
            number: Number as entered, international or local to ``country``
            country: ISO2 region the number must belong to
            extension: Optional extension to attach
            types: Allowed number types (names or PhoneNumberType values)

        Returns:
            The parsed phonenumbers.PhoneNumber
        """
        if not number or not str(number).strip():
            raise PhoneNumberException("Phone number is empty.", PhoneNumberException.ERROR_NO_NUMBER)

        country = country.upper() if country else None
        try:
            phone_number = phonenumbers.parse(str(number), country)
        except NumberParseException as e:
            raise ParseException("Invalid number") from e

        if not phonenumbers.is_valid_number(phone_number):
            raise ParseException("Invalid number")

        if extension:
            phone_number.extension = str(extension)

        number_country = phonenumbers.region_code_for_number(phone_number)
        if country and number_country != country:
            raise CountryException(
                "Phone number's country and the country provided do not match",
                country=number_country,
            )

        if types:
            allowed = [type_value(t) for t in types]
            number_type = phonenumbers.number_type(phone_number)
            if number_type not in allowed:
                raise TypeException("Phone number's type is not allowed", type=number_type)

        return phone_number

    def get_phone_number(
        self,
        number: Optional[str],
        country: Optional[str] = None,
        extension: Optional[str] = None,
        types: Optional[Iterable[Union[int, str]]] = None,
    ) -> Optional[PhoneNumber]:
        """Same as check_phone_number but returns None instead of raising"""
        try:
            return self.check_phone_number(number, country, extension, types)
        except PhoneNumberException:
            return None

    def get_local_number(self, phone_number: PhoneNumber, strip_non_digits: bool = False,
                         strip_extension: bool = True) -> str:
        if strip_extension and phone_number.extension:
            copy = PhoneNumber()
            copy.merge_from(phone_number)
            copy.extension = None
            local = phonenumbers.format_number(copy, PhoneNumberFormat.NATIONAL)
        else:
            local = phonenumbers.format_number(phone_number, PhoneNumberFormat.NATIONAL)

        if local and strip_non_digits:
            local = self._strip_non_digits(local)

        return local

    def get_callable_number(self, phone_number: Optional[PhoneNumber]) -> Optional[str]:
        """E.164 representation, used as the identity of a number everywhere"""
        if not phone_number:
            return None
        return phonenumbers.format_number(phone_number, PhoneNumberFormat.E164)

    def format_national(self, phone_number: PhoneNumber) -> str:
        return phonenumbers.format_number(phone_number, PhoneNumberFormat.NATIONAL)

    def format_international(self, phone_number: PhoneNumber) -> str:
        return phonenumbers.format_number(phone_number, PhoneNumberFormat.INTERNATIONAL)

    def get_country(self, phone_number: Optional[PhoneNumber]) -> Optional[str]:
        if not phone_number:
            return None
        return phonenumbers.region_code_for_number(phone_number)

    def get_country_name(self, country: Optional[str]) -> Optional[str]:
        if not country:
            return country
        entry = pycountry.countries.get(alpha_2=country.upper())
        return entry.name if entry else country

    def get_country_code(self, phone_number: PhoneNumber) -> int:
        return phone_number.country_code

    def get_country_options(self, filter: Optional[Iterable[str]] = None,
                            show_country_names: bool = False) -> Dict[str, str]:
        """Supported regions as {ISO2: label}, sorted by label"""
        wanted = {c.upper() for c in filter} if filter else None
        countries = {}
        for country in phonenumbers.SUPPORTED_REGIONS:
            if wanted is not None and country not in wanted:
                continue
            code = phonenumbers.country_code_for_region(country)
            name = self.get_country_name(country) if show_country_names else None
            countries[country] = f"{name} (+{code})" if name else f"{country} (+{code})"

        return dict(sorted(countries.items(), key=lambda item: item[1]))

    def get_country_list(self) -> Dict[str, str]:
        """All known countries that have dialing metadata, as {ISO2: "Name - +code"}"""
        regions = {}
        for entry in pycountry.countries:
            code = phonenumbers.country_code_for_region(entry.alpha_2)
            if code:
                regions[entry.alpha_2] = f"{entry.name} - +{code}"
        return regions

    def get_type_options(self) -> Dict[str, str]:
        return dict(TYPE_LABELS)

    def is_valid_number(self, number: str) -> bool:
        """Validity of a number given in international format"""
        try:
            return phonenumbers.is_valid_number(phonenumbers.parse(number, None))
        except NumberParseException as e:
            logger.debug(f"Unparsable number: {e}")
            return False

    def format_number(self, number: str) -> str:
        """E.164 form of an international number; the input is returned when it cannot be parsed"""
        try:
            return phonenumbers.format_number(phonenumbers.parse(number, None), PhoneNumberFormat.E164)
        except NumberParseException as e:
            logger.error(f"Problem formatting number: {number}. The error given was {e}")
            return number

    def allowed_countries(self, allowed: str, countries: List[str]) -> List[str]:
        """
        Resolve a field's include/exclude country setting into the allowed ISO2 list.

        ``allowed`` is "all", "include" or "exclude". An empty list under
        include/exclude behaves like "all".
        """
        every = list(self.get_country_list().keys())
        selected = {c.upper() for c in countries or []}
        if allowed == "all" or not selected:
            return every
        if allowed == "include":
            return [c for c in every if c in selected]
        return [c for c in every if c not in selected]
