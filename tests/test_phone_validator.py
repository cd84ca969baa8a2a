import pytest
from phonenumbers import PhoneNumberType

from conftest import GB_LOCAL, GB_MOBILE, US_NUMBER
from phoneverify.services.validation.exceptions import (
    CountryException,
    ParseException,
    PhoneNumberException,
    TypeException,
)
from phoneverify.services.validation.phone_validator import type_name, type_value


def test_check_phone_number_parses_international(validator):
    number = validator.check_phone_number(GB_MOBILE)
    assert validator.get_callable_number(number) == GB_MOBILE
    assert validator.get_country(number) == "GB"
    assert validator.get_country_code(number) == 44


def test_check_phone_number_parses_local_with_country(validator):
    number = validator.check_phone_number(GB_LOCAL, "gb")
    assert validator.get_callable_number(number) == GB_MOBILE


def test_check_phone_number_empty_raises_no_number(validator):
    with pytest.raises(PhoneNumberException) as exc:
        validator.check_phone_number("  ")
    assert exc.value.code == PhoneNumberException.ERROR_NO_NUMBER
    assert exc.value.error_name == "NO_NUMBER"


def test_check_phone_number_garbage_raises_parse_exception(validator):
    with pytest.raises(ParseException) as exc:
        validator.check_phone_number("not a number")
    assert exc.value.code == PhoneNumberException.ERROR_INVALID_NUMBER


def test_check_phone_number_invalid_number_raises_parse_exception(validator):
    with pytest.raises(ParseException):
        validator.check_phone_number("+4412")


def test_check_phone_number_country_mismatch(validator):
    with pytest.raises(CountryException) as exc:
        validator.check_phone_number(GB_MOBILE, "US")
    assert exc.value.country == "GB"
    assert exc.value.code == PhoneNumberException.ERROR_WRONG_COUNTRY


def test_check_phone_number_type_not_allowed(validator):
    with pytest.raises(TypeException) as exc:
        validator.check_phone_number(GB_MOBILE, types=["FIXED_LINE"])
    assert exc.value.type == PhoneNumberType.MOBILE
    assert exc.value.code == PhoneNumberException.ERROR_WRONG_TYPE


def test_check_phone_number_allowed_type(validator):
    assert validator.check_phone_number(GB_MOBILE, types=["MOBILE", PhoneNumberType.FIXED_LINE])


def test_get_phone_number_returns_none_on_failure(validator):
    assert validator.get_phone_number("") is None
    assert validator.get_phone_number(GB_MOBILE, "US") is None
    assert validator.get_phone_number(GB_MOBILE) is not None


def test_extension_is_kept_but_stripped_from_local_number(validator):
    number = validator.check_phone_number(US_NUMBER, extension="123")
    assert number.extension == "123"
    assert validator.get_local_number(number, strip_non_digits=True) == "2015550123"
    assert "ext" in validator.get_local_number(number, strip_extension=False)


def test_get_local_number(validator):
    number = validator.check_phone_number(GB_MOBILE)
    assert validator.get_local_number(number) == GB_LOCAL
    assert validator.get_local_number(number, strip_non_digits=True) == "07400123456"


def test_is_valid_format_and_countries(validator):
    assert validator.is_valid(GB_MOBILE, "E164") is True
    assert validator.is_valid(GB_MOBILE, "E164", ["GB"]) is True
    assert validator.is_valid(GB_MOBILE, "E164", ["US"]) is False
    assert validator.is_valid("07400123456", "NATIONAL", ["GB"]) is True
    assert validator.is_valid("07400123456", "E164") is False
    assert validator.is_valid("garbage", "E164") is False


def test_country_names_and_options(validator):
    assert validator.get_country_name("GB") == "United Kingdom"
    assert validator.get_country_name("ZZ") == "ZZ"

    options = validator.get_country_options(["gb", "US"], show_country_names=True)
    assert list(options.items()) == [("GB", "United Kingdom (+44)"), ("US", "United States (+1)")]
    assert validator.get_country_options(["GB"]) == {"GB": "GB (+44)"}


def test_country_list_has_dial_codes(validator):
    countries = validator.get_country_list()
    assert countries["GB"] == "United Kingdom - +44"
    assert countries["US"] == "United States - +1"


def test_allowed_countries(validator):
    assert validator.allowed_countries("include", ["gb"]) == ["GB"]
    excluded = validator.allowed_countries("exclude", ["GB"])
    assert "GB" not in excluded and "US" in excluded
    assert "GB" in validator.allowed_countries("include", [])


def test_international_helpers(validator):
    assert validator.is_valid_number(GB_MOBILE) is True
    assert validator.is_valid_number("12") is False
    assert validator.format_number("+44 7400 123456") == GB_MOBILE
    assert validator.format_number("bad") == "bad"


def test_type_helpers(validator):
    assert type_value("mobile") == PhoneNumberType.MOBILE
    assert type_name(PhoneNumberType.FIXED_LINE) == "FIXED_LINE"
    assert validator.get_type_options()["MOBILE"] == "Mobile"
    with pytest.raises(ValueError):
        type_value("SATELLITE")
