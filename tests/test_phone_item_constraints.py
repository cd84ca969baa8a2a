import pytest

from conftest import GB_LOCAL, GB_MOBILE, US_NUMBER, example_number
from phoneverify.db.models import PhoneEntry, PhoneField
from phoneverify.services.phone.constraints import validate_phone, validate_validation, validate_verification
from phoneverify.services.phone.field_service import PhoneFieldService
from phoneverify.services.phone.phone_item import PhoneItem, PhoneVerificationItem
from phoneverify.services.verification.phone_verifier import PhoneVerifier, VerifyResult


def make_field(**overrides) -> PhoneField:
    values = {"entity_type": "user", "name": "field_phone"}
    values.update(overrides)
    return PhoneField(**values)


def store(db_session, entity_id, number=GB_MOBILE, verified=False):
    db_session.add(PhoneEntry(entity_type="user", entity_id=str(entity_id), field_name="field_phone",
                              phone_number=number, verified=verified))
    db_session.commit()


@pytest.fixture
def plain_item(db_session, validator):
    def _make(values, field=None, entity_id="1"):
        return PhoneItem(field or make_field(), values, db_session, validator, entity_id)
    return _make


@pytest.fixture
def verification_item(verifier):
    def _make(values, field=None, entity_id="1"):
        return PhoneVerificationItem(field or make_field(verify="optional"), values, verifier, entity_id)
    return _make


def test_pre_save_normalises_local_number(plain_item):
    item = plain_item({"local_number": "07400123456", "country_iso2": "gb"})
    values = item.pre_save()
    assert values["phone_number"] == GB_MOBILE
    assert values["local_number"] == GB_LOCAL
    assert values["country_code"] == "44"
    assert values["country_iso2"] == "GB"


def test_pre_save_clears_blank_optional_number(plain_item):
    values = plain_item({"phone_number": GB_MOBILE, "local_number": " ", "country_iso2": "GB"}).pre_save()
    assert values["phone_number"] == ""
    assert values["country_iso2"] == ""


def test_pre_save_clears_unparsable_number(plain_item):
    values = plain_item({"phone_number": "12"}).pre_save()
    assert values["phone_number"] is None
    assert values["local_number"] is None


def test_item_getters(plain_item):
    item = plain_item({"phone_number": GB_MOBILE, "country_iso2": "gb", "country_code": "44"})
    assert item.is_empty() is False
    assert item.get_country_iso2() == "gb"
    assert item.get_country_code() == "44"
    assert item.get_country_name() == "United Kingdom"
    assert plain_item({}).is_empty() is True
    assert plain_item({}).get_phone_number() is None


def test_is_unique_ignores_own_entity(db_session, plain_item):
    assert plain_item({}).is_unique() is None
    store(db_session, "1")
    assert plain_item({"phone_number": GB_MOBILE}, entity_id="1").is_unique() is True
    assert plain_item({"phone_number": GB_MOBILE}, entity_id="2").is_unique() is False


def test_phone_constraint_required(plain_item):
    violations = validate_phone(plain_item({"local_number": ""}, make_field(required=True)))
    assert [v.message for v in violations] == ["Phone number field is required."]
    assert validate_phone(plain_item({"local_number": ""})) == []


def test_phone_constraint_allowed_countries(plain_item):
    field = make_field(allowed="include", countries=["US"])
    violations = validate_phone(plain_item({"phone_number": GB_MOBILE}, field))
    assert violations[0].message == (
        "The country of United Kingdom provided for phone number is not allowed in the list of countries."
    )
    excluded = make_field(allowed="exclude", countries=["US"])
    assert validate_phone(plain_item({"phone_number": GB_MOBILE}, excluded)) == []


def test_phone_constraint_unique(db_session, plain_item):
    store(db_session, "1")
    field = make_field(unique=PhoneVerifier.UNIQUE_YES)
    violations = validate_phone(plain_item({"local_number": GB_LOCAL, "country_iso2": "GB"}, field, "2"))
    assert violations[0].message == f"A user with phone number {GB_LOCAL} already exists."
    assert validate_phone(plain_item({"phone_number": GB_MOBILE}, field, "1")) == []


def test_phone_constraint_validity(plain_item):
    violations = validate_phone(plain_item({"local_number": "12", "country_iso2": "GB"}))
    assert violations[0].message == (
        "The phone number 12 is invalid for the following reason: "
        "Unexpected error for phone number: Invalid number."
    )


def test_verify_not_attempted_and_required(verification_item):
    item = verification_item({"phone_number": GB_MOBILE})
    assert item.verify() == VerifyResult.NOT_ATTEMPTED
    assert validate_verification(item) == []

    required = verification_item({"phone_number": GB_MOBILE}, make_field(verify="required"))
    assert [v.message for v in validate_verification(required)] == [
        f"The phone number {GB_LOCAL} must be verified."
    ]
    assert validate_verification(required, bypass_verification=True) == []


def test_tfa_item_must_be_verified(verification_item):
    item = verification_item({"phone_number": GB_MOBILE, "tfa": True})
    assert validate_verification(item)[0].message.endswith("must be verified.")


def test_verify_with_code(verification_item, verifier, sms):
    number = verifier.validator.check_phone_number(GB_MOBILE)
    token = verifier.send_verification(number, "!code", "1234")

    wrong = verification_item({"phone_number": GB_MOBILE, "verification_token": token, "verification_code": "9"})
    assert [v.message for v in validate_verification(wrong)] == [
        f"Invalid verification code for phone number {GB_LOCAL}."
    ]

    item = verification_item({"phone_number": GB_MOBILE, "verification_token": token, "verification_code": "1234"},
                             make_field(verify="required"))
    assert validate_verification(item) == []
    assert item.is_verified() is True
    assert item.pre_save()["verified"] is True


def test_verify_flood(verification_item, verifier):
    field = make_field(verify="optional", verify_count=0)
    item = verification_item({"phone_number": GB_MOBILE, "verification_token": "t", "verification_code": "1"}, field)
    assert item.verify() == VerifyResult.FLOOD
    assert validate_verification(item)[0].message == (
        f"Too many verification attempts for phone number {GB_LOCAL}, please try again in a few hours."
    )


def test_verification_constraint_countries(verification_item):
    field = make_field(verify="optional", validation_countries=["US"])
    violations = validate_verification(verification_item({"phone_number": GB_MOBILE}, field))
    assert "United Kingdom" in violations[0].message


def test_verification_constraint_validity(verification_item):
    violations = validate_verification(verification_item({"local_number": "12", "country_iso2": "GB"}))
    assert violations[0].message == "The phone number 12 is invalid for the following reason: Invalid number."


def test_stored_verified_number_stays_verified(db_session, verification_item):
    store(db_session, "1", verified=True)
    assert verification_item({"phone_number": GB_MOBILE}, entity_id="1").is_verified() is True
    assert verification_item({"phone_number": GB_MOBILE}, entity_id="2").is_verified() is False


def test_unique_among_verified(db_session, verification_item, session_state):
    field = make_field(verify="optional", unique=PhoneVerifier.UNIQUE_YES_VERIFIED)
    store(db_session, "1", verified=False)
    item = verification_item({"phone_number": GB_MOBILE}, field, "2")
    assert item.is_unique_verify(PhoneVerifier.UNIQUE_YES) is False
    assert item.is_unique_verify(PhoneVerifier.UNIQUE_YES_VERIFIED) is True

    store(db_session, "3", verified=True)
    # Still unique while this item is not verified itself
    assert item.is_unique_verify(PhoneVerifier.UNIQUE_YES_VERIFIED) is True
    session_state["phonenumber_verification"] = {GB_MOBILE: {"token": "t", "verified": True}}
    assert item.is_unique_verify(PhoneVerifier.UNIQUE_YES_VERIFIED) is False
    assert validate_verification(item)[0].message == f"A user with phone number {GB_LOCAL} already exists."


def test_tfa_allowed(verification_item, monkeypatch):
    from phoneverify.core.config import settings

    assert verification_item({}).tfa_allowed() is False
    monkeypatch.setattr(settings, "TFA_ENABLED", True)
    assert verification_item({}).tfa_allowed() is True
    assert verification_item({}, make_field(cardinality=2)).tfa_allowed() is False


def test_validation_constraint(plain_item):
    field = make_field(validation_format="E164", validation_countries=["US"])
    violations = validate_validation(plain_item({"phone_number": GB_MOBILE}, field))
    assert violations[0].message == f"{GB_MOBILE} is not a valid phone number."

    us = example_number("US")
    assert validate_validation(plain_item({"phone_number": us}, field)) == []
    # Fields without validation settings are not checked
    assert validate_validation(plain_item({"phone_number": "12"})) == []


def test_missing_local_number_is_not_blank(plain_item):
    item = plain_item({"phone_number": US_NUMBER, "local_number": None})
    assert item.has_blank_local_number() is False
    assert item.pre_save()["phone_number"] == US_NUMBER
    assert plain_item({"local_number": "  "}).has_blank_local_number() is True


def test_validation_constraint_local_number(plain_item):
    field = make_field(validation_format="E164", validation_countries=["GB"])
    assert validate_validation(plain_item({"local_number": GB_LOCAL, "country_iso2": "GB"}, field)) == []

    violations = validate_validation(plain_item({"local_number": "12", "country_iso2": "GB"}, field))
    assert violations[0].message == "12 is not a valid phone number."
    assert validate_validation(plain_item({"local_number": ""}, field)) == []


def test_blank_items_are_skipped_on_required_fields(db_session, verifier):
    service = PhoneFieldService(db_session, verifier)
    field = make_field(required=True, cardinality=-1, validation_format="E164")
    items = [
        service.make_item(field, {"phone_number": GB_MOBILE}),
        service.make_item(field, {"local_number": ""}, delta=1),
    ]
    assert service.validate_items(field, items) == []

    blank = [service.make_item(field, {"local_number": ""})]
    assert [v.message for v in service.validate_items(field, blank)] == ["Phone number field is required."]
