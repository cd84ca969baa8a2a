import pytest

from conftest import GB_MOBILE
from phoneverify.db.models import PhoneEntry
from phoneverify.services.phone import formatters


@pytest.fixture
def entries():
    return [
        PhoneEntry(entity_type="user", entity_id="1", field_name="field_phone", phone_number=GB_MOBILE,
                   local_number="07400 123456", country_code="44", country_iso2="GB", verified=True),
        # Blank items are skipped but keep their position
        {"phone_number": "", "local_number": ""},
        {"phone_number": GB_MOBILE, "local_number": "07400 123456", "country_code": "44",
         "country_iso2": "gb", "verified": False},
    ]


def test_international(entries, validator):
    result = formatters.phone_international(entries, validator)
    assert result == [{"delta": 0, "text": "+44 7400 123456"}, {"delta": 2, "text": "+44 7400 123456"}]


def test_national_link(entries, validator):
    assert formatters.phone_national(entries[:1], validator) == [{"delta": 0, "text": "07400 123456"}]

    result = formatters.phone_national(entries[:1], validator, link=True)
    assert result == [{"delta": 0, "text": "07400 123456", "href": "tel:+447400123456"}]

    result = formatters.phone_international(entries[:1], validator, link=True, title=" Call us ")
    assert result[0]["text"] == "Call us"


def test_country(entries, validator):
    assert [e["text"] for e in formatters.phone_country(entries, validator)] == ["United Kingdom"] * 2
    assert [e["text"] for e in formatters.phone_country(entries, validator, "code")] == ["44", "44"]
    assert [e["text"] for e in formatters.phone_country(entries, validator, "iso2")] == ["GB", "gb"]


def test_verified(entries, validator):
    result = formatters.phone_verified(entries, validator)
    assert result == [
        {"delta": 0, "text": "Verified", "class": "verified-status verified"},
        {"delta": 2, "text": "Not verified", "class": "verified-status"},
    ]


def test_render(entries, validator):
    result = formatters.render("phone_country", entries, validator, {"type": "code"})
    assert result[0]["text"] == "44"
    assert formatters.render("phone_verified", [], validator) == []

    with pytest.raises(ValueError):
        formatters.render("phone_fancy", entries, validator)
