import pytest
from sqlmodel import select

from conftest import ADMIN, GB_MOBILE
from phoneverify.core.config import settings
from phoneverify.db.models import PhoneVerificationCode

NUMBER = GB_MOBILE.lstrip("+")


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "database": "connected",
        "flood_backend": "memory",
        "sms_provider": "fake",
    }


def test_admin_requires_credentials(client):
    assert client.post("/admin/cron").status_code == 401
    assert client.post("/admin/cron", auth=("admin", "wrong")).status_code == 401


def test_flood_clear(client):
    url = f"/phonenumber-verification/request-code/{NUMBER}"
    assert client.get(url).status_code == 200
    assert client.get(url).status_code == 403

    response = client.post("/admin/flood/clear", json={"phone_number": GB_MOBILE, "ip_address": "testclient"},
                           auth=ADMIN)
    assert response.status_code == 200
    assert response.json()["success"] is True
    assert client.get(url).status_code == 200


def test_flood_clear_invalid_number(client):
    response = client.post("/admin/flood/clear", json={"phone_number": "+4412"}, auth=ADMIN)
    assert response.status_code == 422


def test_cron_purges_expired_codes(client, db_session):
    db_session.add(PhoneVerificationCode(token="old", timestamp=0, verification_code="x"))
    db_session.commit()
    assert client.get(f"/phonenumber-verification/request-code/{NUMBER}").status_code == 200

    response = client.post("/admin/cron", auth=ADMIN)
    assert response.json() == {"purged_codes": 1}
    remaining = db_session.exec(select(PhoneVerificationCode)).all()
    assert len(remaining) == 1
    assert remaining[0].token != "old"


def test_tfa_field_setting(client, monkeypatch):
    field = {"entity_type": "user", "name": "field_phone"}
    client.post("/phonenumber/fields", json=field, auth=ADMIN)

    response = client.put("/admin/tfa-field", json={"field_name": "field_phone"}, auth=ADMIN)
    assert response.status_code == 400

    monkeypatch.setattr(settings, "TFA_ENABLED", True)
    assert client.put("/admin/tfa-field", json={"field_name": "missing"}, auth=ADMIN).status_code == 404

    response = client.put("/admin/tfa-field", json={"field_name": "field_phone"}, auth=ADMIN)
    assert response.json() == {"field_name": "field_phone"}
    assert client.get("/admin/tfa-field", auth=ADMIN).json() == {"field_name": "field_phone"}

    response = client.put("/admin/tfa-field", json={"field_name": ""}, auth=ADMIN)
    assert response.json() == {"field_name": ""}


@pytest.fixture
def tfa_user(client, monkeypatch):
    monkeypatch.setattr(settings, "TFA_ENABLED", True)
    field = {"entity_type": "user", "name": "field_phone", "verify": "optional", "tfa": True}
    assert client.post("/phonenumber/fields", json=field, auth=ADMIN).status_code == 201

    response = client.put("/phonenumber/entities/user/7/field_phone",
                          json={"items": [{"phone_number": GB_MOBILE, "tfa": True, "verified": True}]},
                          auth=ADMIN)
    assert response.json()["items"][0]["tfa"] is True
    return "7"


def test_tfa_login(client, sms, tfa_user):
    response = client.post(f"/tfa/{tfa_user}/begin")
    assert response.status_code == 200
    assert response.json()["number_clue"] == "XXX-XXXXX456"
    assert len(sms.sent) == 1

    # A second begin within the same login does not send another code
    assert client.post(f"/tfa/{tfa_user}/begin").status_code == 200
    assert len(sms.sent) == 1

    assert client.post(f"/tfa/{tfa_user}/validate", json={"code": "wrong"}).json() == {"valid": False}
    assert client.post(f"/tfa/{tfa_user}/validate", json={"code": sms.last_code}).json() == {"valid": True}


def test_tfa_resend_flood(client, tfa_user):
    client.post(f"/tfa/{tfa_user}/begin")
    response = client.post(f"/tfa/{tfa_user}/resend")
    assert response.status_code == 403


def test_tfa_delivery_failure(client, sms, tfa_user):
    sms.ok = False
    assert client.post(f"/tfa/{tfa_user}/begin").status_code == 500


def test_tfa_unknown_user(client, tfa_user):
    assert client.post("/tfa/8/begin").status_code == 404
