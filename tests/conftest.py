import os

# Settings are read at import time; point everything at throwaway backends first
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTO_CREATE_TABLES"] = "false"
os.environ["SMS_PROVIDER"] = "log"
os.environ["ADMIN_USER"] = "admin"
os.environ["ADMIN_PASS"] = "secret"
os.environ["SECRET_KEY"] = "test-session-key"
os.environ["VERIFICATION_SECRET"] = "test-verification-secret"
os.environ.pop("REDIS_URL", None)

import phonenumbers
import pytest
from fastapi.testclient import TestClient
from phonenumbers import PhoneNumberFormat, PhoneNumberType
from sqlmodel import Session, SQLModel

import phoneverify.db.models  # noqa: F401 - register tables
from phoneverify.core import deps
from phoneverify.db.session import engine, get_session
from phoneverify.services.rate_limit.flood_service import FloodService
from phoneverify.services.validation.phone_validator import PhoneValidator
from phoneverify.services.verification.phone_verifier import PhoneVerifier


def example_number(region: str, number_type=PhoneNumberType.MOBILE) -> str:
    """Valid E.164 example number of a region, straight from the phonenumbers metadata"""
    number = phonenumbers.example_number_for_type(region, number_type)
    return phonenumbers.format_number(number, PhoneNumberFormat.E164)


GB_MOBILE = example_number("GB")  # +447400123456
GB_LOCAL = "07400 123456"
US_NUMBER = example_number("US", PhoneNumberType.FIXED_LINE)


class FakeClock:
    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeSms:
    """Records messages instead of sending them"""
    provider = "fake"

    def __init__(self):
        self.ok = True
        self.sent = []

    def is_enabled(self) -> bool:
        return True

    def send_sms(self, number: str, message: str) -> bool:
        self.sent.append((number, message))
        return self.ok

    @property
    def last_code(self) -> str:
        # The default message ends with the code on its own line
        return self.sent[-1][1].rsplit("\n", 1)[-1]


@pytest.fixture
def db_session():
    SQLModel.metadata.create_all(engine)
    with Session(engine) as session:
        yield session
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def validator():
    return PhoneValidator()


@pytest.fixture
def flood(clock):
    return FloodService(redis_url="", clock=clock)


@pytest.fixture
def sms():
    return FakeSms()


@pytest.fixture
def session_state():
    return {}


@pytest.fixture
def verifier(db_session, validator, flood, sms, session_state, clock):
    return PhoneVerifier(db_session, validator, flood, sms_service=sms, session_state=session_state, clock=clock)


@pytest.fixture
def client(db_session, flood, sms):
    from phoneverify.main import app

    app.dependency_overrides[get_session] = lambda: db_session
    app.dependency_overrides[deps.get_flood_service] = lambda: flood
    app.dependency_overrides[deps.get_sms_service] = lambda: sms
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


ADMIN = ("admin", "secret")
