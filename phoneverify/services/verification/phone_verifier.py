# phoneverify/services/verification/phone_verifier.py
import hashlib
import hmac
import logging
import random
import re
import secrets
import string
import time
from enum import Enum
from typing import Any, Callable, Dict, MutableMapping, Optional

from phonenumbers import PhoneNumber
from sqlmodel import Session, select

from phoneverify.core.config import settings
from phoneverify.db.models import PhoneEntry, PhoneField, PhoneVerificationCode, PhonenumberSetting
from phoneverify.services.rate_limit.flood_service import FloodService
from phoneverify.services.sms.sms_service import SmsService
from phoneverify.services.validation.phone_validator import PhoneValidator

logger = logging.getLogger(__name__)

SmsCallback = Callable[[str, str], bool]

_TOKEN_PATTERN = re.compile(r"\[([\w-]+):([\w-]+)\]")
_rng = random.SystemRandom()


class VerifyResult(str, Enum):
    """Outcome of verifying a phone item against a submitted code"""
    VERIFIED = "verified"
    FAILED = "failed"
    NOT_ATTEMPTED = "not_attempted"
    FLOOD = "flood"


def replace_tokens(text: str, data: Optional[Dict[str, Any]]) -> str:
    """
    Replace ``[type:key]`` placeholders, e.g. ``[user:name]`` with data["user"]["name"].

    Objects are read by attribute, mappings by key. Unknown placeholders are kept.
    """
    if not data:
        return text

    def _replace(match):
        source = data.get(match.group(1))
        if source is None:
            return match.group(0)
        key = match.group(2)
        value = source.get(key) if isinstance(source, dict) else getattr(source, key, None)
        return match.group(0) if value is None else str(value)

    return _TOKEN_PATTERN.sub(_replace, text)


class PhoneVerifier:
    """
    SMS one-time code verification of phone numbers.

    A sent code is stored only as a hash bound to the number and a random
    token; the token is handed to the client and also remembered in the
    caller's session state together with the verified flag.
    """

    UNIQUE_NO = 0
    UNIQUE_YES = 1
    UNIQUE_YES_VERIFIED = 2

    VERIFY_NONE = "none"
    VERIFY_OPTIONAL = "optional"
    VERIFY_REQUIRED = "required"

    DEFAULT_SMS_MESSAGE = "Your verification code from !site_name:\n!code"

    VERIFICATION_CODE_LENGTH = 4

    FLOOD_VERIFY = "phonenumber_verification"
    FLOOD_SMS = "phonenumber_verification_sms"
    FLOOD_SMS_IP = "phonenumber_verification_sms_ip"

    SESSION_KEY = "phonenumber_verification"
    TFA_FIELD_SETTING = "tfa_field"

    def __init__(
        self,
        session: Session,
        validator: PhoneValidator,
        flood: FloodService,
        sms_service: Optional[SmsService] = None,
        sms_callback: Optional[SmsCallback] = None,
        session_state: Optional[MutableMapping] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.session = session
        self.validator = validator
        self.flood = flood
        self.sms_service = sms_service
        self._sms_callback = sms_callback
        self.session_state = session_state if session_state is not None else {}
        self._now = clock

    def default_queue(self) -> Dict[str, int]:
        return {
            "verify_interval": settings.VERIFY_ATTEMPTS_INTERVAL,
            "verify_count": settings.VERIFY_ATTEMPTS_COUNT,
            "sms_interval": settings.SMS_ATTEMPTS_INTERVAL,
            "sms_count": settings.SMS_ATTEMPTS_COUNT,
        }

    def _remember_number(self, number: str, entry: Dict[str, Any]) -> None:
        # Reassign the top-level key so cookie sessions see the change
        numbers = dict(self.session_state.get(self.SESSION_KEY) or {})
        numbers[number] = entry
        self.session_state[self.SESSION_KEY] = numbers

    def _callable(self, phone_number: PhoneNumber) -> str:
        return self.validator.get_callable_number(phone_number)

    def is_verified(self, phone_number: PhoneNumber) -> bool:
        """Whether the number was verified in the current session"""
        entry = self.session_state.get(self.SESSION_KEY, {}).get(self._callable(phone_number), {})
        return bool(entry.get("verified"))

    def is_sms_enabled(self) -> bool:
        return bool(self.sms_callback())

    def is_tfa_enabled(self) -> bool:
        return settings.TFA_ENABLED and self.is_sms_enabled()

    def check_flood(
        self,
        phone_number: PhoneNumber,
        type: str = "verification",
        queue: Optional[Dict[str, int]] = None,
        client_ip: Optional[str] = None,
    ) -> bool:
        """
        Check for too many attempts against a number.

        Args:
            phone_number: Parsed number
            type: "verification" (code checks) or "sms" (code requests)
            queue: verify/sms intervals (seconds) and counts; settings defaults when empty
            client_ip: Requesting IP, used for the per-IP SMS limit

        Returns:
            False when the number (or IP) has been flooded, True otherwise
        """
        queue = queue or self.default_queue()
        number = self._callable(phone_number)

        if type == "verification":
            return self.flood.is_allowed(self.FLOOD_VERIFY, queue["verify_count"], queue["verify_interval"], number)

        if type == "sms":
            ip_count = queue["sms_count"] * 5 if queue["sms_count"] >= 0 else -1
            if not self.flood.is_allowed(self.FLOOD_SMS, queue["sms_count"], queue["sms_interval"], number):
                return False
            # Without a known requester there is no per-IP limit
            return client_ip is None or self.flood.is_allowed(
                self.FLOOD_SMS_IP, ip_count, queue["sms_interval"] * 5, client_ip
            )

        return True

    def generate_verification_code(self, length: int = VERIFICATION_CODE_LENGTH) -> str:
        return "".join(_rng.choices(string.digits, k=length))

    def code_hash(self, phone_number: PhoneNumber, token: str, code: str) -> str:
        number = self._callable(phone_number)
        secret = settings.VERIFICATION_SECRET
        return hashlib.sha256(f"{number}{secret}{token}{code}".encode()).hexdigest()

    def register_verification_code(self, phone_number: PhoneNumber, code: str) -> str:
        """Store the hashed code and return its 43 character token"""
        token = secrets.token_urlsafe(32)
        record = PhoneVerificationCode(
            token=token,
            timestamp=int(self._now()),
            verification_code=self.code_hash(phone_number, token, code),
        )
        try:
            self.session.add(record)
            self.session.commit()
        except Exception as e:
            logger.error(f"Error storing verification code: {e}")
            self.session.rollback()
            raise
        return token

    def send_verification(
        self,
        phone_number: PhoneNumber,
        message: str,
        code: str,
        token_data: Optional[Dict[str, Any]] = None,
        queue: Optional[Dict[str, int]] = None,
        client_ip: Optional[str] = None,
    ) -> Optional[str]:
        """
        Send a code by SMS and register it.

        Message placeholders: !code, !site_name and [type:key] tokens from token_data.

        Returns:
            The verification token, or None when the SMS could not be sent
        """
        queue = queue or self.default_queue()
        number = self._callable(phone_number)

        message = message.replace("!code", code).replace("!site_name", settings.SITE_NAME)
        message = replace_tokens(message, token_data)

        self.flood.register(self.FLOOD_SMS, queue["sms_interval"], number)
        if client_ip is not None:
            self.flood.register(self.FLOOD_SMS_IP, queue["sms_interval"] * 5, client_ip)

        if not self.send_sms(number, message):
            logger.warning(f"Verification SMS could not be sent to number ending {number[-4:]}")
            return None

        token = self.register_verification_code(phone_number, code)
        self._remember_number(number, {"token": token, "verified": False})
        if settings.OTP_DEBUG_LOG:
            logger.warning("OTP_DEBUG_LOG: code for %s is %s (remove OTP_DEBUG_LOG in production)", number, code)
        return token

    def verify_code(
        self,
        phone_number: PhoneNumber,
        code: Optional[str],
        token: Optional[str] = None,
        queue: Optional[Dict[str, int]] = None,
    ) -> bool:
        """
        Check a submitted code against the stored hash for the token.

        The token defaults to the one remembered in session. A wrong code counts
        as a verification flood event for the number.
        """
        token = token or self.get_token(phone_number)
        if not code or not token:
            return False

        queue = queue or self.default_queue()
        number = self._callable(phone_number)
        expected = self.code_hash(phone_number, token, str(code))
        since = int(self._now()) - settings.VERIFICATION_CODE_LIFETIME

        record = self.session.exec(
            select(PhoneVerificationCode).where(
                PhoneVerificationCode.token == token,
                PhoneVerificationCode.timestamp > since,
            )
        ).first()

        if record and hmac.compare_digest(record.verification_code, expected):
            entry = dict(self.session_state.get(self.SESSION_KEY, {}).get(number) or {"token": token})
            entry["verified"] = True
            self._remember_number(number, entry)
            logger.info(f"Number ending {number[-4:]} verified")
            return True

        self.flood.register(self.FLOOD_VERIFY, queue["verify_interval"], number)
        logger.info(f"Verification failed for number ending {number[-4:]}")
        return False

    def get_token(self, phone_number: PhoneNumber) -> Optional[str]:
        entry = self.session_state.get(self.SESSION_KEY, {}).get(self._callable(phone_number), {})
        return entry.get("token") or None

    def sms_callback(self) -> Optional[SmsCallback]:
        """
        The callable used to send SMS: (number, message) -> bool.

        An injected callback wins over the configured SmsService; None when SMS is off.
        """
        if callable(self._sms_callback):
            return self._sms_callback
        if self.sms_service is not None and self.sms_service.is_enabled():
            return self.sms_service.send_sms
        return None

    def send_sms(self, number: str, message: str) -> bool:
        callback = self.sms_callback()
        if not callback:
            return False
        return bool(callback(number, message))

    def tfa_account_number(self, uid) -> str:
        """International number of the user's TFA field when TFA is switched on for it"""
        field_name = self.get_tfa_field()
        if not field_name:
            return ""
        entry = self.session.exec(
            select(PhoneEntry).where(
                PhoneEntry.entity_type == "user",
                PhoneEntry.entity_id == str(uid),
                PhoneEntry.field_name == field_name,
                PhoneEntry.delta == 0,
            )
        ).first()
        if entry and entry.phone_number and entry.tfa:
            return entry.phone_number
        return ""

    def get_tfa_field(self) -> str:
        """Configured user field for TFA; '' when unset, missing, or TFA is disabled"""
        if not self.is_tfa_enabled():
            return ""
        setting = self.session.get(PhonenumberSetting, self.TFA_FIELD_SETTING)
        if not setting or not setting.value:
            return ""
        field = self.session.exec(
            select(PhoneField).where(PhoneField.entity_type == "user", PhoneField.name == setting.value)
        ).first()
        return setting.value if field else ""

    def set_tfa_field(self, field_name: str) -> None:
        setting = self.session.get(PhonenumberSetting, self.TFA_FIELD_SETTING)
        if setting is None:
            setting = PhonenumberSetting(name=self.TFA_FIELD_SETTING)
        setting.value = field_name or ""
        try:
            self.session.add(setting)
            self.session.commit()
        except Exception as e:
            logger.error(f"Error saving TFA field setting: {e}")
            self.session.rollback()
            raise

    def purge_expired(self) -> int:
        """Delete codes past their lifetime and expired flood events; returns codes removed"""
        since = int(self._now()) - settings.VERIFICATION_CODE_LIFETIME
        try:
            expired = self.session.exec(
                select(PhoneVerificationCode).where(PhoneVerificationCode.timestamp <= since)
            ).all()
            for record in expired:
                self.session.delete(record)
            self.session.commit()
        except Exception as e:
            logger.error(f"Error purging verification codes: {e}")
            self.session.rollback()
            raise
        self.flood.garbage_collection()
        logger.info(f"Purged {len(expired)} expired verification codes")
        return len(expired)
