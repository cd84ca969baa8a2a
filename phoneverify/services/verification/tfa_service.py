# phoneverify/services/verification/tfa_service.py
import logging
from enum import Enum
from typing import Any, Dict, Optional

from phonenumbers import PhoneNumber

from phoneverify.core.config import settings
from phoneverify.services.validation.exceptions import PhoneNumberException
from phoneverify.services.verification.phone_verifier import PhoneVerifier

logger = logging.getLogger(__name__)


class TfaException(Exception):
    """The user's stored TFA number cannot be used"""

    def __init__(self, message: str, code: int = 0):
        super().__init__(message)
        self.code = code


class ResendResult(str, Enum):
    SENT = "sent"
    FLOOD = "flood"
    FAILED = "failed"


class PhoneTfa:
    """
    Second login factor by SMS code to the user's TFA phone number.

    ``context`` carries ``uid`` and, between requests, ``validate_context``
    with the ``code`` and ``verification_token`` of the last sent code.
    ``client_ip`` keys the per-IP SMS limit.
    """

    CODE_LENGTH = 4

    def __init__(self, verifier: PhoneVerifier, uid, context: Optional[Dict[str, Any]] = None,
                 client_ip: Optional[str] = None):
        self.verifier = verifier
        self.uid = uid
        self.client_ip = client_ip
        self.context = dict(context or {})
        self.context.setdefault("uid", uid)
        self.code: Optional[str] = None
        self.verification_token: Optional[str] = None
        self.is_valid = False
        self.phone_number: Optional[PhoneNumber] = None

        validate_context = self.context.get("validate_context") or {}
        if validate_context.get("code"):
            self.code = validate_context["code"]
        if validate_context.get("verification_token"):
            self.verification_token = validate_context["verification_token"]

        number = self.verifier.tfa_account_number(uid)
        if number:
            try:
                self.phone_number = self.verifier.validator.check_phone_number(number)
            except PhoneNumberException as e:
                raise TfaException(f"Two factor authentication failed: \n{e.message}", e.code) from e

    def ready(self) -> bool:
        return bool(self.verifier.tfa_account_number(self.uid))

    def begin(self) -> bool:
        """Send a code unless one was already sent for this login; False when delivery failed"""
        if self.code or self.verification_token:
            return True
        if not self.send_code():
            logger.error(f"Unable to deliver TFA code to user {self.uid}")
            return False
        return True

    def number_clue(self) -> str:
        """Local number with all but the last 3 digits masked, e.g. XXX-XXXX123"""
        local = self.verifier.validator.get_local_number(self.phone_number, strip_non_digits=True)
        clue = local[-3:].rjust(len(local), "X")
        return clue[:3] + "-" + clue[3:]

    def validate(self, code: Optional[str]) -> bool:
        if not self.verify_code(code):
            logger.info(f"Invalid TFA code for user {self.uid}")
            return False
        return True

    def resend(self) -> ResendResult:
        if not self.verifier.check_flood(self.phone_number, "sms", client_ip=self.client_ip):
            return ResendResult.FLOOD
        if not self.send_code():
            return ResendResult.FAILED
        return ResendResult.SENT

    def send_code(self) -> bool:
        self.code = self.verifier.generate_verification_code(self.CODE_LENGTH)
        message = settings.TFA_MESSAGE or PhoneVerifier.DEFAULT_SMS_MESSAGE
        try:
            self.verification_token = self.verifier.send_verification(
                self.phone_number, message, self.code, {"user": {"uid": self.uid}}, client_ip=self.client_ip
            )
        except Exception as e:
            logger.error(f"Send message error to user {self.uid}: {e}")
            return False

        if not self.verification_token:
            return False

        logger.info(f"TFA validation code sent to user {self.uid}")
        return True

    def verify_code(self, code: Optional[str]) -> bool:
        self.is_valid = self.verifier.verify_code(self.phone_number, code, self.verification_token)
        return self.is_valid

    def get_plugin_context(self) -> Dict[str, str]:
        return {
            "code": self.code or "",
            "verification_token": self.verification_token or "",
        }
