# phoneverify/services/sms/sms_service.py
import logging

import requests

from phoneverify.core.config import settings

logger = logging.getLogger(__name__)


def mask_number(number: str) -> str:
    if len(number) <= 4:
        return number
    return f"{number[:-4]}XXXX"


class SmsService:
    """
    Sends verification SMS messages.

    Providers:
        log        - writes the message to the log (dev/test setups)
        twofactor  - 2factor.in transactional SMS API
                     (https://2factor.in/API/DOCS/Docs.html)

    India: SMS delivery requires DLT registration and an approved sender ID.
    If 2factor returns Success but nothing arrives, check DLT and operator.
    """
    BASE_URL = "https://2factor.in/API/R1/"
    PROVIDERS = ("log", "twofactor")

    def __init__(self, provider: str = None):
        self.provider = (settings.SMS_PROVIDER if provider is None else provider).strip().lower()
        # Support both env var names for backward compatibility
        self.api_key = settings.PHONE_SMS or settings.TWOFACTOR_API_KEY
        self.sender_id = settings.SMS_SENDER_ID

        if not self.provider:
            logger.info("SMS sending disabled (SMS_PROVIDER is empty)")
        elif self.provider not in self.PROVIDERS:
            logger.warning(f"Unknown SMS provider '{self.provider}'. SMS sending is disabled.")
        elif self.provider == "twofactor" and not self.api_key:
            logger.warning("2Factor API key not configured. SMS sending will fail. Set PHONE_SMS or TWOFACTOR_API_KEY environment variable.")
        else:
            logger.info(f"SMS service initialized with provider: {self.provider}")

    def is_enabled(self) -> bool:
        if self.provider == "log":
            return True
        return self.provider == "twofactor" and bool(self.api_key)

    def send_sms(self, number: str, message: str) -> bool:
        """
        Send a message to a callable (E.164) number.

        Returns:
            True when the provider accepted the message, False otherwise
        """
        if not self.is_enabled():
            logger.error("SMS sending requested but no SMS provider is enabled")
            return False

        if self.provider == "log":
            logger.info(f"SMS to {mask_number(number)} ({len(message)} chars) written to log only")
            if settings.OTP_DEBUG_LOG:
                logger.warning("OTP_DEBUG_LOG: SMS for %s: %s (disable OTP_DEBUG_LOG in production)", number, message)
            return True

        return self._send_twofactor(number, message)

    def _send_twofactor(self, number: str, message: str) -> bool:
        # 2factor expects the number without the leading +
        to = number.lstrip("+")
        try:
            logger.info(f"Sending SMS via 2factor.in to {mask_number(number)}")
            response = requests.post(
                self.BASE_URL,
                data={
                    "module": "TRANS_SMS",
                    "apikey": self.api_key,
                    "to": to,
                    "from": self.sender_id,
                    "msg": message,
                },
                timeout=10,
            )
            logger.debug(f"2factor.in response status: {response.status_code}")

            # Don't raise for status, check the JSON response instead
            try:
                data = response.json()
            except ValueError:
                logger.error(f"Invalid JSON response from 2factor.in: {response.text}")
                return False

            if data.get("Status") == "Success":
                logger.info(
                    "SMS sent successfully via 2factor.in: Status=%s, Details=%s",
                    data.get("Status"),
                    data.get("Details"),
                )
                return True

            error_msg = data.get("Details", data.get("Message", "Unknown error"))
            logger.error(f"Failed to send SMS via 2factor.in: Status={data.get('Status')}, Details={error_msg}")
            return False

        except requests.exceptions.Timeout:
            logger.error(f"Timeout while sending SMS via 2factor.in to {mask_number(number)}")
            return False
        except requests.exceptions.ConnectionError as e:
            logger.error(f"Connection error while sending SMS via 2factor.in: {e}")
            return False
        except requests.exceptions.RequestException as e:
            logger.error(f"Request error while sending SMS via 2factor.in: {e}", exc_info=True)
            return False
