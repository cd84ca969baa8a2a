# phoneverify/services/validation/exceptions.py
from typing import Optional


class PhoneNumberException(Exception):
    """Raised when a phone number fails parsing or validation"""

    ERROR_INVALID_NUMBER = 1
    ERROR_WRONG_TYPE = 2
    ERROR_WRONG_COUNTRY = 3
    ERROR_NO_NUMBER = 4

    ERROR_NAMES = {
        ERROR_INVALID_NUMBER: "INVALID_NUMBER",
        ERROR_WRONG_TYPE: "WRONG_TYPE",
        ERROR_WRONG_COUNTRY: "WRONG_COUNTRY",
        ERROR_NO_NUMBER: "NO_NUMBER",
    }

    def __init__(self, message: str = "", code: int = 0):
        super().__init__(message)
        self.message = message
        self.code = code

    @property
    def error_name(self) -> str:
        return self.ERROR_NAMES.get(self.code, "PHONE_NUMBER_ERROR")


class ParseException(PhoneNumberException):
    """The number could not be parsed or is not a valid number"""

    def __init__(self, message: str = "Invalid number", code: int = PhoneNumberException.ERROR_INVALID_NUMBER):
        super().__init__(message, code)


class CountryException(PhoneNumberException):
    """The number belongs to a different country than the one provided"""

    def __init__(self, message: str = "", country: Optional[str] = None,
                 code: int = PhoneNumberException.ERROR_WRONG_COUNTRY):
        super().__init__(message, code)
        self.country = country


class TypeException(PhoneNumberException):
    """The number is of a type that is not allowed (see phonenumbers.PhoneNumberType)"""

    def __init__(self, message: str = "", type: Optional[int] = None,
                 code: int = PhoneNumberException.ERROR_WRONG_TYPE):
        super().__init__(message, code)
        self.type = type
