# phoneverify/db/models/verification/verification.py
from sqlmodel import SQLModel, Field


class PhoneVerificationCode(SQLModel, table=True):
    """Ledger of issued verification codes, stored hashed against their token"""
    __tablename__ = "phonenumber_verification"

    token: str = Field(max_length=64, primary_key=True)
    timestamp: int = Field(index=True)  # unix seconds when the code was issued
    verification_code: str = Field(max_length=64)  # code hash, never the code


class PhonenumberSetting(SQLModel, table=True):
    """Runtime-editable settings (e.g. which user field carries TFA numbers)"""
    __tablename__ = "phonenumber_settings"

    name: str = Field(max_length=100, primary_key=True)
    value: str = Field(default="", max_length=255)
