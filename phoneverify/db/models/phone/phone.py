# phoneverify/db/models/phone/phone.py
from typing import List, Optional
from datetime import datetime, timezone

from sqlalchemy import Column, JSON, UniqueConstraint
from sqlmodel import SQLModel, Field

from phoneverify.core.config import settings


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class PhoneField(SQLModel, table=True):
    """Definition and settings of a phone field attached to an entity type"""
    __tablename__ = "phone_fields"
    __table_args__ = (UniqueConstraint("entity_type", "name", name="uq_phone_fields_entity_name"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    entity_type: str = Field(max_length=64, index=True)  # e.g. "user", "node"
    name: str = Field(max_length=64)
    label: str = Field(default="Phone number", max_length=255)
    required: bool = Field(default=False)
    cardinality: int = Field(default=1)

    # Storage settings
    unique: int = Field(default=0)  # 0 no, 1 unique, 2 unique among verified numbers

    # Field settings
    allowed: str = Field(default="all", max_length=10)  # all, include, exclude
    countries: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    validation_number_type: str = Field(default="MOBILE", max_length=32)
    extension_field: bool = Field(default=False)

    # Verification settings
    verify: str = Field(default="none", max_length=10)  # none, optional, required
    message: str = Field(default="Your verification code from !site_name:\n!code", max_length=500)
    length: int = Field(default=settings.VERIFICATION_CODE_LENGTH)
    verify_interval: int = Field(default=settings.VERIFY_ATTEMPTS_INTERVAL)
    verify_count: int = Field(default=settings.VERIFY_ATTEMPTS_COUNT)
    sms_interval: int = Field(default=settings.SMS_ATTEMPTS_INTERVAL)
    sms_count: int = Field(default=settings.SMS_ATTEMPTS_COUNT)
    tfa: bool = Field(default=False)

    # Validation rules; an empty format disables them for this field
    validation_format: Optional[str] = Field(default=None, max_length=10)  # E164, NATIONAL
    validation_countries: List[str] = Field(default_factory=list, sa_column=Column(JSON))

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def queue(self) -> dict:
        """Flood control intervals and counts for this field"""
        return {
            "verify_interval": self.verify_interval,
            "verify_count": self.verify_count,
            "sms_interval": self.sms_interval,
            "sms_count": self.sms_count,
        }


class PhoneEntry(SQLModel, table=True):
    """Stored value of one phone field item on one entity"""
    __tablename__ = "phone_entries"
    __table_args__ = (
        UniqueConstraint("entity_type", "entity_id", "field_name", "delta", name="uq_phone_entries_item"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    entity_type: str = Field(max_length=64, index=True)
    entity_id: str = Field(max_length=64, index=True)
    field_name: str = Field(max_length=64)
    delta: int = Field(default=0)

    phone_number: Optional[str] = Field(default=None, max_length=16, index=True)  # E.164
    local_number: Optional[str] = Field(default=None, max_length=24)
    country_code: Optional[str] = Field(default=None, max_length=3)
    country_iso2: Optional[str] = Field(default=None, max_length=2)
    extension: Optional[str] = Field(default=None, max_length=40)
    verified: bool = Field(default=False)
    tfa: bool = Field(default=False)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)
