# phoneverify/services/phone/field_service.py
import logging
from typing import Any, Dict, List, Optional

from sqlmodel import Session, select

from phoneverify.db.models import PhoneEntry, PhoneField
from phoneverify.db.models.phone.phone import utc_now
from phoneverify.services.phone.constraints import (
    Violation,
    validate_phone,
    validate_validation,
    validate_verification,
)
from phoneverify.services.phone.phone_item import PHONE_COLUMNS, PhoneItem, PhoneVerificationItem
from phoneverify.services.verification.phone_verifier import PhoneVerifier

logger = logging.getLogger(__name__)

CARDINALITY_UNLIMITED = -1


class ConstraintViolationException(Exception):
    """Submitted phone items failed validation"""

    def __init__(self, violations: List[Violation]):
        super().__init__("; ".join(v.message for v in violations))
        self.violations = violations


class PhoneFieldService:
    """Phone field definitions and the phone values stored on entities"""

    def __init__(self, session: Session, verifier: PhoneVerifier):
        self.session = session
        self.verifier = verifier
        self.validator = verifier.validator

    def list_fields(self, entity_type: Optional[str] = None) -> List[PhoneField]:
        statement = select(PhoneField)
        if entity_type:
            statement = statement.where(PhoneField.entity_type == entity_type)
        return list(self.session.exec(statement.order_by(PhoneField.entity_type, PhoneField.name)).all())

    def get_field(self, entity_type: str, name: str) -> Optional[PhoneField]:
        statement = select(PhoneField).where(PhoneField.entity_type == entity_type, PhoneField.name == name)
        return self.session.exec(statement).first()

    def _check_settings(self, field: PhoneField) -> None:
        field.countries = [c.upper() for c in field.countries or []]
        field.validation_countries = [c.upper() for c in field.validation_countries or []]
        if field.tfa and not (self.verifier.is_tfa_enabled() and field.cardinality == 1):
            raise ValueError("Two factor authentication requires TFA to be enabled and a single value field")
        if field.tfa and field.entity_type != "user":
            raise ValueError("Two factor authentication is only available on user phone fields")

    def _sync_tfa(self, field: PhoneField) -> None:
        # At most one user field is the TFA field
        if field.entity_type != "user":
            return
        if field.tfa:
            self.verifier.set_tfa_field(field.name)
        elif self.verifier.get_tfa_field() == field.name:
            self.verifier.set_tfa_field("")

    def create_field(self, data: Dict[str, Any]) -> PhoneField:
        """Create a field definition; ValueError when it exists or its settings conflict"""
        if self.get_field(data["entity_type"], data["name"]):
            raise ValueError(f"Phone field {data['entity_type']}.{data['name']} already exists")

        field = PhoneField(**data)
        self._check_settings(field)
        try:
            self.session.add(field)
            self.session.commit()
            self.session.refresh(field)
        except Exception as e:
            logger.error(f"Error creating phone field: {e}")
            self.session.rollback()
            raise

        self._sync_tfa(field)
        logger.info(f"Phone field {field.entity_type}.{field.name} created")
        return field

    def update_field(self, field: PhoneField, data: Dict[str, Any]) -> PhoneField:
        for key, value in data.items():
            setattr(field, key, value)
        self._check_settings(field)
        field.updated_at = utc_now()
        try:
            self.session.add(field)
            self.session.commit()
            self.session.refresh(field)
        except Exception as e:
            logger.error(f"Error updating phone field: {e}")
            self.session.rollback()
            raise

        self._sync_tfa(field)
        logger.info(f"Phone field {field.entity_type}.{field.name} updated")
        return field

    def delete_field(self, field: PhoneField) -> None:
        """Delete a field definition together with all values stored for it"""
        entity_type, name, was_tfa = field.entity_type, field.name, field.tfa
        try:
            for entry in self._entries(field.entity_type, None, field.name):
                self.session.delete(entry)
            self.session.delete(field)
            self.session.commit()
        except Exception as e:
            logger.error(f"Error deleting phone field: {e}")
            self.session.rollback()
            raise

        if was_tfa and entity_type == "user" and self.verifier.get_tfa_field() == name:
            self.verifier.set_tfa_field("")
        logger.info(f"Phone field {entity_type}.{name} deleted")

    def is_verification_field(self, field: PhoneField) -> bool:
        return field.verify != PhoneVerifier.VERIFY_NONE or field.tfa

    def make_item(self, field: PhoneField, values: Dict[str, Any], entity_id: Optional[str] = None,
                  delta: int = 0) -> PhoneItem:
        if self.is_verification_field(field):
            return PhoneVerificationItem(field, values, self.verifier, entity_id, delta)
        return PhoneItem(field, values, self.session, self.validator, entity_id, delta)

    def validate_items(self, field: PhoneField, items: List[PhoneItem],
                       bypass_verification: bool = False) -> List[Violation]:
        violations = []
        # Empty items are dropped before counting and checking
        items = [item for item in items if not item.is_blank()]
        if field.cardinality != CARDINALITY_UNLIMITED and len(items) > field.cardinality:
            violations.append(Violation(
                "cardinality",
                f"{field.label}: this field cannot hold more than {field.cardinality} values.",
            ))

        if field.required and not items:
            violations.append(Violation("phone", f"{field.label} field is required."))
            return violations

        for item in items:
            if isinstance(item, PhoneVerificationItem):
                violations.extend(validate_verification(item, bypass_verification))
            else:
                violations.extend(validate_phone(item))
            violations.extend(validate_validation(item))
        return violations

    def save_entity_items(self, field: PhoneField, entity_id: str, values: List[Dict[str, Any]],
                          bypass_verification: bool = False) -> List[PhoneEntry]:
        """
        Validate, normalise and store the phone values of one entity's field.

        Existing values of that field are replaced. Raises
        ConstraintViolationException when any item fails validation.
        """
        items = [self.make_item(field, v, entity_id, delta) for delta, v in enumerate(values)]
        violations = self.validate_items(field, items, bypass_verification)
        if violations:
            raise ConstraintViolationException(violations)

        # Normalise while the previous values are still stored, so that numbers
        # already verified on this entity stay verified
        for item in items:
            if not field.tfa:
                item.values["tfa"] = False
            item.pre_save()

        entries = []
        try:
            for entry in self._entries(field.entity_type, entity_id, field.name):
                self.session.delete(entry)
            self.session.flush()

            delta = 0
            for item in items:
                stored = item.values
                if not stored.get("phone_number"):
                    continue
                entry = PhoneEntry(
                    entity_type=field.entity_type,
                    entity_id=str(entity_id),
                    field_name=field.name,
                    delta=delta,
                    verified=bool(stored.get("verified")),
                    tfa=bool(stored.get("tfa")),
                    **{column: stored.get(column) or None for column in PHONE_COLUMNS},
                )
                self.session.add(entry)
                entries.append(entry)
                delta += 1

            self.session.commit()
            for entry in entries:
                self.session.refresh(entry)
        except Exception as e:
            logger.error(f"Error saving phone values for {field.entity_type} {entity_id}: {e}")
            self.session.rollback()
            raise

        logger.info(f"Stored {len(entries)} phone value(s) on {field.entity_type} {entity_id} ({field.name})")
        return entries

    def load_entity_items(self, entity_type: str, entity_id: str, field_name: str) -> List[PhoneEntry]:
        return self._entries(entity_type, entity_id, field_name)

    def _entries(self, entity_type: str, entity_id: Optional[str], field_name: str) -> List[PhoneEntry]:
        statement = select(PhoneEntry).where(
            PhoneEntry.entity_type == entity_type,
            PhoneEntry.field_name == field_name,
        )
        if entity_id is not None:
            statement = statement.where(PhoneEntry.entity_id == str(entity_id))
        return list(self.session.exec(statement.order_by(PhoneEntry.delta)).all())
