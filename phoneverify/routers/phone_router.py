# phoneverify/routers/phone_router.py
from typing import Dict, List, Optional
import logging

import phonenumbers
from fastapi import APIRouter, Depends, HTTPException, Query

from phoneverify.core.config import settings
from phoneverify.core.deps import admin_auth, get_field_service, get_validator, optional_admin
from phoneverify.schemas.phone import (
    PhoneEntityResponse,
    PhoneEntitySaveRequest,
    PhoneEntitySaveResponse,
    PhoneEntryResponse,
    PhoneFieldCreate,
    PhoneFieldResponse,
    PhoneFieldUpdate,
    ValidateRequest,
    ValidateResponse,
)
from phoneverify.services.phone import formatters
from phoneverify.services.phone.field_service import ConstraintViolationException, PhoneFieldService
from phoneverify.services.validation.phone_validator import PhoneValidator, type_name

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/countries", response_model=Dict[str, str])
def list_countries(
    names: bool = Query(True, description="Show country names instead of ISO2 codes"),
    countries: Optional[str] = Query(None, description="Comma-separated ISO2 filter"),
    validator: PhoneValidator = Depends(get_validator),
):
    """Supported countries with their dial codes, sorted by label"""
    filter = [c.strip() for c in countries.split(",") if c.strip()] if countries else None
    return validator.get_country_options(filter, show_country_names=names)


@router.get("/types", response_model=Dict[str, str])
def list_types(validator: PhoneValidator = Depends(get_validator)):
    """Phone number types, e.g. MOBILE, FIXED_LINE"""
    return validator.get_type_options()


@router.post("/validate", response_model=ValidateResponse)
def validate_number(
    body: ValidateRequest,
    validator: PhoneValidator = Depends(get_validator),
):
    """
    Parse and check a number

    Country or type mismatches and unparsable numbers are answered with 422.
    ``valid`` reports the format/country rules (the request's, or the global
    validation settings when none are given).
    """
    phone_number = validator.check_phone_number(body.number, body.country, body.extension, body.types)

    fmt = body.format.value if body.format else settings.VALIDATION_FORMAT
    countries = body.countries or settings.VALIDATION_COUNTRIES
    country = validator.get_country(phone_number)

    return ValidateResponse(
        valid=validator.is_valid(validator.get_callable_number(phone_number), fmt, countries),
        phone_number=validator.get_callable_number(phone_number),
        local_number=validator.get_local_number(phone_number),
        national=validator.format_national(phone_number),
        international=validator.format_international(phone_number),
        country_iso2=country,
        country_code=validator.get_country_code(phone_number),
        country_name=validator.get_country_name(country),
        type=type_name(phonenumbers.number_type(phone_number)),
    )


@router.get("/fields", response_model=List[PhoneFieldResponse])
def list_fields(
    entity_type: Optional[str] = Query(None),
    field_service: PhoneFieldService = Depends(get_field_service),
):
    return [PhoneFieldResponse.model_validate(f) for f in field_service.list_fields(entity_type)]


@router.get("/fields/{entity_type}/{name}", response_model=PhoneFieldResponse)
def get_field(
    entity_type: str,
    name: str,
    field_service: PhoneFieldService = Depends(get_field_service),
):
    field = field_service.get_field(entity_type, name)
    if not field:
        raise HTTPException(status_code=404, detail="Phone field not found")
    return PhoneFieldResponse.model_validate(field)


@router.post("/fields", response_model=PhoneFieldResponse, status_code=201)
def create_field(
    body: PhoneFieldCreate,
    _: bool = Depends(admin_auth),  # Admin authentication required
    field_service: PhoneFieldService = Depends(get_field_service),
):
    """Create a phone field on an entity type (Admin only)"""
    try:
        field = field_service.create_field(body.model_dump(mode="json"))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return PhoneFieldResponse.model_validate(field)


@router.patch("/fields/{entity_type}/{name}", response_model=PhoneFieldResponse)
def update_field(
    entity_type: str,
    name: str,
    body: PhoneFieldUpdate,
    _: bool = Depends(admin_auth),
    field_service: PhoneFieldService = Depends(get_field_service),
):
    """Change settings of a phone field (Admin only)"""
    field = field_service.get_field(entity_type, name)
    if not field:
        raise HTTPException(status_code=404, detail="Phone field not found")
    try:
        field = field_service.update_field(field, body.model_dump(mode="json", exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return PhoneFieldResponse.model_validate(field)


@router.delete("/fields/{entity_type}/{name}", status_code=204)
def delete_field(
    entity_type: str,
    name: str,
    _: bool = Depends(admin_auth),
    field_service: PhoneFieldService = Depends(get_field_service),
):
    """Delete a phone field and its stored values (Admin only)"""
    field = field_service.get_field(entity_type, name)
    if not field:
        raise HTTPException(status_code=404, detail="Phone field not found")
    field_service.delete_field(field)


@router.put("/entities/{entity_type}/{entity_id}/{field_name}", response_model=PhoneEntitySaveResponse)
def save_entity_phone(
    entity_type: str,
    entity_id: str,
    field_name: str,
    body: PhoneEntitySaveRequest,
    is_admin: bool = Depends(optional_admin),
    field_service: PhoneFieldService = Depends(get_field_service),
):
    """
    Validate and store the phone values of an entity's field

    Values replace the ones stored before. Verification codes may be
    submitted with each value. Administrators may bypass required
    verification and set the verified flag directly.
    """
    field = field_service.get_field(entity_type, field_name)
    if not field:
        raise HTTPException(status_code=404, detail="Phone field not found")

    values = []
    for item in body.items:
        data = item.model_dump(exclude_none=True)
        if not is_admin:
            # Only administrators may mark numbers verified without a code
            data.pop("verified", None)
        values.append(data)

    try:
        entries = field_service.save_entity_items(field, entity_id, values, bypass_verification=is_admin)
    except ConstraintViolationException as e:
        raise HTTPException(status_code=422, detail=[v.to_dict() for v in e.violations])

    return PhoneEntitySaveResponse(
        success=True,
        message=f"Saved {len(entries)} phone number(s)",
        items=[PhoneEntryResponse.model_validate(entry) for entry in entries],
    )


@router.get("/entities/{entity_type}/{entity_id}/{field_name}", response_model=PhoneEntityResponse)
def get_entity_phone(
    entity_type: str,
    entity_id: str,
    field_name: str,
    formatter: Optional[str] = Query(None, description=", ".join(formatters.FORMATTERS)),
    link: bool = Query(False, description="Render numbers as tel: links"),
    title: str = Query("", description="Link title instead of the number"),
    type: str = Query("name", description="phone_country output: name, code or iso2"),
    field_service: PhoneFieldService = Depends(get_field_service),
):
    """Stored phone values of an entity's field, optionally rendered by a formatter"""
    if not field_service.get_field(entity_type, field_name):
        raise HTTPException(status_code=404, detail="Phone field not found")

    entries = field_service.load_entity_items(entity_type, entity_id, field_name)
    formatted = None
    if formatter:
        try:
            formatted = formatters.render(
                formatter, entries, field_service.validator, {"link": link, "title": title, "type": type}
            )
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    return PhoneEntityResponse(
        entity_type=entity_type,
        entity_id=entity_id,
        field_name=field_name,
        items=[PhoneEntryResponse.model_validate(entry) for entry in entries],
        formatted=formatted,
    )
