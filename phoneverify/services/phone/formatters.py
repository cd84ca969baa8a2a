# phoneverify/services/phone/formatters.py
"""Display renderings of stored phone entries"""
from typing import Any, Dict, Iterable, List, Optional

from phoneverify.services.validation.phone_validator import PhoneValidator

FORMATTERS = ("phone_international", "phone_national", "phone_country", "phone_verified")


def _value(item: Any, key: str):
    if isinstance(item, dict):
        return item.get(key)
    return getattr(item, key, None)


def _number_elements(items: Iterable[Any], validator: PhoneValidator, national: bool,
                     link: bool, title: str) -> List[Dict[str, Any]]:
    elements = []
    title = (title or "").strip()
    for delta, item in enumerate(items):
        if not _value(item, "phone_number") or not _value(item, "local_number"):
            continue
        phone_number = validator.get_phone_number(_value(item, "phone_number"))
        if not phone_number:
            continue

        if national:
            text = validator.format_national(phone_number)
        else:
            text = validator.format_international(phone_number)

        element = {"delta": delta, "text": text}
        if link:
            element["href"] = f"tel:{validator.get_callable_number(phone_number)}"
            element["text"] = title or text
        elements.append(element)
    return elements


def phone_international(items: Iterable[Any], validator: PhoneValidator, link: bool = False,
                        title: str = "") -> List[Dict[str, Any]]:
    return _number_elements(items, validator, False, link, title)


def phone_national(items: Iterable[Any], validator: PhoneValidator, link: bool = False,
                   title: str = "") -> List[Dict[str, Any]]:
    return _number_elements(items, validator, True, link, title)


def phone_country(items: Iterable[Any], validator: PhoneValidator, type: str = "name") -> List[Dict[str, Any]]:
    """Country of each entry as ``name``, dial ``code`` or ``iso2``"""
    elements = []
    for delta, item in enumerate(items):
        code = _value(item, "country_code")
        iso2 = _value(item, "country_iso2")
        if not code or not iso2:
            continue
        if type == "code":
            text = code
        elif type == "name":
            text = validator.get_country_name(iso2.upper())
        else:
            text = iso2
        elements.append({"delta": delta, "text": text})
    return elements


def phone_verified(items: Iterable[Any], validator: PhoneValidator) -> List[Dict[str, Any]]:
    elements = []
    for delta, item in enumerate(items):
        if not validator.get_phone_number(_value(item, "phone_number")):
            continue
        verified = bool(_value(item, "verified"))
        elements.append({
            "delta": delta,
            "text": "Verified" if verified else "Not verified",
            "class": "verified-status verified" if verified else "verified-status",
        })
    return elements


def render(formatter: str, items: Iterable[Any], validator: PhoneValidator,
           settings: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
    """Apply a formatter by name with its settings (link/title or type)"""
    settings = settings or {}
    if formatter == "phone_international":
        return phone_international(items, validator, settings.get("link", False), settings.get("title", ""))
    if formatter == "phone_national":
        return phone_national(items, validator, settings.get("link", False), settings.get("title", ""))
    if formatter == "phone_country":
        return phone_country(items, validator, settings.get("type", "name"))
    if formatter == "phone_verified":
        return phone_verified(items, validator)
    raise ValueError(f"Unknown formatter: {formatter}")
